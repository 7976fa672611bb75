import json
from unittest.mock import MagicMock, patch

import pytest
from pika.exceptions import UnroutableError

from howhappy.config import QueueConfig, RabbitMQConfig
from howhappy.domain.models import Delivery, JobResult
from howhappy.exceptions import JobPublishError
from howhappy.infrastructure.rabbitmq_queue import ATTEMPT_HEADER, RabbitMQJobQueue

QUEUE = "transcription.request"


def _make_queue() -> tuple[RabbitMQJobQueue, MagicMock]:
    """Create a queue whose connection yields a mocked channel."""
    config = RabbitMQConfig(
        host="rabbitmq",
        user="guest",
        password="guest",
        transcription_queue=QueueConfig(name=QUEUE, max_attempts=3, backoff_base_seconds=2),
    )
    job_queue = RabbitMQJobQueue(MagicMock(), config)
    mock_channel = MagicMock()
    job_queue._channel = MagicMock(return_value=mock_channel)
    return job_queue, mock_channel


def _delivery(attempt: int) -> Delivery:
    return Delivery(job_id="job-1", queue_name=QUEUE, body=b'{"x": 1}', attempt=attempt)


class TestSetup:
    def test_declares_main_retry_and_dead_queues(self) -> None:
        job_queue, mock_channel = _make_queue()
        job_queue.setup(QUEUE)

        declared = {c.kwargs["queue"]: c.kwargs.get("arguments") for c in mock_channel.queue_declare.call_args_list}
        assert set(declared) == {QUEUE, f"{QUEUE}.retry", f"{QUEUE}.dead"}
        assert declared[QUEUE]["x-dead-letter-exchange"] == "jobs.dead"
        assert declared[f"{QUEUE}.retry"]["x-dead-letter-routing-key"] == QUEUE


class TestPublish:
    def test_returns_job_id_and_sets_attempt_header(self) -> None:
        job_queue, mock_channel = _make_queue()

        job_id = job_queue.publish(QUEUE, {"response_id": "r-1", "survey_id": "s-1"})

        kwargs = mock_channel.basic_publish.call_args.kwargs
        assert kwargs["routing_key"] == QUEUE
        assert json.loads(kwargs["body"]) == {"response_id": "r-1", "survey_id": "s-1"}
        assert kwargs["properties"].message_id == job_id
        assert kwargs["properties"].headers == {ATTEMPT_HEADER: 1}

    def test_wraps_broker_errors(self) -> None:
        job_queue, mock_channel = _make_queue()
        mock_channel.basic_publish.side_effect = RuntimeError("channel closed")

        with patch.object(job_queue, "_drop_connection"):
            with pytest.raises(JobPublishError):
                job_queue.publish(QUEUE, {})


class TestSettle:
    def test_success_acks(self) -> None:
        job_queue, mock_channel = _make_queue()
        job_queue._settle(mock_channel, 7, _delivery(1), JobResult.ok(), job_queue._config.queue(QUEUE))
        mock_channel.basic_ack.assert_called_once_with(delivery_tag=7)

    def test_retryable_failure_goes_to_retry_queue_with_backoff(self) -> None:
        job_queue, mock_channel = _make_queue()

        job_queue._settle(
            mock_channel,
            7,
            _delivery(2),
            JobResult.failure("timeout", retryable=True),
            job_queue._config.queue(QUEUE),
        )

        kwargs = mock_channel.basic_publish.call_args.kwargs
        assert kwargs["routing_key"] == f"{QUEUE}.retry"
        assert kwargs["properties"].expiration == "4000"
        assert kwargs["properties"].headers == {ATTEMPT_HEADER: 3}
        mock_channel.basic_ack.assert_called_once_with(delivery_tag=7)

    def test_exhausted_attempts_dead_letter(self) -> None:
        job_queue, mock_channel = _make_queue()

        job_queue._settle(
            mock_channel,
            7,
            _delivery(3),
            JobResult.failure("timeout", retryable=True),
            job_queue._config.queue(QUEUE),
        )

        mock_channel.basic_publish.assert_not_called()
        mock_channel.basic_reject.assert_called_once_with(delivery_tag=7, requeue=False)

    def test_non_retryable_failure_dead_letters_immediately(self) -> None:
        job_queue, mock_channel = _make_queue()

        job_queue._settle(
            mock_channel,
            7,
            _delivery(1),
            JobResult.failure("bad payload", retryable=False),
            job_queue._config.queue(QUEUE),
        )

        mock_channel.basic_reject.assert_called_once_with(delivery_tag=7, requeue=False)

    def test_failed_retry_publish_requeues(self) -> None:
        job_queue, mock_channel = _make_queue()
        mock_channel.basic_publish.side_effect = RuntimeError("channel closed")

        job_queue._settle(
            mock_channel,
            7,
            _delivery(1),
            JobResult.failure("timeout", retryable=True),
            job_queue._config.queue(QUEUE),
        )

        mock_channel.basic_nack.assert_called_once_with(delivery_tag=7, requeue=True)
        mock_channel.basic_ack.assert_not_called()


class TestConnectionLifecycle:
    @staticmethod
    def _make_unpatched_queue() -> RabbitMQJobQueue:
        config = RabbitMQConfig(host="rabbitmq", user="guest", password="guest")
        return RabbitMQJobQueue(MagicMock(), config)

    @staticmethod
    def _make_connection(publish_error: Exception | None = None) -> MagicMock:
        connection = MagicMock()
        connection.is_open = True
        channel = connection.channel.return_value
        channel.is_open = True
        channel.basic_publish.side_effect = publish_error
        return connection

    def test_failed_publishes_close_their_connection(self) -> None:
        job_queue = self._make_unpatched_queue()
        opened = [self._make_connection(UnroutableError([])) for _ in range(5)]

        with patch("howhappy.infrastructure.rabbitmq_queue.pika.BlockingConnection", side_effect=opened):
            for _ in opened:
                with pytest.raises(JobPublishError):
                    job_queue.publish(QUEUE, {"response_id": "r-1"})

        for connection in opened:
            connection.close.assert_called_once()
        assert job_queue._connections == []

    def test_reuses_connection_while_channel_is_open(self) -> None:
        job_queue = self._make_unpatched_queue()
        connection = self._make_connection()

        with patch(
            "howhappy.infrastructure.rabbitmq_queue.pika.BlockingConnection", return_value=connection
        ) as factory:
            job_queue.publish(QUEUE, {})
            job_queue.publish(QUEUE, {})

        factory.assert_called_once()
        assert job_queue._connections == [connection]

    def test_replaces_connection_whose_channel_closed(self) -> None:
        job_queue = self._make_unpatched_queue()
        first, second = self._make_connection(), self._make_connection()

        with patch("howhappy.infrastructure.rabbitmq_queue.pika.BlockingConnection", side_effect=[first, second]):
            job_queue.publish(QUEUE, {})
            first.channel.return_value.is_open = False
            job_queue.publish(QUEUE, {})

        first.close.assert_called_once()
        assert job_queue._connections == [second]

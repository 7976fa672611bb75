import json
from unittest.mock import MagicMock

from howhappy.config import QueueConfig
from howhappy.domain.models import Delivery, JobPayload, JobResult
from howhappy.worker import Worker


def _make_worker() -> tuple[Worker, MagicMock, MagicMock]:
    """Create a Worker with mocked dependencies."""
    mock_queue = MagicMock()
    mock_handler = MagicMock(stage="transcription")
    worker = Worker(mock_queue, mock_handler, QueueConfig(name="transcription.request", batch_size=4))
    return worker, mock_queue, mock_handler


def _delivery(body: bytes) -> Delivery:
    return Delivery(job_id="job-1", queue_name="transcription.request", body=body)


class TestWorkerStart:
    def test_subscribes_with_batch_size(self) -> None:
        worker, mock_queue, _handler = _make_worker()
        worker.start()
        mock_queue.subscribe.assert_called_once_with("transcription.request", 4, worker._on_message)


class TestWorkerMessages:
    def test_passes_decoded_payload_to_handler(self) -> None:
        worker, _queue, mock_handler = _make_worker()
        mock_handler.process.return_value = JobResult.ok()
        body = json.dumps({"response_id": "r-1", "survey_id": "s-1"}).encode()

        result = worker._on_message(_delivery(body))

        assert result.success
        mock_handler.process.assert_called_once_with(JobPayload(response_id="r-1", survey_id="s-1"))

    def test_returns_handler_failure(self) -> None:
        worker, _queue, mock_handler = _make_worker()
        mock_handler.process.return_value = JobResult.failure("boom", retryable=True)
        body = json.dumps({"response_id": "r-1", "survey_id": "s-1"}).encode()

        result = worker._on_message(_delivery(body))

        assert result == JobResult.failure("boom", retryable=True)

    def test_invalid_json_is_not_retried(self) -> None:
        worker, _queue, mock_handler = _make_worker()
        result = worker._on_message(_delivery(b"{not json"))
        assert not result.success
        assert not result.retryable
        mock_handler.process.assert_not_called()

    def test_missing_fields_are_not_retried(self) -> None:
        worker, _queue, mock_handler = _make_worker()
        result = worker._on_message(_delivery(json.dumps({"response_id": ""}).encode()))
        assert not result.retryable
        mock_handler.process.assert_not_called()

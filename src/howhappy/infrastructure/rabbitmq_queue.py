"""RabbitMQ implementation of the JobQueue interface."""

import json
import logging
import threading
import uuid

import pika
from pika.adapters.blocking_connection import BlockingChannel

from howhappy.config import QueueConfig, RabbitMQConfig
from howhappy.domain.models import Delivery, JobResult
from howhappy.exceptions import JobPublishError
from howhappy.infrastructure.interfaces import JobHandler, JobQueue

logger = logging.getLogger(__name__)

ATTEMPT_HEADER = "x-attempt"


class RabbitMQJobQueue(JobQueue):
    """
    Job queue backed by RabbitMQ.

    Each job queue gets three companions:

    - the main quorum queue, bound to the jobs exchange by its own name;
    - ``<name>.retry``, never consumed, where failed jobs wait out their
      backoff as per-message TTL and then dead-letter back to the main queue;
    - ``<name>.dead``, where jobs land once their attempts are exhausted or
      their failure is not retryable.

    pika's blocking channels are not thread-safe, so every thread gets its own
    connection.
    """

    def __init__(
        self,
        parameters: pika.ConnectionParameters,
        config: RabbitMQConfig,
        exchange_name: str = "jobs",
        dead_letter_exchange_name: str = "jobs.dead",
    ):
        self._parameters = parameters
        self._config = config
        self._exchange_name = exchange_name
        self._dlx_name = dead_letter_exchange_name
        self._local = threading.local()
        self._connections: list[pika.BlockingConnection] = []
        self._connections_guard = threading.Lock()

    def setup(self, queue_name: str) -> None:
        queue_config = self._config.queue(queue_name)
        channel = self._channel()

        # Dead letter exchange and queue
        channel.exchange_declare(exchange=self._dlx_name, exchange_type="direct", durable=True)
        channel.queue_declare(queue=queue_config.dead_letter_queue_name, durable=True)
        channel.queue_bind(
            queue=queue_config.dead_letter_queue_name,
            exchange=self._dlx_name,
            routing_key=queue_name,
        )

        # Main exchange and queue; x-delivery-limit caps redeliveries of
        # jobs whose consumer died before acknowledging.
        channel.exchange_declare(exchange=self._exchange_name, exchange_type="direct", durable=True)
        channel.queue_declare(
            queue=queue_name,
            durable=True,
            arguments={
                "x-queue-type": "quorum",
                "x-delivery-limit": queue_config.max_attempts,
                "x-dead-letter-exchange": self._dlx_name,
                "x-dead-letter-routing-key": queue_name,
            },
        )
        channel.queue_bind(queue=queue_name, exchange=self._exchange_name, routing_key=queue_name)

        # Delay queue
        channel.queue_declare(
            queue=queue_config.retry_queue_name,
            durable=True,
            arguments={
                "x-dead-letter-exchange": self._exchange_name,
                "x-dead-letter-routing-key": queue_name,
            },
        )

        logger.info(
            "Queue infrastructure ready",
            extra={"queue": queue_name, "exchange": self._exchange_name},
        )

    def publish(self, queue_name: str, payload: dict) -> str:
        job_id = uuid.uuid4().hex
        try:
            self._channel().basic_publish(
                exchange=self._exchange_name,
                routing_key=queue_name,
                body=json.dumps(payload),
                properties=pika.BasicProperties(
                    message_id=job_id,
                    content_type="application/json",
                    delivery_mode=pika.DeliveryMode.Persistent,
                    headers={ATTEMPT_HEADER: 1},
                ),
                mandatory=True,
            )
        except Exception as e:
            logger.exception("Failed to publish job", extra={"queue": queue_name})
            self._drop_connection()
            raise JobPublishError(queue_name, cause=e) from e

        logger.info("Job published", extra={"queue": queue_name, "job_id": job_id})
        return job_id

    def subscribe(self, queue_name: str, batch_size: int, handler: JobHandler) -> None:
        queue_config = self._config.queue(queue_name)
        channel = self._channel()
        channel.basic_qos(prefetch_count=batch_size)

        def on_message(ch, method, properties, body):
            headers = (properties.headers if properties else None) or {}
            attempt = int(headers.get(ATTEMPT_HEADER, 1)) + int(headers.get("x-delivery-count", 0))
            delivery = Delivery(
                job_id=(properties.message_id if properties else None) or str(method.delivery_tag),
                queue_name=queue_name,
                body=body,
                attempt=attempt,
            )

            try:
                result = handler(delivery)
            except Exception as e:
                logger.exception(
                    "Job handler raised",
                    extra={"queue": queue_name, "job_id": delivery.job_id},
                )
                result = JobResult.failure(str(e), retryable=True)

            self._settle(ch, method.delivery_tag, delivery, result, queue_config)

        channel.basic_consume(queue=queue_name, on_message_callback=on_message)
        logger.info("Started consuming", extra={"queue": queue_name, "batch_size": batch_size})
        channel.start_consuming()

    def close(self) -> None:
        with self._connections_guard:
            connections, self._connections = self._connections, []
        for connection in connections:
            if connection.is_open:
                connection.close()
        self._local = threading.local()
        logger.info("RabbitMQ connections closed")

    def _settle(
        self,
        channel: BlockingChannel,
        delivery_tag: int,
        delivery: Delivery,
        result: JobResult,
        queue_config: QueueConfig,
    ) -> None:
        context = {
            "queue": delivery.queue_name,
            "job_id": delivery.job_id,
            "attempt": delivery.attempt,
            "max_attempts": queue_config.max_attempts,
        }

        if result.success:
            channel.basic_ack(delivery_tag=delivery_tag)
            logger.info("Job acknowledged", extra=context)
            return

        if result.retryable and delivery.attempt < queue_config.max_attempts:
            delay = queue_config.backoff_for(delivery.attempt)
            try:
                channel.basic_publish(
                    exchange="",
                    routing_key=queue_config.retry_queue_name,
                    body=delivery.body,
                    properties=pika.BasicProperties(
                        message_id=delivery.job_id,
                        content_type="application/json",
                        delivery_mode=pika.DeliveryMode.Persistent,
                        expiration=str(int(delay * 1000)),
                        headers={ATTEMPT_HEADER: delivery.attempt + 1},
                    ),
                )
            except Exception:
                logger.exception("Failed to schedule retry, requeueing", extra=context)
                channel.basic_nack(delivery_tag=delivery_tag, requeue=True)
                return
            channel.basic_ack(delivery_tag=delivery_tag)
            logger.warning(
                "Job scheduled for retry",
                extra={**context, "delay_seconds": delay, "reason": result.message},
            )
            return

        # The main queue dead-letters rejected messages to <name>.dead.
        channel.basic_reject(delivery_tag=delivery_tag, requeue=False)
        logger.error("Job dead-lettered", extra={**context, "reason": result.message})

    def _channel(self) -> BlockingChannel:
        channel = getattr(self._local, "channel", None)
        if channel is not None and channel.is_open:
            return channel

        self._drop_connection()
        connection = pika.BlockingConnection(self._parameters)
        channel = connection.channel()
        channel.confirm_delivery()
        with self._connections_guard:
            self._connections.append(connection)
        self._local.connection = connection
        self._local.channel = channel
        return channel

    def _drop_connection(self) -> None:
        """Discards this thread's connection so the next call reconnects."""
        connection = getattr(self._local, "connection", None)
        self._local.connection = None
        self._local.channel = None
        if connection is None:
            return

        with self._connections_guard:
            if connection in self._connections:
                self._connections.remove(connection)
        if connection.is_open:
            try:
                connection.close()
            except Exception:
                logger.warning("Failed to close broken connection", exc_info=True)

"""Worker that handles queue message consumption and orchestration."""

import json
import logging

from pydantic import ValidationError

from howhappy.config import QueueConfig
from howhappy.domain.models import Delivery, JobPayload, JobResult
from howhappy.handlers import StageHandler
from howhappy.infrastructure.interfaces import JobQueue

logger = logging.getLogger(__name__)


class Worker:
    """Consumes jobs from one queue and hands them to a stage handler."""

    def __init__(self, queue: JobQueue, handler: StageHandler, queue_config: QueueConfig):
        self._queue = queue
        self._handler = handler
        self._queue_config = queue_config

    def start(self) -> None:
        """Starts consuming jobs from the queue."""
        logger.info(
            "Worker initialized, starting job consumption",
            extra={"queue": self._queue_config.name, "stage": self._handler.stage},
        )
        self._queue.subscribe(self._queue_config.name, self._queue_config.batch_size, self._on_message)

    def _on_message(self, delivery: Delivery) -> JobResult:
        """Callback for each received job."""
        logger.info(
            "Job received",
            extra={
                "job_id": delivery.job_id,
                "attempt": delivery.attempt,
                "max_attempts": self._queue_config.max_attempts,
            },
        )

        try:
            payload = JobPayload.model_validate(json.loads(delivery.body))
        except (ValidationError, ValueError) as e:
            logger.exception("Invalid job format", extra={"job_id": delivery.job_id, "error": str(e)})
            return JobResult.failure("Invalid job payload", retryable=False)

        result = self._handler.process(payload)
        if result.success:
            logger.info(
                "Job processed successfully",
                extra={"job_id": delivery.job_id, "response_id": payload.response_id},
            )
        else:
            logger.warning(
                "Job processing failed",
                extra={
                    "job_id": delivery.job_id,
                    "response_id": payload.response_id,
                    "retryable": result.retryable,
                    "reason": result.message,
                },
            )
        return result

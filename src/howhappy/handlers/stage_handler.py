"""Shared claim/complete/fail protocol for the processing stages."""

import logging
from abc import ABC, abstractmethod
from typing import Any

from howhappy.db_models import SurveyResponse
from howhappy.domain.models import JobPayload, JobResult, JobStatus
from howhappy.domain.state_machine import is_terminal
from howhappy.repositories import ResponseRepository

logger = logging.getLogger(__name__)


class StageHandler(ABC):
    """
    Runs one pipeline stage for one response.

    The stage status is moved to PROCESSING before the external call and to
    COMPLETED or FAILED after it, each through a compare-and-set, so a crash
    leaves PROCESSING behind rather than PENDING and a redelivered job can
    never regress a COMPLETED stage.
    """

    status_field: str
    stage: str

    def __init__(self, repository: ResponseRepository):
        self._repository = repository

    def process(self, payload: JobPayload) -> JobResult:
        context = {"response_id": payload.response_id, "survey_id": payload.survey_id, "stage": self.stage}
        logger.info("Processing stage", extra=context)

        response = self._repository.find_by_id(payload.response_id)
        if response is None or response.survey_id != payload.survey_id:
            logger.error("Response not found", extra=context)
            return JobResult.failure("Response not found", retryable=False)

        if self._is_done(response):
            logger.info("Stage already completed, skipping", extra=context)
            return self.after_completed(response)

        missing = self.missing_input(response)
        if missing:
            logger.error("Stage input missing", extra={**context, "reason": missing})
            return JobResult.failure(missing, retryable=False)

        if not self._claim(response.id):
            current = self._repository.find_by_id(response.id)
            if current is not None and self._is_done(current):
                logger.info("Stage completed concurrently, skipping", extra=context)
                return self.after_completed(current)
            # Still PROCESSING: an earlier delivery died mid-flight.
            logger.warning("Resuming stage left in PROCESSING", extra=context)

        try:
            values = self.run(response)
        except Exception as e:
            logger.exception("Stage failed", extra=context)
            self._repository.transition(
                response.id,
                self.status_field,
                JobStatus.FAILED,
                expected={JobStatus.PROCESSING},
            )
            return JobResult.failure(str(e), retryable=self.is_retryable(e))

        persisted = self._repository.transition(
            response.id,
            self.status_field,
            JobStatus.COMPLETED,
            expected={JobStatus.PROCESSING},
            **values,
        )
        current = self._repository.find_by_id(response.id)
        if not persisted and (current is None or not self._is_done(current)):
            logger.error("Stage result was not persisted", extra=context)
            return JobResult.failure("Stage result was not persisted", retryable=True)

        logger.info("Stage completed", extra=context)
        return self.after_completed(current)

    @abstractmethod
    def missing_input(self, response: SurveyResponse) -> str | None:
        """Returns why the stage cannot start, or None if its input is present."""

    @abstractmethod
    def run(self, response: SurveyResponse) -> dict[str, Any]:
        """Calls the external service and returns the content fields to persist."""

    def after_completed(self, response: SurveyResponse) -> JobResult:
        return JobResult.ok()

    def is_retryable(self, error: Exception) -> bool:
        return True

    def _claim(self, response_id: str) -> bool:
        return self._repository.transition(
            response_id,
            self.status_field,
            JobStatus.PROCESSING,
            expected={JobStatus.PENDING, JobStatus.FAILED},
        )

    def _status(self, response: SurveyResponse) -> JobStatus:
        return getattr(response, self.status_field)

    def _is_done(self, response: SurveyResponse) -> bool:
        return is_terminal(self.status_field, self._status(response))

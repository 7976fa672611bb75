"""Response lifecycle: prepare, complete/submit, enqueue and owner reads."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from howhappy.config import ANALYSIS_QUEUE, TRANSCRIPTION_QUEUE, MinioConfig, PipelineConfig
from howhappy.db_models import SurveyResponse
from howhappy.domain.models import JobPayload, JobStatus, UploadState
from howhappy.domain.object_keys import audio_object_key
from howhappy.domain.state_machine import can_transition
from howhappy.domain.token_service import TokenService
from howhappy.exceptions import (
    ForbiddenError,
    InternalError,
    JobPublishError,
    NotFoundError,
    PreconditionFailedError,
    ResponsePersistenceError,
    StorageError,
    UnauthorizedError,
)
from howhappy.infrastructure.interfaces import JobQueue, ObjectStore
from howhappy.repositories import ResponseRepository, SurveyRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreparedResponse:
    response: SurveyResponse
    upload_url: str
    response_token: str


@dataclass(frozen=True)
class CompletedResponse:
    response: SurveyResponse
    job_id: str | None = None


@dataclass
class RequeueReport:
    requeued: dict[str, str] = field(default_factory=dict)
    failed: list[str] = field(default_factory=list)


class ResponsePipelineService:
    """
    Orchestrates a response from creation to the transcription queue.

    Upload state only moves forward, through the repository's compare-and-set.
    Completion commits state before publishing; a failed publish is reported
    but not rolled back, and ``requeue_stalled`` re-publishes those later.
    """

    def __init__(
        self,
        responses: ResponseRepository,
        surveys: SurveyRepository,
        storage: ObjectStore,
        queue: JobQueue,
        tokens: TokenService,
        storage_config: MinioConfig,
        pipeline_config: PipelineConfig = PipelineConfig(),
    ):
        self._responses = responses
        self._surveys = surveys
        self._storage = storage
        self._queue = queue
        self._tokens = tokens
        self._presign_ttl = timedelta(seconds=storage_config.presign_ttl_seconds)
        self._audio_extension = storage_config.audio_extension
        self._stalled_after = timedelta(seconds=pipeline_config.stalled_after_seconds)
        self._bucket_ensured = False

    def prepare(
        self,
        survey_id: str,
        actor_user_id: str | None = None,
        anonymous_email: str | None = None,
    ) -> PreparedResponse:
        """
        Creates a PREPARED response, a presigned upload URL and a token
        scoped to that response.

        A signed-in respondent is linked by user id; ``anonymous_email`` is
        only kept for anonymous respondents.

        Raises:
            NotFoundError: If the survey does not exist.
            InternalError: If the database or object store is unavailable.
        """
        if self._surveys.find_by_id(survey_id) is None:
            raise NotFoundError("Survey not found")

        try:
            response = self._responses.create(
                survey_id=survey_id,
                registered_user_id=actor_user_id,
                anonymous_email=None if actor_user_id else anonymous_email,
            )
        except ResponsePersistenceError as e:
            raise InternalError("Failed to create response") from e

        try:
            self._ensure_bucket()
            upload_url = self._storage.presign_upload(
                self._object_key(survey_id, response.id), self._presign_ttl
            )
        except StorageError as e:
            raise InternalError("Failed to prepare audio upload") from e

        token = self._tokens.issue_response_token(survey_id, response.id)

        logger.info(
            "Response prepared",
            extra={
                "response_id": response.id,
                "survey_id": survey_id,
                "anonymous": actor_user_id is None,
            },
        )
        return PreparedResponse(response=response, upload_url=upload_url, response_token=token)

    def complete(
        self, survey_id: str, response_id: str, audio_url: str, token: Any
    ) -> SurveyResponse:
        """
        Marks the upload COMPLETED and enqueues transcription.

        Repeating the call on a COMPLETED response returns it unchanged and
        publishes nothing.

        Raises:
            UnauthorizedError: If ``token`` is not a response token.
            ForbiddenError: If ``token`` was minted for another survey/response.
            NotFoundError: If the response does not belong to the survey.
            PreconditionFailedError: If the upload already FAILED.
            InternalError: If publishing fails; the response stays COMPLETED.
        """
        return self._complete(survey_id, response_id, audio_url, token).response

    def submit(
        self, survey_id: str, response_id: str, audio_url: str, token: Any
    ) -> CompletedResponse:
        """
        Same as ``complete`` but with the response id taken from the body, and
        the published job id returned. ``job_id`` is None for a repeat call.
        """
        return self._complete(survey_id, response_id, audio_url, token)

    def list_by_survey(self, survey_id: str, owner_user_id: str) -> list[SurveyResponse]:
        """
        Raises:
            ForbiddenError: If ``owner_user_id`` does not own the survey.
        """
        if self._surveys.find_owned(survey_id, owner_user_id) is None:
            raise ForbiddenError("Not the survey owner")
        return self._responses.find_by_survey(survey_id)

    def get_response(
        self, survey_id: str, response_id: str, owner_user_id: str
    ) -> SurveyResponse:
        """
        Raises:
            NotFoundError: If the response is absent, belongs to another
                survey, or the caller does not own the survey.
        """
        if self._surveys.find_owned(survey_id, owner_user_id) is None:
            raise NotFoundError("Response not found")
        response = self._responses.find_by_id_and_survey(response_id, survey_id)
        if response is None:
            raise NotFoundError("Response not found")
        return response

    def requeue_stalled(self, now: datetime | None = None) -> RequeueReport:
        """
        Re-publishes stage jobs that were never enqueued.

        Covers a crash or publish failure between committing a stage and
        publishing the next job: uploads without a transcription job, and
        transcripts whose analysis publish exhausted its retries. A duplicate
        job is absorbed by the worker's compare-and-set.
        """
        now = now or datetime.now(timezone.utc)
        report = RequeueReport()
        for response in self._responses.find_stalled(now - self._stalled_after):
            if response.transcription_status == JobStatus.COMPLETED:
                queue_name = ANALYSIS_QUEUE
            else:
                queue_name = TRANSCRIPTION_QUEUE
            try:
                report.requeued[response.id] = self._enqueue(queue_name, response)
                self._responses.touch(response.id)
            except (JobPublishError, ResponsePersistenceError):
                logger.exception("Failed to requeue stalled response", extra={"response_id": response.id})
                report.failed.append(response.id)

        logger.info(
            "Stalled responses swept",
            extra={"requeued": len(report.requeued), "failed": len(report.failed)},
        )
        return report

    def _complete(
        self, survey_id: str, response_id: str, audio_url: str, token: Any
    ) -> CompletedResponse:
        self._authorize(token, survey_id, response_id)

        response = self._responses.find_by_id_and_survey(response_id, survey_id)
        if response is None:
            raise NotFoundError("Response not found")

        if response.upload_state == UploadState.COMPLETED:
            logger.info("Response already completed", extra={"response_id": response_id})
            return CompletedResponse(response=response)
        if not can_transition("upload_state", response.upload_state, UploadState.COMPLETED):
            raise PreconditionFailedError("Response upload has failed")

        try:
            applied = self._responses.transition(
                response_id,
                "upload_state",
                UploadState.COMPLETED,
                audio_url=audio_url,
            )
            updated = self._responses.find_by_id(response_id)
        except ResponsePersistenceError as e:
            raise InternalError("Failed to complete response") from e

        if not applied:
            # A concurrent completion won; it owns the publish.
            if updated is not None and updated.upload_state == UploadState.COMPLETED:
                return CompletedResponse(response=updated)
            raise PreconditionFailedError("Response upload has failed")

        try:
            job_id = self._enqueue(TRANSCRIPTION_QUEUE, updated)
        except JobPublishError as e:
            logger.error(
                "Response completed but transcription was not enqueued",
                extra={"response_id": response_id, "survey_id": survey_id},
            )
            raise InternalError("Failed to enqueue transcription job") from e

        return CompletedResponse(response=updated, job_id=job_id)

    def _authorize(self, token: Any, survey_id: str, response_id: str) -> None:
        if not self._tokens.is_response_token(token):
            raise UnauthorizedError("Response token required")
        if token.survey_id != survey_id or token.response_id != response_id:
            logger.warning(
                "Response token scope mismatch",
                extra={"survey_id": survey_id, "response_id": response_id},
            )
            raise ForbiddenError("Response token mismatch")

    def _enqueue(self, queue_name: str, response: SurveyResponse) -> str:
        payload = JobPayload(response_id=response.id, survey_id=response.survey_id)
        job_id = self._queue.publish(queue_name, payload.model_dump())
        logger.info(
            "Job enqueued",
            extra={"response_id": response.id, "queue": queue_name, "job_id": job_id},
        )
        return job_id

    def _ensure_bucket(self) -> None:
        if self._bucket_ensured:
            return
        self._storage.ensure_bucket()
        self._bucket_ensured = True

    def _object_key(self, survey_id: str, response_id: str) -> str:
        return audio_object_key(survey_id, response_id, self._audio_extension)

"""Handler for transcription jobs."""

import logging
from datetime import timedelta
from typing import Any

from howhappy.config import ANALYSIS_QUEUE, MinioConfig
from howhappy.db_models import SurveyResponse
from howhappy.domain.models import JobPayload, JobResult, JobStatus, UploadState
from howhappy.domain.object_keys import audio_object_key
from howhappy.exceptions import EmptyTranscriptionError, JobPublishError
from howhappy.handlers.stage_handler import StageHandler
from howhappy.infrastructure.interfaces import JobQueue, ObjectStore, TranscriptionService
from howhappy.repositories import ResponseRepository

logger = logging.getLogger(__name__)


class TranscriptionHandler(StageHandler):
    """Transcribes an uploaded response and hands it on to analysis."""

    status_field = "transcription_status"
    stage = "transcription"

    def __init__(
        self,
        repository: ResponseRepository,
        storage: ObjectStore,
        queue: JobQueue,
        transcription_service: TranscriptionService,
        storage_config: MinioConfig,
    ):
        super().__init__(repository)
        self._storage = storage
        self._queue = queue
        self._transcription_service = transcription_service
        self._presign_ttl = timedelta(seconds=storage_config.presign_ttl_seconds)
        self._audio_extension = storage_config.audio_extension

    def missing_input(self, response: SurveyResponse) -> str | None:
        if response.upload_state != UploadState.COMPLETED or not response.audio_url:
            return "No audio uploaded for response"
        return None

    def run(self, response: SurveyResponse) -> dict[str, Any]:
        result = self._transcription_service.transcribe(self._audio_source(response))
        if not result.text.strip():
            raise EmptyTranscriptionError(response.id)

        return {
            "transcription": result.text,
            "confidence": result.confidence,
            "language": result.language,
            "duration": result.duration,
            "segments": [segment.model_dump() for segment in result.segments],
        }

    def is_retryable(self, error: Exception) -> bool:
        return not isinstance(error, EmptyTranscriptionError)

    def after_completed(self, response: SurveyResponse) -> JobResult:
        """Publishes analysis unless it has already left PENDING."""
        if response.analysis_status != JobStatus.PENDING:
            return JobResult.ok("Analysis already underway")

        payload = JobPayload(response_id=response.id, survey_id=response.survey_id)
        try:
            job_id = self._queue.publish(ANALYSIS_QUEUE, payload.model_dump())
        except JobPublishError as e:
            return JobResult.failure(str(e), retryable=True)

        logger.info("Analysis enqueued", extra={"response_id": response.id, "job_id": job_id})
        return JobResult.ok()

    def _audio_source(self, response: SurveyResponse) -> str:
        """
        Prefers a fresh presigned URL for audio uploaded to our bucket;
        falls back to the URL the client reported.
        """
        key = audio_object_key(response.survey_id, response.id, self._audio_extension)
        if self._storage.exists(key):
            return self._storage.presign_download(key, self._presign_ttl)
        return response.audio_url

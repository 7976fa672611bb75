"""Infrastructure interface exports."""

from howhappy.infrastructure.interfaces.analysis_service import AnalysisService
from howhappy.infrastructure.interfaces.cache_service import AnalysisCache
from howhappy.infrastructure.interfaces.job_queue import JobHandler, JobQueue
from howhappy.infrastructure.interfaces.storage import ObjectStore
from howhappy.infrastructure.interfaces.transcription_service import (
    TranscriptionService,
)

__all__ = [
    "AnalysisCache",
    "AnalysisService",
    "JobHandler",
    "JobQueue",
    "ObjectStore",
    "TranscriptionService",
]

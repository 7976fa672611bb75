"""Domain layer exports."""

from howhappy.domain.models import (
    AnalysisResult,
    AnalysisScore,
    Delivery,
    JobPayload,
    JobResult,
    JobStatus,
    ResponseTokenPayload,
    TranscriptionResult,
    TranscriptSegment,
    UploadState,
    UserTokenPayload,
)

__all__ = [
    "AnalysisResult",
    "AnalysisScore",
    "Delivery",
    "JobPayload",
    "JobResult",
    "JobStatus",
    "ResponseTokenPayload",
    "TranscriptionResult",
    "TranscriptSegment",
    "UploadState",
    "UserTokenPayload",
]

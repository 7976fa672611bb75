"""Domain models for the response pipeline."""

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


class UploadState(str, Enum):
    """Upload stage of a response. Forward-only."""

    PREPARED = "PREPARED"
    UPLOADING = "UPLOADING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class JobStatus(str, Enum):
    """Status of a transcription or analysis stage."""

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


USER_TOKEN_TYPE = "user"
RESPONSE_TOKEN_TYPE = "response"


class UserTokenPayload(BaseModel, frozen=True):
    """Claims of a user session token."""

    token_type: Literal["user"] = USER_TOKEN_TYPE
    sub: str


class ResponseTokenPayload(BaseModel, frozen=True):
    """Claims of a token scoped to exactly one survey response."""

    token_type: Literal["response"] = RESPONSE_TOKEN_TYPE
    survey_id: str
    response_id: str


TokenPayload = Annotated[
    Union[UserTokenPayload, ResponseTokenPayload],
    Field(discriminator="token_type"),
]


class JobPayload(BaseModel, frozen=True):
    """Message body shared by the transcription and analysis queues."""

    response_id: str = Field(min_length=1)
    survey_id: str = Field(min_length=1)


class Delivery(BaseModel, frozen=True):
    """One message handed to a queue subscriber."""

    job_id: str
    queue_name: str
    body: bytes
    attempt: int = 1


class JobResult(BaseModel, frozen=True):
    """Outcome a handler reports back to the queue gateway."""

    success: bool
    message: str | None = None
    retryable: bool = False

    @classmethod
    def ok(cls, message: str | None = None) -> "JobResult":
        return cls(success=True, message=message)

    @classmethod
    def failure(cls, message: str, retryable: bool) -> "JobResult":
        return cls(success=False, message=message, retryable=retryable)


class TranscriptSegment(BaseModel, frozen=True):
    """A time-aligned piece of the transcription, in seconds."""

    id: int
    start: float
    end: float
    text: str


class TranscriptionResult(BaseModel, frozen=True):
    """What the external transcription service returns."""

    text: str
    confidence: float | None = None
    language: str | None = None
    duration: float | None = None
    segments: list[TranscriptSegment] = Field(default_factory=list)


class AnalysisScore(BaseModel):
    """A named score reported by the analysis service."""

    name: str
    value: float = Field(ge=-1.0, le=1.0)


class AnalysisResult(BaseModel):
    """What the external analysis service returns."""

    sentiment: Literal["positive", "neutral", "negative", "mixed"]
    keywords: list[str] = Field(default_factory=list)
    summary: str
    scores: list[AnalysisScore] = Field(default_factory=list)

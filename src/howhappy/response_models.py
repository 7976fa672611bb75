from datetime import datetime
from typing import Any

from pydantic import AnyUrl, BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from howhappy.db_models import SurveyResponse
from howhappy.domain.models import JobStatus, UploadState


class CamelModel(BaseModel):
    """Base for request and response bodies, serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PrepareResponseRequest(CamelModel):
    anonymous_email: EmailStr | None = None


class CompleteResponseRequest(CamelModel):
    audio_url: AnyUrl


class SubmitResponseRequest(CamelModel):
    response_id: str = Field(min_length=1)
    audio_url: AnyUrl


class ResponseView(CamelModel):
    """Public view of a survey response."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    survey_id: str
    registered_user_id: str | None = None
    anonymous_email: str | None = None
    upload_state: UploadState
    audio_url: str | None = None
    transcription_status: JobStatus
    transcription: str | None = None
    confidence: float | None = None
    language: str | None = None
    duration: float | None = None
    segments: list[dict[str, Any]] | None = None
    analysis_status: JobStatus
    analysis: dict[str, Any] | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, record: SurveyResponse) -> "ResponseView":
        return cls.model_validate(record)


class PreparedResponseBody(CamelModel):
    response: ResponseView
    upload_url: str
    response_token: str


class ResponseBody(CamelModel):
    response: ResponseView


class SubmittedResponseBody(CamelModel):
    response: ResponseView
    job_id: str | None = None


class ResponseListBody(CamelModel):
    responses: list[ResponseView]


class ErrorDetail(BaseModel):
    code: str
    message: str


class ErrorBody(BaseModel):
    error: ErrorDetail

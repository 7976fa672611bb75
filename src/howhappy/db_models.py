from datetime import datetime, timezone
from typing import Any, List, Optional
from uuid import uuid4

from sqlalchemy import Column, DateTime, Index
from sqlalchemy import Enum as SAEnum
from sqlalchemy.types import JSON
from sqlmodel import Field, Relationship, SQLModel

from howhappy.domain.models import JobStatus, UploadState


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid4())


class Survey(SQLModel, table=True):
    __tablename__ = "surveys"

    id: str = Field(default_factory=_new_id, primary_key=True, max_length=36)
    owner_id: str = Field(index=True, max_length=36)
    title: str = Field(max_length=180)
    prompt: str = ""
    created_at: datetime = Field(default_factory=_utcnow, sa_type=DateTime(timezone=True))

    responses: List["SurveyResponse"] = Relationship(back_populates="survey")


class SurveyResponse(SQLModel, table=True):
    __tablename__ = "survey_responses"
    __table_args__ = (Index("ix_survey_responses_survey_created", "survey_id", "created_at"),)

    id: str = Field(default_factory=_new_id, primary_key=True, max_length=36)
    survey_id: str = Field(foreign_key="surveys.id", max_length=36)
    registered_user_id: Optional[str] = Field(default=None, max_length=36)
    anonymous_email: Optional[str] = Field(default=None, max_length=320)

    upload_state: UploadState = Field(
        default=UploadState.PREPARED,
        sa_column=Column(SAEnum(UploadState, native_enum=False, length=16), nullable=False),
    )
    audio_url: Optional[str] = None

    transcription_status: JobStatus = Field(
        default=JobStatus.PENDING,
        sa_column=Column(SAEnum(JobStatus, native_enum=False, length=16), nullable=False),
    )
    transcription: Optional[str] = None
    confidence: Optional[float] = None
    language: Optional[str] = Field(default=None, max_length=16)
    duration: Optional[float] = None
    segments: Optional[List[dict[str, Any]]] = Field(default=None, sa_column=Column(JSON))

    analysis_status: JobStatus = Field(
        default=JobStatus.PENDING,
        sa_column=Column(SAEnum(JobStatus, native_enum=False, length=16), nullable=False),
    )
    analysis: Optional[dict[str, Any]] = Field(default=None, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=_utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=_utcnow, sa_type=DateTime(timezone=True))

    survey: Survey = Relationship(back_populates="responses")

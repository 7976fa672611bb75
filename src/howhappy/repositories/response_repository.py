"""Repository for survey response persistence."""

import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional

from sqlalchemy import and_, or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from howhappy.db_models import SurveyResponse
from howhappy.domain.models import JobStatus, UploadState
from howhappy.domain.state_machine import STATE_FIELDS, sources_for
from howhappy.exceptions import ResponsePersistenceError

logger = logging.getLogger(__name__)


class ResponseRepository:
    """
    Handles database operations for survey responses.

    Content fields are plain last-writer-wins updates. State fields only move
    through ``transition``, a single conditional UPDATE that applies only when
    the row is still in one of the expected prior states. A writer that loses
    the race gets ``False`` back and has written nothing.
    """

    def __init__(self, session_factory):
        """
        Initializes the repository.

        Args:
            session_factory: Callable that returns a SQLModel Session context manager.
        """
        self._session_factory = session_factory

    def create(
        self,
        survey_id: str,
        registered_user_id: str | None = None,
        anonymous_email: str | None = None,
    ) -> SurveyResponse:
        if registered_user_id and anonymous_email:
            raise ValueError("A response is linked to a user or an email, not both")

        response = SurveyResponse(
            survey_id=survey_id,
            registered_user_id=registered_user_id,
            anonymous_email=anonymous_email,
        )
        try:
            with self._session_factory() as db_session:
                db_session.add(response)
                db_session.commit()
                db_session.refresh(response)
        except SQLAlchemyError as e:
            logger.exception("Failed to create response", extra={"survey_id": survey_id})
            raise ResponsePersistenceError("<new>", cause=e) from e

        logger.info(
            "Response created",
            extra={"response_id": response.id, "survey_id": survey_id},
        )
        return response

    def update(self, response_id: str, **fields: Any) -> bool:
        """
        Writes content fields. Returns False if the response does not exist.

        Raises:
            ValueError: If a state field is passed; use ``transition`` instead.
        """
        state_fields = set(fields) & set(STATE_FIELDS)
        if state_fields:
            raise ValueError(f"State fields must use transition(): {sorted(state_fields)}")
        if not fields:
            return False

        statement = (
            update(SurveyResponse)
            .where(SurveyResponse.id == response_id)
            .values(**fields, updated_at=datetime.now(timezone.utc))
        )
        return self._execute(response_id, statement)

    def transition(
        self,
        response_id: str,
        field: str,
        target: Enum,
        expected: Optional[Iterable[Enum]] = None,
        **values: Any,
    ) -> bool:
        """
        Compare-and-set a state field, writing ``values`` in the same statement.

        Args:
            response_id: The response to advance.
            field: One of ``upload_state``, ``transcription_status``,
                ``analysis_status``.
            target: The state to move to.
            expected: Prior states to accept. Defaults to every state the
                transition table allows to reach ``target``; narrower sets
                are allowed, wider ones are not.
            **values: Content fields written only if the transition applies.

        Returns:
            True if the row moved, False if it was absent or already elsewhere.
        """
        if field not in STATE_FIELDS:
            raise ValueError(f"Unknown state field '{field}'")

        allowed = sources_for(field, target)
        expected_states = frozenset(expected) if expected is not None else allowed
        if not expected_states <= allowed:
            raise ValueError(
                f"{field}: {sorted(s.value for s in expected_states - allowed)} "
                f"cannot move to {target.value}"
            )

        column = getattr(SurveyResponse, field)
        statement = (
            update(SurveyResponse)
            .where(SurveyResponse.id == response_id)
            .where(column.in_(list(expected_states)))
            .values(**{field: target}, **values, updated_at=datetime.now(timezone.utc))
        )
        applied = self._execute(response_id, statement)

        logger.info(
            "State transition" if applied else "State transition skipped",
            extra={
                "response_id": response_id,
                "field": field,
                "target": target.value,
            },
        )
        return applied

    def touch(self, response_id: str) -> bool:
        """Bumps ``updated_at`` so the reconciliation sweep skips the row for a while."""
        statement = (
            update(SurveyResponse)
            .where(SurveyResponse.id == response_id)
            .values(updated_at=datetime.now(timezone.utc))
        )
        return self._execute(response_id, statement)

    def find_by_id(self, response_id: str) -> SurveyResponse | None:
        with self._session_factory() as db_session:
            return db_session.get(SurveyResponse, response_id)

    def find_by_survey(self, survey_id: str) -> List[SurveyResponse]:
        """Returns every response of a survey, newest first."""
        statement = (
            select(SurveyResponse)
            .where(SurveyResponse.survey_id == survey_id)
            .order_by(SurveyResponse.created_at.desc())
        )
        with self._session_factory() as db_session:
            return list(db_session.exec(statement).all())

    def find_by_id_and_survey(self, response_id: str, survey_id: str) -> SurveyResponse | None:
        statement = select(SurveyResponse).where(
            SurveyResponse.id == response_id,
            SurveyResponse.survey_id == survey_id,
        )
        with self._session_factory() as db_session:
            return db_session.exec(statement).first()

    def find_stalled(self, older_than: datetime, limit: int = 100) -> List[SurveyResponse]:
        """
        Responses stuck before a stage that never got its job.

        That is an uploaded response whose transcription is still PENDING, or
        a transcribed response whose analysis is still PENDING.
        """
        statement = (
            select(SurveyResponse)
            .where(
                or_(
                    and_(
                        SurveyResponse.upload_state == UploadState.COMPLETED,
                        SurveyResponse.transcription_status == JobStatus.PENDING,
                    ),
                    and_(
                        SurveyResponse.transcription_status == JobStatus.COMPLETED,
                        SurveyResponse.analysis_status == JobStatus.PENDING,
                    ),
                ),
                SurveyResponse.updated_at < older_than,
            )
            .order_by(SurveyResponse.updated_at)
            .limit(limit)
        )
        with self._session_factory() as db_session:
            return list(db_session.exec(statement).all())

    def _execute(self, response_id: str, statement) -> bool:
        try:
            with self._session_factory() as db_session:
                result = db_session.execute(statement)
                db_session.commit()
                return result.rowcount == 1
        except SQLAlchemyError as e:
            logger.exception("Failed to persist response", extra={"response_id": response_id})
            raise ResponsePersistenceError(response_id, cause=e) from e

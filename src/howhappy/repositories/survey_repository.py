"""Repository for the survey lookups the response pipeline depends on."""

from sqlmodel import select

from howhappy.db_models import Survey


class SurveyRepository:
    """
    Read access to surveys.

    Survey authoring lives elsewhere; the pipeline only needs to know that a
    survey exists and who owns it.
    """

    def __init__(self, session_factory):
        self._session_factory = session_factory

    def find_by_id(self, survey_id: str) -> Survey | None:
        with self._session_factory() as db_session:
            return db_session.get(Survey, survey_id)

    def find_owned(self, survey_id: str, owner_id: str) -> Survey | None:
        """Returns the survey only if ``owner_id`` owns it."""
        statement = select(Survey).where(
            Survey.id == survey_id,
            Survey.owner_id == owner_id,
        )
        with self._session_factory() as db_session:
            return db_session.exec(statement).first()

    def create(self, owner_id: str, title: str, prompt: str = "") -> Survey:
        survey = Survey(owner_id=owner_id, title=title, prompt=prompt)
        with self._session_factory() as db_session:
            db_session.add(survey)
            db_session.commit()
            db_session.refresh(survey)
        return survey

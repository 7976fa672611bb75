"""Repository layer exports."""

from howhappy.repositories.response_repository import ResponseRepository
from howhappy.repositories.survey_repository import SurveyRepository

__all__ = ["ResponseRepository", "SurveyRepository"]

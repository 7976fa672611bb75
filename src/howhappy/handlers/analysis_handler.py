"""Handler for analysis jobs."""

from typing import Any

from howhappy.db_models import SurveyResponse
from howhappy.domain.models import JobStatus
from howhappy.domain.response_analyzer import ResponseAnalyzer
from howhappy.handlers.stage_handler import StageHandler
from howhappy.repositories import ResponseRepository


class AnalysisHandler(StageHandler):
    """Analyzes a transcribed response."""

    status_field = "analysis_status"
    stage = "analysis"

    def __init__(self, repository: ResponseRepository, analyzer: ResponseAnalyzer):
        super().__init__(repository)
        self._analyzer = analyzer

    def missing_input(self, response: SurveyResponse) -> str | None:
        if response.transcription_status != JobStatus.COMPLETED or not response.transcription:
            return "No transcription found for response"
        return None

    def run(self, response: SurveyResponse) -> dict[str, Any]:
        result = self._analyzer.analyze(response.transcription, response.id)
        return {"analysis": result.model_dump()}

"""Gemini implementation of the AnalysisService interface."""

import logging
from pathlib import Path

from google import genai

from howhappy.domain.models import AnalysisResult
from howhappy.exceptions import AnalysisServiceError
from howhappy.infrastructure.interfaces import AnalysisService

logger = logging.getLogger(__name__)

DEFAULT_PROMPT_PATH = Path(__file__).parent / "prompts" / "analysis_system.txt"


def load_system_prompt(path: Path = DEFAULT_PROMPT_PATH) -> str:
    return path.read_text(encoding="utf-8")


class GeminiAnalysisService(AnalysisService):
    """Analysis service implementation using Google Gemini."""

    def __init__(self, client: genai.Client, model_name: str, system_prompt: str):
        self._client = client
        self._model_name = model_name
        self._system_prompt = system_prompt

    def analyze(self, text: str) -> AnalysisResult:
        """
        Analyzes a transcription using Gemini and returns structured results.

        Raises:
            AnalysisServiceError: If the Gemini API call fails or returns
                something other than a valid AnalysisResult.
        """
        try:
            response = self._client.models.generate_content(
                model=self._model_name,
                contents=text,
                config={
                    "response_mime_type": "application/json",
                    "response_schema": AnalysisResult,
                    "system_instruction": self._system_prompt,
                },
            )
            if not response.text:
                raise AnalysisServiceError("Gemini returned empty response")
            result = AnalysisResult.model_validate_json(response.text)
            logger.info("LLM analysis completed", extra={"sentiment": result.sentiment})
            return result
        except AnalysisServiceError:
            raise
        except Exception as e:
            logger.exception("Gemini API call failed")
            raise AnalysisServiceError(f"Gemini analysis failed: {e}", cause=e) from e

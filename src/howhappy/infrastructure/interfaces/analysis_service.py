"""Abstract interface for analysis service operations."""

from abc import ABC, abstractmethod

from howhappy.domain.models import AnalysisResult


class AnalysisService(ABC):
    """Abstract base class for transcript analysis backends."""

    @abstractmethod
    def analyze(self, text: str) -> AnalysisResult:
        """
        Analyzes a transcription and returns structured results.

        Args:
            text: The transcription text to analyze.

        Returns:
            AnalysisResult with sentiment, keywords, summary and scores.

        Raises:
            AnalysisServiceError: If the analysis call fails.
        """
        pass

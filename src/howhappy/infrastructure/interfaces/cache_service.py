"""Abstract interface for the per-response analysis cache."""

from abc import ABC, abstractmethod

from howhappy.domain.models import AnalysisResult


class AnalysisCache(ABC):
    """
    Keeps the latest analysis of each response for a while.

    A job redelivered after the analysis call but before its result was
    persisted reads the result back from here.
    """

    @abstractmethod
    def load(self, response_id: str) -> AnalysisResult | None:
        """
        Returns the cached analysis of a response, if any.

        Raises:
            CacheServiceError: If the cache is unreachable.
        """

    @abstractmethod
    def save(self, response_id: str, result: AnalysisResult) -> None:
        """
        Raises:
            CacheServiceError: If the cache is unreachable.
        """

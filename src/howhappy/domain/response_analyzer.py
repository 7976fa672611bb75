"""Analysis with a per-response cache in front of the external service."""

import logging

from howhappy.domain.models import AnalysisResult
from howhappy.infrastructure.interfaces import AnalysisCache, AnalysisService

logger = logging.getLogger(__name__)


class ResponseAnalyzer:
    """Analyzes transcriptions, reusing a cached result on redelivery."""

    def __init__(self, analysis_service: AnalysisService, cache: AnalysisCache):
        self._analysis = analysis_service
        self._cache = cache

    def analyze(self, text: str, response_id: str) -> AnalysisResult:
        """
        Analyzes a transcription, using cache when available.

        A job redelivered after the service call but before the result was
        persisted finds the earlier result here instead of paying twice.
        """
        cached = self._cache.load(response_id)
        if cached is not None:
            logger.info("Analysis retrieved from cache", extra={"response_id": response_id})
            return cached

        result = self._analysis.analyze(text)
        self._cache.save(response_id, result)
        logger.info("Analysis cached", extra={"response_id": response_id})
        return result

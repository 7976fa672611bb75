"""Redis implementation of the AnalysisCache interface."""

import logging

import redis
from pydantic import ValidationError

from howhappy.domain.models import AnalysisResult
from howhappy.exceptions import CacheServiceError
from howhappy.infrastructure.interfaces import AnalysisCache

logger = logging.getLogger(__name__)


class RedisAnalysisCache(AnalysisCache):
    """Analysis cache stored as JSON under ``<prefix>:<response_id>`` with a TTL."""

    def __init__(self, client: redis.Redis, ttl_seconds: int, prefix: str = "analysis"):
        self._client = client
        self._ttl_seconds = ttl_seconds
        self._prefix = prefix

    def load(self, response_id: str) -> AnalysisResult | None:
        key = self._key(response_id)
        try:
            value = self._client.get(key)
        except redis.RedisError as e:
            logger.exception("Redis get failed", extra={"key": key})
            raise CacheServiceError(key, "get", cause=e) from e

        if not value:
            return None
        try:
            result = AnalysisResult.model_validate_json(value)
        except ValidationError:
            # Written by an older schema; recompute.
            logger.warning("Discarding unreadable cached analysis", extra={"key": key})
            self._discard(key)
            return None

        logger.info("Cache hit", extra={"key": key})
        return result

    def save(self, response_id: str, result: AnalysisResult) -> None:
        key = self._key(response_id)
        try:
            self._client.set(key, result.model_dump_json(), ex=self._ttl_seconds)
        except redis.RedisError as e:
            logger.exception("Redis set failed", extra={"key": key})
            raise CacheServiceError(key, "set", cause=e) from e
        logger.info("Cache set", extra={"key": key, "ttl": self._ttl_seconds})

    def _key(self, response_id: str) -> str:
        return f"{self._prefix}:{response_id}"

    def _discard(self, key: str) -> None:
        try:
            self._client.delete(key)
        except redis.RedisError as e:
            raise CacheServiceError(key, "delete", cause=e) from e

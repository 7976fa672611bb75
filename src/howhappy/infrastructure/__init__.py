"""Infrastructure layer exports."""

from howhappy.infrastructure.assemblyai_transcriber import AssemblyAITranscriber
from howhappy.infrastructure.gemini_analyzer import GeminiAnalysisService
from howhappy.infrastructure.minio_storage import MinioStorage
from howhappy.infrastructure.rabbitmq_queue import RabbitMQJobQueue
from howhappy.infrastructure.redis_cache import RedisAnalysisCache

__all__ = [
    "AssemblyAITranscriber",
    "GeminiAnalysisService",
    "MinioStorage",
    "RabbitMQJobQueue",
    "RedisAnalysisCache",
]

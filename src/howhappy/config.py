"""Application configuration loaded from environment variables."""

import os

from pydantic import BaseModel, Field, computed_field

TRANSCRIPTION_QUEUE = "transcription.request"
ANALYSIS_QUEUE = "analysis.request"


class MinioConfig(BaseModel, frozen=True):
    """MinIO connection configuration."""

    endpoint: str
    user: str
    password: str
    secure: bool = False
    bucket_name: str = "howhappy"
    presign_ttl_seconds: int = 3600
    audio_extension: str = "webm"


class QueueConfig(BaseModel, frozen=True):
    """Retry and dead-letter settings for one job queue."""

    name: str
    max_attempts: int = 3
    backoff_base_seconds: float = 5.0
    backoff_max_seconds: float = 300.0
    batch_size: int = 1

    def backoff_for(self, attempt: int) -> float:
        """Seconds to wait before delivering ``attempt + 1``."""
        return min(self.backoff_base_seconds * 2 ** (attempt - 1), self.backoff_max_seconds)

    @property
    def retry_queue_name(self) -> str:
        return f"{self.name}.retry"

    @property
    def dead_letter_queue_name(self) -> str:
        return f"{self.name}.dead"


class RabbitMQConfig(BaseModel, frozen=True):
    """RabbitMQ connection configuration."""

    host: str
    user: str
    password: str
    port: int = 5672
    transcription_queue: QueueConfig = QueueConfig(name=TRANSCRIPTION_QUEUE)
    analysis_queue: QueueConfig = QueueConfig(name=ANALYSIS_QUEUE)

    def queue(self, name: str) -> QueueConfig:
        """Returns the configuration for the named queue."""
        for queue_config in (self.transcription_queue, self.analysis_queue):
            if queue_config.name == name:
                return queue_config
        return QueueConfig(name=name)


class PostgresConfig(BaseModel, frozen=True):
    """PostgreSQL connection configuration."""

    host: str
    user: str
    password: str
    port: int
    database: str

    @computed_field
    @property
    def url(self) -> str:
        """Returns the full PostgreSQL connection URL."""
        return (
            f"postgresql+psycopg://{self.user}:{self.password}"
            f"@{self.host}:{self.port}/{self.database}"
        )


class TokenConfig(BaseModel, frozen=True):
    """Signing settings for user and response-scoped tokens."""

    secret: str = Field(min_length=32)
    algorithm: str = "HS256"
    user_token_ttl_minutes: int = 60
    response_token_ttl_minutes: int = 15


class AssemblyAIConfig(BaseModel, frozen=True):
    """AssemblyAI API configuration."""

    api_key: str


class GeminiConfig(BaseModel, frozen=True):
    """Gemini LLM configuration."""

    api_key: str
    model_name: str = "gemini-2.5-flash-lite"


class RedisConfig(BaseModel, frozen=True):
    """Redis connection configuration."""

    host: str
    port: int = 6379
    cache_ttl_seconds: int = 86400


class PipelineConfig(BaseModel, frozen=True):
    """Response pipeline tuning."""

    stalled_after_seconds: int = 600


class AppConfig(BaseModel, frozen=True):
    """Root application configuration."""

    minio: MinioConfig
    rabbitmq: RabbitMQConfig
    postgres: PostgresConfig
    tokens: TokenConfig
    assemblyai: AssemblyAIConfig
    gemini: GeminiConfig
    redis: RedisConfig
    pipeline: PipelineConfig = PipelineConfig()
    log_level: str = "INFO"
    tracing_enabled: bool = False


def _queue_config(name: str, prefix: str) -> QueueConfig:
    return QueueConfig(
        name=name,
        max_attempts=int(os.getenv(f"{prefix}_MAX_ATTEMPTS", "3")),
        backoff_base_seconds=float(os.getenv(f"{prefix}_BACKOFF_SECONDS", "5")),
        backoff_max_seconds=float(os.getenv(f"{prefix}_BACKOFF_MAX_SECONDS", "300")),
        batch_size=int(os.getenv(f"{prefix}_BATCH_SIZE", "1")),
    )


def load_config() -> AppConfig:
    """Loads configuration from environment variables."""
    return AppConfig(
        minio=MinioConfig(
            endpoint=os.getenv("MINIO_ENDPOINT", "minio:9000"),
            user=os.getenv("MINIO_USER", ""),
            password=os.getenv("MINIO_PASSWORD", ""),
            secure=os.getenv("MINIO_USE_SSL", "false").lower() == "true",
            bucket_name=os.getenv("MINIO_BUCKET_NAME", "howhappy"),
        ),
        rabbitmq=RabbitMQConfig(
            host=os.getenv("RABBITMQ_HOST", "rabbitmq"),
            user=os.getenv("RABBITMQ_USER", ""),
            password=os.getenv("RABBITMQ_PASSWORD", ""),
            port=int(os.getenv("RABBITMQ_PORT", "5672")),
            transcription_queue=_queue_config(TRANSCRIPTION_QUEUE, "TRANSCRIPTION"),
            analysis_queue=_queue_config(ANALYSIS_QUEUE, "ANALYSIS"),
        ),
        postgres=PostgresConfig(
            host=os.getenv("POSTGRES_HOST", "postgres"),
            user=os.getenv("POSTGRES_USER", ""),
            password=os.getenv("POSTGRES_PASSWORD", ""),
            port=int(os.getenv("POSTGRES_PORT", "5432")),
            database=os.getenv("POSTGRES_DB", "howhappy"),
        ),
        tokens=TokenConfig(
            secret=os.getenv("JWT_SECRET", ""),
            user_token_ttl_minutes=int(os.getenv("USER_TOKEN_TTL_MINUTES", "60")),
            response_token_ttl_minutes=int(
                os.getenv("RESPONSE_TOKEN_TTL_MINUTES", "15")
            ),
        ),
        assemblyai=AssemblyAIConfig(
            api_key=os.getenv("ASSEMBLYAI_API_KEY", ""),
        ),
        gemini=GeminiConfig(
            api_key=os.getenv("GEMINI_API_KEY", ""),
        ),
        redis=RedisConfig(
            host=os.getenv("REDIS_HOST", "redis"),
            cache_ttl_seconds=int(os.getenv("REDIS_CACHE_TTL_SECONDS", "86400")),
        ),
        pipeline=PipelineConfig(
            stalled_after_seconds=int(os.getenv("STALLED_AFTER_SECONDS", "600")),
        ),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        tracing_enabled=os.getenv("DD_TRACE_ENABLED", "false").lower() == "true",
    )

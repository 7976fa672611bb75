"""Dependency injection configuration shared by the API and the workers."""

import logging

import assemblyai as aai
import pika
import redis
from google import genai
from minio import Minio
from sqlalchemy.engine import Engine

from howhappy.config import ANALYSIS_QUEUE, TRANSCRIPTION_QUEUE, AppConfig
from howhappy.database import get_engine, init_db, make_session_factory
from howhappy.domain.response_analyzer import ResponseAnalyzer
from howhappy.domain.response_pipeline import ResponsePipelineService
from howhappy.domain.token_service import TokenService
from howhappy.handlers import AnalysisHandler, TranscriptionHandler
from howhappy.infrastructure import (
    AssemblyAITranscriber,
    GeminiAnalysisService,
    MinioStorage,
    RabbitMQJobQueue,
    RedisAnalysisCache,
)
from howhappy.infrastructure.gemini_analyzer import load_system_prompt
from howhappy.infrastructure.interfaces import (
    AnalysisCache,
    AnalysisService,
    JobQueue,
    ObjectStore,
    TranscriptionService,
)
from howhappy.repositories import ResponseRepository, SurveyRepository
from howhappy.worker import Worker

logger = logging.getLogger(__name__)


class Container:
    """
    Wires repositories, gateways and services together.

    External clients that only one process needs (AssemblyAI, Gemini, Redis)
    are built on first use, so the API never touches them.
    """

    def __init__(
        self,
        config: AppConfig,
        engine: Engine,
        storage: ObjectStore,
        queue: JobQueue,
        transcription_service: TranscriptionService | None = None,
        analysis_service: AnalysisService | None = None,
        cache: AnalysisCache | None = None,
    ):
        self.config = config
        self.engine = engine
        self.storage = storage
        self.queue = queue
        self._transcription_service = transcription_service
        self._analysis_service = analysis_service
        self._cache = cache

        session_factory = make_session_factory(engine)
        self.responses = ResponseRepository(session_factory)
        self.surveys = SurveyRepository(session_factory)
        self.tokens = TokenService(config.tokens)
        self.pipeline = ResponsePipelineService(
            self.responses,
            self.surveys,
            self.storage,
            self.queue,
            self.tokens,
            config.minio,
            config.pipeline,
        )

    @classmethod
    def from_config(cls, config: AppConfig) -> "Container":
        minio_client = Minio(
            endpoint=config.minio.endpoint,
            access_key=config.minio.user,
            secret_key=config.minio.password,
            secure=config.minio.secure,
        )
        credentials = pika.PlainCredentials(config.rabbitmq.user, config.rabbitmq.password)
        parameters = pika.ConnectionParameters(
            host=config.rabbitmq.host,
            port=config.rabbitmq.port,
            credentials=credentials,
            heartbeat=0,
        )
        return cls(
            config=config,
            engine=get_engine(config.postgres.url),
            storage=MinioStorage(minio_client, config.minio.bucket_name),
            queue=RabbitMQJobQueue(parameters, config.rabbitmq),
        )

    def open(self) -> None:
        """Creates tables, the bucket and the queue topology."""
        init_db(self.engine)
        logger.info("Database initialized")
        self.storage.ensure_bucket()
        for queue_name in (TRANSCRIPTION_QUEUE, ANALYSIS_QUEUE):
            self.queue.setup(queue_name)

    def close(self) -> None:
        self.queue.close()
        self.engine.dispose()
        logger.info("Container closed")

    @property
    def transcription_service(self) -> TranscriptionService:
        if self._transcription_service is None:
            aai.settings.api_key = self.config.assemblyai.api_key
            self._transcription_service = AssemblyAITranscriber(aai.Transcriber())
        return self._transcription_service

    @property
    def analysis_service(self) -> AnalysisService:
        if self._analysis_service is None:
            client = genai.Client(api_key=self.config.gemini.api_key)
            self._analysis_service = GeminiAnalysisService(
                client, self.config.gemini.model_name, load_system_prompt()
            )
        return self._analysis_service

    @property
    def cache(self) -> AnalysisCache:
        if self._cache is None:
            client = redis.Redis(
                host=self.config.redis.host,
                port=self.config.redis.port,
                decode_responses=True,
            )
            if not client.ping():
                logger.error("Redis connection failed", extra={"host": self.config.redis.host})
                raise ConnectionError("Redis connection failed")
            self._cache = RedisAnalysisCache(client, self.config.redis.cache_ttl_seconds)
        return self._cache

    def transcription_handler(self) -> TranscriptionHandler:
        return TranscriptionHandler(
            self.responses,
            self.storage,
            self.queue,
            self.transcription_service,
            self.config.minio,
        )

    def analysis_handler(self) -> AnalysisHandler:
        return AnalysisHandler(self.responses, ResponseAnalyzer(self.analysis_service, self.cache))

    def transcription_worker(self) -> Worker:
        return Worker(self.queue, self.transcription_handler(), self.config.rabbitmq.transcription_queue)

    def analysis_worker(self) -> Worker:
        return Worker(self.queue, self.analysis_handler(), self.config.rabbitmq.analysis_queue)

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import create_engine

from howhappy.config import (
    AppConfig,
    AssemblyAIConfig,
    GeminiConfig,
    MinioConfig,
    PostgresConfig,
    RabbitMQConfig,
    RedisConfig,
    TokenConfig,
)
from howhappy.container import Container
from howhappy.database import init_db, make_session_factory
from howhappy.domain.token_service import TokenService
from howhappy.repositories import ResponseRepository, SurveyRepository
from tests.fakes import (
    OWNER_ID,
    FakeAnalysisService,
    FakeTranscriptionService,
    InMemoryAnalysisCache,
    InMemoryJobQueue,
    InMemoryObjectStore,
)


@pytest.fixture()
def app_config() -> AppConfig:
    return AppConfig(
        minio=MinioConfig(endpoint="minio:9000", user="minio", password="minio-secret"),
        rabbitmq=RabbitMQConfig(host="rabbitmq", user="guest", password="guest"),
        postgres=PostgresConfig(
            host="postgres", user="howhappy", password="secret", port=5432, database="howhappy"
        ),
        tokens=TokenConfig(secret="test-signing-secret-that-is-long-enough"),
        assemblyai=AssemblyAIConfig(api_key="assemblyai-key"),
        gemini=GeminiConfig(api_key="gemini-key"),
        redis=RedisConfig(host="redis"),
    )


@pytest.fixture()
def engine():
    """In-memory SQLite shared by every session of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture()
def responses(session_factory) -> ResponseRepository:
    return ResponseRepository(session_factory)


@pytest.fixture()
def surveys(session_factory) -> SurveyRepository:
    return SurveyRepository(session_factory)


@pytest.fixture()
def survey(surveys):
    return surveys.create(owner_id=OWNER_ID, title="Team mood", prompt="How was your week?")


@pytest.fixture()
def tokens(app_config) -> TokenService:
    return TokenService(app_config.tokens)


@pytest.fixture()
def storage() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture()
def queue() -> InMemoryJobQueue:
    return InMemoryJobQueue()


@pytest.fixture()
def transcription_service() -> FakeTranscriptionService:
    return FakeTranscriptionService()


@pytest.fixture()
def analysis_service() -> FakeAnalysisService:
    return FakeAnalysisService()


@pytest.fixture()
def cache() -> InMemoryAnalysisCache:
    return InMemoryAnalysisCache()


@pytest.fixture()
def container(app_config, engine, storage, queue, transcription_service, analysis_service, cache):
    return Container(
        config=app_config,
        engine=engine,
        storage=storage,
        queue=queue,
        transcription_service=transcription_service,
        analysis_service=analysis_service,
        cache=cache,
    )

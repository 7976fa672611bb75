from contextlib import contextmanager

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

# Registers the tables on SQLModel.metadata.
from howhappy import db_models  # noqa: F401


def get_engine(url: str, **kwargs) -> Engine:
    return create_engine(url, pool_pre_ping=True, **kwargs)


def init_db(engine: Engine) -> None:
    SQLModel.metadata.create_all(engine)


def make_session_factory(engine: Engine):
    """Returns a callable that opens a SQLModel Session context manager."""

    @contextmanager
    def _session_factory():
        with Session(engine, expire_on_commit=False) as session:
            yield session

    return _session_factory

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from quizbot.config import settings


def build_engine_kwargs(database_url: str, timeout_seconds: float) -> dict:
    """Engine options bounding every storage call by timeout_seconds."""
    if database_url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False, "timeout": timeout_seconds}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # one shared connection, otherwise every session sees an empty database
            kwargs["poolclass"] = StaticPool
        return kwargs

    statement_timeout_ms = int(timeout_seconds * 1000)
    return {
        "pool_pre_ping": True,
        "pool_timeout": timeout_seconds,
        "connect_args": {"options": f"-c statement_timeout={statement_timeout_ms}"},
    }


engine = create_engine(
    settings.database_url,
    **build_engine_kwargs(settings.database_url, settings.storage_timeout_seconds),
)
SessionLocal = sessionmaker(autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

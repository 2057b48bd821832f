"""
Database session management. SQLAlchemy 2.x style.
"""

from collections.abc import Generator
from typing import Any

from sqlalchemy import JSON, create_engine, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from loanwatch.config import get_settings

# JSONB on Postgres; plain JSON elsewhere (SQLite test databases)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def _engine_kwargs(database_url: str, connect_timeout: int, debug: bool) -> dict[str, Any]:
    """Return create_engine kwargs for the configured backend."""
    if database_url.startswith("sqlite"):
        kwargs: dict[str, Any] = {
            "echo": debug,
            "connect_args": {"check_same_thread": False},
        }
        if ":memory:" in database_url or database_url.rstrip("/") in ("sqlite:", "sqlite+pysqlite:"):
            # One shared connection so every session sees the same in-memory database
            kwargs["poolclass"] = StaticPool
        return kwargs
    return {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "echo": debug,
        "connect_args": {
            "connect_timeout": connect_timeout,
            "options": "-c timezone=UTC",
        },
    }


settings = get_settings()
engine = create_engine(
    settings.database_url,
    **_engine_kwargs(settings.database_url, settings.db_connect_timeout, settings.debug),
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    """Declarative base for SQLAlchemy models."""


def check_db_connection() -> None:
    """
    Verify database connectivity. Raises if unreachable.
    Call during application startup.
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))


def get_db() -> Generator[Session, None, None]:
    """Dependency for FastAPI to get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

"""
Pytest configuration and fixtures.
"""

from __future__ import annotations

import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from tests.test_constants import TEST_INTERNAL_JOB_TOKEN

# Force an in-memory SQLite database; don't inherit DATABASE_URL from .env
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["INTERNAL_JOB_TOKEN"] = TEST_INTERNAL_JOB_TOKEN
os.environ["BUSINESS_TIMEZONE"] = "Asia/Bangkok"


@pytest.fixture
def client() -> TestClient:
    """FastAPI test client."""
    from loanwatch.main import app

    return TestClient(app)


@pytest.fixture
def client_with_db(db: Session) -> TestClient:
    """TestClient with get_db overridden to use the test db session (for integration tests)."""
    from loanwatch.db.session import get_db
    from loanwatch.main import app

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    c = TestClient(app)
    yield c
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def db() -> Session:
    """Database session on a freshly created schema. Tables are dropped after each test."""
    import loanwatch.models  # noqa: F401
    from loanwatch.db.session import Base, SessionLocal, engine

    Base.metadata.create_all(engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(engine)

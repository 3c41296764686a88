"""
Pytest configuration and fixtures

Tests run against an in-memory SQLite database created from the models.
Every test gets its own user id, so nothing leaks between tests.
"""
import os
import sys
from uuid import uuid4

import pytest

# Must be set before core.config is imported anywhere
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-hyrox-api-at-least-32-chars")
os.environ.pop("OPENAI_API_KEY", None)
os.environ.setdefault("LOG_FORMAT", "text")

# Add the parent directory to the path so we can import from services
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.database import Base, SessionLocal, engine  # noqa: E402
from core.security import create_access_token  # noqa: E402
import models  # noqa: E402,F401


@pytest.fixture(scope="session", autouse=True)
def _create_schema():
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture
def db_session():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def user_id():
    return f"user_{uuid4().hex[:12]}"


@pytest.fixture
def auth_headers(user_id):
    token = create_access_token({"sub": user_id})
    return {"Authorization": f"Bearer {token}"}

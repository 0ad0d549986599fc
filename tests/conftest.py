"""
Pytest configuration and fixtures.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from app.config import Settings
from app.db import Base, ensure_schema, make_session_factory
from app.main import create_app
from app import models

# In-memory database shared by every connection of the test engine
TEST_DATABASE_URL = "sqlite://"

@pytest.fixture
def settings():
    """Settings that never reach a real server."""
    return Settings(database_url=TEST_DATABASE_URL, log_json=False)

@pytest.fixture
def engine():
    """Create test database engine with the users table."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    ensure_schema(engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()

@pytest.fixture
def db_session(engine):
    """Create test database session."""
    session = make_session_factory(engine)()
    yield session
    session.rollback()
    session.close()

@pytest.fixture
def client(settings, engine):
    """HTTP client for an app wired to the test engine."""
    app = create_app(settings, engine=engine)
    with TestClient(app) as c:
        yield c

@pytest.fixture
def sample_user(db_session):
    """Create a sample user for testing."""
    user = models.User(name="Ann", email="ann@x.com")
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user

@pytest.fixture
def make_user(client):
    """POST a user through the API and return the envelope data."""
    def _make(name, email):
        resp = client.post("/users", json={"name": name, "email": email})
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]
    return _make

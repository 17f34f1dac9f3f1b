"""
Pytest configuration and shared fixtures.
"""
from datetime import timedelta

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from kpower.db.connection import Database
from kpower.repositories.user_repository import UserRepository
from kpower.services.event_bus import EventBus
from kpower.services.token_service import TokenService

TEST_SECRET = "test-secret-for-jwt-signing-0123456789"
TEST_ISSUER = "killpowa"


@pytest_asyncio.fixture
async def database():
    """Fresh in-memory database per test"""
    db = Database("sqlite+aiosqlite:///:memory:")
    await db.init()

    yield db

    await db.close()


@pytest_asyncio.fixture
async def session(database):
    async with database.session() as db_session:
        yield db_session


@pytest.fixture
def users(session):
    return UserRepository(session)


@pytest.fixture
def token_service():
    return TokenService(secret=TEST_SECRET, issuer=TEST_ISSUER, ttl=timedelta(hours=1))


@pytest.fixture
def event_bus():
    return EventBus(capacity=10)


@pytest.fixture
def app_settings(monkeypatch):
    """Settings pointing at an in-memory database with a fixed JWT secret"""
    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    monkeypatch.setenv("JWT_SECRET", TEST_SECRET)
    monkeypatch.setenv("JWT_ISSUER", TEST_ISSUER)
    monkeypatch.setenv("STREAM_KEEPALIVE_SECONDS", "0.05")
    from kpower.config import Settings
    return Settings()


@pytest.fixture
def client(app_settings):
    """TestClient running the full lifespan against a fresh database"""
    from kpower.main import create_app

    with TestClient(create_app(app_settings)) as test_client:
        yield test_client

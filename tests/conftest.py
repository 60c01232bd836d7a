"""
Shared Test Fixtures
====================

The app runs against an in-memory Redis stand-in and a mocked database
session; no Postgres or Redis server is needed.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock
import uuid

import pytest
from httpx import ASGITransport, AsyncClient

from app.db.session import get_db
from app.dependencies import get_current_user
from app.main import app
from app.models.user import User

USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch):
    """Redis client whose reads miss and whose writes succeed."""
    client = MagicMock()
    client.get = AsyncMock(return_value=None)
    client.setex = AsyncMock(return_value=True)
    client.delete = AsyncMock(return_value=1)
    client.exists = AsyncMock(return_value=0)
    client.incr = AsyncMock(return_value=1)
    client.expire = AsyncMock(return_value=True)
    client.ttl = AsyncMock(return_value=60)
    client.ping = AsyncMock(return_value=True)
    monkeypatch.setattr("app.services.cache._redis_client", client)
    return client


@pytest.fixture
def db_session():
    session = MagicMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.refresh = AsyncMock()
    session.delete = AsyncMock()
    return session


@pytest.fixture
def test_user() -> User:
    user = User(
        user_id=USER_ID,
        email="dev@test.local",
        full_name="Test User",
        timezone="UTC",
        notification_preferences={},
        relationship_goals=["communicate better"],
        created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        updated_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
    )
    user.premium_subscription = None
    return user


@pytest.fixture
async def client(db_session, test_user):
    """Client authenticated as ``test_user``."""
    async def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_current_user] = lambda: test_user

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def anon_client(db_session, monkeypatch):
    """Client with real authentication and no credentials."""
    monkeypatch.setattr("app.config.settings.DEV_AUTH_DISABLED", False)

    async def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()

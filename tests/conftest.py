"""
Shared Test Fixtures
====================

- An in-memory Redis stand-in installed for every test, so cache, rate
  limit and capture session code runs without a server.
- An HTTP client against the app with the database session and the
  signed-in profile overridden.
- A demo-mode client that goes through the real demo header handling.
"""

import fnmatch
import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from gather.db.session import get_db
from gather.dependencies import Principal, get_current_profile, get_principal
from gather.main import app
from gather.models.profile import InsightFrequency, Profile, SubscriptionTier
from gather.services import cache

USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")


class FakeRedis:
    """The subset of the redis.asyncio client the app uses."""

    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def get(self, key):
        return self.store.get(key)

    async def setex(self, key, ttl, value):
        self.store[key] = str(value)
        self.ttls[key] = ttl
        return True

    async def delete(self, *keys):
        deleted = 0
        for key in keys:
            if key in self.store:
                del self.store[key]
                self.ttls.pop(key, None)
                deleted += 1
        return deleted

    async def expire(self, key, ttl):
        if key not in self.store:
            return False
        self.ttls[key] = ttl
        return True

    async def ttl(self, key):
        if key not in self.store:
            return -2
        return self.ttls.get(key, -1)

    async def incr(self, key):
        value = int(self.store.get(key, 0)) + 1
        self.store[key] = str(value)
        return value

    async def scan_iter(self, match=None):
        for key in list(self.store):
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key

    async def ping(self):
        return True

    async def close(self):
        return None


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch) -> FakeRedis:
    fake = FakeRedis()
    monkeypatch.setattr(cache, "_redis_client", fake)
    return fake


def make_profile(**overrides) -> Profile:
    values = {
        "id": USER_ID,
        "email": "sam@example.com",
        "display_name": "Sam",
        "timezone": "UTC",
        "insight_frequency": InsightFrequency.NORMAL,
        "subscription_tier": SubscriptionTier.FREE,
        "created_at": datetime(2026, 1, 5, tzinfo=timezone.utc),
        "updated_at": datetime(2026, 1, 5, tzinfo=timezone.utc),
    }
    values.update(overrides)
    return Profile(**values)


@pytest.fixture
def profile() -> Profile:
    return make_profile()


@pytest.fixture
def db_session() -> MagicMock:
    session = MagicMock()
    session.execute = AsyncMock(return_value=MagicMock())
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    return session


@pytest_asyncio.fixture
async def client(profile, db_session):
    """Client for a signed-in free-tier user."""

    async def override_db():
        yield db_session

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_current_profile] = lambda: profile
    app.dependency_overrides[get_principal] = lambda: Principal(
        user_id=str(profile.id),
        tier=profile.subscription_tier.value,
        identifier=str(profile.id),
        profile=profile,
    )

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def demo_client(db_session):
    """Client with no token that sends the demo-mode header."""

    async def override_db():
        yield db_session

    app.dependency_overrides[get_db] = override_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"X-Demo-Mode": "true"},
    ) as ac:
        yield ac

    app.dependency_overrides.clear()

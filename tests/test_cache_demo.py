"""
Cache and Demo Data Tests
=========================
"""

from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from gather.dependencies import _build_profile_from_cache, _serialize_profile_for_cache
from gather.services.cache import CacheInvalidator, CacheKeys, CacheManager
from gather.services.demo_data import DEMO_USER_ID, demo_calendar_events, demo_snapshot


class TestCacheManager:

    @pytest.mark.asyncio
    async def test_set_then_get(self, fake_redis):
        await CacheManager.set("cache:test:1", {"a": 1}, ttl=60)

        assert await CacheManager.get("cache:test:1") == {"a": 1}
        assert fake_redis.ttls["cache:test:1"] == 60

    @pytest.mark.asyncio
    async def test_miss(self):
        assert await CacheManager.get("cache:test:missing") is None

    @pytest.mark.asyncio
    async def test_redis_failure_is_a_miss(self):
        with patch("gather.services.cache.get_redis", side_effect=ConnectionError("Redis down")):
            assert await CacheManager.get("cache:test:1") is None
            assert await CacheManager.set("cache:test:1", {"a": 1}) is False
            assert await CacheManager.delete("cache:test:1") is False
            assert await CacheManager.delete_pattern("cache:*") == 0

    @pytest.mark.asyncio
    async def test_delete_pattern(self, fake_redis):
        await CacheManager.set(CacheKeys.habits_today("u1", "2026-10-17"), [])
        await CacheManager.set(CacheKeys.habits_today("u1", "2026-10-18"), [])
        await CacheManager.set(CacheKeys.habits_today("u2", "2026-10-18"), [])

        deleted = await CacheManager.delete_pattern("cache:habits:u1:*")

        assert deleted == 2
        assert list(fake_redis.store) == [CacheKeys.habits_today("u2", "2026-10-18")]


class TestCacheInvalidator:

    @pytest.mark.asyncio
    async def test_task_complete_clears_related_keys(self, fake_redis):
        for key in (
            CacheKeys.tasks("u1", "2026-10-18"),
            CacheKeys.tasks("u1", "2026-10-19"),
            CacheKeys.patterns("u1"),
            CacheKeys.rewards("u1"),
            CacheKeys.tasks("u2", "2026-10-18"),
        ):
            await CacheManager.set(key, [])

        await CacheInvalidator.on_task_complete("u1")

        assert list(fake_redis.store) == [CacheKeys.tasks("u2", "2026-10-18")]

    @pytest.mark.asyncio
    async def test_habit_change(self, fake_redis):
        await CacheManager.set(CacheKeys.habits_today("u1", "2026-10-18"), [])
        await CacheManager.set(CacheKeys.rewards("u1"), {})

        await CacheInvalidator.on_habit_change("u1")

        assert fake_redis.store == {}


def test_profile_cache_round_trip(profile):
    profile.timezone = "America/Los_Angeles"

    restored = _build_profile_from_cache(_serialize_profile_for_cache(profile))

    assert restored.id == profile.id
    assert restored.timezone == "America/Los_Angeles"
    assert restored.insight_frequency == profile.insight_frequency
    assert restored.subscription_tier == profile.subscription_tier
    assert restored.to_api_dict() == profile.to_api_dict()


class TestDemoData:

    def test_calendar_is_relative_to_now(self):
        now = datetime(2026, 10, 18, 9, 41, tzinfo=timezone.utc)

        events = demo_calendar_events(now)

        assert [e["startTime"] for e in events] == [
            "2026-10-18T14:00:00+00:00",
            "2026-10-18T16:30:00+00:00",
            "2026-10-19T10:00:00+00:00",
        ]

    def test_snapshot(self):
        now = datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc)

        snapshot = demo_snapshot(now)

        assert snapshot["userId"] == DEMO_USER_ID
        assert [t["id"] for t in snapshot["tasks"]] == ["demo-task-1", "demo-task-2", "demo-task-3"]
        assert snapshot["tasks"][0]["createdAt"] == "2026-10-17T09:00:00+00:00"
        assert len(snapshot["emails"]) == 4
        assert all(h["done"] is False and h["streak"] == 0 for h in snapshot["habits"])
        assert snapshot["habits"][0]["id"] == "demo-habit-1"

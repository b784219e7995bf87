"""
Tests for the in-process and null leaderboard caches and backend selection.
"""

from datetime import datetime, timezone

import pytest

from pondside.core.config import Settings
from pondside.services.cache_service import MemoryLeaderboardCache
from pondside.services.interfaces import CachedLeaderboard, NullLeaderboardCache
from pondside.services.strategy_factory import build_leaderboard_cache

NOW = datetime(2026, 6, 13, 8, 0, tzinfo=timezone.utc)


def entry(name: str) -> CachedLeaderboard:
    return CachedLeaderboard(payload={"eventName": name}, last_updated=NOW)


@pytest.mark.asyncio
async def test_memory_cache_expires(cache, clock):
    await cache.set("leaderboard:event:1:game:all", entry("one"), ttl_seconds=60)
    assert (await cache.get("leaderboard:event:1:game:all")).payload == {"eventName": "one"}

    clock.advance(seconds=59)
    assert await cache.get("leaderboard:event:1:game:all") is not None

    clock.advance(seconds=1)
    assert await cache.get("leaderboard:event:1:game:all") is None
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_memory_cache_last_writer_wins(cache):
    await cache.set("k", entry("first"), ttl_seconds=60)
    await cache.set("k", entry("second"), ttl_seconds=60)
    assert (await cache.get("k")).payload == {"eventName": "second"}


@pytest.mark.asyncio
async def test_invalidate_prefix(cache):
    await cache.set("leaderboard:event:1:game:all", entry("a"), 60)
    await cache.set("leaderboard:event:1:game:2", entry("b"), 60)
    await cache.set("leaderboard:event:12:game:all", entry("c"), 60)

    assert await cache.invalidate_prefix("leaderboard:event:1:") == 2
    assert await cache.get("leaderboard:event:12:game:all") is not None
    assert len(cache) == 1


@pytest.mark.asyncio
async def test_null_cache_stores_nothing():
    null = NullLeaderboardCache()
    await null.set("k", entry("x"), 60)
    assert await null.get("k") is None
    assert await null.invalidate_prefix("k") == 0


@pytest.mark.asyncio
async def test_backend_selection(clock):
    memory = await build_leaderboard_cache(Settings(LEADERBOARD_CACHE_BACKEND="memory"), clock)
    assert isinstance(memory, MemoryLeaderboardCache)

    disabled = await build_leaderboard_cache(Settings(LEADERBOARD_CACHE_BACKEND="none"), clock)
    assert isinstance(disabled, NullLeaderboardCache)

    fallback = await build_leaderboard_cache(
        Settings(LEADERBOARD_CACHE_BACKEND="redis", REDIS_ENABLED=False), clock
    )
    assert isinstance(fallback, MemoryLeaderboardCache)

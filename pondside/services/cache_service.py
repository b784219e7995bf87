"""
Leaderboard cache backends.

CACHING STRATEGY
================

What we cache:
  - Event leaderboards, serialised with the time they were computed
  - Cache key pattern: "leaderboard:event:{event_id}:game:{game_id|all}"

Why:
  - Leaderboard screens poll constantly during a competition
  - Recomputing means reading every catch of the event

Freshness:
  - The leaderboard service compares `last_updated` with its TTL and
    recomputes when the entry is older; backends only store and return
  - Redis keys also carry a server-side expiry so abandoned entries go away

Invalidation strategy:
  - A recorded catch drops every key under "leaderboard:event:{event_id}:"
  - Concurrent refreshes overwrite each other; the last writer wins and
    staleness is bounded by the TTL

Failure policy:
  - The cache is an optimisation. A Redis error is logged and treated as a
    miss, never surfaced to the caller
"""

import json
from datetime import datetime, timedelta
from typing import Optional

import redis.asyncio as redis

from pondside.core.clock import Clock, utcnow
from pondside.core.logging import get_logger
from pondside.services.interfaces.leaderboard_cache import CachedLeaderboard, LeaderboardCache

logger = get_logger(__name__)


class RedisLeaderboardCache(LeaderboardCache):
    """Shared cache for multi-worker deployments."""

    def __init__(self, client: redis.Redis):
        self.client = client

    async def get(self, key: str) -> Optional[CachedLeaderboard]:
        try:
            data = await self.client.get(key)
        except redis.RedisError as e:
            logger.error("cache_get_error", key=key, error=str(e))
            return None

        if not data:
            logger.debug("cache_miss", key=key)
            return None

        try:
            raw = json.loads(data)
            entry = CachedLeaderboard(
                payload=raw["payload"],
                last_updated=datetime.fromisoformat(raw["last_updated"]),
            )
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("cache_entry_corrupt", key=key, error=str(e))
            return None

        logger.debug("cache_hit", key=key)
        return entry

    async def set(self, key: str, entry: CachedLeaderboard, ttl_seconds: int) -> None:
        data = json.dumps(
            {"payload": entry.payload, "last_updated": entry.last_updated.isoformat()},
            default=str,
        )
        try:
            await self.client.setex(key, max(ttl_seconds, 1), data)
            logger.debug("cache_set", key=key, ttl=ttl_seconds)
        except redis.RedisError as e:
            logger.error("cache_set_error", key=key, error=str(e))

    async def invalidate_prefix(self, prefix: str) -> int:
        deleted = 0
        try:
            async for key in self.client.scan_iter(match=f"{prefix}*", count=100):
                deleted += await self.client.delete(key)
        except redis.RedisError as e:
            logger.error("cache_invalidation_error", prefix=prefix, error=str(e))
            return deleted

        logger.info("cache_invalidated", prefix=prefix, keys_deleted=deleted)
        return deleted

    async def close(self) -> None:
        await self.client.aclose()


class MemoryLeaderboardCache(LeaderboardCache):
    """
    Per-process cache. Entries expire after their TTL on read.
    Suitable for a single worker and for tests.
    """

    def __init__(self, clock: Clock = utcnow):
        self.clock = clock
        self._entries: dict[str, tuple[CachedLeaderboard, datetime]] = {}

    async def get(self, key: str) -> Optional[CachedLeaderboard]:
        item = self._entries.get(key)
        if item is None:
            return None
        entry, expires_at = item
        if self.clock() >= expires_at:
            self._entries.pop(key, None)
            return None
        return entry

    async def set(self, key: str, entry: CachedLeaderboard, ttl_seconds: int) -> None:
        self._entries[key] = (entry, self.clock() + timedelta(seconds=ttl_seconds))

    async def invalidate_prefix(self, prefix: str) -> int:
        keys = [key for key in self._entries if key.startswith(prefix)]
        for key in keys:
            del self._entries[key]
        return len(keys)

    def __len__(self) -> int:
        return len(self._entries)

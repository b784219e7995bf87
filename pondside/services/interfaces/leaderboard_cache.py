"""
Leaderboard cache interface.

A cache entry is a serialised leaderboard plus the time it was computed.
Freshness is decided by the caller against its TTL, so a backend only has
to store and return what it was given.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class CachedLeaderboard:
    payload: dict
    last_updated: datetime


class LeaderboardCache(ABC):
    """
    Interface for leaderboard cache backends.

    Implementations:
    - RedisLeaderboardCache: shared across workers, expires keys server-side
    - MemoryLeaderboardCache: per-process, for single-worker deployments and tests
    - NullLeaderboardCache: caching disabled, every read recomputes
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[CachedLeaderboard]:
        pass

    @abstractmethod
    async def set(self, key: str, entry: CachedLeaderboard, ttl_seconds: int) -> None:
        """Overwrite the entry; concurrent writers race and the last one wins."""
        pass

    @abstractmethod
    async def invalidate_prefix(self, prefix: str) -> int:
        """Drop every entry whose key starts with `prefix`. Returns the count dropped."""
        pass

    async def close(self) -> None:
        pass

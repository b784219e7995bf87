"""
Null leaderboard cache - caching disabled.
"""

from typing import Optional

from pondside.services.interfaces.leaderboard_cache import CachedLeaderboard, LeaderboardCache


class NullLeaderboardCache(LeaderboardCache):
    """
    Never stores anything; every leaderboard read recomputes from catch records.

    Use when:
    - Catch volume is small enough that recomputation is cheap
    - Debugging ranking results without cache interference
    """

    async def get(self, key: str) -> Optional[CachedLeaderboard]:
        return None

    async def set(self, key: str, entry: CachedLeaderboard, ttl_seconds: int) -> None:
        pass

    async def invalidate_prefix(self, prefix: str) -> int:
        return 0

"""
Leaderboard cache backend factory.
Configures which cache implementation the application uses.
"""

from typing import Optional

from pondside.core.clock import Clock, utcnow
from pondside.core.config import Settings, get_settings
from pondside.core.logging import get_logger
from pondside.infrastructure import connect_redis
from pondside.services.cache_service import MemoryLeaderboardCache, RedisLeaderboardCache
from pondside.services.interfaces import LeaderboardCache, NullLeaderboardCache

logger = get_logger(__name__)


async def build_leaderboard_cache(
    settings: Optional[Settings] = None,
    clock: Clock = utcnow,
) -> LeaderboardCache:
    """
    Build the configured leaderboard cache.

    Backend selection via LEADERBOARD_CACHE_BACKEND:
    - redis:  RedisLeaderboardCache, falling back to memory if Redis is unreachable
    - memory: MemoryLeaderboardCache (single worker)
    - none:   NullLeaderboardCache (always recompute)
    """
    settings = settings or get_settings()
    backend = settings.LEADERBOARD_CACHE_BACKEND.lower()

    if backend == "redis":
        client = await connect_redis(settings)
        if client is not None:
            logger.info("leaderboard_cache_backend", backend="redis")
            return RedisLeaderboardCache(client)
        logger.warning("leaderboard_cache_fallback", requested="redis", backend="memory")
        return MemoryLeaderboardCache(clock)

    if backend == "memory":
        logger.info("leaderboard_cache_backend", backend="memory")
        return MemoryLeaderboardCache(clock)

    logger.info("leaderboard_cache_backend", backend="none")
    return NullLeaderboardCache()

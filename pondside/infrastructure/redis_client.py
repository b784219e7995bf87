"""
Redis connection for the leaderboard cache.
Separated from business logic for clean architecture.
"""

from typing import Optional

import redis.asyncio as redis

from pondside.core.config import Settings, get_settings
from pondside.core.logging import get_logger

logger = get_logger(__name__)


async def connect_redis(settings: Optional[Settings] = None) -> Optional[redis.Redis]:
    """
    Open and ping a Redis client. Returns None if Redis is disabled or
    unreachable; the caller decides what to run without it.
    """
    settings = settings or get_settings()
    if not settings.REDIS_ENABLED:
        return None

    client = redis.from_url(
        settings.REDIS_URL,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
        retry_on_timeout=True,
        health_check_interval=30,
    )
    try:
        await client.ping()
    except (redis.RedisError, OSError) as e:
        logger.error("redis_connection_failed", url=settings.REDIS_URL, error=str(e))
        await client.aclose()
        return None

    logger.info("redis_connected", url=settings.REDIS_URL)
    return client

"""
Infrastructure layer - external system integrations.
Keeps business logic clean from implementation details.
"""

from .redis_client import connect_redis

__all__ = ['connect_redis']

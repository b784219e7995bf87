"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .leaderboard_cache import CachedLeaderboard, LeaderboardCache
from .notifier import Notification, Notifier
from .null_cache import NullLeaderboardCache

__all__ = [
    'CachedLeaderboard', 'LeaderboardCache', 'NullLeaderboardCache',
    'Notification', 'Notifier',
]

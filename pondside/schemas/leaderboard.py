"""
Pydantic schemas for leaderboard responses.
"""

from datetime import datetime
from typing import Optional

from pondside.schemas.common import CamelModel, Measure


class LeaderboardEntryResponse(CamelModel):
    rank: int
    user_id: int
    user_name: str
    user_email: str
    total_weight: Measure
    total_fish: int
    biggest_fish: Measure
    average_weight: Measure
    competitions_participated: int
    competitions_won: int
    points: int
    qualified_at: datetime
    last_game_id: Optional[int] = None


class EventLeaderboardResponse(CamelModel):
    event_id: int
    event_name: str
    game_id: Optional[int]
    game_name: Optional[str]
    entries: list[LeaderboardEntryResponse]
    last_updated: datetime
    cached: bool = False


class UserStandingResponse(CamelModel):
    user_id: int
    entry: Optional[LeaderboardEntryResponse]
    total_anglers: int

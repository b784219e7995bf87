"""
Pydantic schemas for the weighing station.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import Field

from pondside.schemas.booking import UserSummary
from pondside.schemas.common import CamelModel, Measure


class CatchCreate(CamelModel):
    rod_qr_code: str = Field(..., min_length=1)
    # Range checks happen in the service so they surface as INVALID_WEIGHT/INVALID_LENGTH
    weight: Decimal
    length: Optional[Decimal] = None
    species: Optional[str] = Field(None, max_length=100)
    weighed_by: Optional[str] = Field(None, max_length=150)
    scale_id: Optional[str] = Field(None, max_length=50)
    game_id: Optional[int] = None
    notes: Optional[str] = Field(None, max_length=500)


class CatchResponse(CamelModel):
    id: int
    user_id: int
    user: Optional[UserSummary] = None
    booking_id: int
    booking_seat_id: int
    rod_qr_code: str
    event_id: Optional[int]
    game_id: Optional[int]
    weight: Measure
    length: Optional[Measure]
    species: Optional[str]
    is_verified: bool
    recorded_by: str
    scale_id: Optional[str]
    notes: Optional[str]
    weighed_at: datetime


class StandingResponse(CamelModel):
    current_rank: int
    total_catches: int
    total_participants: int
    message: str


class AchievementResponse(CamelModel):
    code: str
    name: str
    description: str
    category: str
    unlocked_at: Optional[datetime] = None


class CatchDisplay(CamelModel):
    user_name: str
    weight: str
    length: Optional[str]
    species: Optional[str]
    seat_number: int
    booking_ref: str
    event_name: Optional[str]
    game_name: Optional[str]


class CatchRecordedResponse(CamelModel):
    catch: CatchResponse
    display_info: CatchDisplay
    ranking: Optional[StandingResponse] = None
    achievements: list[AchievementResponse] = []


class UserStatsResponse(CamelModel):
    user_id: int
    total_catches: int
    total_weight: Measure
    biggest_catch: Measure
    events_joined: int
    current_streak: int
    longest_streak: int
    last_catch_date: Optional[date]
    streak_active: bool = False
    achievements: list[AchievementResponse] = []

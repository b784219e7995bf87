from pondside.models.user import User
from pondside.models.venue import Pond, TimeSlot, PondSlotInventory, Event, EventStatus, Game, EventGame
from pondside.models.booking import (
    Booking,
    BookingSeat,
    BookingStatus,
    BookingType,
    CheckInRecord,
    SeatStatus,
)
from pondside.models.rod import FishingRod, RodStatus
from pondside.models.catch import CatchRecord
from pondside.models.stats import UserStats, Achievement, UserAchievement

__all__ = [
    "User",
    "Pond", "TimeSlot", "PondSlotInventory", "Event", "EventStatus", "Game", "EventGame",
    "Booking", "BookingSeat", "BookingStatus", "BookingType", "CheckInRecord", "SeatStatus",
    "FishingRod", "RodStatus",
    "CatchRecord",
    "UserStats", "Achievement", "UserAchievement",
]

"""
Time source for the engine.

Services take a `Clock` in their constructor so scans can be evaluated
against a fixed "now" in tests. Calendar-day rules (check-in day, past
bookings, catch streaks) use the venue timezone, not UTC.
"""

from datetime import date, datetime, timezone
from functools import lru_cache
from typing import Callable
from zoneinfo import ZoneInfo

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@lru_cache()
def _zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def venue_date(moment: datetime, tz_name: str) -> date:
    """Calendar date of `moment` at the venue. Naive values are taken as UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(_zone(tz_name)).date()

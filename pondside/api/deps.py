"""
FastAPI dependencies that assemble services per request.

Long-lived collaborators (clock, notifier, leaderboard cache) are created
by the lifespan and kept on `app.state`; each request gets fresh service
objects bound to its own session. Tests swap collaborators through
`app.dependency_overrides`.
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from pondside.core.clock import Clock, utcnow
from pondside.db.session import get_db
from pondside.services.attendance_service import AttendanceService
from pondside.services.booking_service import SeatAllocator
from pondside.services.checkin_service import CheckInService
from pondside.services.identity_service import QrResolver
from pondside.services.interfaces import LeaderboardCache, NullLeaderboardCache, Notifier
from pondside.services.leaderboard_service import LeaderboardService
from pondside.services.notification_service import LoggingNotifier
from pondside.services.rod_service import RodService
from pondside.services.stats_service import StatsService
from pondside.services.weighing_service import WeighingService


def get_clock() -> Clock:
    return utcnow


def get_notifier(request: Request) -> Notifier:
    return getattr(request.app.state, "notifier", None) or LoggingNotifier()


def get_leaderboard_cache(request: Request) -> LeaderboardCache:
    return getattr(request.app.state, "leaderboard_cache", None) or NullLeaderboardCache()


def get_resolver(db: AsyncSession = Depends(get_db)) -> QrResolver:
    return QrResolver(db)


def get_seat_allocator(
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    clock: Clock = Depends(get_clock),
) -> SeatAllocator:
    return SeatAllocator(db, notifier, clock)


def get_check_in_service(
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    clock: Clock = Depends(get_clock),
) -> CheckInService:
    return CheckInService(db, notifier, clock)


def get_attendance_service(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> AttendanceService:
    return AttendanceService(db, clock)


def get_rod_service(
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    clock: Clock = Depends(get_clock),
) -> RodService:
    return RodService(db, notifier, clock)


def get_weighing_service(
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    cache: LeaderboardCache = Depends(get_leaderboard_cache),
    clock: Clock = Depends(get_clock),
) -> WeighingService:
    return WeighingService(db, notifier, cache, clock)


def get_leaderboard_service(
    db: AsyncSession = Depends(get_db),
    cache: LeaderboardCache = Depends(get_leaderboard_cache),
    clock: Clock = Depends(get_clock),
) -> LeaderboardService:
    return LeaderboardService(db, cache, clock)


def get_stats_service(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> StatsService:
    return StatsService(db, clock)

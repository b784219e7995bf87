"""
Weighing station: turns a rod scan and a scale reading into a catch record.

The only required write is the CatchRecord itself, made under a lock on the
rod row so a replacement print cannot void the rod halfway through. After
commit, in order and each best-effort:

  1. user stats update
  2. achievement evaluation
  3. submitter's live rank in the event+game
  4. invalidation of the event's cached leaderboards
  5. notifications

A failure in any of them is logged and the catch is still reported as
recorded.
"""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pondside.core.clock import Clock, utcnow
from pondside.core.errors import (
    InvalidLength,
    InvalidWeight,
    NoGameConfigured,
    RodNotActive,
    SeatNotCheckedIn,
)
from pondside.core.logging import get_logger
from pondside.core.metrics import catches_recorded
from pondside.db.session import atomic
from pondside.models import (
    BookingType,
    CatchRecord,
    Event,
    EventGame,
    FishingRod,
    RodStatus,
    UserAchievement,
    UserStats,
)
from pondside.services.identity_service import QrResolver
from pondside.services.interfaces import LeaderboardCache, NullLeaderboardCache
from pondside.services.interfaces.notifier import Notification, Notifier
from pondside.services.leaderboard_service import event_cache_prefix
from pondside.services.notification_service import notify_best_effort, run_side_effect
from pondside.services.stats_service import StatsService

logger = get_logger(__name__)

WEIGHT_QUANTUM = Decimal("0.001")
LENGTH_QUANTUM = Decimal("0.1")


def normalize_weight(weight) -> Decimal:
    """Round a weight to grams, half up. Applying it twice changes nothing."""
    value = Decimal(str(weight)).quantize(WEIGHT_QUANTUM, rounding=ROUND_HALF_UP)
    if value <= 0:
        raise InvalidWeight(weight=str(weight))
    return value


def normalize_length(length) -> Optional[Decimal]:
    if length is None:
        return None
    value = Decimal(str(length)).quantize(LENGTH_QUANTUM, rounding=ROUND_HALF_UP)
    if value <= 0:
        raise InvalidLength(length=str(length))
    return value


@dataclass(frozen=True)
class Standing:
    rank: int
    total_catches: int
    total_participants: int

    @property
    def message(self) -> str:
        if self.rank == 1:
            return "Current Leader!"
        if self.rank == 2:
            return "Second Place!"
        if self.rank == 3:
            return "Third Place!"
        return f"Rank #{self.rank}"


@dataclass(frozen=True)
class CatchOutcome:
    catch: CatchRecord
    rod: FishingRod
    event: Optional[Event] = None
    game_name: Optional[str] = None
    stats: Optional[UserStats] = None
    achievements: list[UserAchievement] = field(default_factory=list)
    standing: Optional[Standing] = None


class WeighingService:
    def __init__(
        self,
        db: AsyncSession,
        notifier: Notifier,
        cache: Optional[LeaderboardCache] = None,
        clock: Clock = utcnow,
        resolver: Optional[QrResolver] = None,
    ):
        self.db = db
        self.notifier = notifier
        self.cache = cache or NullLeaderboardCache()
        self.clock = clock
        self.resolver = resolver or QrResolver(db)

    async def record_catch(
        self,
        rod_qr_code: str,
        weight,
        length=None,
        species: Optional[str] = None,
        weighed_by: Optional[str] = None,
        notes: Optional[str] = None,
        scale_id: Optional[str] = None,
        game_id: Optional[int] = None,
    ) -> CatchOutcome:
        normalized_weight = normalize_weight(weight)
        normalized_length = normalize_length(length)

        async with atomic(self.db):
            rod = await self.resolver.resolve_rod(rod_qr_code, for_update=True)
            if rod.status != RodStatus.ACTIVE:
                raise RodNotActive(
                    f"This rod has been {rod.status}. Cannot record catch.",
                    qr_code=rod_qr_code,
                    status=rod.status,
                )

            seat = rod.seat
            if seat.checked_in_at is None:
                raise SeatNotCheckedIn(seat_id=seat.id)

            booking = seat.booking
            event = None
            event_game = None
            if booking.type == BookingType.EVENT and booking.event_id is not None:
                event = booking.event
                event_game = self._resolve_game(event, game_id)

            catch = CatchRecord(
                user=seat.assigned_user,
                booking_id=booking.id,
                booking_seat_id=seat.id,
                rod_qr_code=rod.qr_code,
                event_id=event.id if event is not None else None,
                game_id=event_game.game_id if event_game is not None else None,
                weight=normalized_weight,
                length=normalized_length,
                species=species,
                is_verified=True,
                recorded_by=weighed_by or "system",
                scale_id=scale_id,
                notes=notes,
                weighed_at=self.clock(),
            )
            self.db.add(catch)
            await self.db.flush()

        catches_recorded.inc()
        logger.info(
            "catch_recorded",
            catch_id=catch.id,
            user_id=catch.user_id,
            rod_qr_code=rod.qr_code,
            weight=str(catch.weight),
            event_id=catch.event_id,
            game_id=catch.game_id,
        )

        stats_service = StatsService(self.db, self.clock)
        stats = await run_side_effect("user_stats", stats_service.apply_catch(catch))
        achievements = []
        if stats is not None:
            achievements = await run_side_effect(
                "achievements", stats_service.evaluate_achievements(catch.user_id), default=[]
            )

        standing = None
        if catch.event_id is not None:
            standing = await run_side_effect("standing", self._standing(catch))
            await run_side_effect("leaderboard_invalidate", self.cache.invalidate_prefix(event_cache_prefix(catch.event_id)))

        await self._notify(catch, event, achievements)

        return CatchOutcome(
            catch=catch,
            rod=rod,
            event=event,
            game_name=event_game.game.name if event_game is not None else None,
            stats=stats,
            achievements=achievements,
            standing=standing,
        )

    def _resolve_game(self, event: Event, game_id: Optional[int]) -> EventGame:
        games = sorted(event.event_games, key=lambda eg: (eg.display_order, eg.id))
        if game_id is not None:
            games = [eg for eg in games if eg.game_id == game_id]
        if not games:
            raise NoGameConfigured(event_id=event.id, game_id=game_id)
        return games[0]

    async def _standing(self, catch: CatchRecord) -> Standing:
        """Rank of the submitter's best catch among all catches of the event+game."""
        async with atomic(self.db):
            result = await self.db.execute(
                select(CatchRecord.id, CatchRecord.user_id)
                .where(CatchRecord.event_id == catch.event_id, CatchRecord.game_id == catch.game_id)
                .order_by(CatchRecord.weight.desc(), CatchRecord.weighed_at.asc(), CatchRecord.id.asc())
            )
            rows = result.all()

        position = next(index for index, row in enumerate(rows, start=1) if row.user_id == catch.user_id)
        return Standing(
            rank=position,
            total_catches=len(rows),
            total_participants=len({row.user_id for row in rows}),
        )

    async def _notify(self, catch: CatchRecord, event: Optional[Event], achievements: list[UserAchievement]) -> None:
        for grant in achievements:
            await notify_best_effort(
                self.notifier,
                Notification(
                    user_id=catch.user_id,
                    type="ACHIEVEMENT",
                    title="Achievement Unlocked!",
                    message=f"{grant.achievement.name}: {grant.achievement.description}",
                    priority="high",
                    action_url="/journey",
                ),
            )

        where = f" for {event.name}" if event is not None else ""
        await notify_best_effort(
            self.notifier,
            Notification(
                user_id=catch.user_id,
                type="CATCH_RECORDED",
                title="Catch Recorded!",
                message=f"Your catch of {catch.weight:.2f}kg has been recorded{where}",
                action_url="/leaderboard",
            ),
        )

    async def list_catches(
        self,
        event_id: Optional[int] = None,
        user_id: Optional[int] = None,
        rod_qr_code: Optional[str] = None,
    ) -> list[CatchRecord]:
        query = select(CatchRecord)
        if event_id is not None:
            query = query.where(CatchRecord.event_id == event_id)
        if user_id is not None:
            query = query.where(CatchRecord.user_id == user_id)
        if rod_qr_code:
            query = query.where(CatchRecord.rod_qr_code == rod_qr_code.strip())

        async with atomic(self.db):
            result = await self.db.execute(query.order_by(CatchRecord.weighed_at.desc(), CatchRecord.id.desc()))
            return list(result.scalars().all())

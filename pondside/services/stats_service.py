"""
Per-angler running stats and achievement unlocks.

Both run after a catch has committed. They are best-effort: the weighing
service calls them through `run_side_effect`, so a failure here leaves the
catch recorded and the stats one catch behind until the next update.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pondside.core.clock import Clock, utcnow, venue_date
from pondside.core.config import get_settings
from pondside.core.logging import get_logger
from pondside.db.session import atomic
from pondside.models import Achievement, CatchRecord, UserAchievement, UserStats
from pondside.services.user_service import UserDirectory

logger = get_logger(__name__)

# UserStats columns an achievement rule may refer to
ACHIEVEMENT_METRICS = (
    "total_catches",
    "total_weight",
    "biggest_catch",
    "events_joined",
    "current_streak",
    "longest_streak",
)


def advance_streak(
    current: int,
    longest: int,
    last_day: Optional[date],
    catch_day: date,
) -> tuple[int, int, Optional[date]]:
    """
    Fold one catch day into a daily streak.

    Same day keeps the streak, the next day extends it, a gap restarts it.
    A catch dated before the last one (late entry) leaves the streak alone.
    """
    if last_day is None:
        current = 1
    elif catch_day == last_day:
        current = max(current, 1)
    elif (catch_day - last_day).days == 1:
        current += 1
    elif catch_day > last_day:
        current = 1
    else:
        return current, longest, last_day
    return current, max(longest, current), catch_day


class StatsService:
    def __init__(self, db: AsyncSession, clock: Clock = utcnow):
        self.db = db
        self.clock = clock
        self.settings = get_settings()

    async def _locked_stats(self, user_id: int) -> UserStats:
        query = (
            select(UserStats)
            .where(UserStats.user_id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        stats = (await self.db.execute(query)).scalar_one_or_none()
        if stats is not None:
            return stats

        try:
            async with self.db.begin_nested():
                self.db.add(
                    UserStats(
                        user_id=user_id,
                        total_catches=0,
                        total_weight=Decimal("0"),
                        biggest_catch=Decimal("0"),
                        events_joined=0,
                        current_streak=0,
                        longest_streak=0,
                    )
                )
        except IntegrityError:
            logger.info("user_stats_insert_raced", user_id=user_id)
        return (await self.db.execute(query)).scalar_one()

    async def apply_catch(self, catch: CatchRecord) -> UserStats:
        """Fold one committed catch into the angler's stats."""
        async with atomic(self.db):
            stats = await self._locked_stats(catch.user_id)

            weight = Decimal(catch.weight)
            stats.total_catches += 1
            stats.total_weight = Decimal(stats.total_weight) + weight
            stats.biggest_catch = max(Decimal(stats.biggest_catch), weight)

            if catch.event_id is not None:
                result = await self.db.execute(
                    select(func.count(CatchRecord.id)).where(
                        CatchRecord.user_id == catch.user_id,
                        CatchRecord.event_id == catch.event_id,
                        CatchRecord.id != catch.id,
                    )
                )
                if result.scalar_one() == 0:
                    stats.events_joined += 1

            catch_day = venue_date(catch.weighed_at, self.settings.VENUE_TIMEZONE)
            stats.current_streak, stats.longest_streak, stats.last_catch_date = advance_streak(
                stats.current_streak, stats.longest_streak, stats.last_catch_date, catch_day
            )
            await self.db.flush()

        logger.info(
            "user_stats_updated",
            user_id=catch.user_id,
            total_catches=stats.total_catches,
            current_streak=stats.current_streak,
        )
        return stats

    async def evaluate_achievements(self, user_id: int) -> list[UserAchievement]:
        """
        Unlock every active achievement whose threshold the user now meets.

        Returns only the achievements unlocked by this call; ones already held
        are left as they are.
        """
        async with atomic(self.db):
            stats = (
                await self.db.execute(
                    select(UserStats)
                    .where(UserStats.user_id == user_id)
                    .execution_options(populate_existing=True)
                )
            ).scalar_one_or_none()
            if stats is None:
                return []

            held = select(UserAchievement.achievement_id).where(UserAchievement.user_id == user_id)
            candidates = (
                await self.db.execute(
                    select(Achievement)
                    .where(Achievement.is_active.is_(True), Achievement.id.not_in(held))
                    .order_by(Achievement.display_order, Achievement.id)
                )
            ).scalars().all()

            now = self.clock()
            unlocked = []
            for achievement in candidates:
                if achievement.metric not in ACHIEVEMENT_METRICS:
                    logger.warning("achievement_unknown_metric", code=achievement.code, metric=achievement.metric)
                    continue
                value = getattr(stats, achievement.metric) or 0
                if Decimal(value) < Decimal(achievement.threshold):
                    continue
                try:
                    async with self.db.begin_nested():
                        grant = UserAchievement(user_id=user_id, achievement_id=achievement.id, unlocked_at=now)
                        self.db.add(grant)
                except IntegrityError:
                    # Unlocked by a concurrent catch
                    continue
                grant.achievement = achievement
                unlocked.append(grant)

        for grant in unlocked:
            logger.info("achievement_unlocked", user_id=user_id, code=grant.achievement.code)
        return unlocked

    async def get_stats(self, user_id: int) -> UserStats:
        """Stats for a user, starting an empty row for anglers with no catches yet."""
        async with atomic(self.db):
            await UserDirectory(self.db).get(user_id)
            return await self._locked_stats(user_id)

    async def list_achievements(self, user_id: int) -> list[UserAchievement]:
        async with atomic(self.db):
            result = await self.db.execute(
                select(UserAchievement)
                .where(UserAchievement.user_id == user_id)
                .order_by(UserAchievement.unlocked_at, UserAchievement.id)
            )
            return list(result.scalars().all())


def streak_is_live(stats: UserStats, today: date) -> bool:
    """A streak is live if the last catch was today or yesterday."""
    if stats.last_catch_date is None:
        return False
    return (today - stats.last_catch_date).days <= 1

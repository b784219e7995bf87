"""
Leaderboard generation.

RANKING
=======

`rank_entries` is a pure function from catch facts to ranked entries. It
groups catches by angler and orders by:

  1. total weight            descending
  2. biggest single catch    descending
  3. qualifying time         ascending (the catch that completed the total,
                             so whoever reached the total first ranks higher)
  4. user id                 ascending (stable order only, never shares a rank)

Ranks are dense: anglers share a rank only when 1-3 are all equal, and the
next distinct result takes the next integer. Points come from a fixed
descending scale indexed by rank.

CACHING
=======

Event leaderboards are cached with the time they were computed and reused
while younger than the TTL. A stale or missing entry is recomputed from the
catch records and written back; concurrent writers race and the last one
wins. The cache never decides correctness: with it disabled, every read
recomputes.
"""

from collections import defaultdict
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Mapping, Optional, Sequence

from pydantic import TypeAdapter
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pondside.core.clock import Clock, utcnow
from pondside.core.config import get_settings
from pondside.core.errors import EventNotFound, NoGameConfigured, UserNotFound
from pondside.core.logging import get_logger
from pondside.core.metrics import leaderboard_build_latency, record_cache_lookup
from pondside.db.session import atomic
from pondside.models import CatchRecord, Event
from pondside.services.interfaces import CachedLeaderboard, LeaderboardCache, NullLeaderboardCache
from pondside.services.user_service import UserDirectory

logger = get_logger(__name__)

WEIGHT_QUANTUM = Decimal("0.001")


@dataclass(frozen=True)
class CatchFact:
    """The parts of a catch record that ranking looks at."""
    catch_id: int
    user_id: int
    weight: Decimal
    weighed_at: datetime
    event_id: Optional[int] = None
    game_id: Optional[int] = None
    user_name: str = "Unknown"
    user_email: str = ""

    @classmethod
    def from_record(cls, record: CatchRecord) -> "CatchFact":
        user = record.user
        return cls(
            catch_id=record.id,
            user_id=record.user_id,
            weight=Decimal(record.weight),
            weighed_at=record.weighed_at,
            event_id=record.event_id,
            game_id=record.game_id,
            user_name=user.name if user is not None else "Unknown",
            user_email=user.email if user is not None else "",
        )


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    user_id: int
    user_name: str
    user_email: str
    total_weight: Decimal
    total_fish: int
    biggest_fish: Decimal
    average_weight: Decimal
    competitions_participated: int
    competitions_won: int
    points: int
    qualified_at: datetime
    last_game_id: Optional[int] = None


@dataclass(frozen=True)
class EventLeaderboard:
    event_id: int
    event_name: str
    game_id: Optional[int]
    game_name: Optional[str]
    entries: list[LeaderboardEntry]
    last_updated: datetime
    cached: bool = False


@dataclass(frozen=True)
class UserStanding:
    entry: Optional[LeaderboardEntry]
    total_anglers: int


_board_adapter = TypeAdapter(EventLeaderboard)


def points_for_rank(rank: int, scale: Sequence[int], min_points: int) -> int:
    if 1 <= rank <= len(scale):
        return scale[rank - 1]
    return min_points


@dataclass
class _Tally:
    user_id: int
    user_name: str
    user_email: str
    total_weight: Decimal = Decimal("0")
    total_fish: int = 0
    biggest_fish: Decimal = Decimal("0")
    qualified_at: Optional[datetime] = None
    last_game_id: Optional[int] = None
    event_ids: set = field(default_factory=set)


def rank_entries(
    catches: Iterable[CatchFact],
    points_scale: Sequence[int],
    min_points: int,
    wins: Optional[Mapping[int, int]] = None,
) -> list[LeaderboardEntry]:
    """
    Rank anglers by their catches.

    `wins` maps user id to the number of events that angler won; it is only
    known to the overall board, event boards leave it out.
    """
    tallies: dict[int, _Tally] = {}
    ordered = sorted(catches, key=lambda c: (c.weighed_at, c.catch_id))
    for catch in ordered:
        tally = tallies.get(catch.user_id)
        if tally is None:
            tally = tallies[catch.user_id] = _Tally(catch.user_id, catch.user_name, catch.user_email)
        tally.total_weight += catch.weight
        tally.total_fish += 1
        tally.biggest_fish = max(tally.biggest_fish, catch.weight)
        tally.qualified_at = catch.weighed_at
        if catch.game_id is not None:
            tally.last_game_id = catch.game_id
        if catch.event_id is not None:
            tally.event_ids.add(catch.event_id)

    ranked = sorted(
        tallies.values(),
        key=lambda t: (-t.total_weight, -t.biggest_fish, t.qualified_at, t.user_id),
    )

    entries = []
    rank = 0
    previous_key = None
    for tally in ranked:
        key = (tally.total_weight, tally.biggest_fish, tally.qualified_at)
        if key != previous_key:
            rank += 1
            previous_key = key
        entries.append(
            LeaderboardEntry(
                rank=rank,
                user_id=tally.user_id,
                user_name=tally.user_name,
                user_email=tally.user_email,
                total_weight=tally.total_weight,
                total_fish=tally.total_fish,
                biggest_fish=tally.biggest_fish,
                average_weight=(tally.total_weight / tally.total_fish).quantize(WEIGHT_QUANTUM),
                competitions_participated=len(tally.event_ids),
                competitions_won=(wins or {}).get(tally.user_id, 0),
                points=points_for_rank(rank, points_scale, min_points),
                qualified_at=tally.qualified_at,
                last_game_id=tally.last_game_id,
            )
        )
    return entries


def event_winners(catches: Iterable[CatchFact]) -> dict[int, int]:
    """Count, per angler, the events in which they hold rank 1."""
    by_event: dict[int, list[CatchFact]] = defaultdict(list)
    for catch in catches:
        if catch.event_id is not None:
            by_event[catch.event_id].append(catch)

    wins: dict[int, int] = defaultdict(int)
    for event_catches in by_event.values():
        for entry in rank_entries(event_catches, points_scale=(), min_points=0):
            if entry.rank != 1:
                break
            wins[entry.user_id] += 1
    return dict(wins)


def event_cache_prefix(event_id: int) -> str:
    return f"leaderboard:event:{event_id}:"


def event_cache_key(event_id: int, game_id: Optional[int]) -> str:
    return f"{event_cache_prefix(event_id)}game:{game_id if game_id is not None else 'all'}"


class LeaderboardService:
    def __init__(
        self,
        db: AsyncSession,
        cache: Optional[LeaderboardCache] = None,
        clock: Clock = utcnow,
        ttl_seconds: Optional[int] = None,
    ):
        self.db = db
        self.cache = cache or NullLeaderboardCache()
        self.clock = clock
        self.settings = get_settings()
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else self.settings.LEADERBOARD_CACHE_TTL

    def _rank(self, facts: list[CatchFact], wins: Optional[Mapping[int, int]] = None) -> list[LeaderboardEntry]:
        return rank_entries(
            facts,
            points_scale=self.settings.LEADERBOARD_POINTS_SCALE,
            min_points=self.settings.LEADERBOARD_MIN_POINTS,
            wins=wins,
        )

    async def _facts(self, *criteria) -> list[CatchFact]:
        result = await self.db.execute(select(CatchRecord).where(*criteria).order_by(CatchRecord.id))
        return [CatchFact.from_record(record) for record in result.scalars().all()]

    async def generate_overall(self) -> list[LeaderboardEntry]:
        with leaderboard_build_latency.labels(scope="overall").time():
            async with atomic(self.db):
                facts = await self._facts()
            entries = self._rank(facts, wins=event_winners(facts))
        logger.info("leaderboard_generated", scope="overall", anglers=len(entries), catches=len(facts))
        return entries

    async def generate_for_event(self, event_id: int, game_id: Optional[int] = None) -> EventLeaderboard:
        key = event_cache_key(event_id, game_id)
        cached = await self._cached(key)
        if cached is not None:
            return cached

        with leaderboard_build_latency.labels(scope="event").time():
            async with atomic(self.db):
                event = await self.db.get(Event, event_id)
                if event is None:
                    raise EventNotFound(f"Event {event_id} not found", event_id=event_id)
                game = None
                if game_id is not None:
                    configured = next((eg for eg in event.event_games if eg.game_id == game_id), None)
                    if configured is None:
                        raise NoGameConfigured(
                            f"Game {game_id} is not configured for this event", event_id=event_id, game_id=game_id
                        )
                    game = configured.game

                criteria = [CatchRecord.event_id == event_id]
                if game_id is not None:
                    criteria.append(CatchRecord.game_id == game_id)
                facts = await self._facts(*criteria)

            entries = self._rank(facts)
            # Within one event the leaders are that event's winners
            entries = [
                replace(entry, competitions_participated=1, competitions_won=1 if entry.rank == 1 else 0)
                for entry in entries
            ]

        board = EventLeaderboard(
            event_id=event.id,
            event_name=event.name,
            game_id=game_id,
            game_name=game.name if game is not None else None,
            entries=entries,
            last_updated=self.clock(),
        )
        await self.cache.set(
            key,
            CachedLeaderboard(payload=_board_adapter.dump_python(board, mode="json"), last_updated=board.last_updated),
            self.ttl_seconds,
        )
        logger.info("leaderboard_generated", scope="event", event_id=event_id, game_id=game_id, anglers=len(entries))
        return board

    async def _cached(self, key: str) -> Optional[EventLeaderboard]:
        entry = await self.cache.get(key)
        if entry is None:
            record_cache_lookup("miss")
            return None

        age = (self.clock() - entry.last_updated).total_seconds()
        if age > self.ttl_seconds:
            record_cache_lookup("stale")
            logger.debug("leaderboard_cache_stale", key=key, age_seconds=age)
            return None

        try:
            board = _board_adapter.validate_python(entry.payload)
        except ValueError as e:
            record_cache_lookup("miss")
            logger.warning("leaderboard_cache_unreadable", key=key, error=str(e))
            return None

        record_cache_lookup("hit")
        return replace(board, cached=True)

    async def invalidate_event(self, event_id: int) -> int:
        return await self.cache.invalidate_prefix(event_cache_prefix(event_id))

    async def get_user_standing(self, user_id: int) -> UserStanding:
        async with atomic(self.db):
            if await UserDirectory(self.db).find_by_id(user_id) is None:
                raise UserNotFound(f"User {user_id} not found", user_id=user_id)
        entries = await self.generate_overall()
        entry = next((e for e in entries if e.user_id == user_id), None)
        return UserStanding(entry=entry, total_anglers=len(entries))

"""
Pytest fixtures for the test database, client, clock and venue data.

Each test gets its own SQLite file, so tests never share state. The app is
built with `create_app()` and its `app.state` collaborators (database,
notifier, leaderboard cache) are set directly; the clock is swapped through
a dependency override.

Seeding and assertions use short-lived sessions. SQLite allows one writer at
a time, so a session left inside a transaction would block the app.
"""

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from pondside.api.deps import get_clock
from pondside.db.base import Base
from pondside.db.session import Database
from pondside.main import create_app
from pondside.models import Achievement, Event, EventGame, Game, Pond, TimeSlot, User
from pondside.schemas.booking import BookingCreate
from pondside.services.booking_service import SeatAllocator
from pondside.services.cache_service import MemoryLeaderboardCache
from pondside.services.interfaces import Notification, Notifier

EVENT_DAY = date(2026, 6, 13)


class FrozenClock:
    """A clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now


class RecordingNotifier(Notifier):
    def __init__(self):
        self.sent: list[Notification] = []

    async def notify(self, notification: Notification) -> None:
        self.sent.append(notification)

    def types(self) -> list[str]:
        return [n.type for n in self.sent]


class FailingNotifier(Notifier):
    async def notify(self, notification: Notification) -> None:
        raise ConnectionError("notification service unreachable")


@pytest.fixture
def clock() -> FrozenClock:
    """08:00 UTC on the event day."""
    return FrozenClock(datetime.combine(EVENT_DAY, time(8, 0), tzinfo=timezone.utc))


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def cache(clock: FrozenClock) -> MemoryLeaderboardCache:
    return MemoryLeaderboardCache(clock)


@pytest_asyncio.fixture(scope="function")
async def database(tmp_path) -> AsyncGenerator[Database, None]:
    """Fresh SQLite file with all tables, disposed after the test."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'pondside_test.db'}")
    async with db.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield db

    await db.dispose()


@pytest_asyncio.fixture
async def session(database: Database):
    async with database.session() as s:
        yield s


@pytest_asyncio.fixture(scope="function")
async def client(database: Database, clock, notifier, cache) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against an app wired to the test database and collaborators."""
    app = create_app()
    app.state.database = database
    app.state.notifier = notifier
    app.state.leaderboard_cache = cache
    app.dependency_overrides[get_clock] = lambda: clock

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _persist(database: Database, *objects):
    async with database.session() as s:
        s.add_all(objects)
        await s.commit()
    return objects


@pytest_asyncio.fixture
async def users(database: Database) -> dict[str, User]:
    """Booking owner plus three anglers, keyed by first name."""
    people = {
        "owner": User(email="owner@x.com", name="Olive Owner"),
        "alice": User(email="alice@x.com", name="Alice"),
        "bob": User(email="bob@x.com", name="Bob"),
        "carol": User(email="carol@x.com", name="Carol"),
    }
    await _persist(database, *people.values())
    return people


@pytest_asyncio.fixture
async def pond(database: Database) -> Pond:
    (pond,) = await _persist(database, Pond(name="Lily Pond", max_capacity=10, booking_enabled=True))
    return pond


@pytest_asyncio.fixture
async def time_slot(database: Database) -> TimeSlot:
    (slot,) = await _persist(database, TimeSlot(label="Morning", start_time=time(7, 0), end_time=time(12, 0)))
    return slot


@pytest_asyncio.fixture
async def games(database: Database) -> dict[str, Game]:
    heaviest = Game(name="Heaviest Catch", type="heaviest")
    biggest = Game(name="Biggest Fish", type="biggest")
    await _persist(database, heaviest, biggest)
    return {"heaviest": heaviest, "biggest": biggest}


@pytest_asyncio.fixture
async def event(database: Database, pond: Pond, games) -> Event:
    """Competition on EVENT_DAY with 20 places and two games."""
    competition = Event(name="Summer Open", date=EVENT_DAY, max_participants=20, booked_seats=0, pond_id=pond.id)
    await _persist(database, competition)
    await _persist(
        database,
        EventGame(event_id=competition.id, game_id=games["heaviest"].id, display_order=1),
        EventGame(event_id=competition.id, game_id=games["biggest"].id, display_order=2),
    )
    return competition


@pytest_asyncio.fixture
async def achievements(database: Database) -> dict[str, Achievement]:
    rules = {
        "first_catch": Achievement(
            code="FIRST_CATCH", name="First Catch", description="Record your first catch",
            metric="total_catches", threshold=Decimal("1"), display_order=1,
        ),
        "ten_kilos": Achievement(
            code="TEN_KILOS", name="Ten Kilos", description="Land 10kg in total",
            metric="total_weight", threshold=Decimal("10"), display_order=2,
        ),
        "retired": Achievement(
            code="RETIRED", name="Retired Rule", description="No longer awarded",
            metric="total_catches", threshold=Decimal("1"), is_active=False, display_order=3,
        ),
    }
    await _persist(database, *rules.values())
    return rules


@pytest_asyncio.fixture
async def bk1(database: Database, users, event, clock, notifier):
    """
    Event booking with two seats: seat 1 shared to alice@x.com, seat 2 unassigned.
    Returns the booking with its seats loaded.
    """
    async with database.session() as s:
        allocator = SeatAllocator(s, notifier, clock)
        booking = await allocator.create_booking(
            BookingCreate(
                type="EVENT",
                booked_by_user_id=users["owner"].id,
                event_id=event.id,
                date=EVENT_DAY,
                seat_count=2,
                total_price=Decimal("50.00"),
            )
        )
        seat_one = next(seat for seat in booking.seats if seat.seat_number == 1)
        await allocator.share_seat(booking.booking_ref, seat_one.id, "alice@x.com")
        booking = await allocator.get_booking(booking.id)
    notifier.sent.clear()
    return booking


def seat(booking, number: int):
    return next(s for s in booking.seats if s.seat_number == number)

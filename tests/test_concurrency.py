"""
Concurrency tests: simultaneous bookings, scans and prints against one database.

Each contender gets its own session, as separate requests would. SQLite
serialises the writers, so these check that the losers of each race see the
winner's state and get the right answer, not that the races overlap on the
database itself.
"""

import asyncio
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from conftest import EVENT_DAY, seat
from pondside.core.errors import CapacityExceeded, RodAlreadyIssued, SeatTaken
from pondside.models import Booking, BookingSeat, CheckInRecord, FishingRod, PondSlotInventory
from pondside.schemas.booking import BookingCreate, SeatRequest
from pondside.services.booking_service import SeatAllocator
from pondside.services.checkin_service import AlreadyCheckedIn, CheckInService, FreshCheckIn
from pondside.services.rod_service import RodService, verify_history


@pytest.mark.asyncio
async def test_concurrent_bookings_never_exceed_capacity(database, users, pond, time_slot, clock, notifier):
    """Eight requests of 2 seats on a 10-seat pond: five succeed, three are rejected."""

    async def book():
        async with database.session() as s:
            try:
                return await SeatAllocator(s, notifier, clock).create_booking(
                    BookingCreate(
                        type="POND",
                        booked_by_user_id=users["owner"].id,
                        pond_id=pond.id,
                        time_slot_id=time_slot.id,
                        date=EVENT_DAY,
                        seat_count=2,
                        total_price=Decimal("20"),
                    )
                )
            except CapacityExceeded as e:
                return e

    results = await asyncio.gather(*(book() for _ in range(8)))

    succeeded = [r for r in results if not isinstance(r, CapacityExceeded)]
    rejected = [r for r in results if isinstance(r, CapacityExceeded)]
    assert len(succeeded) == 5
    assert len(rejected) == 3

    async with database.session() as s:
        inventory = (await s.execute(select(PondSlotInventory))).scalar_one()
        assert inventory.reserved_seats == 10
        seats_booked = (await s.execute(select(func.sum(Booking.seat_count)))).scalar_one()
        assert seats_booked == 10


@pytest.mark.asyncio
async def test_concurrent_bookings_get_distinct_pegs(database, users, pond, time_slot, clock, notifier):
    """Five bookings all asking for peg 3: one gets it, the rest see it taken."""

    async def book():
        async with database.session() as s:
            try:
                return await SeatAllocator(s, notifier, clock).create_booking(
                    BookingCreate(
                        type="POND",
                        booked_by_user_id=users["owner"].id,
                        pond_id=pond.id,
                        time_slot_id=time_slot.id,
                        date=EVENT_DAY,
                        seats=[SeatRequest(number=3)],
                    )
                )
            except SeatTaken as e:
                return e

    results = await asyncio.gather(*(book() for _ in range(5)))

    assert len([r for r in results if not isinstance(r, SeatTaken)]) == 1
    assert len([r for r in results if isinstance(r, SeatTaken)]) == 4

    async with database.session() as s:
        inventory = (await s.execute(select(PondSlotInventory))).scalar_one()
        assert inventory.reserved_seats == 1
        pegs = (await s.execute(select(BookingSeat.seat_number))).scalars().all()
        assert pegs == [3]


@pytest.mark.asyncio
async def test_concurrent_scans_check_in_once(database, bk1, clock, notifier):
    qr = seat(bk1, 1).qr_code

    async def scan(station: str):
        async with database.session() as s:
            return await CheckInService(s, notifier, clock).check_in(qr, station_id=station)

    results = await asyncio.gather(*(scan(f"GATE-{n}") for n in range(6)))

    fresh = [r for r in results if isinstance(r, FreshCheckIn)]
    repeats = [r for r in results if isinstance(r, AlreadyCheckedIn)]
    assert len(fresh) == 1
    assert len(repeats) == 5
    assert all(
        r.checked_in_at.replace(tzinfo=None) == fresh[0].record.check_in_at.replace(tzinfo=None)
        for r in repeats
    )
    assert notifier.types() == ["CHECK_IN"]

    async with database.session() as s:
        records = (await s.execute(select(func.count(CheckInRecord.id)))).scalar_one()
        assert records == 1


@pytest.mark.asyncio
async def test_concurrent_first_prints_issue_one_rod(database, bk1, clock, notifier):
    qr = seat(bk1, 1).qr_code
    async with database.session() as s:
        await CheckInService(s, notifier, clock).check_in(qr)

    async def print_label(station: str):
        async with database.session() as s:
            try:
                rod, _ = await RodService(s, notifier, clock).issue_rod(qr, station_id=station)
                return rod
            except RodAlreadyIssued as e:
                return e

    results = await asyncio.gather(*(print_label(f"PRINTER-{n}") for n in range(4)))

    issued = [r for r in results if isinstance(r, FishingRod)]
    assert len(issued) == 1
    assert sum(isinstance(r, RodAlreadyIssued) for r in results) == 3


@pytest.mark.asyncio
async def test_concurrent_replacements_keep_one_active_rod(database, bk1, clock, notifier):
    qr = seat(bk1, 1).qr_code
    async with database.session() as s:
        await CheckInService(s, notifier, clock).check_in(qr)
    async with database.session() as s:
        await RodService(s, notifier, clock).issue_rod(qr)

    async def replace(station: str):
        async with database.session() as s:
            rod, voided = await RodService(s, notifier, clock).issue_rod(
                qr, station_id=station, is_replacement=True
            )
            return rod

    replacements = await asyncio.gather(*(replace(f"PRINTER-{n}") for n in range(3)))
    assert sorted(rod.version for rod in replacements) == [2, 3, 4]

    async with database.session() as s:
        service = RodService(s, notifier, clock)
        _, history = await service.get_rod_history(qr)
        assert verify_history(history)
        assert await service.count_active(seat(bk1, 1).id) == 1

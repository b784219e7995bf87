"""
Seat allocator: booking creation, seat sharing and cancellation.

CONCURRENCY STRATEGY: Optimistic Locking with Retry
====================================================

Problem:
  Two anglers try to book the last seats on the same pond session.
  Both read reserved=8/10, both add 2, both succeed.
  Result: 12 people on a 10-peg pond.

Solution:
  Every contention unit has one counter row with a `version` column:
    - pond bookings:  PondSlotInventory per (pond, date, time slot)
    - event bookings: Event.booked_seats against Event.max_participants

  1. Read the counter row and its version
  2. UPDATE ... SET reserved = reserved + N, version = version + 1
     WHERE id = :id AND version = :v AND reserved + N <= capacity
  3. If rows_affected == 0, someone else moved the counter -> re-read and retry

  The counter update and the seat inserts share one transaction, so a
  failure anywhere leaves neither behind.

  Peg numbers are checked against the unit after the counter update. The
  updated row stays locked until commit, so two bookings of one unit never
  pick pegs at the same time. CHECK constraints on the counters and the
  unique constraints on (booking_id, seat_number) and seat qr_code are the
  last line of defence.
"""

from datetime import date
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pondside.core.clock import Clock, utcnow, venue_date
from pondside.core.config import get_settings
from pondside.core.errors import (
    BookingAlreadyCancelled,
    BookingDisabled,
    BookingInactive,
    BookingNotFound,
    CapacityExceeded,
    ConflictError,
    EventNotFound,
    PondNotFound,
    SeatAlreadyCheckedIn,
    SeatNotFound,
    SeatOutOfRange,
    SeatTaken,
    TimeSlotNotFound,
    ValidationError,
)
from pondside.core.logging import get_logger
from pondside.core.metrics import booking_retries, record_booking_attempt
from pondside.db.session import atomic
from pondside.models import (
    Booking,
    BookingSeat,
    BookingStatus,
    BookingType,
    Event,
    Pond,
    PondSlotInventory,
    SeatStatus,
    TimeSlot,
)
from pondside.schemas.booking import BookingCreate, SeatRequest
from pondside.services.identity_service import generate_booking_ref, generate_seat_qr
from pondside.services.interfaces.notifier import Notification, Notifier
from pondside.services.notification_service import notify_best_effort
from pondside.services.user_service import UserDirectory

logger = get_logger(__name__)


class SeatAllocator:
    def __init__(
        self,
        db: AsyncSession,
        notifier: Notifier,
        clock: Clock = utcnow,
        users: Optional[UserDirectory] = None,
    ):
        self.db = db
        self.notifier = notifier
        self.clock = clock
        self.users = users or UserDirectory(db)
        self.settings = get_settings()

    # --- reads ---------------------------------------------------------------

    async def _find_booking(self, identifier: str | int) -> Optional[Booking]:
        """Look a booking up by its reference (PND_...) or its numeric id."""
        if isinstance(identifier, int) or str(identifier).isdigit():
            query = select(Booking).where(Booking.id == int(identifier))
        else:
            query = select(Booking).where(Booking.booking_ref == identifier)
        result = await self.db.execute(query.execution_options(populate_existing=True))
        return result.scalar_one_or_none()

    async def _require_booking(self, identifier: str | int) -> Booking:
        booking = await self._find_booking(identifier)
        if booking is None:
            raise BookingNotFound(booking_id=str(identifier))
        return booking

    async def get_booking(self, identifier: str | int) -> Booking:
        async with atomic(self.db):
            return await self._require_booking(identifier)

    async def list_seats(self, identifier: str | int) -> tuple[Booking, list[BookingSeat]]:
        async with atomic(self.db):
            booking = await self._require_booking(identifier)
            return booking, list(booking.seats)

    async def occupied_seats(
        self,
        booking_date: date,
        pond_id: Optional[int] = None,
        event_id: Optional[int] = None,
        time_slot_id: Optional[int] = None,
    ) -> list[int]:
        """
        Pegs already held for an event, or for a pond on a date. Without a
        time slot, a pond's pegs across every slot of the day are returned.
        """
        if event_id is not None:
            unit = [Booking.type == BookingType.EVENT, Booking.event_id == event_id]
        elif pond_id is not None:
            unit = [Booking.type == BookingType.POND, Booking.pond_id == pond_id, Booking.date == booking_date]
            if time_slot_id is not None:
                unit.append(Booking.time_slot_id == time_slot_id)
        else:
            raise ValidationError("pondId or eventId is required")

        async with atomic(self.db):
            return sorted(await self._occupied_pegs(unit))

    # --- create --------------------------------------------------------------

    async def create_booking(self, data: BookingCreate) -> Booking:
        """
        Create a booking and all of its seats in one transaction.

        Raises ValidationError for past dates, oversize requests and pegs
        beyond capacity, NotFoundError for unknown owner/pond/event/slot,
        CapacityExceeded when the contention unit is full and SeatTaken when
        a requested peg is held by another booking of the unit.
        """
        seat_count = data.requested_seats
        if seat_count > self.settings.MAX_SEATS_PER_BOOKING:
            raise ValidationError(
                f"At most {self.settings.MAX_SEATS_PER_BOOKING} seats per booking",
                requested=seat_count,
            )

        today = venue_date(self.clock(), self.settings.VENUE_TIMEZONE)
        if data.date < today:
            raise ValidationError("Booking date must not be in the past", date=data.date.isoformat())

        try:
            async with atomic(self.db):
                await self.users.get(data.booked_by_user_id)
                for seat in data.seats:
                    if seat.assigned_user_id is not None:
                        await self.users.get(seat.assigned_user_id)

                if data.time_slot_id is not None and await self.db.get(TimeSlot, data.time_slot_id) is None:
                    raise TimeSlotNotFound(
                        f"Time slot {data.time_slot_id} not found", time_slot_id=data.time_slot_id
                    )

                if data.type == BookingType.EVENT:
                    if data.pond_id is not None and await self.db.get(Pond, data.pond_id) is None:
                        raise PondNotFound(f"Pond {data.pond_id} not found", pond_id=data.pond_id)
                    event = await self._reserve_event_seats(data.event_id, data.date, seat_count, data.seats)
                    pond_id = data.pond_id or event.pond_id
                    capacity = event.max_participants
                    unit = (Booking.type == BookingType.EVENT, Booking.event_id == event.id)
                else:
                    inventory = await self._reserve_pond_seats(
                        data.pond_id, data.date, data.time_slot_id, seat_count, data.seats
                    )
                    pond_id = data.pond_id
                    capacity = inventory.capacity
                    unit = (
                        Booking.type == BookingType.POND,
                        Booking.pond_id == data.pond_id,
                        Booking.date == data.date,
                        Booking.time_slot_id == data.time_slot_id,
                    )

                seat_requests = await self._assign_pegs(data, capacity, unit)

                booking = Booking(
                    booking_ref=await self._unique_booking_ref(data.type),
                    type=data.type,
                    booked_by_user_id=data.booked_by_user_id,
                    pond_id=pond_id,
                    event_id=data.event_id if data.type == BookingType.EVENT else None,
                    time_slot_id=data.time_slot_id,
                    date=data.date,
                    seat_count=seat_count,
                    total_price=data.total_price,
                    status=BookingStatus.ACTIVE,
                )
                self.db.add(booking)
                await self.db.flush()

                now = self.clock()
                for request in seat_requests:
                    assigned = request.assigned_user_id
                    self.db.add(
                        BookingSeat(
                            booking_id=booking.id,
                            seat_number=request.number,
                            qr_code=generate_seat_qr(booking.booking_ref, request.number),
                            assigned_user_id=assigned,
                            status=SeatStatus.SHARED if assigned else SeatStatus.UNASSIGNED,
                            shared_by_user_id=data.booked_by_user_id if assigned else None,
                            shared_at=now if assigned else None,
                        )
                    )
                await self.db.flush()
                booking_id = booking.id
        except CapacityExceeded:
            record_booking_attempt(data.type, "capacity_exceeded")
            raise
        except SeatTaken:
            record_booking_attempt(data.type, "seat_taken")
            raise
        except IntegrityError as e:
            record_booking_attempt(data.type, "error")
            logger.warning("booking_integrity_conflict", error=str(e.orig))
            raise ConflictError("Booking conflicted with a concurrent request. Please try again.")

        record_booking_attempt(data.type, "success")
        logger.info(
            "booking_created",
            booking_id=booking_id,
            booking_ref=booking.booking_ref,
            type=data.type,
            user_id=data.booked_by_user_id,
            seats=seat_count,
        )
        return await self.get_booking(booking_id)

    async def _unique_booking_ref(self, booking_type: str) -> str:
        while True:
            ref = generate_booking_ref(booking_type)
            existing = await self.db.execute(select(Booking.id).where(Booking.booking_ref == ref))
            if existing.scalar_one_or_none() is None:
                return ref

    async def _occupied_pegs(self, unit) -> set[int]:
        """Seat numbers held by non-cancelled bookings of one contention unit."""
        result = await self.db.execute(
            select(BookingSeat.seat_number)
            .join(Booking, BookingSeat.booking_id == Booking.id)
            .where(Booking.status != BookingStatus.CANCELLED, *unit)
        )
        return set(result.scalars().all())

    async def _assign_pegs(self, data: BookingCreate, capacity: int, unit) -> list[SeatRequest]:
        """
        Requested pegs must be free in the unit; a bare seat count takes the
        lowest free pegs. Runs after the counter update, so the counter row
        lock orders concurrent bookings of the same unit.
        """
        taken = await self._occupied_pegs(unit)
        if data.seats:
            clashes = sorted(seat.number for seat in data.seats if seat.number in taken)
            if clashes:
                raise SeatTaken(
                    f"Seat(s) {', '.join(map(str, clashes))} already booked",
                    seat_numbers=clashes,
                )
            return data.seat_requests()

        free = [number for number in range(1, capacity + 1) if number not in taken]
        if len(free) < data.seat_count:
            raise CapacityExceeded(requested=data.seat_count, available=len(free))
        return [SeatRequest(number=number) for number in free[: data.seat_count]]

    @staticmethod
    def _check_peg_range(seats: list[SeatRequest], capacity: int) -> None:
        beyond = sorted(seat.number for seat in seats if seat.number > capacity)
        if beyond:
            raise SeatOutOfRange(
                f"Seat numbers must be between 1 and {capacity}",
                seat_numbers=beyond,
                capacity=capacity,
            )

    async def _reserve_event_seats(
        self, event_id: int, booking_date: date, seats: int, requested: list[SeatRequest]
    ) -> Event:
        for attempt in range(1, self.settings.BOOKING_MAX_RETRY_ATTEMPTS + 1):
            result = await self.db.execute(
                select(Event).where(Event.id == event_id).execution_options(populate_existing=True)
            )
            event = result.scalar_one_or_none()
            if event is None:
                raise EventNotFound(f"Event {event_id} not found", event_id=event_id)
            if booking_date != event.date:
                raise ValidationError(
                    "Event bookings must be made for the event date",
                    event_date=event.date.isoformat(),
                )
            self._check_peg_range(requested, event.max_participants)

            available = event.max_participants - event.booked_seats
            if available < seats:
                logger.warning(
                    "booking_failed_no_seats",
                    event_id=event_id,
                    requested=seats,
                    available=available,
                )
                raise CapacityExceeded(
                    f"Not enough seats. Requested: {seats}, Available: {available}",
                    requested=seats,
                    available=available,
                )

            update_result = await self.db.execute(
                update(Event)
                .where(
                    Event.id == event_id,
                    Event.version == event.version,
                    Event.booked_seats + seats <= Event.max_participants,
                )
                .values(booked_seats=Event.booked_seats + seats, version=Event.version + 1)
                .execution_options(synchronize_session=False)
            )
            if update_result.rowcount == 1:
                return event

            logger.info("booking_retry", event_id=event_id, attempt=attempt, reason="version_conflict")
            booking_retries.inc()

        raise ConflictError("Booking failed due to high demand. Please try again.")

    async def _inventory_for(self, pond: Pond, booking_date: date, time_slot_id: int) -> PondSlotInventory:
        query = (
            select(PondSlotInventory)
            .where(
                PondSlotInventory.pond_id == pond.id,
                PondSlotInventory.date == booking_date,
                PondSlotInventory.time_slot_id == time_slot_id,
            )
            .execution_options(populate_existing=True)
        )
        inventory = (await self.db.execute(query)).scalar_one_or_none()
        if inventory is not None:
            return inventory

        # First booking for this unit; a concurrent first booking may win the insert
        try:
            async with self.db.begin_nested():
                self.db.add(
                    PondSlotInventory(
                        pond_id=pond.id,
                        date=booking_date,
                        time_slot_id=time_slot_id,
                        capacity=pond.max_capacity,
                        reserved_seats=0,
                        version=1,
                    )
                )
        except IntegrityError:
            logger.info("inventory_insert_raced", pond_id=pond.id, date=booking_date.isoformat())
        return (await self.db.execute(query)).scalar_one()

    async def _reserve_pond_seats(
        self,
        pond_id: int,
        booking_date: date,
        time_slot_id: int,
        seats: int,
        requested: list[SeatRequest],
    ) -> PondSlotInventory:
        pond = await self.db.get(Pond, pond_id)
        if pond is None:
            raise PondNotFound(f"Pond {pond_id} not found", pond_id=pond_id)
        if not pond.booking_enabled:
            raise BookingDisabled(pond_id=pond_id)

        for attempt in range(1, self.settings.BOOKING_MAX_RETRY_ATTEMPTS + 1):
            inventory = await self._inventory_for(pond, booking_date, time_slot_id)
            self._check_peg_range(requested, inventory.capacity)
            available = inventory.capacity - inventory.reserved_seats
            if available < seats:
                logger.warning(
                    "booking_failed_no_seats",
                    pond_id=pond_id,
                    date=booking_date.isoformat(),
                    time_slot_id=time_slot_id,
                    requested=seats,
                    available=available,
                )
                raise CapacityExceeded(
                    f"Not enough seats. Requested: {seats}, Available: {available}",
                    requested=seats,
                    available=available,
                )

            update_result = await self.db.execute(
                update(PondSlotInventory)
                .where(
                    PondSlotInventory.id == inventory.id,
                    PondSlotInventory.version == inventory.version,
                    PondSlotInventory.reserved_seats + seats <= PondSlotInventory.capacity,
                )
                .values(
                    reserved_seats=PondSlotInventory.reserved_seats + seats,
                    version=PondSlotInventory.version + 1,
                )
                .execution_options(synchronize_session=False)
            )
            if update_result.rowcount == 1:
                return inventory

            logger.info("booking_retry", pond_id=pond_id, attempt=attempt, reason="version_conflict")
            booking_retries.inc()

        raise ConflictError("Booking failed due to high demand. Please try again.")

    # --- share ---------------------------------------------------------------

    async def share_seat(self, booking_identifier: str | int, seat_id: int, user_email: str) -> BookingSeat:
        """Assign a seat to the account registered under `user_email`."""
        async with atomic(self.db):
            booking = await self._require_booking(booking_identifier)
            if not booking.is_active:
                raise BookingInactive(status=booking.status)

            result = await self.db.execute(
                select(BookingSeat)
                .where(BookingSeat.id == seat_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            seat = result.scalar_one_or_none()
            if seat is None or seat.booking_id != booking.id:
                raise SeatNotFound(seat_id=seat_id)
            if seat.checked_in_at is not None:
                raise SeatAlreadyCheckedIn("Cannot reassign a seat that has been checked in")

            recipient = await self.users.get_recipient(user_email)

            update_result = await self.db.execute(
                update(BookingSeat)
                .where(BookingSeat.id == seat.id, BookingSeat.checked_in_at.is_(None))
                .values(
                    assigned_user_id=recipient.id,
                    status=SeatStatus.SHARED,
                    shared_by_user_id=booking.booked_by_user_id,
                    shared_at=self.clock(),
                )
                .execution_options(synchronize_session=False)
            )
            if update_result.rowcount == 0:
                raise SeatAlreadyCheckedIn("Cannot reassign a seat that has been checked in")

            seat = (
                await self.db.execute(
                    select(BookingSeat)
                    .where(BookingSeat.id == seat.id)
                    .execution_options(populate_existing=True)
                )
            ).scalar_one()

        logger.info(
            "seat_shared",
            booking_ref=booking.booking_ref,
            seat_number=seat.seat_number,
            recipient_id=recipient.id,
        )
        await notify_best_effort(
            self.notifier,
            Notification(
                user_id=recipient.id,
                type="SEAT_SHARED",
                title="Seat Assigned to You!",
                message=(
                    f"You have been assigned Seat #{seat.seat_number} for "
                    f"{'an event' if booking.type == BookingType.EVENT else 'a pond session'}. "
                    "Use your QR code to check in."
                ),
                priority="high",
                action_url="/bookings",
            ),
        )
        return seat

    # --- cancel --------------------------------------------------------------

    async def cancel_booking(self, identifier: str | int) -> Booking:
        """
        Cancel a booking and release its seats back to the contention unit.
        Seat rows stay for audit.
        """
        async with atomic(self.db):
            booking = await self._require_booking(identifier)
            if booking.status == BookingStatus.CANCELLED:
                raise BookingAlreadyCancelled()
            if booking.status != BookingStatus.ACTIVE:
                raise BookingInactive(status=booking.status)
            if any(seat.checked_in_at is not None for seat in booking.seats):
                raise SeatAlreadyCheckedIn("Cannot cancel a booking with checked-in seats")

            update_result = await self.db.execute(
                update(Booking)
                .where(Booking.id == booking.id, Booking.status == BookingStatus.ACTIVE)
                .values(status=BookingStatus.CANCELLED)
                .execution_options(synchronize_session=False)
            )
            if update_result.rowcount == 0:
                raise BookingAlreadyCancelled()

            await self._release_seats(booking)
            booking_id = booking.id

        logger.info(
            "booking_cancelled",
            booking_id=booking_id,
            booking_ref=booking.booking_ref,
            seats_released=booking.seat_count,
        )
        return await self.get_booking(booking_id)

    async def _release_seats(self, booking: Booking) -> None:
        if booking.type == BookingType.EVENT:
            await self.db.execute(
                update(Event)
                .where(Event.id == booking.event_id)
                .values(
                    booked_seats=Event.booked_seats - booking.seat_count,
                    version=Event.version + 1,
                )
                .execution_options(synchronize_session=False)
            )
        else:
            await self.db.execute(
                update(PondSlotInventory)
                .where(
                    PondSlotInventory.pond_id == booking.pond_id,
                    PondSlotInventory.date == booking.date,
                    PondSlotInventory.time_slot_id == booking.time_slot_id,
                )
                .values(
                    reserved_seats=PondSlotInventory.reserved_seats - booking.seat_count,
                    version=PondSlotInventory.version + 1,
                )
                .execution_options(synchronize_session=False)
            )

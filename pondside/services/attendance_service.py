"""
Administrative attendance actions (check-out and no-show) and the day's
check-in list for the gate desk.

These are operator corrections, not scans. Check-out closes the audit
record and clears the seat's check-in time so the seat can be scanned in
again; no-show closes a booking nobody turned up for.
"""

from datetime import date
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from pondside.core.clock import Clock, utcnow, venue_date
from pondside.core.config import get_settings
from pondside.core.errors import AlreadyCheckedOut, BookingInactive, BookingNotFound, CheckInRecordNotFound
from pondside.core.logging import get_logger
from pondside.db.session import atomic
from pondside.models import Booking, BookingSeat, BookingStatus, CheckInRecord, SeatStatus

logger = get_logger(__name__)


class AttendanceService:
    def __init__(self, db: AsyncSession, clock: Clock = utcnow):
        self.db = db
        self.clock = clock

    async def check_out(self, check_in_id: int, scanned_by: Optional[str] = None) -> CheckInRecord:
        async with atomic(self.db):
            result = await self.db.execute(
                select(CheckInRecord)
                .where(CheckInRecord.id == check_in_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            record = result.scalar_one_or_none()
            if record is None:
                raise CheckInRecordNotFound(check_in_id=check_in_id)
            if record.status == SeatStatus.CHECKED_OUT:
                raise AlreadyCheckedOut(check_in_id=check_in_id)

            now = self.clock()
            record.status = SeatStatus.CHECKED_OUT
            record.check_out_at = now
            if scanned_by:
                record.scanned_by = scanned_by

            if record.booking_seat_id is not None:
                await self.db.execute(
                    update(BookingSeat)
                    .where(BookingSeat.id == record.booking_seat_id)
                    .values(status=SeatStatus.CHECKED_OUT, checked_in_at=None)
                    .execution_options(synchronize_session=False)
                )
            await self.db.flush()

        logger.info("seat_checked_out", check_in_id=check_in_id, seat_id=record.booking_seat_id)
        return record

    async def mark_no_show(self, booking_ref: str, marked_by: Optional[str] = None) -> Booking:
        async with atomic(self.db):
            result = await self.db.execute(
                select(Booking)
                .where(Booking.booking_ref == booking_ref)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            booking = result.scalar_one_or_none()
            if booking is None:
                raise BookingNotFound(booking_id=booking_ref)
            if booking.status != BookingStatus.ACTIVE:
                raise BookingInactive(f"Booking {booking_ref} is {booking.status}", status=booking.status)

            booking.status = BookingStatus.NO_SHOW
            await self.db.execute(
                update(BookingSeat)
                .where(BookingSeat.booking_id == booking.id, BookingSeat.checked_in_at.is_(None))
                .values(status=SeatStatus.NO_SHOW)
                .execution_options(synchronize_session=False)
            )
            await self.db.flush()
            booking_id = booking.id

        logger.info("booking_marked_no_show", booking_ref=booking_ref, marked_by=marked_by or "system")
        async with atomic(self.db):
            result = await self.db.execute(
                select(Booking).where(Booking.id == booking_id).execution_options(populate_existing=True)
            )
            return result.scalar_one()

    async def checkins_for_day(self, day: Optional[date] = None) -> list[tuple[CheckInRecord, Booking]]:
        """Check-in records of bookings for `day` (the venue's today by default), oldest scan first."""
        day = day or venue_date(self.clock(), get_settings().VENUE_TIMEZONE)
        async with atomic(self.db):
            result = await self.db.execute(
                select(CheckInRecord, Booking)
                .join(Booking, CheckInRecord.booking_id == Booking.id)
                .where(Booking.date == day)
                .order_by(CheckInRecord.check_in_at.asc(), CheckInRecord.id.asc())
            )
            return [(record, booking) for record, booking in result.all()]

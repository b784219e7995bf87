"""
Check-in state machine driven by seat QR scans.

    unassigned --share--> shared --scan--> checked-in
                                    ^            |
                                    +--check-out-+   (administrative)

A scan either checks the seat in (FreshCheckIn) or reports that it already
was (AlreadyCheckedIn). Re-scanning a badge is routine at the gate, so the
second case is a normal result, not an error; the two are separate types so
a kiosk cannot greet someone twice by accident.

CONCURRENCY:
  Two stations can scan the same badge at the same moment. The transition is
  a compare-and-swap on the seat row:

      UPDATE booking_seats SET status='checked-in', checked_in_at=:now
      WHERE id = :seat AND checked_in_at IS NULL

  Exactly one scan sees rows_affected == 1 and writes the audit record in the
  same transaction; every other scan re-reads the seat and reports the
  original check-in time.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from pondside.core.clock import Clock, utcnow, venue_date
from pondside.core.config import get_settings
from pondside.core.errors import (
    BookingInactive,
    DomainError,
    EventPassed,
    SeatUnassigned,
    WrongDay,
)
from pondside.core.logging import get_logger
from pondside.core.metrics import record_check_in
from pondside.db.session import atomic
from pondside.models import BookingSeat, CheckInRecord, FishingRod, RodStatus, SeatStatus
from pondside.services.identity_service import QrResolver
from pondside.services.interfaces.notifier import Notification, Notifier
from pondside.services.notification_service import notify_best_effort

logger = get_logger(__name__)


@dataclass(frozen=True)
class FreshCheckIn:
    seat: BookingSeat
    record: CheckInRecord
    active_rod: Optional[FishingRod]
    outcome: str = "checked_in"

    @property
    def needs_rod_print(self) -> bool:
        return self.active_rod is None


@dataclass(frozen=True)
class AlreadyCheckedIn:
    seat: BookingSeat
    checked_in_at: datetime
    active_rod: Optional[FishingRod]
    outcome: str = "already_checked_in"


CheckInResult = Union[FreshCheckIn, AlreadyCheckedIn]


@dataclass(frozen=True)
class CheckInStatus:
    seat: BookingSeat
    active_rod: Optional[FishingRod]
    latest_record: Optional[CheckInRecord]

    @property
    def is_checked_in(self) -> bool:
        return self.seat.checked_in_at is not None


class CheckInService:
    def __init__(
        self,
        db: AsyncSession,
        notifier: Notifier,
        clock: Clock = utcnow,
        resolver: Optional[QrResolver] = None,
    ):
        self.db = db
        self.notifier = notifier
        self.clock = clock
        self.resolver = resolver or QrResolver(db)
        self.settings = get_settings()

    async def check_in(self, qr_code: str, scanned_by: Optional[str] = None, station_id: Optional[str] = None) -> CheckInResult:
        try:
            async with atomic(self.db):
                result = await self._check_in(qr_code, scanned_by or "system", station_id)
        except DomainError as e:
            record_check_in("rejected")
            logger.info("check_in_rejected", qr_code=qr_code, code=e.code, station_id=station_id)
            raise

        seat = result.seat
        if isinstance(result, AlreadyCheckedIn):
            record_check_in("already_checked_in")
            logger.info(
                "check_in_repeat_scan",
                seat_id=seat.id,
                checked_in_at=result.checked_in_at.isoformat(),
                station_id=station_id,
            )
            return result

        record_check_in("checked_in")
        logger.info(
            "seat_checked_in",
            seat_id=seat.id,
            booking_id=seat.booking_id,
            user_id=seat.assigned_user_id,
            station_id=station_id,
            scanned_by=scanned_by,
        )
        await notify_best_effort(
            self.notifier,
            Notification(
                user_id=seat.assigned_user_id,
                type="CHECK_IN",
                title="Checked In Successfully!",
                message=(
                    f"You have been checked in for Seat #{seat.seat_number}. "
                    "Proceed to rod label printing."
                ),
                action_url="/bookings",
            ),
        )
        return result

    async def _check_in(self, qr_code: str, scanned_by: str, station_id: Optional[str]) -> CheckInResult:
        seat = await self.resolver.resolve_seat(qr_code)

        if seat.assigned_user_id is None:
            raise SeatUnassigned(seat_id=seat.id)

        if seat.checked_in_at is not None:
            return await self._already_checked_in(seat)

        booking = seat.booking
        if not booking.is_active:
            raise BookingInactive(f"Booking {booking.booking_ref} is {booking.status}", status=booking.status)

        now = self.clock()
        today = venue_date(now, self.settings.VENUE_TIMEZONE)
        if today < booking.date:
            raise WrongDay(
                f"This booking is for {booking.date.isoformat()}. "
                "Check-in is only available on the event day itself.",
                event_date=booking.date.isoformat(),
                current_date=today.isoformat(),
            )
        if today > booking.date:
            raise EventPassed(
                f"This booking is for {booking.date.isoformat()}. This event has already passed.",
                event_date=booking.date.isoformat(),
                current_date=today.isoformat(),
            )

        update_result = await self.db.execute(
            update(BookingSeat)
            .where(BookingSeat.id == seat.id, BookingSeat.checked_in_at.is_(None))
            .values(status=SeatStatus.CHECKED_IN, checked_in_at=now)
            .execution_options(synchronize_session=False)
        )
        seat = await self._reload(seat.id)
        if update_result.rowcount == 0:
            # Another station won the race
            return await self._already_checked_in(seat)

        record = CheckInRecord(
            booking_id=seat.booking_id,
            booking_seat_id=seat.id,
            user_id=seat.assigned_user_id,
            scanned_by=scanned_by,
            station_id=station_id,
            status=SeatStatus.CHECKED_IN,
            check_in_at=now,
        )
        self.db.add(record)
        await self.db.flush()

        return FreshCheckIn(seat=seat, record=record, active_rod=await self._active_rod(seat.id))

    async def _already_checked_in(self, seat: BookingSeat) -> AlreadyCheckedIn:
        return AlreadyCheckedIn(
            seat=seat,
            checked_in_at=seat.checked_in_at,
            active_rod=await self._active_rod(seat.id),
        )

    async def _reload(self, seat_id: int) -> BookingSeat:
        result = await self.db.execute(
            select(BookingSeat).where(BookingSeat.id == seat_id).execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def _active_rod(self, seat_id: int) -> Optional[FishingRod]:
        result = await self.db.execute(
            select(FishingRod).where(
                FishingRod.booking_seat_id == seat_id,
                FishingRod.status == RodStatus.ACTIVE,
            )
        )
        return result.scalar_one_or_none()

    async def get_status(self, qr_code: str) -> CheckInStatus:
        async with atomic(self.db):
            seat = await self.resolver.resolve_seat(qr_code)
            latest = await self.db.execute(
                select(CheckInRecord)
                .where(CheckInRecord.booking_seat_id == seat.id)
                .order_by(CheckInRecord.check_in_at.desc(), CheckInRecord.id.desc())
                .limit(1)
            )
            return CheckInStatus(
                seat=seat,
                active_rod=await self._active_rod(seat.id),
                latest_record=latest.scalar_one_or_none(),
            )

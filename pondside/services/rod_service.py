"""
Rod issuance: printing, replacing and inspecting rod labels.

A seat's rods are an append-only history ordered by version. Printing a
replacement voids the active row and inserts the next version pointing back
at it; nothing is edited in place beyond the void stamp.

CONCURRENCY:
  The seat row is locked (SELECT ... FOR UPDATE) for the whole issuance, so
  two printers handling the same seat queue behind each other and a weighing
  scan sees the seat with exactly one active rod, old or new. The partial
  unique index on active rods per seat backs this up at the database.
"""

from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pondside.core.clock import Clock, utcnow
from pondside.core.config import get_settings
from pondside.core.errors import ConflictError, NotCheckedIn, RodAlreadyIssued, RodLabelCollision
from pondside.core.logging import get_logger
from pondside.core.metrics import record_rod_issued
from pondside.db.session import atomic
from pondside.models import BookingSeat, FishingRod, RodStatus
from pondside.services.identity_service import QrResolver, generate_rod_qr
from pondside.services.interfaces.notifier import Notification, Notifier
from pondside.services.notification_service import notify_best_effort

logger = get_logger(__name__)

REPLACEMENT_REASON = "Replacement label issued"

# Postgres names the constraint, SQLite names the columns
SEAT_ROD_CONSTRAINTS = ("uq_rod_active_per_seat", "uq_rod_seat_version", "fishing_rods.booking_seat_id")


def is_seat_rod_conflict(error: IntegrityError) -> bool:
    """True when the violated constraint is one of the per-seat rod rules."""
    message = str(error.orig)
    return any(name in message for name in SEAT_ROD_CONSTRAINTS)


class RodService:
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

    async def issue_rod(
        self,
        seat_qr_code: str,
        station_id: Optional[str] = None,
        is_replacement: bool = False,
        void_reason: Optional[str] = None,
    ) -> tuple[FishingRod, Optional[FishingRod]]:
        """
        Print a rod label for a checked-in seat.

        Returns the new rod and, for replacements, the rod it voided.
        """
        try:
            async with atomic(self.db):
                seat = await self.resolver.resolve_seat(seat_qr_code, for_update=True)
                if seat.checked_in_at is None:
                    raise NotCheckedIn(seat_id=seat.id)

                history = await self._history(seat.id)
                latest = history[-1] if history else None
                active = next((rod for rod in history if rod.status == RodStatus.ACTIVE), None)

                if active is not None and not is_replacement:
                    raise RodAlreadyIssued(
                        "Rod label already printed for this seat. "
                        "Set isReplacement=true to print a replacement label",
                        existing_rod=active.qr_code,
                        version=active.version,
                    )

                now = self.clock()
                voided = None
                if active is not None:
                    void_result = await self.db.execute(
                        update(FishingRod)
                        .where(FishingRod.id == active.id, FishingRod.status == RodStatus.ACTIVE)
                        .values(
                            status=RodStatus.VOIDED,
                            voided_at=now,
                            void_reason=void_reason or REPLACEMENT_REASON,
                        )
                        .execution_options(synchronize_session=False)
                    )
                    if void_result.rowcount == 0:
                        raise ConflictError("Rod changed during replacement. Please scan again.")
                    voided = active

                rod = FishingRod(
                    qr_code=generate_rod_qr(seat.booking.booking_ref, seat.seat_number, self.settings.ROD_QR_PREFIX),
                    seat=seat,
                    assigned_user_id=seat.assigned_user_id,
                    version=(latest.version + 1) if latest else 1,
                    status=RodStatus.ACTIVE,
                    printed_at=now,
                    print_station_id=station_id,
                    previous_rod_id=latest.id if latest else None,
                    previous_qr_code=latest.qr_code if latest else None,
                )
                self.db.add(rod)
                await self.db.flush()

                if voided is not None:
                    voided = await self._reload(voided.id)
        except IntegrityError as e:
            logger.warning("rod_issue_integrity_conflict", seat_qr_code=seat_qr_code, error=str(e.orig))
            if is_seat_rod_conflict(e):
                raise RodAlreadyIssued("Another station issued a rod for this seat. Please scan again.")
            raise RodLabelCollision(seat_qr_code=seat_qr_code)

        record_rod_issued(voided is not None)
        logger.info(
            "rod_issued",
            seat_id=seat.id,
            rod_qr_code=rod.qr_code,
            version=rod.version,
            previous_qr_code=rod.previous_qr_code,
            station_id=station_id,
        )
        await notify_best_effort(
            self.notifier,
            Notification(
                user_id=seat.assigned_user_id,
                type="ROD_PRINTED",
                title="Rod Label Printed!",
                message=f"Your fishing rod label has been printed. Rod ID: {rod.qr_code[:16]}...",
                action_url="/bookings",
            ),
        )
        return rod, voided

    async def _history(self, seat_id: int) -> list[FishingRod]:
        result = await self.db.execute(
            select(FishingRod)
            .where(FishingRod.booking_seat_id == seat_id)
            .order_by(FishingRod.version.asc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def _reload(self, rod_id: int) -> FishingRod:
        result = await self.db.execute(
            select(FishingRod).where(FishingRod.id == rod_id).execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def get_rod_status(self, qr_code: str) -> FishingRod:
        async with atomic(self.db):
            return await self.resolver.resolve_rod(qr_code)

    async def get_rod_history(self, seat_qr_code: str) -> tuple[BookingSeat, list[FishingRod]]:
        async with atomic(self.db):
            seat = await self.resolver.resolve_seat(seat_qr_code)
            return seat, await self._history(seat.id)

    async def count_active(self, seat_id: int) -> int:
        async with atomic(self.db):
            result = await self.db.execute(
                select(func.count(FishingRod.id)).where(
                    FishingRod.booking_seat_id == seat_id,
                    FishingRod.status == RodStatus.ACTIVE,
                )
            )
            return result.scalar_one()


def verify_history(rods: list[FishingRod]) -> bool:
    """
    Check a seat's rod history: versions 1..N in order, each row linked to
    the one before it, exactly one active row and it is the newest.
    """
    if not rods:
        return True
    for index, rod in enumerate(rods):
        if rod.version != index + 1:
            return False
        previous = rods[index - 1] if index else None
        if previous is None:
            if rod.previous_rod_id is not None:
                return False
        elif rod.previous_rod_id != previous.id or rod.previous_qr_code != previous.qr_code:
            return False
    active = [rod for rod in rods if rod.status == RodStatus.ACTIVE]
    return len(active) <= 1 and (not active or active[0] is rods[-1])

"""
Identity resolver: turns a scanned QR string into the seat or rod it denotes.

Every physical scan enters the engine here. Lookups are read-only; callers
that go on to mutate state re-read the row under their own transaction.

QR formats (opaque to everything except the rod prefix used for routing):
    seat     <bookingRef>_SEAT_<seatNumber>_<random hex>
    rod      ROD-<bookingRef>-S<seatNumber>-<8 uppercase hex>
    booking  PND_<6 digits>_<3 chars> / EVT_...
"""

import secrets
import string
from dataclasses import dataclass
from typing import Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pondside.core.config import get_settings
from pondside.core.errors import InvalidQr, InvalidRod
from pondside.models import BookingSeat, BookingType, FishingRod

_REF_ALPHABET = string.ascii_uppercase + string.digits


def generate_booking_ref(booking_type: str) -> str:
    prefix = "EVT" if booking_type == BookingType.EVENT else "PND"
    digits = "".join(secrets.choice(string.digits) for _ in range(6))
    suffix = "".join(secrets.choice(_REF_ALPHABET) for _ in range(3))
    return f"{prefix}_{digits}_{suffix}"


def generate_seat_qr(booking_ref: str, seat_number: int) -> str:
    return f"{booking_ref}_SEAT_{seat_number}_{secrets.token_hex(6)}"


def generate_rod_qr(booking_ref: str, seat_number: int, prefix: Optional[str] = None) -> str:
    prefix = prefix if prefix is not None else get_settings().ROD_QR_PREFIX
    return f"{prefix}{booking_ref}-S{seat_number}-{secrets.token_hex(4).upper()}"


@dataclass(frozen=True)
class SeatScan:
    seat: BookingSeat
    kind: str = "seat"


@dataclass(frozen=True)
class RodScan:
    rod: FishingRod
    kind: str = "rod"


ScanTarget = Union[SeatScan, RodScan]


class QrResolver:
    """Maps QR strings to seats and rods."""

    def __init__(self, db: AsyncSession, rod_prefix: Optional[str] = None):
        self.db = db
        self.rod_prefix = rod_prefix if rod_prefix is not None else get_settings().ROD_QR_PREFIX

    def is_rod_qr(self, qr: str) -> bool:
        return bool(self.rod_prefix) and qr.strip().upper().startswith(self.rod_prefix.upper())

    async def find_seat(self, qr: str, for_update: bool = False) -> Optional[BookingSeat]:
        query = select(BookingSeat).where(BookingSeat.qr_code == qr.strip())
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query.execution_options(populate_existing=True))
        return result.scalar_one_or_none()

    async def find_rod(self, qr: str, for_update: bool = False) -> Optional[FishingRod]:
        query = select(FishingRod).where(FishingRod.qr_code == qr.strip())
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query.execution_options(populate_existing=True))
        return result.scalar_one_or_none()

    async def resolve_seat(self, qr: str, for_update: bool = False) -> BookingSeat:
        seat = await self.find_seat(qr, for_update=for_update)
        if seat is None:
            raise InvalidQr(qr_code=qr)
        return seat

    async def resolve_rod(self, qr: str, for_update: bool = False) -> FishingRod:
        rod = await self.find_rod(qr, for_update=for_update)
        if rod is None:
            raise InvalidRod(qr_code=qr)
        return rod

    async def resolve(self, qr: str) -> ScanTarget:
        """Route a raw scan by its prefix and resolve it."""
        if self.is_rod_qr(qr):
            return RodScan(rod=await self.resolve_rod(qr))
        return SeatScan(seat=await self.resolve_seat(qr))

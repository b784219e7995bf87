"""
Tests for QR and booking reference formats and QR resolution.
"""

import re

import pytest

from conftest import seat
from pondside.core.errors import InvalidQr, InvalidRod
from pondside.services.identity_service import (
    QrResolver,
    RodScan,
    SeatScan,
    generate_booking_ref,
    generate_rod_qr,
    generate_seat_qr,
)


def test_booking_ref_format():
    assert re.fullmatch(r"PND_\d{6}_[A-Z0-9]{3}", generate_booking_ref("POND"))
    assert re.fullmatch(r"EVT_\d{6}_[A-Z0-9]{3}", generate_booking_ref("EVENT"))


def test_seat_qr_format():
    qr = generate_seat_qr("PND_123456_ABC", 4)
    assert re.fullmatch(r"PND_123456_ABC_SEAT_4_[0-9a-f]{12}", qr)
    assert qr != generate_seat_qr("PND_123456_ABC", 4)


def test_rod_qr_format():
    assert re.fullmatch(r"ROD-EVT_123456_XYZ-S2-[0-9A-F]{8}", generate_rod_qr("EVT_123456_XYZ", 2))
    assert generate_rod_qr("EVT_123456_XYZ", 2, prefix="R:").startswith("R:EVT_123456_XYZ-S2-")


def test_rod_prefix_routing():
    resolver = QrResolver(db=None, rod_prefix="ROD-")
    assert resolver.is_rod_qr("ROD-EVT_1-S1-AB")
    assert resolver.is_rod_qr("  rod-evt_1-s1-ab")
    assert not resolver.is_rod_qr("EVT_123456_XYZ_SEAT_1_abc")


@pytest.mark.asyncio
async def test_resolve(database, bk1):
    qr = seat(bk1, 1).qr_code
    async with database.session() as s:
        resolver = QrResolver(s)

        target = await resolver.resolve(f"  {qr} ")
        assert isinstance(target, SeatScan)
        assert target.seat.id == seat(bk1, 1).id
        assert target.seat.booking.booking_ref == bk1.booking_ref

        with pytest.raises(InvalidQr):
            await resolver.resolve("EVT_000000_AAA_SEAT_1_deadbeef0000")
        with pytest.raises(InvalidRod):
            await resolver.resolve("ROD-EVT_000000_AAA-S1-DEADBEEF")


@pytest.mark.asyncio
async def test_resolve_rod(database, client, bk1):
    qr = seat(bk1, 1).qr_code
    await client.post("/api/checkins/scan", json={"qrCode": qr})
    printed = await client.post("/api/rod-printing/print", json={"seatQrCode": qr})
    rod_qr = printed.json()["data"]["rod"]["qrCode"]

    async with database.session() as s:
        target = await QrResolver(s).resolve(rod_qr)
        assert isinstance(target, RodScan)
        assert target.rod.seat.qr_code == qr
        assert target.kind == "rod"

"""
Tests for the check-in station: first scan, repeat scans, day rules.
"""

from datetime import datetime, timezone

import pytest
from httpx import AsyncClient

from conftest import seat
from pondside.core.errors import EventPassed, InvalidQr, SeatUnassigned, WrongDay
from pondside.services.checkin_service import AlreadyCheckedIn, CheckInService, FreshCheckIn


@pytest.mark.asyncio
async def test_first_scan_checks_in(client: AsyncClient, bk1, users, notifier):
    """The first scan of an assigned seat is a fresh check-in."""
    response = await client.post(
        "/api/checkins/scan",
        json={"qrCode": seat(bk1, 1).qr_code, "scannedBy": "gate-staff", "stationId": "GATE-1"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["message"] == "Check-in successful"

    data = body["data"]
    assert data["outcome"] == "checked_in"
    assert data["bookingRef"] == bk1.booking_ref
    assert data["seat"]["status"] == "checked-in"
    assert data["user"]["id"] == users["alice"].id
    assert data["checkIn"]["stationId"] == "GATE-1"
    assert data["checkIn"]["scannedBy"] == "gate-staff"
    assert data["needsRodPrint"] is True
    assert data["activeRod"] is None
    assert data["message"].startswith("Welcome, Alice!")

    assert notifier.types() == ["CHECK_IN"]
    assert notifier.sent[0].user_id == users["alice"].id


@pytest.mark.asyncio
async def test_repeat_scan_reports_original_time(client: AsyncClient, bk1, clock):
    first = await client.post("/api/checkins/scan", json={"qrCode": seat(bk1, 1).qr_code})
    assert first.json()["data"]["outcome"] == "checked_in"

    clock.advance(minutes=5)
    second = await client.post("/api/checkins/scan", json={"qrCode": seat(bk1, 1).qr_code})
    assert second.status_code == 200
    body = second.json()
    assert body["message"] == "Already checked in"
    assert body["data"]["outcome"] == "already_checked_in"
    assert body["data"]["checkedInAt"].startswith("2026-06-13T08:00:00")
    assert "checkIn" not in body["data"]


@pytest.mark.asyncio
async def test_unassigned_seat_rejected(client: AsyncClient, bk1):
    response = await client.post("/api/checkins/scan", json={"qrCode": seat(bk1, 2).qr_code})
    assert response.status_code == 409
    error = response.json()["error"]
    assert error["kind"] == "conflict"
    assert error["code"] == "SEAT_UNASSIGNED"


@pytest.mark.asyncio
async def test_unknown_qr(client: AsyncClient, bk1):
    response = await client.post("/api/checkins/scan", json={"qrCode": "NOT_A_REAL_QR"})
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "INVALID_QR"


@pytest.mark.asyncio
async def test_empty_qr_is_validation_error(client: AsyncClient):
    response = await client.post("/api/checkins/scan", json={"qrCode": ""})
    assert response.status_code == 422
    assert response.json()["error"]["kind"] == "validation_error"


@pytest.mark.asyncio
async def test_scan_before_event_day(client: AsyncClient, bk1, clock):
    clock.set(datetime(2026, 6, 12, 23, 59, tzinfo=timezone.utc))

    response = await client.post("/api/checkins/scan", json={"qrCode": seat(bk1, 1).qr_code})
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["kind"] == "temporal_error"
    assert error["code"] == "WRONG_DAY"
    assert error["details"]["event_date"] == "2026-06-13"


@pytest.mark.asyncio
async def test_scan_after_event_day(client: AsyncClient, bk1, clock):
    clock.set(datetime(2026, 6, 14, 0, 1, tzinfo=timezone.utc))

    response = await client.post("/api/checkins/scan", json={"qrCode": seat(bk1, 1).qr_code})
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "EVENT_PASSED"


@pytest.mark.asyncio
async def test_scan_cancelled_booking(client: AsyncClient, bk1):
    await client.delete(f"/api/bookings/{bk1.booking_ref}")

    response = await client.post("/api/checkins/scan", json={"qrCode": seat(bk1, 1).qr_code})
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "BOOKING_INACTIVE"


@pytest.mark.asyncio
async def test_scan_status(client: AsyncClient, bk1):
    qr = seat(bk1, 1).qr_code
    before = await client.get("/api/checkins/scan", params={"qrCode": qr})
    assert before.status_code == 200
    assert before.json()["data"]["isCheckedIn"] is False
    assert before.json()["data"]["latestCheckIn"] is None

    await client.post("/api/checkins/scan", json={"qrCode": qr, "stationId": "GATE-2"})

    after = await client.get("/api/checkins/scan", params={"qrCode": qr})
    data = after.json()["data"]
    assert data["isCheckedIn"] is True
    assert data["bookingStatus"] == "active"
    assert data["latestCheckIn"]["stationId"] == "GATE-2"


@pytest.mark.asyncio
async def test_service_result_types(database, bk1, clock, notifier):
    """The service returns distinct types for fresh and repeat scans."""
    qr = seat(bk1, 1).qr_code

    async with database.session() as s:
        first = await CheckInService(s, notifier, clock).check_in(qr, station_id="GATE-1")
    assert isinstance(first, FreshCheckIn)
    assert first.needs_rod_print

    clock.advance(hours=1)
    async with database.session() as s:
        second = await CheckInService(s, notifier, clock).check_in(qr)
    assert isinstance(second, AlreadyCheckedIn)
    assert second.checked_in_at.replace(tzinfo=None) == datetime(2026, 6, 13, 8, 0)

    assert notifier.types() == ["CHECK_IN"]


@pytest.mark.asyncio
async def test_service_errors(database, bk1, clock, notifier):
    async with database.session() as s:
        service = CheckInService(s, notifier, clock)
        with pytest.raises(SeatUnassigned):
            await service.check_in(seat(bk1, 2).qr_code)
        with pytest.raises(InvalidQr):
            await service.check_in("ROD-NOPE")

        clock.set(datetime(2026, 6, 1, 9, 0, tzinfo=timezone.utc))
        with pytest.raises(WrongDay):
            await service.check_in(seat(bk1, 1).qr_code)

        clock.set(datetime(2026, 7, 1, 9, 0, tzinfo=timezone.utc))
        with pytest.raises(EventPassed):
            await service.check_in(seat(bk1, 1).qr_code)


@pytest.mark.asyncio
async def test_qr_validate_seat_and_rod(client: AsyncClient, bk1):
    qr = seat(bk1, 1).qr_code
    seat_scan = await client.post("/api/qr/validate", json={"qrCode": qr})
    assert seat_scan.status_code == 200
    assert seat_scan.json()["data"]["kind"] == "seat"
    assert seat_scan.json()["data"]["bookingRef"] == bk1.booking_ref

    await client.post("/api/checkins/scan", json={"qrCode": qr})
    printed = await client.post("/api/rod-printing/print", json={"seatQrCode": qr})
    rod_qr = printed.json()["data"]["rod"]["qrCode"]

    rod_scan = await client.post("/api/qr/validate", json={"qrCode": rod_qr})
    data = rod_scan.json()["data"]
    assert data["kind"] == "rod"
    assert data["valid"] is True
    assert data["rod"]["version"] == 1

    missing = await client.post("/api/qr/validate", json={"qrCode": "ROD-UNKNOWN"})
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "INVALID_ROD"


@pytest.mark.asyncio
async def test_todays_check_ins(client: AsyncClient, bk1, users, clock):
    await client.post("/api/checkins/scan", json={"qrCode": seat(bk1, 1).qr_code, "stationId": "GATE-3"})

    response = await client.get("/api/checkins/today")
    assert response.status_code == 200
    rows = response.json()["data"]
    assert len(rows) == 1
    assert rows[0]["bookingRef"] == bk1.booking_ref
    assert rows[0]["eventId"] == bk1.event_id
    assert rows[0]["userId"] == users["alice"].id
    assert rows[0]["stationId"] == "GATE-3"

    other_day = await client.get("/api/checkins/today", params={"date": "2026-06-14"})
    assert other_day.json()["data"] == []

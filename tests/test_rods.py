"""
Tests for rod label printing and the rod version history.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import IntegrityError

from conftest import seat
from pondside.core.errors import NotCheckedIn, RodAlreadyIssued
from pondside.services import rod_service
from pondside.services.rod_service import RodService, is_seat_rod_conflict, verify_history


async def check_in(client: AsyncClient, booking, number: int = 1):
    response = await client.post("/api/checkins/scan", json={"qrCode": seat(booking, number).qr_code})
    assert response.status_code == 200
    return response.json()["data"]


@pytest.mark.asyncio
async def test_print_requires_check_in(client: AsyncClient, bk1):
    response = await client.post("/api/rod-printing/print", json={"seatQrCode": seat(bk1, 1).qr_code})
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "NOT_CHECKED_IN"


@pytest.mark.asyncio
async def test_first_print_is_version_one(client: AsyncClient, bk1, users, notifier):
    await check_in(client, bk1)
    notifier.sent.clear()

    response = await client.post(
        "/api/rod-printing/print",
        json={"seatQrCode": seat(bk1, 1).qr_code, "stationId": "PRINTER-1"},
    )
    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Rod label printed"

    data = body["data"]
    rod = data["rod"]
    assert rod["version"] == 1
    assert rod["status"] == "active"
    assert rod["assignedUserId"] == users["alice"].id
    assert rod["printStationId"] == "PRINTER-1"
    assert rod["previousQrCode"] is None
    assert rod["qrCode"].startswith(f"ROD-{bk1.booking_ref}-S1-")
    assert data["voidedRod"] is None
    assert data["seatNumber"] == 1
    assert data["bookingRef"] == bk1.booking_ref

    assert notifier.types() == ["ROD_PRINTED"]


@pytest.mark.asyncio
async def test_second_print_without_replacement_rejected(client: AsyncClient, bk1):
    await check_in(client, bk1)
    first = await client.post("/api/rod-printing/print", json={"seatQrCode": seat(bk1, 1).qr_code})
    first_qr = first.json()["data"]["rod"]["qrCode"]

    second = await client.post("/api/rod-printing/print", json={"seatQrCode": seat(bk1, 1).qr_code})
    assert second.status_code == 409
    error = second.json()["error"]
    assert error["code"] == "ROD_ALREADY_ISSUED"
    assert error["details"]["existing_rod"] == first_qr


@pytest.mark.asyncio
async def test_replacement_voids_previous(client: AsyncClient, bk1):
    """A replacement is version 2, points at version 1 and voids it."""
    await check_in(client, bk1)
    first = await client.post("/api/rod-printing/print", json={"seatQrCode": seat(bk1, 1).qr_code})
    v1 = first.json()["data"]["rod"]

    replacement = await client.post(
        "/api/rod-printing/print",
        json={"seatQrCode": seat(bk1, 1).qr_code, "isReplacement": True, "voidReason": "Label smudged"},
    )
    assert replacement.status_code == 201
    body = replacement.json()
    assert body["message"] == "Replacement rod label printed"

    v2 = body["data"]["rod"]
    assert v2["version"] == 2
    assert v2["previousQrCode"] == v1["qrCode"]
    assert v2["previousRodId"] == v1["id"]
    assert v2["qrCode"] != v1["qrCode"]

    voided = body["data"]["voidedRod"]
    assert voided["id"] == v1["id"]
    assert voided["status"] == "voided"
    assert voided["voidReason"] == "Label smudged"
    assert voided["voidedAt"] is not None

    old = await client.get("/api/rod-printing/print", params={"qrCode": v1["qrCode"]})
    assert old.json()["data"]["status"] == "voided"


@pytest.mark.asyncio
async def test_replacement_without_existing_rod_is_first_print(client: AsyncClient, bk1):
    await check_in(client, bk1)
    response = await client.post(
        "/api/rod-printing/print",
        json={"seatQrCode": seat(bk1, 1).qr_code, "isReplacement": True},
    )
    assert response.status_code == 201
    assert response.json()["data"]["rod"]["version"] == 1
    assert response.json()["data"]["voidedRod"] is None


@pytest.mark.asyncio
async def test_history_chain(client: AsyncClient, bk1):
    await check_in(client, bk1)
    qr = seat(bk1, 1).qr_code
    await client.post("/api/rod-printing/print", json={"seatQrCode": qr})
    for _ in range(2):
        await client.post("/api/rod-printing/print", json={"seatQrCode": qr, "isReplacement": True})

    response = await client.get("/api/rod-printing/history", params={"seatQrCode": qr})
    assert response.status_code == 200
    data = response.json()["data"]
    rods = data["rods"]
    assert [r["version"] for r in rods] == [1, 2, 3]
    assert [r["status"] for r in rods] == ["voided", "voided", "active"]
    assert rods[1]["previousQrCode"] == rods[0]["qrCode"]
    assert rods[2]["previousQrCode"] == rods[1]["qrCode"]
    assert data["activeRod"]["version"] == 3
    assert data["seatNumber"] == 1


@pytest.mark.asyncio
async def test_unknown_rod_status(client: AsyncClient):
    response = await client.get("/api/rod-printing/print", params={"qrCode": "ROD-MISSING"})
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "INVALID_ROD"


@pytest.mark.asyncio
async def test_service_history_is_consistent(database, client: AsyncClient, bk1, clock, notifier):
    await check_in(client, bk1)
    qr = seat(bk1, 1).qr_code

    async with database.session() as s:
        service = RodService(s, notifier, clock)
        with pytest.raises(NotCheckedIn):
            await service.issue_rod(seat(bk1, 2).qr_code)

        first, voided = await service.issue_rod(qr, station_id="PRINTER-2")
        assert voided is None
        with pytest.raises(RodAlreadyIssued):
            await service.issue_rod(qr)

        clock.advance(minutes=10)
        second, voided = await service.issue_rod(qr, is_replacement=True)
        assert voided.id == first.id
        assert second.previous_rod_id == first.id

        _, rods = await service.get_rod_history(qr)
        assert verify_history(rods)
        assert await service.count_active(seat(bk1, 1).id) == 1


def test_verify_history_detects_broken_chain():
    class Row:
        def __init__(self, id, version, status, previous_rod_id=None, previous_qr_code=None):
            self.id = id
            self.qr_code = f"ROD-{id}"
            self.version = version
            self.status = status
            self.previous_rod_id = previous_rod_id
            self.previous_qr_code = previous_qr_code

    good = [Row(1, 1, "voided"), Row(2, 2, "active", 1, "ROD-1")]
    assert verify_history(good)
    assert verify_history([])

    gap = [Row(1, 1, "voided"), Row(3, 3, "active", 1, "ROD-1")]
    assert not verify_history(gap)

    unlinked = [Row(1, 1, "voided"), Row(2, 2, "active")]
    assert not verify_history(unlinked)

    two_active = [Row(1, 1, "active"), Row(2, 2, "active", 1, "ROD-1")]
    assert not verify_history(two_active)

    stale_active = [Row(1, 1, "active"), Row(2, 2, "voided", 1, "ROD-1")]
    assert not verify_history(stale_active)


@pytest.mark.asyncio
async def test_label_collision_is_not_reported_as_issued(client: AsyncClient, bk1, monkeypatch):
    await client.post(
        f"/api/bookings/{bk1.booking_ref}/seats/share",
        json={"seatId": seat(bk1, 2).id, "userEmail": "bob@x.com"},
    )
    await check_in(client, bk1, 1)
    await check_in(client, bk1, 2)
    first = await client.post("/api/rod-printing/print", json={"seatQrCode": seat(bk1, 1).qr_code})
    taken_qr = first.json()["data"]["rod"]["qrCode"]

    monkeypatch.setattr(rod_service, "generate_rod_qr", lambda *args: taken_qr)
    response = await client.post("/api/rod-printing/print", json={"seatQrCode": seat(bk1, 2).qr_code})
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "ROD_LABEL_COLLISION"


@pytest.mark.parametrize(
    "message, seat_conflict",
    [
        ('duplicate key value violates unique constraint "uq_rod_active_per_seat"', True),
        ('duplicate key value violates unique constraint "uq_rod_seat_version"', True),
        ("UNIQUE constraint failed: fishing_rods.booking_seat_id", True),
        ('duplicate key value violates unique constraint "ix_fishing_rods_qr_code"', False),
        ("UNIQUE constraint failed: fishing_rods.qr_code", False),
    ],
)
def test_seat_rod_conflict_detection(message, seat_conflict):
    error = IntegrityError("INSERT INTO fishing_rods ...", {}, Exception(message))
    assert is_seat_rod_conflict(error) is seat_conflict

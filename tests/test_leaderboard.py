"""
Tests for leaderboard ranking, event boards and their cache.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import AsyncClient

from conftest import seat
from pondside.models import Game
from pondside.services.leaderboard_service import (
    CatchFact,
    event_cache_key,
    event_winners,
    points_for_rank,
    rank_entries,
)

T0 = datetime(2026, 6, 13, 9, 0, tzinfo=timezone.utc)
SCALE = (100, 80, 65)


def fact(catch_id, user_id, weight, minutes, event_id=1, game_id=None):
    return CatchFact(
        catch_id=catch_id,
        user_id=user_id,
        weight=Decimal(weight),
        weighed_at=T0 + timedelta(minutes=minutes),
        event_id=event_id,
        game_id=game_id,
        user_name=f"Angler {user_id}",
    )


def test_orders_by_total_weight():
    entries = rank_entries(
        [fact(1, 10, "2.0", 0), fact(2, 20, "5.0", 1), fact(3, 10, "4.0", 2)],
        SCALE,
        min_points=10,
    )
    assert [(e.user_id, e.rank) for e in entries] == [(10, 1), (20, 2)]
    assert entries[0].total_weight == Decimal("6.0")
    assert entries[0].total_fish == 2
    assert entries[0].biggest_fish == Decimal("4.0")
    assert entries[0].average_weight == Decimal("3.000")
    assert entries[0].points == 100
    assert entries[1].points == 80


def test_biggest_fish_breaks_weight_tie():
    entries = rank_entries(
        [fact(1, 10, "3.0", 0), fact(2, 10, "3.0", 1), fact(3, 20, "6.0", 2)],
        SCALE,
        min_points=10,
    )
    assert [(e.user_id, e.rank) for e in entries] == [(20, 1), (10, 2)]


def test_earlier_qualifier_breaks_remaining_tie():
    """Equal totals and biggest catch: whoever reached the total first ranks higher."""
    entries = rank_entries(
        [fact(1, 20, "4.0", 0), fact(2, 10, "4.0", 5)],
        SCALE,
        min_points=10,
    )
    assert [(e.user_id, e.rank) for e in entries] == [(20, 1), (10, 2)]


def test_exact_tie_shares_rank_and_next_rank_is_dense():
    entries = rank_entries(
        [fact(1, 30, "4.0", 0), fact(2, 10, "4.0", 0), fact(3, 20, "1.0", 1)],
        SCALE,
        min_points=10,
    )
    assert [(e.user_id, e.rank) for e in entries] == [(10, 1), (30, 1), (20, 2)]
    assert [e.points for e in entries] == [100, 100, 80]


def test_points_beyond_scale():
    assert points_for_rank(1, SCALE, 10) == 100
    assert points_for_rank(3, SCALE, 10) == 65
    assert points_for_rank(4, SCALE, 10) == 10
    assert points_for_rank(0, SCALE, 10) == 10


def test_empty_board():
    assert rank_entries([], SCALE, min_points=10) == []


def test_wins_and_participation():
    catches = [
        fact(1, 10, "5.0", 0, event_id=1),
        fact(2, 20, "3.0", 1, event_id=1),
        fact(3, 20, "7.0", 2, event_id=2),
        fact(4, 10, "1.0", 3, event_id=2),
        fact(5, 30, "2.0", 4, event_id=None),
    ]
    wins = event_winners(catches)
    assert wins == {10: 1, 20: 1}

    entries = {e.user_id: e for e in rank_entries(catches, SCALE, 10, wins=wins)}
    assert entries[20].rank == 1
    assert entries[20].competitions_participated == 2
    assert entries[20].competitions_won == 1
    assert entries[30].competitions_participated == 0
    assert entries[30].competitions_won == 0


def test_event_winners_counts_shared_first_place():
    catches = [fact(1, 10, "4.0", 0), fact(2, 20, "4.0", 0)]
    assert event_winners(catches) == {10: 1, 20: 1}


def test_cache_keys():
    assert event_cache_key(7, None) == "leaderboard:event:7:game:all"
    assert event_cache_key(7, 3) == "leaderboard:event:7:game:3"


@pytest_asyncio.fixture
async def weighed(client: AsyncClient, bk1, clock):
    """Alice lands 3.5kg, then Bob lands 2.0kg and 1.0kg."""
    await client.post(
        f"/api/bookings/{bk1.booking_ref}/seats/share",
        json={"seatId": seat(bk1, 2).id, "userEmail": "bob@x.com"},
    )
    rods = {}
    for number in (1, 2):
        qr = seat(bk1, number).qr_code
        await client.post("/api/checkins/scan", json={"qrCode": qr})
        printed = await client.post("/api/rod-printing/print", json={"seatQrCode": qr})
        rods[number] = printed.json()["data"]["rod"]["qrCode"]

    for number, weight in ((1, 3.5), (2, 2.0), (2, 1.0)):
        clock.advance(minutes=1)
        response = await client.post("/api/weighing/record", json={"rodQrCode": rods[number], "weight": weight})
        assert response.status_code == 201
    return rods


@pytest.mark.asyncio
async def test_event_board(client: AsyncClient, weighed, event, users):
    response = await client.get("/api/leaderboard/event", params={"eventId": event.id})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["eventName"] == "Summer Open"
    assert data["gameId"] is None
    assert data["cached"] is False

    entries = data["entries"]
    assert [e["userId"] for e in entries] == [users["alice"].id, users["bob"].id]
    assert [e["rank"] for e in entries] == [1, 2]
    assert entries[0]["totalWeight"] == 3.5
    assert entries[0]["competitionsWon"] == 1
    assert entries[1]["totalFish"] == 2
    assert entries[1]["competitionsWon"] == 0
    assert entries[1]["points"] == 80


@pytest.mark.asyncio
async def test_event_board_by_game(client: AsyncClient, weighed, event, games):
    heaviest = await client.get(
        "/api/leaderboard/event", params={"eventId": event.id, "gameId": games["heaviest"].id}
    )
    assert heaviest.json()["data"]["gameName"] == "Heaviest Catch"
    assert len(heaviest.json()["data"]["entries"]) == 2

    biggest = await client.get(
        "/api/leaderboard/event", params={"eventId": event.id, "gameId": games["biggest"].id}
    )
    assert biggest.json()["data"]["entries"] == []


@pytest.mark.asyncio
async def test_unknown_event(client: AsyncClient):
    response = await client.get("/api/leaderboard/event", params={"eventId": 404})
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "EVENT_NOT_FOUND"


@pytest.mark.asyncio
async def test_event_board_is_cached_until_ttl(client: AsyncClient, weighed, event, clock, cache):
    first = await client.get("/api/leaderboard/event", params={"eventId": event.id})
    assert first.json()["data"]["cached"] is False
    assert len(cache) == 1

    clock.advance(seconds=30)
    second = await client.get("/api/leaderboard/event", params={"eventId": event.id})
    assert second.json()["data"]["cached"] is True
    assert second.json()["data"]["lastUpdated"] == first.json()["data"]["lastUpdated"]
    assert second.json()["data"]["entries"] == first.json()["data"]["entries"]

    clock.advance(seconds=61)
    third = await client.get("/api/leaderboard/event", params={"eventId": event.id})
    assert third.json()["data"]["cached"] is False


@pytest.mark.asyncio
async def test_catch_invalidates_event_board(client: AsyncClient, weighed, event, users, clock):
    await client.get("/api/leaderboard/event", params={"eventId": event.id})

    clock.advance(seconds=5)
    await client.post("/api/weighing/record", json={"rodQrCode": weighed[2], "weight": 4.0})

    response = await client.get("/api/leaderboard/event", params={"eventId": event.id})
    data = response.json()["data"]
    assert data["cached"] is False
    assert data["entries"][0]["userId"] == users["bob"].id
    assert data["entries"][0]["totalWeight"] == 7.0


@pytest.mark.asyncio
async def test_overall_and_user_standing(client: AsyncClient, weighed, users):
    overall = await client.get("/api/leaderboard/overall")
    entries = overall.json()["data"]
    assert [e["userId"] for e in entries] == [users["alice"].id, users["bob"].id]
    assert entries[0]["competitionsWon"] == 1
    assert entries[0]["competitionsParticipated"] == 1

    standing = await client.get("/api/leaderboard/user", params={"userId": users["bob"].id})
    data = standing.json()["data"]
    assert data["entry"]["rank"] == 2
    assert data["totalAnglers"] == 2

    no_catches = await client.get("/api/leaderboard/user", params={"userId": users["carol"].id})
    assert no_catches.json()["data"]["entry"] is None

    missing = await client.get("/api/leaderboard/user", params={"userId": 9999})
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "USER_NOT_FOUND"


@pytest.mark.asyncio
async def test_event_board_for_game_outside_event(client: AsyncClient, event, database):
    async with database.session() as s:
        stray = Game(name="Most Species", type="species")
        s.add(stray)
        await s.commit()

    response = await client.get("/api/leaderboard/event", params={"eventId": event.id, "gameId": stray.id})
    assert response.status_code == 409
    error = response.json()["error"]
    assert error["code"] == "NO_GAME_CONFIGURED"
    assert error["details"] == {"event_id": event.id, "game_id": stray.id}

"""
Tests for catch streaks.
"""

from datetime import date

import pytest

from pondside.services.stats_service import advance_streak

D = date(2026, 6, 13)


@pytest.mark.parametrize(
    "current,longest,last_day,catch_day,expected",
    [
        (0, 0, None, D, (1, 1, D)),
        (3, 5, D, D, (3, 5, D)),
        (3, 3, date(2026, 6, 12), D, (4, 4, D)),
        (4, 6, date(2026, 6, 10), D, (1, 6, D)),
        (2, 4, date(2026, 6, 14), D, (2, 4, date(2026, 6, 14))),
    ],
    ids=["first-catch", "same-day", "next-day", "gap", "late-entry"],
)
def test_advance_streak(current, longest, last_day, catch_day, expected):
    assert advance_streak(current, longest, last_day, catch_day) == expected


def test_streak_across_month_boundary():
    assert advance_streak(2, 2, date(2026, 5, 31), date(2026, 6, 1)) == (3, 3, date(2026, 6, 1))


@pytest.mark.asyncio
async def test_stats_for_angler_without_catches(client, users):
    response = await client.get(f"/api/users/{users['carol'].id}/stats")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["totalCatches"] == 0
    assert data["totalWeight"] == 0.0
    assert data["streakActive"] is False
    assert data["achievements"] == []


@pytest.mark.asyncio
async def test_stats_for_unknown_user(client, users):
    response = await client.get("/api/users/9999/stats")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "USER_NOT_FOUND"

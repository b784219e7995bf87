"""
Leaderboard endpoints. Event boards are served from the cache while fresh.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from pondside.api.deps import get_leaderboard_service
from pondside.schemas.common import Envelope
from pondside.schemas.leaderboard import (
    EventLeaderboardResponse,
    LeaderboardEntryResponse,
    UserStandingResponse,
)
from pondside.services.leaderboard_service import LeaderboardService

router = APIRouter(prefix="/leaderboard", tags=["Leaderboard"])


@router.get("/overall", response_model=Envelope[list[LeaderboardEntryResponse]])
async def overall(service: LeaderboardService = Depends(get_leaderboard_service)):
    entries = await service.generate_overall()
    return Envelope(data=[LeaderboardEntryResponse.model_validate(entry) for entry in entries])


@router.get("/event", response_model=Envelope[EventLeaderboardResponse])
async def event_board(
    event_id: int = Query(..., alias="eventId"),
    game_id: Optional[int] = Query(None, alias="gameId"),
    service: LeaderboardService = Depends(get_leaderboard_service),
):
    board = await service.generate_for_event(event_id, game_id)
    return Envelope(data=EventLeaderboardResponse.model_validate(board))


@router.get("/user", response_model=Envelope[UserStandingResponse])
async def user_standing(
    user_id: int = Query(..., alias="userId"),
    service: LeaderboardService = Depends(get_leaderboard_service),
):
    standing = await service.get_user_standing(user_id)
    return Envelope(
        data=UserStandingResponse(
            user_id=user_id,
            entry=LeaderboardEntryResponse.model_validate(standing.entry) if standing.entry else None,
            total_anglers=standing.total_anglers,
        )
    )

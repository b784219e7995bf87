"""
Weighing station endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from pondside.api.deps import get_weighing_service
from pondside.core.logging import bind_scan_context
from pondside.schemas.common import Envelope
from pondside.schemas.weighing import (
    AchievementResponse,
    CatchCreate,
    CatchDisplay,
    CatchRecordedResponse,
    CatchResponse,
    StandingResponse,
)
from pondside.services.weighing_service import WeighingService

router = APIRouter(prefix="/weighing", tags=["Weighing"])


@router.post("/record", response_model=Envelope[CatchRecordedResponse], status_code=status.HTTP_201_CREATED)
async def record_catch(
    request: CatchCreate,
    service: WeighingService = Depends(get_weighing_service),
):
    """
    Record a catch against a rod QR code.

    Only the catch record is required to succeed; stats, achievements and
    the live ranking are filled in when available.
    """
    bind_scan_context(scale_id=request.scale_id)
    outcome = await service.record_catch(
        request.rod_qr_code,
        request.weight,
        length=request.length,
        species=request.species,
        weighed_by=request.weighed_by,
        notes=request.notes,
        scale_id=request.scale_id,
        game_id=request.game_id,
    )
    catch = outcome.catch
    seat = outcome.rod.seat
    user_name = catch.user.name if catch.user is not None else "Unknown"

    ranking = None
    if outcome.standing is not None:
        ranking = StandingResponse(
            current_rank=outcome.standing.rank,
            total_catches=outcome.standing.total_catches,
            total_participants=outcome.standing.total_participants,
            message=outcome.standing.message,
        )

    data = CatchRecordedResponse(
        catch=CatchResponse.model_validate(catch),
        display_info=CatchDisplay(
            user_name=user_name,
            weight=f"{catch.weight:.3f}",
            length=f"{catch.length:.1f}" if catch.length is not None else None,
            species=catch.species,
            seat_number=seat.seat_number,
            booking_ref=seat.booking.booking_ref,
            event_name=outcome.event.name if outcome.event is not None else None,
            game_name=outcome.game_name,
        ),
        ranking=ranking,
        achievements=[
            AchievementResponse(
                code=grant.achievement.code,
                name=grant.achievement.name,
                description=grant.achievement.description,
                category=grant.achievement.category,
                unlocked_at=grant.unlocked_at,
            )
            for grant in outcome.achievements
        ],
    )
    return Envelope(data=data, message=f"Catch recorded: {catch.weight:.2f}kg for {user_name}")


@router.get("/record", response_model=Envelope[list[CatchResponse]])
async def list_catches(
    event_id: Optional[int] = Query(None, alias="eventId"),
    user_id: Optional[int] = Query(None, alias="userId"),
    rod_qr_code: Optional[str] = Query(None, alias="rodQrCode"),
    service: WeighingService = Depends(get_weighing_service),
):
    catches = await service.list_catches(event_id=event_id, user_id=user_id, rod_qr_code=rod_qr_code)
    return Envelope(data=[CatchResponse.model_validate(catch) for catch in catches])

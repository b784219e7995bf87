"""
Rod label printing endpoints.
"""

from fastapi import APIRouter, Depends, Query, status

from pondside.api.deps import get_rod_service
from pondside.schemas.common import Envelope
from pondside.schemas.rod import RodHistoryResponse, RodPrintRequest, RodPrintResponse, RodResponse
from pondside.services.rod_service import RodService

router = APIRouter(prefix="/rod-printing", tags=["Rod printing"])


@router.post("/print", response_model=Envelope[RodPrintResponse], status_code=status.HTTP_201_CREATED)
async def print_rod(
    request: RodPrintRequest,
    service: RodService = Depends(get_rod_service),
):
    """
    Issue a rod label for a checked-in seat.

    A second print for the same seat needs isReplacement=true; it voids the
    current rod and issues the next version.
    """
    rod, voided = await service.issue_rod(
        request.seat_qr_code,
        station_id=request.station_id,
        is_replacement=request.is_replacement,
        void_reason=request.void_reason,
    )
    seat = rod.seat
    message = "Replacement rod label printed" if voided is not None else "Rod label printed"
    return Envelope(
        data=RodPrintResponse(
            rod=RodResponse.model_validate(rod),
            voided_rod=RodResponse.model_validate(voided) if voided is not None else None,
            seat_number=seat.seat_number,
            booking_ref=seat.booking.booking_ref,
        ),
        message=message,
    )


@router.get("/print", response_model=Envelope[RodResponse])
async def rod_status(
    qr_code: str = Query(..., alias="qrCode", min_length=1),
    service: RodService = Depends(get_rod_service),
):
    rod = await service.get_rod_status(qr_code)
    return Envelope(data=RodResponse.model_validate(rod))


@router.get("/history", response_model=Envelope[RodHistoryResponse])
async def rod_history(
    seat_qr_code: str = Query(..., alias="seatQrCode", min_length=1),
    service: RodService = Depends(get_rod_service),
):
    seat, rods = await service.get_rod_history(seat_qr_code)
    active = next((rod for rod in rods if rod.is_active), None)
    return Envelope(
        data=RodHistoryResponse(
            seat_qr_code=seat.qr_code,
            seat_number=seat.seat_number,
            rods=[RodResponse.model_validate(rod) for rod in rods],
            active_rod=RodResponse.model_validate(active) if active is not None else None,
        )
    )

"""
QR validation for scanners that need to know what they are looking at.
"""

from fastapi import APIRouter, Depends

from pondside.api.deps import get_resolver
from pondside.db.session import atomic
from pondside.schemas.booking import SeatResponse
from pondside.schemas.checkin import QrValidateRequest, QrValidateResponse
from pondside.schemas.common import Envelope
from pondside.schemas.rod import RodResponse
from pondside.services.identity_service import QrResolver, SeatScan

router = APIRouter(prefix="/qr", tags=["QR"])


@router.post("/validate", response_model=Envelope[QrValidateResponse])
async def validate(
    request: QrValidateRequest,
    resolver: QrResolver = Depends(get_resolver),
):
    async with atomic(resolver.db):
        target = await resolver.resolve(request.qr_code)

    if isinstance(target, SeatScan):
        seat = target.seat
        data = QrValidateResponse(
            kind="seat",
            seat=SeatResponse.model_validate(seat),
            booking_ref=seat.booking.booking_ref,
        )
    else:
        rod = target.rod
        data = QrValidateResponse(
            kind="rod",
            valid=rod.is_active,
            rod=RodResponse.model_validate(rod),
            booking_ref=rod.seat.booking.booking_ref,
        )
    return Envelope(data=data)

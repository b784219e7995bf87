"""
Check-in station endpoints.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from pondside.api.deps import get_attendance_service, get_check_in_service
from pondside.core.logging import bind_scan_context
from pondside.schemas.checkin import (
    CheckInRecordResponse,
    CheckInResponse,
    CheckInStatusResponse,
    CheckOutRequest,
    ScanRequest,
    TodayCheckInResponse,
    check_in_response,
)
from pondside.schemas.common import Envelope
from pondside.services.attendance_service import AttendanceService
from pondside.services.checkin_service import CheckInService, FreshCheckIn

router = APIRouter(prefix="/checkins", tags=["Check-in"])


@router.post("/scan", response_model=Envelope[CheckInResponse])
async def scan(
    request: ScanRequest,
    service: CheckInService = Depends(get_check_in_service),
):
    """
    Check a seat in from its QR code.

    The first scan answers with outcome "checked_in"; any later scan of the
    same seat answers "already_checked_in" with the original time.
    """
    bind_scan_context(station_id=request.station_id)
    result = await service.check_in(request.qr_code, request.scanned_by, request.station_id)
    payload = check_in_response(result)
    message = "Check-in successful" if isinstance(result, FreshCheckIn) else "Already checked in"
    return Envelope(data=payload, message=message)


@router.get("/scan", response_model=Envelope[CheckInStatusResponse])
async def scan_status(
    qr_code: str = Query(..., alias="qrCode", min_length=1),
    service: CheckInService = Depends(get_check_in_service),
):
    status = await service.get_status(qr_code)
    return Envelope(data=CheckInStatusResponse.from_status(status))


@router.post("/checkout", response_model=Envelope[CheckInRecordResponse])
async def check_out(
    request: CheckOutRequest,
    attendance: AttendanceService = Depends(get_attendance_service),
):
    record = await attendance.check_out(request.check_in_id, request.scanned_by)
    return Envelope(data=CheckInRecordResponse.model_validate(record), message="Checked out")


@router.get("/today", response_model=Envelope[list[TodayCheckInResponse]])
async def todays_check_ins(
    day: Optional[date] = Query(None, alias="date"),
    attendance: AttendanceService = Depends(get_attendance_service),
):
    """Every check-in for bookings on the venue's current day, or on `date`."""
    rows = await attendance.checkins_for_day(day)
    return Envelope(data=[TodayCheckInResponse.from_row(record, booking) for record, booking in rows])

"""
Schemas for the check-in station, attendance actions and QR validation.

A scan answers with one of two shapes, told apart by `outcome`:
"checked_in" for the first successful scan, "already_checked_in" for every
scan after it.
"""

from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import Field

from pondside.schemas.booking import SeatResponse, UserSummary
from pondside.schemas.common import CamelModel
from pondside.schemas.rod import RodResponse
from pondside.services.checkin_service import AlreadyCheckedIn, CheckInStatus, FreshCheckIn


class ScanRequest(CamelModel):
    qr_code: str = Field(..., min_length=1)
    scanned_by: Optional[str] = None
    station_id: Optional[str] = None


class CheckOutRequest(CamelModel):
    check_in_id: int
    scanned_by: Optional[str] = None


class QrValidateRequest(CamelModel):
    qr_code: str = Field(..., min_length=1)


class CheckInRecordResponse(CamelModel):
    id: int
    booking_id: int
    booking_seat_id: Optional[int]
    user_id: int
    scanned_by: str
    station_id: Optional[str]
    status: str
    check_in_at: datetime
    check_out_at: Optional[datetime]


class FreshCheckInResponse(CamelModel):
    outcome: Literal["checked_in"] = "checked_in"
    booking_ref: str
    seat: SeatResponse
    user: UserSummary
    check_in: CheckInRecordResponse
    active_rod: Optional[RodResponse] = None
    needs_rod_print: bool
    message: str

    @classmethod
    def from_result(cls, result: FreshCheckIn) -> "FreshCheckInResponse":
        seat = result.seat
        return cls(
            booking_ref=seat.booking.booking_ref,
            seat=SeatResponse.model_validate(seat),
            user=UserSummary.model_validate(seat.assigned_user),
            check_in=CheckInRecordResponse.model_validate(result.record),
            active_rod=RodResponse.model_validate(result.active_rod) if result.active_rod else None,
            needs_rod_print=result.needs_rod_print,
            message=f"Welcome, {seat.assigned_user.name}! Seat #{seat.seat_number} checked in.",
        )


class AlreadyCheckedInResponse(CamelModel):
    outcome: Literal["already_checked_in"] = "already_checked_in"
    booking_ref: str
    seat: SeatResponse
    user: UserSummary
    checked_in_at: datetime
    active_rod: Optional[RodResponse] = None
    message: str

    @classmethod
    def from_result(cls, result: AlreadyCheckedIn) -> "AlreadyCheckedInResponse":
        seat = result.seat
        return cls(
            booking_ref=seat.booking.booking_ref,
            seat=SeatResponse.model_validate(seat),
            user=UserSummary.model_validate(seat.assigned_user),
            checked_in_at=result.checked_in_at,
            active_rod=RodResponse.model_validate(result.active_rod) if result.active_rod else None,
            message=f"Seat #{seat.seat_number} is already checked in.",
        )


CheckInResponse = Annotated[
    Union[FreshCheckInResponse, AlreadyCheckedInResponse],
    Field(discriminator="outcome"),
]


def check_in_response(result: Union[FreshCheckIn, AlreadyCheckedIn]) -> Union[FreshCheckInResponse, AlreadyCheckedInResponse]:
    if isinstance(result, FreshCheckIn):
        return FreshCheckInResponse.from_result(result)
    return AlreadyCheckedInResponse.from_result(result)


class CheckInStatusResponse(CamelModel):
    booking_ref: str
    booking_status: str
    seat: SeatResponse
    is_checked_in: bool
    active_rod: Optional[RodResponse] = None
    latest_check_in: Optional[CheckInRecordResponse] = None

    @classmethod
    def from_status(cls, status: CheckInStatus) -> "CheckInStatusResponse":
        seat = status.seat
        return cls(
            booking_ref=seat.booking.booking_ref,
            booking_status=seat.booking.status,
            seat=SeatResponse.model_validate(seat),
            is_checked_in=status.is_checked_in,
            active_rod=RodResponse.model_validate(status.active_rod) if status.active_rod else None,
            latest_check_in=(
                CheckInRecordResponse.model_validate(status.latest_record) if status.latest_record else None
            ),
        )


class QrValidateResponse(CamelModel):
    kind: Literal["seat", "rod"]
    valid: bool = True
    seat: Optional[SeatResponse] = None
    rod: Optional[RodResponse] = None
    booking_ref: Optional[str] = None


class TodayCheckInResponse(CheckInRecordResponse):
    booking_ref: str
    pond_id: Optional[int]
    event_id: Optional[int]

    @classmethod
    def from_row(cls, record, booking) -> "TodayCheckInResponse":
        return cls(
            **CheckInRecordResponse.model_validate(record).model_dump(),
            booking_ref=booking.booking_ref,
            pond_id=booking.pond_id,
            event_id=booking.event_id,
        )

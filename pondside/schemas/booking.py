"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import EmailStr, Field, field_validator, model_validator

from pondside.models import BookingType
from pondside.schemas.common import CamelModel


class SeatRequest(CamelModel):
    number: int = Field(..., gt=0)
    assigned_user_id: Optional[int] = None


class BookingCreate(CamelModel):
    type: str
    booked_by_user_id: int
    pond_id: Optional[int] = None
    event_id: Optional[int] = None
    time_slot_id: Optional[int] = None
    date: date
    seats: list[SeatRequest] = Field(default_factory=list)
    seat_count: Optional[int] = Field(None, gt=0)
    total_price: Decimal = Field(default=Decimal("0"), ge=0)

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, value):
        if isinstance(value, str) and value.upper() in (BookingType.POND, BookingType.EVENT):
            return value.upper()
        raise ValueError("type must be POND or EVENT")

    @model_validator(mode="after")
    def check_target_and_seats(self):
        if self.type == BookingType.EVENT and self.event_id is None:
            raise ValueError("eventId is required for event bookings")
        if self.type == BookingType.POND:
            if self.pond_id is None:
                raise ValueError("pondId is required for pond bookings")
            if self.time_slot_id is None:
                raise ValueError("timeSlotId is required for pond bookings")

        if not self.seats and self.seat_count is None:
            raise ValueError("at least one seat is required")
        if self.seats and self.seat_count is not None and self.seat_count != len(self.seats):
            raise ValueError("seatCount does not match the number of seats")

        numbers = [seat.number for seat in self.seats]
        if len(numbers) != len(set(numbers)):
            raise ValueError("seat numbers must be unique within a booking")
        return self

    def seat_requests(self) -> list[SeatRequest]:
        """Explicitly requested seats in peg order; empty when only a count was given."""
        return sorted(self.seats, key=lambda seat: seat.number)

    @property
    def requested_seats(self) -> int:
        return len(self.seats) if self.seats else self.seat_count


class SeatShare(CamelModel):
    seat_id: int
    user_email: EmailStr


class NoShowRequest(CamelModel):
    booking_id: str
    marked_by: Optional[str] = None


class UserSummary(CamelModel):
    id: int
    name: str
    email: str


class SeatResponse(CamelModel):
    id: int
    booking_id: int
    seat_number: int
    qr_code: str
    status: str
    assigned_user_id: Optional[int]
    assigned_user: Optional[UserSummary] = None
    checked_in_at: Optional[datetime]
    shared_by_user_id: Optional[int]
    shared_at: Optional[datetime]


class BookingResponse(CamelModel):
    id: int
    booking_ref: str
    type: str
    booked_by_user_id: int
    pond_id: Optional[int]
    event_id: Optional[int]
    time_slot_id: Optional[int]
    date: date
    seat_count: int
    total_price: Decimal
    status: str
    created_at: datetime
    seats: list[SeatResponse] = []


class BookingSeatsResponse(CamelModel):
    booking_ref: str
    seats: list[SeatResponse]
    can_share: bool


class OccupiedSeatsResponse(CamelModel):
    pond_id: Optional[int] = None
    event_id: Optional[int] = None
    date: date
    time_slot_id: Optional[int] = None
    occupied: list[int]

"""
Pydantic schemas for rod printing.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from pondside.schemas.common import CamelModel


class RodPrintRequest(CamelModel):
    seat_qr_code: str = Field(..., min_length=1)
    station_id: Optional[str] = None
    is_replacement: bool = False
    void_reason: Optional[str] = Field(None, max_length=255)


class RodResponse(CamelModel):
    id: int
    qr_code: str
    booking_seat_id: int
    assigned_user_id: int
    version: int
    status: str
    printed_at: datetime
    print_station_id: Optional[str]
    voided_at: Optional[datetime]
    void_reason: Optional[str]
    previous_rod_id: Optional[int]
    previous_qr_code: Optional[str]


class RodPrintResponse(CamelModel):
    rod: RodResponse
    voided_rod: Optional[RodResponse] = None
    seat_number: int
    booking_ref: str


class RodHistoryResponse(CamelModel):
    seat_qr_code: str
    seat_number: int
    rods: list[RodResponse]
    active_rod: Optional[RodResponse] = None

"""
Booking endpoints with concurrency-safe seat allocation.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from pondside.api.deps import get_attendance_service, get_seat_allocator
from pondside.core.logging import get_logger
from pondside.core.metrics import booking_latency
from pondside.schemas.booking import (
    BookingCreate,
    BookingResponse,
    BookingSeatsResponse,
    NoShowRequest,
    OccupiedSeatsResponse,
    SeatResponse,
    SeatShare,
)
from pondside.schemas.common import Envelope
from pondside.services.attendance_service import AttendanceService
from pondside.services.booking_service import SeatAllocator

logger = get_logger(__name__)
router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("", response_model=Envelope[BookingResponse], status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    allocator: SeatAllocator = Depends(get_seat_allocator),
):
    """
    Book seats on a pond session or an event.

    Capacity is claimed with a versioned counter update and retried on
    version conflicts; a full session returns 409 CAPACITY_EXCEEDED.
    """
    with booking_latency.time():
        booking = await allocator.create_booking(booking_data)
    return Envelope(data=BookingResponse.model_validate(booking), message="Booking created")


@router.post("/mark-no-show", response_model=Envelope[BookingResponse])
async def mark_no_show(
    request: NoShowRequest,
    attendance: AttendanceService = Depends(get_attendance_service),
):
    """Close a booking nobody turned up for. Seats already checked in keep their state."""
    booking = await attendance.mark_no_show(request.booking_id, request.marked_by)
    return Envelope(data=BookingResponse.model_validate(booking), message="Booking marked as no-show")


@router.get("/occupied", response_model=Envelope[OccupiedSeatsResponse])
async def occupied_seats(
    booking_date: date = Query(..., alias="date"),
    pond_id: Optional[int] = Query(None, alias="pondId"),
    event_id: Optional[int] = Query(None, alias="eventId"),
    time_slot_id: Optional[int] = Query(None, alias="timeSlotId"),
    allocator: SeatAllocator = Depends(get_seat_allocator),
):
    """Pegs already taken, so a booking screen can grey them out."""
    occupied = await allocator.occupied_seats(booking_date, pond_id, event_id, time_slot_id)
    return Envelope(
        data=OccupiedSeatsResponse(
            pond_id=pond_id,
            event_id=event_id,
            date=booking_date,
            time_slot_id=time_slot_id,
            occupied=occupied,
        )
    )


@router.get("/{booking_id}", response_model=Envelope[BookingResponse])
async def get_booking(
    booking_id: str,
    allocator: SeatAllocator = Depends(get_seat_allocator),
):
    booking = await allocator.get_booking(booking_id)
    return Envelope(data=BookingResponse.model_validate(booking))


@router.delete("/{booking_id}", response_model=Envelope[BookingResponse])
async def cancel_booking(
    booking_id: str,
    allocator: SeatAllocator = Depends(get_seat_allocator),
):
    """Cancel a booking and release its seats."""
    booking = await allocator.cancel_booking(booking_id)
    return Envelope(data=BookingResponse.model_validate(booking), message="Booking cancelled successfully")


@router.get("/{booking_id}/seats", response_model=Envelope[BookingSeatsResponse])
async def list_seats(
    booking_id: str,
    allocator: SeatAllocator = Depends(get_seat_allocator),
):
    booking, seats = await allocator.list_seats(booking_id)
    return Envelope(
        data=BookingSeatsResponse(
            booking_ref=booking.booking_ref,
            seats=[SeatResponse.model_validate(seat) for seat in seats],
            can_share=booking.is_active,
        )
    )


@router.post("/{booking_id}/seats/share", response_model=Envelope[SeatResponse])
async def share_seat(
    booking_id: str,
    share: SeatShare,
    allocator: SeatAllocator = Depends(get_seat_allocator),
):
    """Assign a seat to the angler registered under an email address."""
    seat = await allocator.share_seat(booking_id, share.seat_id, share.user_email)
    return Envelope(data=SeatResponse.model_validate(seat), message=f"Seat #{seat.seat_number} shared")

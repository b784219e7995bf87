"""
Bookings, their seats, and the check-in audit trail.

Key design decisions:
- A booking owns a fixed set of seats created in the same transaction;
  `seat_count` never changes afterwards.
- Seat QR codes are unique system-wide and (booking_id, seat_number) is
  unique, so a race in allocation fails on insert rather than duplicating.
- `checked_in_at` is the compare-and-swap key for check-in: the UPDATE only
  applies while it is NULL.
- CheckInRecord rows are append-only; check-out stamps `check_out_at` on the
  record but never deletes it.
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from pondside.db.base import Base, TimestampMixin


class BookingType:
    POND = "POND"
    EVENT = "EVENT"


class BookingStatus:
    ACTIVE = "active"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"


class SeatStatus:
    UNASSIGNED = "unassigned"
    SHARED = "shared"
    CHECKED_IN = "checked-in"
    CHECKED_OUT = "checked-out"
    NO_SHOW = "no-show"


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    booking_ref = Column(String(40), unique=True, index=True, nullable=False)
    type = Column(String(10), nullable=False)
    booked_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    pond_id = Column(Integer, ForeignKey("ponds.id"), nullable=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=True, index=True)
    time_slot_id = Column(Integer, ForeignKey("time_slots.id"), nullable=True)
    date = Column(Date, nullable=False)
    seat_count = Column(Integer, nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False, default=0)
    status = Column(String(20), nullable=False, default=BookingStatus.ACTIVE)

    seats = relationship(
        "BookingSeat",
        back_populates="booking",
        lazy="selectin",
        order_by="BookingSeat.seat_number",
    )
    booked_by = relationship("User", lazy="selectin")
    pond = relationship("Pond", lazy="selectin")
    event = relationship("Event", lazy="selectin")
    time_slot = relationship("TimeSlot", lazy="selectin")

    __table_args__ = (
        CheckConstraint("seat_count > 0", name="check_booking_seat_count_positive"),
        CheckConstraint("type IN ('POND', 'EVENT')", name="check_booking_type"),
        CheckConstraint(
            "status IN ('active', 'cancelled', 'no-show')", name="check_booking_status"
        ),
        Index("ix_bookings_pond_date_slot", "pond_id", "date", "time_slot_id"),
    )

    @property
    def is_active(self) -> bool:
        return self.status == BookingStatus.ACTIVE

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, ref={self.booking_ref}, type={self.type}, status={self.status})>"


class BookingSeat(Base, TimestampMixin):
    __tablename__ = "booking_seats"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    seat_number = Column(Integer, nullable=False)
    qr_code = Column(String(120), unique=True, index=True, nullable=False)
    assigned_user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    status = Column(String(20), nullable=False, default=SeatStatus.UNASSIGNED)
    checked_in_at = Column(DateTime(timezone=True), nullable=True)
    shared_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    shared_at = Column(DateTime(timezone=True), nullable=True)

    booking = relationship("Booking", back_populates="seats", lazy="selectin")
    assigned_user = relationship("User", foreign_keys=[assigned_user_id], lazy="selectin")

    __table_args__ = (
        UniqueConstraint("booking_id", "seat_number", name="uq_booking_seat_number"),
        CheckConstraint("seat_number > 0", name="check_seat_number_positive"),
    )

    @property
    def is_checked_in(self) -> bool:
        return self.checked_in_at is not None

    def __repr__(self) -> str:
        return f"<BookingSeat(id={self.id}, booking={self.booking_id}, seat={self.seat_number}, status={self.status})>"


class CheckInRecord(Base):
    __tablename__ = "check_in_records"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False, index=True)
    booking_seat_id = Column(Integer, ForeignKey("booking_seats.id"), nullable=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    scanned_by = Column(String(150), nullable=False, default="system")
    station_id = Column(String(50), nullable=True)
    status = Column(String(20), nullable=False, default=SeatStatus.CHECKED_IN)
    check_in_at = Column(DateTime(timezone=True), nullable=False)
    check_out_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<CheckInRecord(id={self.id}, seat={self.booking_seat_id}, status={self.status})>"

"""
Venue reference data: ponds, time slots, events and the games run at them.

Ponds, events and games are maintained by the admin screens; the engine
reads them and owns only the seat counters.

Key design decisions:
- `Event.booked_seats` is denormalized against `max_participants` and guarded
  by a `version` column, so event bookings reserve capacity with one
  conditional UPDATE (see booking_service).
- Pond capacity is per (pond, date, time slot). `PondSlotInventory` holds one
  counter row per contention unit, created on first booking for that unit.
- CHECK constraints keep the counters inside [0, capacity] even if a race
  slips past the application logic.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from pondside.db.base import Base, TimestampMixin


class Pond(Base, TimestampMixin):
    __tablename__ = "ponds"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(150), nullable=False)
    max_capacity = Column(Integer, nullable=False)
    booking_enabled = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("max_capacity > 0", name="check_pond_capacity_positive"),
    )

    def __repr__(self) -> str:
        return f"<Pond(id={self.id}, name={self.name}, capacity={self.max_capacity})>"


class TimeSlot(Base):
    __tablename__ = "time_slots"

    id = Column(Integer, primary_key=True, index=True)
    label = Column(String(50), nullable=False)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)

    def __repr__(self) -> str:
        return f"<TimeSlot(id={self.id}, label={self.label})>"


class PondSlotInventory(Base, TimestampMixin):
    __tablename__ = "pond_slot_inventory"

    id = Column(Integer, primary_key=True)
    pond_id = Column(Integer, ForeignKey("ponds.id"), nullable=False)
    date = Column(Date, nullable=False)
    time_slot_id = Column(Integer, ForeignKey("time_slots.id"), nullable=False)
    capacity = Column(Integer, nullable=False)
    reserved_seats = Column(Integer, nullable=False, default=0)

    # Optimistic locking version counter
    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        UniqueConstraint("pond_id", "date", "time_slot_id", name="uq_pond_slot_inventory_unit"),
        CheckConstraint("reserved_seats >= 0", name="check_inventory_reserved_non_negative"),
        CheckConstraint("reserved_seats <= capacity", name="check_inventory_reserved_lte_capacity"),
    )

    def __repr__(self) -> str:
        return (
            f"<PondSlotInventory(pond={self.pond_id}, date={self.date}, "
            f"slot={self.time_slot_id}, reserved={self.reserved_seats}/{self.capacity})>"
        )


class EventStatus:
    OPEN = "open"
    UPCOMING = "upcoming"
    ACTIVE = "active"
    CLOSED = "closed"
    COMPLETED = "completed"


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    date = Column(Date, nullable=False)
    max_participants = Column(Integer, nullable=False)
    booked_seats = Column(Integer, nullable=False, default=0)
    pond_id = Column(Integer, ForeignKey("ponds.id"), nullable=True)
    status = Column(String(20), nullable=False, default=EventStatus.OPEN)

    # Optimistic locking version counter
    version = Column(Integer, nullable=False, default=1)

    event_games = relationship(
        "EventGame",
        back_populates="event",
        lazy="selectin",
        order_by="EventGame.display_order",
    )

    __table_args__ = (
        CheckConstraint("max_participants > 0", name="check_event_max_participants_positive"),
        CheckConstraint("booked_seats >= 0", name="check_event_booked_non_negative"),
        CheckConstraint("booked_seats <= max_participants", name="check_event_booked_lte_max"),
        Index("ix_events_date", "date"),
    )

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, name={self.name}, booked={self.booked_seats}/{self.max_participants})>"


class Game(Base, TimestampMixin):
    __tablename__ = "games"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(150), nullable=False)
    type = Column(String(20), nullable=False, default="heaviest")  # heaviest, biggest, nearest, other
    measurement_unit = Column(String(10), nullable=False, default="kg")
    is_active = Column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Game(id={self.id}, name={self.name}, type={self.type})>"


class EventGame(Base):
    __tablename__ = "event_games"

    id = Column(Integer, primary_key=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    game_id = Column(Integer, ForeignKey("games.id"), nullable=False)
    display_order = Column(Integer, nullable=False, default=0)

    event = relationship("Event", back_populates="event_games")
    game = relationship("Game", lazy="selectin")

    __table_args__ = (
        UniqueConstraint("event_id", "game_id", name="uq_event_game"),
    )

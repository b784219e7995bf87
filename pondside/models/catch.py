"""
Catch records written at the weighing station.

Rows are never updated: a correction is a new record. Leaderboards are
rebuilt from this table on demand.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import relationship

from pondside.db.base import Base


class CatchRecord(Base):
    __tablename__ = "catch_records"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False)
    booking_seat_id = Column(Integer, ForeignKey("booking_seats.id"), nullable=False)
    rod_qr_code = Column(String(120), nullable=False, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=True)
    game_id = Column(Integer, ForeignKey("games.id"), nullable=True)
    weight = Column(Numeric(10, 3), nullable=False)
    length = Column(Numeric(6, 1), nullable=True)
    species = Column(String(100), nullable=True)
    is_verified = Column(Boolean, nullable=False, default=True)
    recorded_by = Column(String(150), nullable=False, default="system")
    scale_id = Column(String(50), nullable=True)
    notes = Column(String(500), nullable=True)
    weighed_at = Column(DateTime(timezone=True), nullable=False)

    user = relationship("User", lazy="selectin")

    __table_args__ = (
        CheckConstraint("weight > 0", name="check_catch_weight_positive"),
        Index("ix_catch_records_event_game", "event_id", "game_id"),
    )

    def __repr__(self) -> str:
        return f"<CatchRecord(id={self.id}, user={self.user_id}, weight={self.weight})>"

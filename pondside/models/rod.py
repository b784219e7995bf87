"""
Fishing rod credentials.

A seat's rods form a version-ordered history: each row points at the row it
replaced through `previous_rod_id`, and replacing a rod voids the old row
instead of editing it. The partial unique index allows any number of voided
rows per seat but at most one active one.
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship

from pondside.db.base import Base, TimestampMixin


class RodStatus:
    ACTIVE = "active"
    VOIDED = "voided"


class FishingRod(Base, TimestampMixin):
    __tablename__ = "fishing_rods"

    id = Column(Integer, primary_key=True, index=True)
    qr_code = Column(String(120), unique=True, index=True, nullable=False)
    booking_seat_id = Column(Integer, ForeignKey("booking_seats.id"), nullable=False, index=True)
    assigned_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    version = Column(Integer, nullable=False, default=1)
    status = Column(String(20), nullable=False, default=RodStatus.ACTIVE)
    printed_at = Column(DateTime(timezone=True), nullable=False)
    print_station_id = Column(String(50), nullable=True)
    voided_at = Column(DateTime(timezone=True), nullable=True)
    void_reason = Column(String(255), nullable=True)
    previous_rod_id = Column(Integer, ForeignKey("fishing_rods.id"), nullable=True)
    previous_qr_code = Column(String(120), nullable=True)

    seat = relationship("BookingSeat", lazy="selectin")
    assigned_user = relationship("User", lazy="selectin")

    __table_args__ = (
        UniqueConstraint("booking_seat_id", "version", name="uq_rod_seat_version"),
        CheckConstraint("version > 0", name="check_rod_version_positive"),
        CheckConstraint("status IN ('active', 'voided')", name="check_rod_status"),
        Index(
            "uq_rod_active_per_seat",
            "booking_seat_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )

    @property
    def is_active(self) -> bool:
        return self.status == RodStatus.ACTIVE

    def __repr__(self) -> str:
        return f"<FishingRod(id={self.id}, seat={self.booking_seat_id}, v{self.version}, status={self.status})>"

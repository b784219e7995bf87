"""
Per-angler aggregates and the achievement rule table.

UserStats is a running summary updated after each catch; unlike the
leaderboard it is not rebuilt from scratch, so updates take a row lock.
Achievements are data: a metric name from UserStats and a threshold.
"""

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from pondside.db.base import Base, TimestampMixin


class UserStats(Base, TimestampMixin):
    __tablename__ = "user_stats"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    total_catches = Column(Integer, nullable=False, default=0)
    total_weight = Column(Numeric(12, 3), nullable=False, default=0)
    biggest_catch = Column(Numeric(10, 3), nullable=False, default=0)
    events_joined = Column(Integer, nullable=False, default=0)
    current_streak = Column(Integer, nullable=False, default=0)
    longest_streak = Column(Integer, nullable=False, default=0)
    last_catch_date = Column(Date, nullable=True)

    def __repr__(self) -> str:
        return f"<UserStats(user={self.user_id}, catches={self.total_catches}, weight={self.total_weight})>"


class Achievement(Base):
    __tablename__ = "achievements"

    id = Column(Integer, primary_key=True)
    code = Column(String(50), unique=True, nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(String(255), nullable=False, default="")
    category = Column(String(30), nullable=False, default="catch")
    metric = Column(String(30), nullable=False)  # a UserStats column name
    threshold = Column(Numeric(12, 3), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    display_order = Column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<Achievement(code={self.code}, {self.metric}>={self.threshold})>"


class UserAchievement(Base):
    __tablename__ = "user_achievements"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    achievement_id = Column(Integer, ForeignKey("achievements.id"), nullable=False)
    unlocked_at = Column(DateTime(timezone=True), nullable=False)

    achievement = relationship("Achievement", lazy="selectin")

    __table_args__ = (
        UniqueConstraint("user_id", "achievement_id", name="uq_user_achievement"),
    )

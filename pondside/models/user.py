"""
User directory entry.

Accounts are created and authenticated elsewhere; the engine only reads them
to resolve seat recipients by email and to label leaderboard rows.
"""

from sqlalchemy import Column, Integer, String, Boolean

from pondside.db.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(150), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"

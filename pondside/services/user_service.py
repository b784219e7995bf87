"""
User directory lookups.

Accounts belong to the identity service; the engine reads them by id (seat
owners, assignees) and by email (seat sharing).
"""

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from pondside.core.errors import UnknownRecipient, UserNotFound
from pondside.models import User


class UserDirectory:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_id(self, user_id: int) -> Optional[User]:
        return await self.db.get(User, user_id)

    async def find_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(func.lower(User.email) == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def get(self, user_id: int) -> User:
        user = await self.find_by_id(user_id)
        if user is None or not user.is_active:
            raise UserNotFound(f"User {user_id} not found", user_id=user_id)
        return user

    async def get_recipient(self, email: str) -> User:
        user = await self.find_by_email(email)
        if user is None or not user.is_active:
            raise UnknownRecipient(email=email)
        return user

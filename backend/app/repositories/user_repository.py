"""Read-only view of the identity store."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import UserNotFound
from app.db.errors import store_operation
from app.models.user import User


class UserRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    @store_operation
    async def get_user(self, user_id: int) -> User:
        result = await self.db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if not user:
            raise UserNotFound(f"User {user_id} not found", user_id=user_id)
        return user

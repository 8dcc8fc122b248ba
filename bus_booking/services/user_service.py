"""
User existence lookups used by the booking paths.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bus_booking.core.errors import UserNotFoundError
from bus_booking.models.user import User


async def user_exists(db: AsyncSession, user_id: int) -> bool:
    result = await db.execute(select(User.id).where(User.id == user_id))
    return result.scalar_one_or_none() is not None


async def require_user(db: AsyncSession, user_id: int) -> None:
    if not await user_exists(db, user_id):
        raise UserNotFoundError(user_id)

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from market_chat.models.user import User


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_users_by_ids(db: AsyncSession, user_ids: set[int]) -> dict[int, User]:
    if not user_ids:
        return {}
    result = await db.execute(select(User).where(User.id.in_(user_ids)))
    return {user.id: user for user in result.scalars().all()}


def display_name(user: User | None, fallback: str) -> str:
    return user.nickname if user is not None else fallback

"""User read queries."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from snippy.models.user import User


async def user_name_exists(session: AsyncSession, user_name: str) -> bool:
    """Uniqueness probe used while generating usernames."""
    result = await session.execute(
        select(User.auth0_id).where(User.user_name == user_name).limit(1)
    )
    return result.scalar_one_or_none() is not None


async def get_by_auth0_id(session: AsyncSession, auth0_id: str) -> User | None:
    return await session.get(User, auth0_id)


async def get_by_user_name(session: AsyncSession, user_name: str) -> User | None:
    result = await session.execute(select(User).where(User.user_name == user_name))
    return result.scalar_one_or_none()


async def any_users(session: AsyncSession) -> bool:
    """Whether at least one account exists."""
    result = await session.execute(select(User.auth0_id).limit(1))
    return result.scalar_one_or_none() is not None

"""Snippet read queries."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from snippy.models.snippet import Snippet


def escape_like(value: str) -> str:
    """Make ``%`` and ``_`` in user input match literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


async def short_id_exists(session: AsyncSession, short_id: str) -> bool:
    """Uniqueness probe used while generating short IDs."""
    result = await session.execute(
        select(Snippet.id).where(Snippet.short_id == short_id).limit(1)
    )
    return result.scalar_one_or_none() is not None


async def get_by_short_id(session: AsyncSession, short_id: str) -> Snippet | None:
    """Fetch a snippet with its files and owner."""
    result = await session.execute(
        select(Snippet)
        .where(Snippet.short_id == short_id)
        .options(selectinload(Snippet.files), selectinload(Snippet.user))
    )
    return result.scalar_one_or_none()


async def list_snippets(
    session: AsyncSession,
    *,
    offset: int,
    limit: int,
    auth0_id: str | None = None,
    include_private: bool = False,
    search: str | None = None,
) -> tuple[Sequence[Snippet], int]:
    """Page through snippets, newest first, with the total match count."""
    conditions = []
    if auth0_id is not None:
        conditions.append(Snippet.auth0_id == auth0_id)
    if not include_private:
        conditions.append(Snippet.is_private.is_(False))
    if search:
        pattern = f"%{escape_like(search)}%"
        conditions.append(
            or_(
                Snippet.name.ilike(pattern, escape="\\"),
                Snippet.description.ilike(pattern, escape="\\"),
            )
        )

    total = int(
        await session.scalar(select(func.count()).select_from(Snippet).where(*conditions)) or 0
    )
    result = await session.execute(
        select(Snippet)
        .where(*conditions)
        .options(selectinload(Snippet.user))
        .order_by(Snippet.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    return result.scalars().all(), total

"""Comment read queries."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from snippy.models.comment import Comment


async def get_comment(session: AsyncSession, comment_id: str) -> Comment | None:
    result = await session.execute(
        select(Comment)
        .where(Comment.id == comment_id)
        .options(selectinload(Comment.user), selectinload(Comment.snippet))
    )
    return result.scalar_one_or_none()


async def list_for_snippet(
    session: AsyncSession,
    *,
    snippet_id: str,
    offset: int,
    limit: int,
) -> tuple[Sequence[Comment], int]:
    """Comments on one snippet, oldest first, with their authors loaded."""
    total = int(
        await session.scalar(
            select(func.count()).select_from(Comment).where(Comment.snippet_id == snippet_id)
        )
        or 0
    )
    result = await session.execute(
        select(Comment)
        .where(Comment.snippet_id == snippet_id)
        .options(selectinload(Comment.user))
        .order_by(Comment.created_at.asc())
        .offset(offset)
        .limit(limit)
    )
    return result.scalars().all(), total

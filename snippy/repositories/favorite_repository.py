"""Favorite read queries."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from snippy.models.favorite import Favorite
from snippy.models.snippet import Snippet


async def get_favorite(
    session: AsyncSession,
    *,
    auth0_id: str,
    snippet_id: str,
) -> Favorite | None:
    result = await session.execute(
        select(Favorite).where(
            Favorite.auth0_id == auth0_id,
            Favorite.snippet_id == snippet_id,
        )
    )
    return result.scalar_one_or_none()


async def favorited_snippet_ids(
    session: AsyncSession,
    *,
    auth0_id: str,
    snippet_ids: Iterable[str],
) -> set[str]:
    """Subset of ``snippet_ids`` the user has favorited."""
    ids = list(snippet_ids)
    if not ids:
        return set()
    result = await session.execute(
        select(Favorite.snippet_id).where(
            Favorite.auth0_id == auth0_id,
            Favorite.snippet_id.in_(ids),
        )
    )
    return set(result.scalars().all())


async def list_favorite_snippets(
    session: AsyncSession,
    *,
    auth0_id: str,
    offset: int,
    limit: int,
) -> tuple[Sequence[Snippet], int]:
    """Snippets favorited by a user, oldest favorite first."""
    total = int(
        await session.scalar(
            select(func.count()).select_from(Favorite).where(Favorite.auth0_id == auth0_id)
        )
        or 0
    )
    result = await session.execute(
        select(Snippet)
        .join(Favorite, Favorite.snippet_id == Snippet.id)
        .where(Favorite.auth0_id == auth0_id)
        .options(selectinload(Snippet.user))
        .order_by(Favorite.created_at.asc())
        .offset(offset)
        .limit(limit)
    )
    return result.scalars().all(), total

"""Favorite add/remove/toggle with favorite_count maintenance."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from snippy.core.db_kernel import flush
from snippy.models.favorite import Favorite
from snippy.models.snippet import Snippet
from snippy.repositories import favorite_repository
from snippy.services import counters
from snippy.services.counters import SnippetCounter
from snippy.services.pagination import PaginationParams
from snippy.services.snippets import SnippetPage, get_visible_snippet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FavoriteState:
    """Favorite status of one snippet for one user after a mutation."""

    short_id: str
    is_favorited: bool
    favorite_count: int


async def _state(session: AsyncSession, snippet: Snippet, *, is_favorited: bool) -> FavoriteState:
    await session.refresh(snippet, attribute_names=[SnippetCounter.FAVORITE.value])
    return FavoriteState(
        short_id=snippet.short_id,
        is_favorited=is_favorited,
        favorite_count=snippet.favorite_count,
    )


async def _create(session: AsyncSession, snippet: Snippet, actor_id: str) -> None:
    session.add(Favorite(auth0_id=actor_id, snippet_id=snippet.id))
    await flush(session, operation_name="add_favorite")
    await counters.increment(session, snippet.id, SnippetCounter.FAVORITE)


async def _remove(session: AsyncSession, snippet: Snippet, favorite: Favorite) -> None:
    await session.delete(favorite)
    await flush(session, operation_name="remove_favorite")
    await counters.decrement(session, snippet.id, SnippetCounter.FAVORITE)


async def toggle_favorite(
    session: AsyncSession,
    short_id: str,
    *,
    actor_id: str,
) -> FavoriteState:
    """Favorite the snippet, or un-favorite it when a favorite already exists."""
    snippet = await get_visible_snippet(session, short_id, actor_id)
    existing = await favorite_repository.get_favorite(
        session,
        auth0_id=actor_id,
        snippet_id=snippet.id,
    )
    if existing is not None:
        await _remove(session, snippet, existing)
        logger.info("Favorite removed", extra={"short_id": short_id, "auth0_id": actor_id})
        return await _state(session, snippet, is_favorited=False)

    await _create(session, snippet, actor_id)
    logger.info("Favorite added", extra={"short_id": short_id, "auth0_id": actor_id})
    return await _state(session, snippet, is_favorited=True)


async def add_favorite(session: AsyncSession, short_id: str, *, actor_id: str) -> FavoriteState:
    """Idempotent favorite."""
    snippet = await get_visible_snippet(session, short_id, actor_id)
    existing = await favorite_repository.get_favorite(
        session,
        auth0_id=actor_id,
        snippet_id=snippet.id,
    )
    if existing is None:
        await _create(session, snippet, actor_id)
    return await _state(session, snippet, is_favorited=True)


async def remove_favorite(
    session: AsyncSession,
    short_id: str,
    *,
    actor_id: str,
) -> FavoriteState:
    """Idempotent un-favorite."""
    snippet = await get_visible_snippet(session, short_id, actor_id)
    existing = await favorite_repository.get_favorite(
        session,
        auth0_id=actor_id,
        snippet_id=snippet.id,
    )
    if existing is not None:
        await _remove(session, snippet, existing)
    return await _state(session, snippet, is_favorited=False)


async def list_favorite_snippets(
    session: AsyncSession,
    pagination: PaginationParams,
    *,
    actor_id: str,
) -> SnippetPage:
    items, total = await favorite_repository.list_favorite_snippets(
        session,
        auth0_id=actor_id,
        offset=pagination.offset,
        limit=pagination.limit,
    )
    return SnippetPage(items=items, total=total, favorited_ids={item.id for item in items})

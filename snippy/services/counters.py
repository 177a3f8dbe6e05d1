"""Denormalized snippet counters.

Counters are changed with relative ``UPDATE ... SET col = col + n`` statements
on the caller's session, so they commit or roll back with the child row that
caused them and concurrent updates serialize on the row lock.
"""

from __future__ import annotations

import logging
from enum import Enum

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from snippy.models.comment import Comment
from snippy.models.favorite import Favorite
from snippy.models.snippet import Snippet

logger = logging.getLogger(__name__)


class SnippetCounter(str, Enum):
    """Counter columns on ``snippets``."""

    FORK = "fork_count"
    FAVORITE = "favorite_count"
    COMMENT = "comment_count"
    VIEW = "view_count"

    @property
    def column(self):
        return getattr(Snippet, self.value)


async def increment(
    session: AsyncSession,
    snippet_id: str,
    counter: SnippetCounter,
    amount: int = 1,
) -> bool:
    """Add ``amount`` to a counter. Returns False when the snippet is gone."""
    if amount < 1:
        raise ValueError("amount must be >= 1")
    column = counter.column
    result = await session.execute(
        update(Snippet)
        .where(Snippet.id == snippet_id)
        .values({column: column + amount})
        .execution_options(synchronize_session=False)
    )
    updated = bool(result.rowcount)
    if not updated:
        logger.warning(
            "Counter increment matched no snippet",
            extra={"snippet_id": snippet_id, "counter": counter.value},
        )
    return updated


async def decrement(
    session: AsyncSession,
    snippet_id: str,
    counter: SnippetCounter,
    amount: int = 1,
) -> bool:
    """Subtract ``amount`` from a counter, never going below zero.

    Returns False when the snippet is gone or the counter is already lower
    than ``amount``.
    """
    if amount < 1:
        raise ValueError("amount must be >= 1")
    column = counter.column
    result = await session.execute(
        update(Snippet)
        .where(Snippet.id == snippet_id, column >= amount)
        .values({column: column - amount})
        .execution_options(synchronize_session=False)
    )
    updated = bool(result.rowcount)
    if not updated:
        logger.warning(
            "Counter decrement skipped",
            extra={"snippet_id": snippet_id, "counter": counter.value},
        )
    return updated


async def recount(session: AsyncSession, snippet_id: str | None = None) -> int:
    """Recompute fork/favorite/comment counts from their child rows.

    Repairs drift left by writes that bypassed this module. ``view_count`` has
    no child rows and is left alone. Returns the number of snippets updated.
    """
    forks = Snippet.__table__.alias("forks")
    fork_total = (
        select(func.count())
        .select_from(forks)
        .where(forks.c.parent_short_id == Snippet.short_id)
        .scalar_subquery()
    )
    favorite_total = (
        select(func.count())
        .select_from(Favorite)
        .where(Favorite.snippet_id == Snippet.id)
        .scalar_subquery()
    )
    comment_total = (
        select(func.count())
        .select_from(Comment)
        .where(Comment.snippet_id == Snippet.id)
        .scalar_subquery()
    )

    statement = update(Snippet).values(
        {
            Snippet.fork_count: fork_total,
            Snippet.favorite_count: favorite_total,
            Snippet.comment_count: comment_total,
        }
    )
    if snippet_id is not None:
        statement = statement.where(Snippet.id == snippet_id)

    result = await session.execute(statement.execution_options(synchronize_session=False))
    updated = int(result.rowcount or 0)
    logger.info("Counters recomputed", extra={"snippet_id": snippet_id, "updated": updated})
    return updated

"""Comments on snippets with comment_count maintenance."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from snippy.core.db_kernel import flush
from snippy.core.exceptions import CommentNotFoundError, NotOwnerError, UserNotFoundError
from snippy.models.comment import Comment
from snippy.repositories import comment_repository, user_repository
from snippy.services import counters
from snippy.services.counters import SnippetCounter
from snippy.services.pagination import PaginationParams
from snippy.services.snippets import get_visible_snippet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommentPage:
    items: Sequence[Comment]
    total: int


async def add_comment(
    session: AsyncSession,
    short_id: str,
    *,
    actor_id: str,
    content: str,
) -> Comment:
    """Insert a comment and bump the snippet's comment_count in one transaction."""
    snippet = await get_visible_snippet(session, short_id, actor_id)
    user = await user_repository.get_by_auth0_id(session, actor_id)
    if user is None:
        raise UserNotFoundError(actor_id)

    comment = Comment(auth0_id=actor_id, snippet_id=snippet.id, content=content)
    comment.user = user
    session.add(comment)
    await flush(session, operation_name="add_comment")
    await counters.increment(session, snippet.id, SnippetCounter.COMMENT)
    await session.refresh(comment, attribute_names=["created_at", "updated_at"])

    logger.info(
        "Comment added",
        extra={"comment_id": comment.id, "short_id": short_id, "auth0_id": actor_id},
    )
    return comment


async def _get_owned_comment(session: AsyncSession, comment_id: str, actor_id: str) -> Comment:
    comment = await comment_repository.get_comment(session, comment_id)
    if comment is None:
        raise CommentNotFoundError(comment_id)
    if comment.auth0_id != actor_id:
        raise NotOwnerError("comment")
    return comment


async def update_comment(
    session: AsyncSession,
    comment_id: str,
    *,
    actor_id: str,
    content: str,
) -> Comment:
    comment = await _get_owned_comment(session, comment_id, actor_id)
    comment.content = content
    await flush(session, operation_name="update_comment")
    await session.refresh(comment, attribute_names=["updated_at"])
    return comment


async def delete_comment(session: AsyncSession, comment_id: str, *, actor_id: str) -> None:
    """Remove an author's comment and give the snippet's comment credit back."""
    comment = await _get_owned_comment(session, comment_id, actor_id)
    snippet_id = comment.snippet_id

    await session.delete(comment)
    await flush(session, operation_name="delete_comment")
    await counters.decrement(session, snippet_id, SnippetCounter.COMMENT)
    logger.info("Comment deleted", extra={"comment_id": comment_id, "auth0_id": actor_id})


async def list_comments(
    session: AsyncSession,
    short_id: str,
    pagination: PaginationParams,
    *,
    viewer_id: str | None = None,
) -> CommentPage:
    snippet = await get_visible_snippet(session, short_id, viewer_id)
    items, total = await comment_repository.list_for_snippet(
        session,
        snippet_id=snippet.id,
        offset=pagination.offset,
        limit=pagination.limit,
    )
    return CommentPage(items=items, total=total)

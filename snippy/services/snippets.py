"""Snippet lifecycle: create, read, update, delete, fork and listings."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from snippy.core.context import ServiceContext
from snippy.core.db_kernel import flush
from snippy.core.exceptions import NotOwnerError, SnippetNotFoundError, UserNotFoundError
from snippy.models.snippet import Snippet, SnippetFile
from snippy.models.user import User
from snippy.repositories import favorite_repository, snippet_repository, user_repository
from snippy.services import counters
from snippy.services.counters import SnippetCounter
from snippy.services.identifiers import new_short_id
from snippy.services.pagination import PaginationParams

logger = logging.getLogger(__name__)

# Fields a PATCH may touch; identity, ownership and counters are system-managed.
SNIPPET_PATCH_ALLOWLIST = frozenset(
    {"name", "description", "tags", "is_private", "external_resources"}
)
_NOT_NULL_FIELDS = frozenset({"name", "is_private", "external_resources"})


@dataclass(frozen=True)
class FileInput:
    """One file in a create/update payload."""

    file_type: str
    content: str


@dataclass(frozen=True)
class SnippetPage:
    """One page of snippets plus per-viewer favorite flags."""

    items: Sequence[Snippet]
    total: int
    favorited_ids: set[str]


def is_owner(snippet: Snippet, auth0_id: str | None) -> bool:
    return auth0_id is not None and snippet.auth0_id == auth0_id


async def get_visible_snippet(
    session: AsyncSession,
    short_id: str,
    viewer_id: str | None,
) -> Snippet:
    """Snippet by short ID; private snippets are hidden from everyone but the owner."""
    snippet = await snippet_repository.get_by_short_id(session, short_id)
    if snippet is None or (snippet.is_private and not is_owner(snippet, viewer_id)):
        raise SnippetNotFoundError(short_id)
    return snippet


async def get_owned_snippet(session: AsyncSession, short_id: str, actor_id: str) -> Snippet:
    snippet = await snippet_repository.get_by_short_id(session, short_id)
    if snippet is None:
        raise SnippetNotFoundError(short_id)
    if not is_owner(snippet, actor_id):
        raise NotOwnerError("snippet")
    return snippet


async def _require_user(session: AsyncSession, auth0_id: str) -> User:
    user = await user_repository.get_by_auth0_id(session, auth0_id)
    if user is None:
        raise UserNotFoundError(auth0_id)
    return user


async def _parent_id(session: AsyncSession, parent_short_id: str) -> str | None:
    result = await session.execute(
        select(Snippet.id).where(Snippet.short_id == parent_short_id)
    )
    return result.scalar_one_or_none()


def _build_files(files: Iterable[FileInput]) -> list[SnippetFile]:
    return [SnippetFile(file_type=item.file_type, content=item.content) for item in files]


async def _refresh_timestamps(session: AsyncSession, snippet: Snippet) -> None:
    await session.refresh(snippet, attribute_names=["created_at", "updated_at"])


async def create_snippet(
    session: AsyncSession,
    context: ServiceContext,
    *,
    auth0_id: str,
    name: str,
    description: str | None = None,
    tags: list[str] | None = None,
    is_private: bool = False,
    external_resources: list[str] | None = None,
    files: Iterable[FileInput] = (),
    short_id: str | None = None,
) -> Snippet:
    """Create a snippet and its files in the caller's transaction."""
    user = await _require_user(session, auth0_id)
    short_id = await new_short_id(session, context.policies, context.settings, short_id)

    snippet = Snippet(
        auth0_id=auth0_id,
        short_id=short_id,
        name=name,
        description=description,
        tags=tags,
        is_private=is_private,
        external_resources=list(external_resources or []),
        view_count=0,
        fork_count=0,
        favorite_count=0,
        comment_count=0,
    )
    snippet.user = user
    snippet.files = _build_files(files)
    session.add(snippet)
    await flush(session, operation_name="create_snippet")
    await _refresh_timestamps(session, snippet)

    logger.info("Snippet created", extra={"short_id": short_id, "auth0_id": auth0_id})
    return snippet


async def view_snippet(
    session: AsyncSession,
    short_id: str,
    viewer_id: str | None,
) -> Snippet:
    """Read a snippet; views by anyone but the owner bump ``view_count``."""
    snippet = await get_visible_snippet(session, short_id, viewer_id)
    if not is_owner(snippet, viewer_id):
        await counters.increment(session, snippet.id, SnippetCounter.VIEW)
        await session.refresh(snippet, attribute_names=[SnippetCounter.VIEW.value])
    return snippet


async def update_snippet(
    session: AsyncSession,
    short_id: str,
    *,
    actor_id: str,
    patch: dict[str, Any],
    files: Iterable[FileInput] | None = None,
) -> Snippet:
    """Apply an owner's patch; files are matched by type and upserted."""
    snippet = await get_owned_snippet(session, short_id, actor_id)

    for key, value in patch.items():
        if key not in SNIPPET_PATCH_ALLOWLIST:
            continue
        if value is None and key in _NOT_NULL_FIELDS:
            continue
        setattr(snippet, key, value)

    if files is not None:
        existing = {item.file_type: item for item in snippet.files}
        for item in files:
            current = existing.get(item.file_type)
            if current is None:
                snippet.files.append(SnippetFile(file_type=item.file_type, content=item.content))
            else:
                current.content = item.content

    await flush(session, operation_name="update_snippet")
    await _refresh_timestamps(session, snippet)
    return snippet


async def delete_snippet(session: AsyncSession, short_id: str, *, actor_id: str) -> None:
    """Delete an owner's snippet; a fork gives its parent's fork credit back."""
    snippet = await get_owned_snippet(session, short_id, actor_id)

    if snippet.parent_short_id:
        parent_id = await _parent_id(session, snippet.parent_short_id)
        if parent_id is not None:
            await counters.decrement(session, parent_id, SnippetCounter.FORK)

    await session.delete(snippet)
    await flush(session, operation_name="delete_snippet")
    logger.info("Snippet deleted", extra={"short_id": short_id, "auth0_id": actor_id})


async def fork_snippet(
    session: AsyncSession,
    context: ServiceContext,
    short_id: str,
    *,
    actor_id: str,
) -> Snippet:
    """Copy a visible snippet and its files for ``actor_id``."""
    original = await get_visible_snippet(session, short_id, actor_id)
    user = await _require_user(session, actor_id)
    fork_short_id = await new_short_id(session, context.policies, context.settings)

    fork = Snippet(
        auth0_id=actor_id,
        short_id=fork_short_id,
        parent_short_id=original.short_id,
        name=original.name,
        description=original.description,
        tags=list(original.tags) if original.tags is not None else None,
        is_private=original.is_private,
        external_resources=list(original.external_resources or []),
        view_count=0,
        fork_count=0,
        favorite_count=0,
        comment_count=0,
    )
    fork.user = user
    fork.files = _build_files(
        FileInput(file_type=item.file_type, content=item.content) for item in original.files
    )
    session.add(fork)
    await flush(session, operation_name="fork_snippet")
    await counters.increment(session, original.id, SnippetCounter.FORK)
    await _refresh_timestamps(session, fork)

    logger.info(
        "Snippet forked",
        extra={"short_id": fork_short_id, "parent_short_id": original.short_id},
    )
    return fork


async def _page(
    session: AsyncSession,
    items: Sequence[Snippet],
    total: int,
    viewer_id: str | None,
) -> SnippetPage:
    favorited: set[str] = set()
    if viewer_id is not None:
        favorited = await favorite_repository.favorited_snippet_ids(
            session,
            auth0_id=viewer_id,
            snippet_ids=[item.id for item in items],
        )
    return SnippetPage(items=items, total=total, favorited_ids=favorited)


async def list_public_snippets(
    session: AsyncSession,
    pagination: PaginationParams,
    *,
    viewer_id: str | None = None,
    search: str | None = None,
) -> SnippetPage:
    items, total = await snippet_repository.list_snippets(
        session,
        offset=pagination.offset,
        limit=pagination.limit,
        search=search,
    )
    return await _page(session, items, total, viewer_id)


async def list_my_snippets(
    session: AsyncSession,
    pagination: PaginationParams,
    *,
    actor_id: str,
) -> SnippetPage:
    items, total = await snippet_repository.list_snippets(
        session,
        offset=pagination.offset,
        limit=pagination.limit,
        auth0_id=actor_id,
        include_private=True,
    )
    return await _page(session, items, total, actor_id)


async def list_user_public_snippets(
    session: AsyncSession,
    pagination: PaginationParams,
    *,
    user_name: str,
    viewer_id: str | None = None,
) -> SnippetPage:
    user = await user_repository.get_by_user_name(session, user_name)
    if user is None:
        raise UserNotFoundError(user_name)
    items, total = await snippet_repository.list_snippets(
        session,
        offset=pagination.offset,
        limit=pagination.limit,
        auth0_id=user.auth0_id,
    )
    return await _page(session, items, total, viewer_id)

"""User accounts: first-login provisioning, profiles and deletion."""

from __future__ import annotations

import logging
import re

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from snippy.core.context import ServiceContext
from snippy.core.db_kernel import flush
from snippy.core.exceptions import ConflictError, InvalidUsernameError, UserNotFoundError
from snippy.models.comment import Comment
from snippy.models.favorite import Favorite
from snippy.models.snippet import Snippet
from snippy.models.user import User
from snippy.repositories import user_repository
from snippy.services import counters
from snippy.services.counters import SnippetCounter
from snippy.services.identifiers import new_username

logger = logging.getLogger(__name__)

USER_NAME_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]{2,63}$")


async def ensure_user(
    session: AsyncSession,
    context: ServiceContext,
    *,
    auth0_id: str,
    name: str | None = None,
    picture_url: str | None = None,
) -> tuple[User, bool]:
    """Return the caller's account, creating it on first login.

    The very first account becomes an admin. Returns ``(user, created)``.
    """
    user = await user_repository.get_by_auth0_id(session, auth0_id)
    if user is not None:
        if picture_url and picture_url != user.picture_url:
            user.picture_url = picture_url
            await flush(session, operation_name="refresh_user_picture")
            await session.refresh(user, attribute_names=["updated_at"])
        return user, False

    is_first_user = not await user_repository.any_users(session)
    user_name = await new_username(session, context.policies, context.settings, name)
    user = User(
        auth0_id=auth0_id,
        user_name=user_name,
        display_name=name,
        picture_url=picture_url,
        is_admin=is_first_user,
    )
    session.add(user)
    await flush(session, operation_name="create_user")
    await session.refresh(user, attribute_names=["created_at", "updated_at"])

    logger.info(
        "User created",
        extra={"auth0_id": auth0_id, "user_name": user_name, "is_admin": is_first_user},
    )
    return user, True


async def get_user(session: AsyncSession, auth0_id: str) -> User:
    user = await user_repository.get_by_auth0_id(session, auth0_id)
    if user is None:
        raise UserNotFoundError(auth0_id)
    return user


async def get_by_username(session: AsyncSession, user_name: str) -> User:
    user = await user_repository.get_by_user_name(session, user_name.lower())
    if user is None:
        raise UserNotFoundError(user_name)
    return user


def normalize_user_name(value: str, reserved: set[str] | frozenset[str]) -> str:
    """Lowercase and validate a user-chosen username."""
    candidate = value.strip().lower()
    if not USER_NAME_PATTERN.match(candidate) or candidate in reserved:
        raise InvalidUsernameError(value)
    return candidate


async def check_username_availability(
    session: AsyncSession,
    context: ServiceContext,
    user_name: str,
) -> tuple[str, bool]:
    """Return ``(normalized_name, available)``; reserved or malformed names raise."""
    reserved = frozenset(name.lower() for name in context.settings.reserved_usernames)
    candidate = normalize_user_name(user_name, reserved)
    available = not await user_repository.user_name_exists(session, candidate)
    return candidate, available


async def update_profile(
    session: AsyncSession,
    context: ServiceContext,
    *,
    auth0_id: str,
    user_name: str | None = None,
    display_name: str | None = None,
    bio: str | None = None,
) -> User:
    """Change the caller's username, display name or bio."""
    user = await get_user(session, auth0_id)

    if user_name is not None:
        reserved = frozenset(name.lower() for name in context.settings.reserved_usernames)
        candidate = normalize_user_name(user_name, reserved)
        if candidate != user.user_name:
            owner = await user_repository.get_by_user_name(session, candidate)
            if owner is not None and owner.auth0_id != auth0_id:
                raise ConflictError("Username already taken")
            user.user_name = candidate

    if display_name is not None:
        user.display_name = display_name
    if bio is not None:
        user.bio = bio

    await flush(session, operation_name="update_profile")
    await session.refresh(user, attribute_names=["updated_at"])
    return user


async def _release_foreign_counters(session: AsyncSession, auth0_id: str) -> None:
    """Give back the counts this user contributed to other people's snippets.

    Rows on the user's own snippets vanish with them, so only foreign
    snippets need their counters adjusted before the cascade runs.
    """
    favorites = await session.execute(
        select(Favorite.snippet_id)
        .join(Snippet, Snippet.id == Favorite.snippet_id)
        .where(Favorite.auth0_id == auth0_id, Snippet.auth0_id != auth0_id)
    )
    for snippet_id in favorites.scalars().all():
        await counters.decrement(session, snippet_id, SnippetCounter.FAVORITE)

    comments = await session.execute(
        select(Comment.snippet_id, func.count())
        .join(Snippet, Snippet.id == Comment.snippet_id)
        .where(Comment.auth0_id == auth0_id, Snippet.auth0_id != auth0_id)
        .group_by(Comment.snippet_id)
    )
    for snippet_id, amount in comments.all():
        await counters.decrement(session, snippet_id, SnippetCounter.COMMENT, amount)

    parent = Snippet.__table__.alias("parent")
    forks = await session.execute(
        select(parent.c.id, func.count())
        .select_from(Snippet)
        .join(parent, parent.c.short_id == Snippet.parent_short_id)
        .where(Snippet.auth0_id == auth0_id, parent.c.auth0_id != auth0_id)
        .group_by(parent.c.id)
    )
    for parent_id, amount in forks.all():
        await counters.decrement(session, parent_id, SnippetCounter.FORK, amount)


async def delete_user(session: AsyncSession, auth0_id: str) -> None:
    """Delete the account; snippets, favorites and comments cascade."""
    user = await get_user(session, auth0_id)
    await _release_foreign_counters(session, auth0_id)
    await session.delete(user)
    await flush(session, operation_name="delete_user")
    logger.info("User deleted", extra={"auth0_id": auth0_id})

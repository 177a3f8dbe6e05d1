"""Unique short-ID and username generation.

Both flows draw a random candidate, probe the database for it and treat a hit
as a collision that the field's retry policy regenerates. When the policy gives
up, a timestamp-based fallback is returned without probing it again; the
unique constraint remains the final guard at commit time.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Collection
from functools import partial

from sqlalchemy.ext.asyncio import AsyncSession

from snippy.config import Settings
from snippy.core.db_kernel import CollisionError
from snippy.core.ids import (
    derive_username_base,
    fallback_username,
    generate_emergency_short_id,
    generate_short_id_candidate,
    username_candidate,
)
from snippy.core.resilience import (
    ResiliencePolicies,
    RetryExhaustedError,
    RetryObserver,
    RetryPolicy,
    SleepFn,
)
from snippy.repositories.snippet_repository import short_id_exists
from snippy.repositories.user_repository import user_name_exists

logger = logging.getLogger(__name__)

SHORT_ID_FIELD = "short_id"
USER_NAME_FIELD = "user_name"

Probe = Callable[[str], Awaitable[bool]]


async def generate_unique_short_id(
    probe: Probe,
    policy: RetryPolicy,
    *,
    observer: RetryObserver | None = None,
    sleep: SleepFn = asyncio.sleep,
    candidate_factory: Callable[[], str] = generate_short_id_candidate,
    fallback_factory: Callable[[], str] = generate_emergency_short_id,
) -> str:
    """Return a short ID the probe reports as unused, or the emergency fallback."""

    async def _attempt() -> str:
        candidate = candidate_factory()
        if await probe(candidate):
            logger.debug("Short ID collision", extra={"candidate": candidate})
            raise CollisionError(SHORT_ID_FIELD, candidate)
        return candidate

    try:
        short_id = await policy.execute(_attempt, observer=observer, sleep=sleep)
    except RetryExhaustedError as exc:
        fallback = fallback_factory()
        logger.error(
            "Short ID attempts exhausted; using emergency short ID",
            extra={"attempts": exc.attempts, "short_id": fallback},
        )
        return fallback

    logger.debug("Generated unique short ID", extra={"short_id": short_id})
    return short_id


async def assign_short_id(
    current: str | None,
    probe: Probe,
    policy: RetryPolicy,
    **kwargs,
) -> str:
    """Keep an already assigned short ID, otherwise generate one."""
    if current:
        return current
    return await generate_unique_short_id(probe, policy, **kwargs)


async def generate_unique_username(
    display_name: str | None,
    probe: Probe,
    policy: RetryPolicy,
    *,
    observer: RetryObserver | None = None,
    sleep: SleepFn = asyncio.sleep,
    reserved: Collection[str] = (),
    base_factory: Callable[[str | None], str] = derive_username_base,
    candidate_factory: Callable[[str], str] = username_candidate,
    fallback_factory: Callable[[str], str] = fallback_username,
) -> str:
    """Return an unused username derived from ``display_name``, or the timestamp fallback."""
    base = base_factory(display_name)

    async def _attempt() -> str:
        candidate = candidate_factory(base)
        if candidate in reserved or await probe(candidate):
            logger.debug("Username collision", extra={"candidate": candidate})
            raise CollisionError(USER_NAME_FIELD, candidate)
        return candidate

    try:
        username = await policy.execute(_attempt, observer=observer, sleep=sleep)
    except RetryExhaustedError as exc:
        fallback = fallback_factory(base)
        logger.error(
            "Username attempts exhausted; using timestamp username",
            extra={"attempts": exc.attempts, "user_name": fallback},
        )
        return fallback

    logger.debug("Generated unique username", extra={"user_name": username})
    return username


async def new_short_id(
    session: AsyncSession,
    policies: ResiliencePolicies,
    settings: Settings,
    current: str | None = None,
) -> str:
    """Short ID for a snippet about to be inserted in ``session``.

    A ``current`` value (e.g. an imported snippet) is kept as-is.
    """
    return await assign_short_id(
        current,
        partial(short_id_exists, session),
        policies.short_id,
        observer=policies.observer,
        sleep=policies.sleep,
        candidate_factory=partial(
            generate_short_id_candidate,
            settings.short_id_length,
            settings.short_id_alphabet,
        ),
        fallback_factory=partial(
            generate_emergency_short_id,
            alphabet=settings.short_id_alphabet,
        ),
    )


async def new_username(
    session: AsyncSession,
    policies: ResiliencePolicies,
    settings: Settings,
    display_name: str | None,
) -> str:
    """Generate a username for a user about to be inserted in ``session``."""
    return await generate_unique_username(
        display_name,
        partial(user_name_exists, session),
        policies.username,
        observer=policies.observer,
        sleep=policies.sleep,
        reserved=frozenset(settings.reserved_usernames),
        base_factory=partial(
            derive_username_base,
            adjectives=settings.username_adjectives,
            nouns=settings.username_nouns,
        ),
    )

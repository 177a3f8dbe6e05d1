"""Async SQLAlchemy database setup."""

import logging

from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import TypeVar
from uuid import uuid4

from sqlalchemy import text
from sqlalchemy.exc import InterfaceError
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from snippy.config import settings
from snippy.core.db_kernel import DbKernelError, translate_error
from snippy.core.exceptions import SnippyError
from snippy.core.logging import correlation_scope, current_correlation_id

logger = logging.getLogger(__name__)

_ResultT = TypeVar("_ResultT")

# Create async engine
engine = create_async_engine(
    settings.database_url,
    pool_size=settings.database_pool_size,
    max_overflow=settings.database_max_overflow,
    echo=settings.database_echo,
    pool_pre_ping=True,
    pool_recycle=300,  # Recycle connections every 5 min to avoid server-side timeouts
)

# Session factory
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


def _has_pending_state(session: AsyncSession) -> bool:
    return bool(session.new or session.dirty or session.deleted)


async def _commit(session: AsyncSession, *, context: str) -> None:
    try:
        await session.commit()
    except Exception as exc:
        translated = translate_error(exc)
        logger.warning(
            "Transaction commit failed",
            extra={
                "context": context,
                "failure_class": type(translated).__name__,
                "failure_kind": translated.kind.value,
            },
        )
        raise translated from exc


async def _finalize_session(
    session: AsyncSession,
    *,
    commit_on_exit: bool,
    context: str,
) -> None:
    if commit_on_exit:
        await _commit(session, context=context)
        return

    if _has_pending_state(session):
        raise RuntimeError(
            "Session has pending ORM changes but commit_on_exit=False. "
            "Commit explicitly or use commit_on_exit=True."
        )

    if session.in_transaction():
        await session.rollback()


async def _rollback_quietly(session: AsyncSession) -> None:
    try:
        await session.rollback()
    except Exception:
        logger.warning("Rollback also failed (connection likely closed)")


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session for dependency injection.

    One request is one transaction: counters and child rows written through
    this session commit or roll back together.
    """
    async with async_session_maker() as session:
        try:
            yield session
            await _finalize_session(session, commit_on_exit=True, context="get_session")
        except InterfaceError as e:
            if not session.in_transaction() and not _has_pending_state(session):
                # Connection closed after work already committed/rolled back.
                logger.debug("Session connection already closed during cleanup, ignoring")
                return
            logger.warning(f"Database interface error with active transaction: {repr(e)}, rolling back")
            await _rollback_quietly(session)
            raise
        except Exception as e:
            logger.warning(f"Database session error: {repr(e)}, rolling back")
            await _rollback_quietly(session)
            raise e


@asynccontextmanager
async def get_session_context(
    *,
    commit_on_exit: bool = True,
) -> AsyncGenerator[AsyncSession, None]:
    """Get database session as context manager for non-DI usage."""
    async with async_session_maker() as session:
        try:
            yield session
            await _finalize_session(
                session,
                commit_on_exit=commit_on_exit,
                context="get_session_context",
            )
        except Exception as e:
            logger.warning(f"Database session error: {repr(e)}, rolling back")
            await _rollback_quietly(session)
            raise e


async def run_in_transaction(
    fn: Callable[[AsyncSession], Awaitable[_ResultT]],
    *,
    operation_name: str,
) -> _ResultT:
    """Run ``fn(session)`` inside one short-lived transaction.

    Failures are rolled back and re-raised as ``DbKernelError`` subclasses.
    """
    correlation_id = current_correlation_id() or uuid4().hex[:12]
    log_context = {"operation": operation_name}

    with correlation_scope(correlation_id):
        logger.debug("Transaction started", extra=log_context)
        async with async_session_maker() as session:
            try:
                result = await fn(session)
                await _commit(session, context=operation_name)
            except (DbKernelError, SnippyError):
                await _rollback_quietly(session)
                logger.info("Transaction rolled back", extra=log_context)
                raise
            except Exception as exc:
                await _rollback_quietly(session)
                logger.info("Transaction rolled back", extra=log_context)
                raise translate_error(exc) from exc

        logger.debug("Transaction committed", extra=log_context)
    return result


async def ping_db() -> None:
    """Run a trivial statement to prove the database is reachable."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def init_db() -> None:
    """Initialize database (create tables if needed)."""
    logger.info("Initializing database tables")
    from snippy.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections."""
    logger.info("Closing database connections")
    await engine.dispose()

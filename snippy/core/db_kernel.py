"""Persistence boundary: classify database failures into tagged errors."""

from __future__ import annotations

import logging
from enum import Enum

from sqlalchemy.exc import (
    DataError,
    DBAPIError,
    IntegrityError,
    InterfaceError,
    OperationalError,
)
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION_SQLSTATE = "23505"

# Named unique constraints (see snippy.models) mapped to the column they guard.
UNIQUE_CONSTRAINT_FIELDS: dict[str, str] = {
    "uq_snippets_short_id": "short_id",
    "uq_users_user_name": "user_name",
    "uq_favorites_user_snippet": "snippet_id",
}

_CONNECTION_ERROR_MARKERS = (
    "connection is closed",
    "underlying connection is closed",
    "server closed the connection unexpectedly",
    "connection was closed",
    "connection refused",
    "could not connect",
)


class ErrorKind(str, Enum):
    """Discriminant for classified persistence failures."""

    COLLISION = "collision"
    CONNECTIVITY = "connectivity"
    VALIDATION = "validation"
    UNKNOWN = "unknown"


class DbKernelError(RuntimeError):
    """Base error for classified DB failures."""

    kind: ErrorKind = ErrorKind.UNKNOWN


class CollisionError(DbKernelError):
    """A candidate value already exists for a unique field."""

    kind = ErrorKind.COLLISION

    def __init__(self, field: str, value: str | None = None, message: str | None = None) -> None:
        self.field = field
        self.value = value
        super().__init__(message or f"Collision on {field}: {value!r}")


class ConnectivityError(DbKernelError):
    """The database could not be reached or the connection dropped."""

    kind = ErrorKind.CONNECTIVITY


class DataValidationError(DbKernelError):
    """Rejected by a non-unique constraint or a type check."""

    kind = ErrorKind.VALIDATION


class UnknownDbError(DbKernelError):
    """Anything the boundary cannot classify."""

    kind = ErrorKind.UNKNOWN


def is_transient_connection_error(exc: BaseException) -> bool:
    """Return True when an exception likely came from a dropped or refused DB connection."""
    if isinstance(exc, ConnectivityError):
        return True
    if isinstance(exc, (InterfaceError, OperationalError, ConnectionError)):
        return True
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True

    lowered = str(exc).lower()
    return any(marker in lowered for marker in _CONNECTION_ERROR_MARKERS)


def is_collision_on(field: str):
    """Build a classifier matching collisions on one unique field."""

    def _matches(exc: BaseException) -> bool:
        return isinstance(exc, CollisionError) and exc.field == field

    _matches.__name__ = f"is_collision_on_{field}"
    return _matches


def _driver_error(exc: DBAPIError) -> BaseException | None:
    orig = exc.orig
    if orig is None:
        return None
    # asyncpg errors are wrapped by the SQLAlchemy adapter
    return orig.__cause__ or orig


def _unique_violation_field(exc: IntegrityError) -> str | None:
    driver_error = _driver_error(exc)
    sqlstate = getattr(exc.orig, "sqlstate", None) or getattr(driver_error, "sqlstate", None)
    constraint = getattr(driver_error, "constraint_name", None)

    if constraint in UNIQUE_CONSTRAINT_FIELDS:
        return UNIQUE_CONSTRAINT_FIELDS[constraint]

    lowered = str(exc.orig).lower()
    for name, field in UNIQUE_CONSTRAINT_FIELDS.items():
        if name in lowered:
            return field

    if sqlstate == UNIQUE_VIOLATION_SQLSTATE or "unique" in lowered or "duplicate" in lowered:
        return constraint or "unknown"
    return None


def translate_error(exc: BaseException) -> DbKernelError:
    """Classify a raw driver/ORM exception into the tagged hierarchy."""
    if isinstance(exc, DbKernelError):
        return exc
    if isinstance(exc, IntegrityError):
        field = _unique_violation_field(exc)
        if field is not None:
            return CollisionError(field, message=f"Unique constraint violated on {field}")
        return DataValidationError(str(exc.orig))
    if is_transient_connection_error(exc):
        return ConnectivityError(str(exc))
    if isinstance(exc, DataError):
        return DataValidationError(str(exc.orig))
    return UnknownDbError(str(exc))


async def flush(session: AsyncSession, *, operation_name: str) -> None:
    """Flush pending ORM state, translating failures at the boundary."""
    try:
        await session.flush()
    except Exception as exc:
        translated = translate_error(exc)
        logger.warning(
            "DB flush failed",
            extra={
                "operation": operation_name,
                "failure_class": type(translated).__name__,
                "failure_kind": translated.kind.value,
            },
        )
        raise translated from exc

"""Base model and mixins for SQLAlchemy models."""

from datetime import datetime

from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import String, TypeDecorator

from snippy.core.ids import generate_cuid


class StringUUID(TypeDecorator):
    """String identifier type for CUID values."""

    impl = String(32)
    cache_ok = True

    def process_result_value(self, value, dialect):
        if value is not None:
            return str(value)
        return value

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return value


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class UUIDMixin:
    """Mixin that adds a CUID-style string primary key."""

    id: Mapped[str] = mapped_column(
        StringUUID(),
        primary_key=True,
        default=generate_cuid,
    )


class TimestampMixin:
    """Mixin that adds created_at and updated_at timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

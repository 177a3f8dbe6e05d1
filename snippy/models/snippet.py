"""Snippet and snippet file models."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from snippy.models.base import Base, StringUUID, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from snippy.models.comment import Comment
    from snippy.models.favorite import Favorite
    from snippy.models.user import User

SHORT_ID_MAX_LENGTH = 16


class FileType(str, Enum):
    """Supported snippet file types."""

    HTML = "html"
    CSS = "css"
    JS = "js"


class Snippet(Base, UUIDMixin, TimestampMixin):
    """A shareable HTML/CSS/JS snippet.

    The four ``*_count`` columns are denormalized counters kept in step with
    their child rows by ``snippy.services.counters``.
    """

    __tablename__ = "snippets"
    __table_args__ = (
        UniqueConstraint("short_id", name="uq_snippets_short_id"),
        Index("ix_snippets_auth0_private", "auth0_id", "is_private"),
        Index("ix_snippets_private_created", "is_private", "created_at"),
    )

    auth0_id: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("users.auth0_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    short_id: Mapped[str] = mapped_column(String(SHORT_ID_MAX_LENGTH), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    tags: Mapped[list | None] = mapped_column(JSONB, nullable=True)
    is_private: Mapped[bool] = mapped_column(default=False, nullable=False)
    # Forks point at the parent's short ID; no FK so parents can be deleted.
    parent_short_id: Mapped[str | None] = mapped_column(
        String(SHORT_ID_MAX_LENGTH),
        nullable=True,
        index=True,
    )
    view_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    fork_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    favorite_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        server_default="0",
        nullable=False,
    )
    comment_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        server_default="0",
        nullable=False,
    )
    external_resources: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)

    # Relationships
    user: Mapped[User] = relationship("User", back_populates="snippets")
    files: Mapped[list[SnippetFile]] = relationship(
        "SnippetFile",
        back_populates="snippet",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="SnippetFile.file_type",
    )
    favorites: Mapped[list[Favorite]] = relationship(
        "Favorite",
        back_populates="snippet",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    comments: Mapped[list[Comment]] = relationship(
        "Comment",
        back_populates="snippet",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Snippet {self.short_id} name={self.name}>"


class SnippetFile(Base, UUIDMixin, TimestampMixin):
    """One source file (html, css or js) of a snippet."""

    __tablename__ = "snippet_files"

    snippet_id: Mapped[str] = mapped_column(
        StringUUID(),
        ForeignKey("snippets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    file_type: Mapped[str] = mapped_column(String(10), nullable=False)
    content: Mapped[str] = mapped_column(Text, default="", nullable=False)

    snippet: Mapped[Snippet] = relationship("Snippet", back_populates="files")

    def __repr__(self) -> str:
        return f"<SnippetFile snippet={self.snippet_id} type={self.file_type}>"

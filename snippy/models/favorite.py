"""Favorite model: one row per (user, snippet) pair."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from snippy.models.base import Base, StringUUID, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from snippy.models.snippet import Snippet
    from snippy.models.user import User


class Favorite(Base, UUIDMixin, TimestampMixin):
    """A user's favorite mark on a snippet."""

    __tablename__ = "favorites"
    __table_args__ = (
        UniqueConstraint("auth0_id", "snippet_id", name="uq_favorites_user_snippet"),
    )

    auth0_id: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("users.auth0_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    snippet_id: Mapped[str] = mapped_column(
        StringUUID(),
        ForeignKey("snippets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    user: Mapped[User] = relationship("User", back_populates="favorites")
    snippet: Mapped[Snippet] = relationship("Snippet", back_populates="favorites")

    def __repr__(self) -> str:
        return f"<Favorite user={self.auth0_id} snippet={self.snippet_id}>"

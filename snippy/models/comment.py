"""Comment model."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from snippy.models.base import Base, StringUUID, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from snippy.models.snippet import Snippet
    from snippy.models.user import User


class Comment(Base, UUIDMixin, TimestampMixin):
    """A user's comment on a snippet."""

    __tablename__ = "comments"

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
    content: Mapped[str] = mapped_column(Text, nullable=False)

    user: Mapped[User] = relationship("User", back_populates="comments")
    snippet: Mapped[Snippet] = relationship("Snippet", back_populates="comments")

    def __repr__(self) -> str:
        return f"<Comment {self.id} snippet={self.snippet_id}>"

"""User model keyed by the Auth0 subject."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from snippy.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from snippy.models.comment import Comment
    from snippy.models.favorite import Favorite
    from snippy.models.snippet import Snippet


class User(Base, TimestampMixin):
    """Account created on first login through Auth0."""

    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("user_name", name="uq_users_user_name"),)

    auth0_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    user_name: Mapped[str] = mapped_column(String(64), nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    picture_url: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    is_admin: Mapped[bool] = mapped_column(default=False, nullable=False)

    # Relationships
    snippets: Mapped[list[Snippet]] = relationship(
        "Snippet",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    favorites: Mapped[list[Favorite]] = relationship(
        "Favorite",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    comments: Mapped[list[Comment]] = relationship(
        "Comment",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<User {self.user_name}>"

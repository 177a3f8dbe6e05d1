"""initial snippy schema: users, snippets, files, favorites, comments

Revision ID: 3f9a1c2b7d40
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f9a1c2b7d40"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def _counter(name: str) -> sa.Column:
    return sa.Column(name, sa.Integer(), server_default=sa.text("0"), nullable=False)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("auth0_id", sa.String(length=255), primary_key=True),
        sa.Column("user_name", sa.String(length=64), nullable=False),
        sa.Column("display_name", sa.String(length=255), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("picture_url", sa.String(length=2000), nullable=True),
        sa.Column(
            "is_admin",
            sa.Boolean(),
            server_default=sa.text("false"),
            nullable=False,
        ),
        *_timestamps(),
        sa.UniqueConstraint("user_name", name="uq_users_user_name"),
    )

    op.create_table(
        "snippets",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column(
            "auth0_id",
            sa.String(length=255),
            sa.ForeignKey("users.auth0_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("short_id", sa.String(length=16), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(length=1000), nullable=True),
        sa.Column("tags", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column(
            "is_private",
            sa.Boolean(),
            server_default=sa.text("false"),
            nullable=False,
        ),
        sa.Column("parent_short_id", sa.String(length=16), nullable=True),
        _counter("view_count"),
        _counter("fork_count"),
        _counter("favorite_count"),
        _counter("comment_count"),
        sa.Column(
            "external_resources",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'[]'::jsonb"),
            nullable=False,
        ),
        *_timestamps(),
        sa.UniqueConstraint("short_id", name="uq_snippets_short_id"),
    )
    op.create_index("ix_snippets_auth0_id", "snippets", ["auth0_id"])
    op.create_index("ix_snippets_name", "snippets", ["name"])
    op.create_index("ix_snippets_parent_short_id", "snippets", ["parent_short_id"])
    op.create_index("ix_snippets_auth0_private", "snippets", ["auth0_id", "is_private"])
    op.create_index("ix_snippets_private_created", "snippets", ["is_private", "created_at"])

    op.create_table(
        "snippet_files",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column(
            "snippet_id",
            sa.String(length=32),
            sa.ForeignKey("snippets.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("file_type", sa.String(length=10), nullable=False),
        sa.Column("content", sa.Text(), server_default=sa.text("''"), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_snippet_files_snippet_id", "snippet_files", ["snippet_id"])

    op.create_table(
        "favorites",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column(
            "auth0_id",
            sa.String(length=255),
            sa.ForeignKey("users.auth0_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "snippet_id",
            sa.String(length=32),
            sa.ForeignKey("snippets.id", ondelete="CASCADE"),
            nullable=False,
        ),
        *_timestamps(),
        sa.UniqueConstraint("auth0_id", "snippet_id", name="uq_favorites_user_snippet"),
    )
    op.create_index("ix_favorites_auth0_id", "favorites", ["auth0_id"])
    op.create_index("ix_favorites_snippet_id", "favorites", ["snippet_id"])

    op.create_table(
        "comments",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column(
            "auth0_id",
            sa.String(length=255),
            sa.ForeignKey("users.auth0_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "snippet_id",
            sa.String(length=32),
            sa.ForeignKey("snippets.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("content", sa.Text(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_comments_auth0_id", "comments", ["auth0_id"])
    op.create_index("ix_comments_snippet_id", "comments", ["snippet_id"])


def downgrade() -> None:
    op.drop_index("ix_comments_snippet_id", table_name="comments")
    op.drop_index("ix_comments_auth0_id", table_name="comments")
    op.drop_table("comments")

    op.drop_index("ix_favorites_snippet_id", table_name="favorites")
    op.drop_index("ix_favorites_auth0_id", table_name="favorites")
    op.drop_table("favorites")

    op.drop_index("ix_snippet_files_snippet_id", table_name="snippet_files")
    op.drop_table("snippet_files")

    op.drop_index("ix_snippets_private_created", table_name="snippets")
    op.drop_index("ix_snippets_auth0_private", table_name="snippets")
    op.drop_index("ix_snippets_parent_short_id", table_name="snippets")
    op.drop_index("ix_snippets_name", table_name="snippets")
    op.drop_index("ix_snippets_auth0_id", table_name="snippets")
    op.drop_table("snippets")

    op.drop_table("users")

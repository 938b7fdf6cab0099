"""Initial schema: posts, categories, and the singleton state rows.

Revision ID: 001
Revises: None
Create Date: 2026-02-22
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: str | None = None
branch_labels: str | None = None
depends_on: str | None = None


def upgrade() -> None:
    op.create_table(
        "categories",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.Text, nullable=False, unique=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("emoji", sa.Text, nullable=True),
        sa.Column("created_at", sa.Text, nullable=False),
    )

    op.create_table(
        "posts",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("text", sa.Text, nullable=False, server_default=""),
        sa.Column("author_id", sa.Text, nullable=False, server_default=""),
        sa.Column("author_name", sa.Text, nullable=False, server_default=""),
        sa.Column("author_handle", sa.Text, nullable=False, server_default=""),
        sa.Column("author_avatar_url", sa.Text, nullable=True),
        sa.Column("created_at", sa.Text, nullable=False, server_default=""),
        sa.Column("bookmarked_at", sa.Text, nullable=True),
        sa.Column("fetched_at", sa.Text, nullable=False, server_default=""),
        sa.Column("reply_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("retweet_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("like_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("in_reply_to_id", sa.Text, nullable=True),
        sa.Column("conversation_id", sa.Text, nullable=True),
        sa.Column("is_thread", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("media_json", sa.Text, nullable=False, server_default="[]"),
        sa.Column("quoted_post_id", sa.Text, nullable=True),
        sa.Column("url", sa.Text, nullable=False, server_default=""),
        sa.Column("raw_json", sa.Text, nullable=True),
        sa.Column("category_id", sa.Integer, sa.ForeignKey("categories.id"), nullable=True),
        sa.Column("classified_at", sa.Text, nullable=True),
    )
    op.create_index("idx_posts_created_at", "posts", ["created_at"])
    op.create_index(
        "idx_posts_conversation_id",
        "posts",
        ["conversation_id"],
        sqlite_where=sa.text("conversation_id IS NOT NULL"),
    )
    op.create_index("idx_posts_category_id", "posts", ["category_id"])
    op.create_index("idx_posts_author_handle", "posts", ["author_handle"])

    sync_state = op.create_table(
        "sync_state",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=False),
        sa.Column("last_sync_at", sa.Text, nullable=True),
        sa.Column("last_cursor", sa.Text, nullable=True),
        sa.Column("total_synced", sa.Integer, nullable=False, server_default="0"),
        sa.Column("status", sa.Text, nullable=False, server_default="idle"),
        sa.Column("error_message", sa.Text, nullable=True),
    )

    classification_state = op.create_table(
        "classification_state",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=False),
        sa.Column("status", sa.Text, nullable=False, server_default="idle"),
        sa.Column("phase", sa.Text, nullable=True),
        sa.Column("progress_current", sa.Integer, nullable=False, server_default="0"),
        sa.Column("progress_total", sa.Integer, nullable=False, server_default="0"),
        sa.Column("error_message", sa.Text, nullable=True),
        sa.Column("started_at", sa.Text, nullable=True),
        sa.Column("completed_at", sa.Text, nullable=True),
    )

    op.bulk_insert(sync_state, [{"id": 1, "status": "idle"}])
    op.bulk_insert(classification_state, [{"id": 1, "status": "idle"}])


def downgrade() -> None:
    op.drop_table("classification_state")
    op.drop_table("sync_state")
    op.drop_index("idx_posts_author_handle", table_name="posts")
    op.drop_index("idx_posts_category_id", table_name="posts")
    op.drop_index("idx_posts_conversation_id", table_name="posts")
    op.drop_index("idx_posts_created_at", table_name="posts")
    op.drop_table("posts")
    op.drop_table("categories")

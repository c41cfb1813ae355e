"""Initial V~ schema

Revision ID: 5c2e9a7d1b40
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5c2e9a7d1b40"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _created_at(name: str = "created_at") -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.func.now())


def _fk(column: str, target: str, *, nullable: bool = False, ondelete: str = "CASCADE") -> sa.Column:
    return sa.Column(
        column, sa.Integer(), sa.ForeignKey(target, ondelete=ondelete), nullable=nullable
    )


def upgrade() -> None:
    """Create every table, parents before children."""
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("username", sa.String(50), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("bio", sa.Text(), nullable=True),
        _created_at(),
    )

    op.create_table(
        "games",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("api_id", sa.String(50), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("image_url", sa.Text(), nullable=True),
        _created_at(),
    )

    op.create_table(
        "art",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("image_url", sa.Text(), nullable=False),
        _fk("game_id", "games.id"),
        _fk("author_id", "users.id"),
        sa.Column("tags", sa.Text(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_art_created_at", "art", ["created_at"])
    op.create_index("ix_art_author_created", "art", ["author_id", "created_at"])

    op.create_table(
        "library_entries",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _fk("user_id", "users.id"),
        _fk("game_id", "games.id"),
        sa.Column("status", sa.String(20), nullable=False, server_default="playing"),
        sa.Column("rating", sa.Integer(), nullable=True),
        sa.Column("review_text", sa.Text(), nullable=True),
        _fk("favorited_art_id", "art.id", nullable=True, ondelete="SET NULL"),
        _created_at(),
        _created_at("updated_at"),
        sa.UniqueConstraint("user_id", "game_id", name="uq_library_user_game"),
        sa.CheckConstraint(
            "rating IS NULL OR (rating >= 1 AND rating <= 5)",
            name="ck_library_rating_range",
        ),
    )
    op.create_index("ix_library_game_rating", "library_entries", ["game_id", "rating"])

    op.create_table(
        "art_likes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _fk("user_id", "users.id"),
        _fk("art_id", "art.id"),
        _created_at(),
        sa.UniqueConstraint("user_id", "art_id", name="uq_art_likes_user_art"),
    )
    op.create_index("ix_art_likes_art", "art_likes", ["art_id"])

    op.create_table(
        "comments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("content", sa.Text(), nullable=False),
        _fk("art_id", "art.id"),
        _fk("author_id", "users.id"),
        _created_at(),
    )
    op.create_index("ix_comments_art_created", "comments", ["art_id", "created_at"])

    op.create_table(
        "follows",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _fk("follower_id", "users.id"),
        _fk("following_id", "users.id"),
        _created_at(),
        sa.UniqueConstraint("follower_id", "following_id", name="uq_follows_pair"),
        sa.CheckConstraint("follower_id <> following_id", name="ck_follows_no_self"),
    )
    op.create_index("ix_follows_following", "follows", ["following_id"])

    op.create_table(
        "conversations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _fk("user1_id", "users.id"),
        _fk("user2_id", "users.id"),
        _created_at(),
        sa.UniqueConstraint("user1_id", "user2_id", name="uq_conversations_pair"),
        sa.CheckConstraint("user1_id < user2_id", name="ck_conversations_ordered"),
    )

    op.create_table(
        "messages",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _fk("conversation_id", "conversations.id"),
        _fk("sender_id", "users.id"),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
        sa.CheckConstraint(
            "content IS NOT NULL OR image_url IS NOT NULL",
            name="ck_messages_has_body",
        ),
    )
    op.create_index(
        "ix_messages_conversation_created", "messages", ["conversation_id", "created_at"]
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _fk("user_id", "users.id"),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("link", sa.String(255), nullable=True),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
    )
    op.create_index("ix_notifications_user_created", "notifications", ["user_id", "created_at"])

    op.create_table(
        "activities",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _fk("user_id", "users.id"),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("link", sa.String(255), nullable=True),
        sa.Column("metadata", postgresql.JSONB(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_activities_user_created", "activities", ["user_id", "created_at"])

    op.create_table(
        "game_collections",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _fk("user_id", "users.id"),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
    )

    op.create_table(
        "collection_games",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _fk("collection_id", "game_collections.id"),
        _fk("game_id", "games.id"),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        _created_at("added_at"),
        sa.UniqueConstraint("collection_id", "game_id", name="uq_collection_games_pair"),
    )


def downgrade() -> None:
    """Drop everything, children before parents."""
    for table in (
        "collection_games",
        "game_collections",
        "activities",
        "notifications",
        "messages",
        "conversations",
        "follows",
        "comments",
        "art_likes",
        "library_entries",
        "art",
        "games",
        "users",
    ):
        op.drop_table(table)

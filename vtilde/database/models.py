"""
vtilde.database.models — SQLAlchemy 2.0 Data Models
====================================================

Tables:
- users              — Accounts (email + username, hashed password)
- games              — Lazily-created catalogue rows keyed by GiantBomb id
- library_entries    — Per-user game status, rating and review
- art                — Fan art pieces attached to a game
- art_likes          — At most one like per (user, art)
- comments           — Comments on art
- follows            — Directed follow edges
- conversations      — Unordered participant pairs, stored normalized
- messages           — Direct messages inside a conversation
- notifications      — Per-user inbox (like / comment / follow)
- activities         — Append-only actor journal feeding the activity feed
- game_collections   — Named, optionally public, lists of games
- collection_games   — Ordered membership rows
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all V~ ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class LibraryStatus(enum.StrEnum):
    """Where a game sits in a user's library."""
    PLAYING = "playing"
    COMPLETED = "completed"
    BACKLOG = "backlog"
    DROPPED = "dropped"


class NotificationType(enum.StrEnum):
    """What triggered an inbox entry."""
    LIKE = "like"
    COMMENT = "comment"
    FOLLOW = "follow"


class ActivityType(enum.StrEnum):
    """Content-producing actions that show up in followers' feeds."""
    POST = "post"
    COMMENT = "comment"
    REVIEW = "review"
    COLLECTION = "collection"


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    username: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    bio: Mapped[str | None] = mapped_column(Text, default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    library: Mapped[list[LibraryEntry]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )
    art: Mapped[list[Art]] = relationship(
        back_populates="author", cascade="all, delete-orphan"
    )
    collections: Mapped[list[GameCollection]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r}>"


# ---------------------------------------------------------------------------
# Games — upserted by GiantBomb id
# ---------------------------------------------------------------------------
class Game(Base):
    __tablename__ = "games"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    api_id: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    image_url: Mapped[str | None] = mapped_column(Text, default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    art: Mapped[list[Art]] = relationship(back_populates="game")

    def __repr__(self) -> str:
        return f"<Game id={self.id} api_id={self.api_id!r} name={self.name!r}>"


# ---------------------------------------------------------------------------
# LibraryEntry — one row per (user, game)
# ---------------------------------------------------------------------------
class LibraryEntry(Base):
    __tablename__ = "library_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    game_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("games.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=LibraryStatus.PLAYING.value
    )
    rating: Mapped[int | None] = mapped_column(Integer, default=None)
    review_text: Mapped[str | None] = mapped_column(Text, default=None)
    favorited_art_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("art.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    user: Mapped[User] = relationship(back_populates="library")
    game: Mapped[Game] = relationship()
    favorited_art: Mapped[Art | None] = relationship(foreign_keys=[favorited_art_id])

    __table_args__ = (
        UniqueConstraint("user_id", "game_id", name="uq_library_user_game"),
        CheckConstraint(
            "rating IS NULL OR (rating >= 1 AND rating <= 5)",
            name="ck_library_rating_range",
        ),
        Index("ix_library_game_rating", "game_id", "rating"),
    )

    def __repr__(self) -> str:
        return (
            f"<LibraryEntry user={self.user_id} game={self.game_id} "
            f"status={self.status!r} rating={self.rating}>"
        )


# ---------------------------------------------------------------------------
# Art — fan art attached to a game
# ---------------------------------------------------------------------------
class Art(Base):
    __tablename__ = "art"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    image_url: Mapped[str] = mapped_column(Text, nullable=False)
    game_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("games.id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    tags: Mapped[str | None] = mapped_column(Text, default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    author: Mapped[User] = relationship(back_populates="art")
    game: Mapped[Game] = relationship(back_populates="art")
    likes: Mapped[list[ArtLike]] = relationship(
        back_populates="art", cascade="all, delete-orphan"
    )
    comments: Mapped[list[Comment]] = relationship(
        back_populates="art", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_art_created_at", "created_at"),
        Index("ix_art_author_created", "author_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Art id={self.id} author={self.author_id} game={self.game_id}>"


# ---------------------------------------------------------------------------
# ArtLike — at most one per (user, art)
# ---------------------------------------------------------------------------
class ArtLike(Base):
    __tablename__ = "art_likes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    art_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("art.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    art: Mapped[Art] = relationship(back_populates="likes")

    __table_args__ = (
        UniqueConstraint("user_id", "art_id", name="uq_art_likes_user_art"),
        Index("ix_art_likes_art", "art_id"),
    )


# ---------------------------------------------------------------------------
# Comment
# ---------------------------------------------------------------------------
class Comment(Base):
    __tablename__ = "comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    art_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("art.id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    art: Mapped[Art] = relationship(back_populates="comments")
    author: Mapped[User] = relationship()

    __table_args__ = (
        Index("ix_comments_art_created", "art_id", "created_at"),
    )


# ---------------------------------------------------------------------------
# Follow — directed edge, no self-loops
# ---------------------------------------------------------------------------
class Follow(Base):
    __tablename__ = "follows"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    follower_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    following_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    follower: Mapped[User] = relationship(foreign_keys=[follower_id])
    following: Mapped[User] = relationship(foreign_keys=[following_id])

    __table_args__ = (
        UniqueConstraint("follower_id", "following_id", name="uq_follows_pair"),
        CheckConstraint("follower_id <> following_id", name="ck_follows_no_self"),
        Index("ix_follows_following", "following_id"),
    )

    def __repr__(self) -> str:
        return f"<Follow {self.follower_id} → {self.following_id}>"


# ---------------------------------------------------------------------------
# Conversation — user1_id < user2_id so the pair is unordered-unique
# ---------------------------------------------------------------------------
class Conversation(Base):
    __tablename__ = "conversations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user1_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    user2_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    user1: Mapped[User] = relationship(foreign_keys=[user1_id])
    user2: Mapped[User] = relationship(foreign_keys=[user2_id])
    messages: Mapped[list[Message]] = relationship(
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="Message.id",
    )

    __table_args__ = (
        UniqueConstraint("user1_id", "user2_id", name="uq_conversations_pair"),
        CheckConstraint("user1_id < user2_id", name="ck_conversations_ordered"),
    )

    def other_participant_id(self, user_id: int) -> int:
        return self.user2_id if user_id == self.user1_id else self.user1_id

    def __repr__(self) -> str:
        return f"<Conversation id={self.id} {self.user1_id}↔{self.user2_id}>"


# ---------------------------------------------------------------------------
# Message
# ---------------------------------------------------------------------------
class Message(Base):
    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    conversation_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False
    )
    sender_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    content: Mapped[str | None] = mapped_column(Text, default=None)
    image_url: Mapped[str | None] = mapped_column(Text, default=None)
    read: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    conversation: Mapped[Conversation] = relationship(back_populates="messages")
    sender: Mapped[User] = relationship()

    __table_args__ = (
        CheckConstraint(
            "content IS NOT NULL OR image_url IS NOT NULL",
            name="ck_messages_has_body",
        ),
        Index("ix_messages_conversation_created", "conversation_id", "created_at"),
    )


# ---------------------------------------------------------------------------
# Notification — per-user inbox
# ---------------------------------------------------------------------------
class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    link: Mapped[str | None] = mapped_column(String(255), default=None)
    read: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_notifications_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Notification id={self.id} user={self.user_id} type={self.type!r}>"


# ---------------------------------------------------------------------------
# Activity — append-only actor journal
# ---------------------------------------------------------------------------
class Activity(Base):
    __tablename__ = "activities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    link: Mapped[str | None] = mapped_column(String(255), default=None)
    metadata_: Mapped[dict | None] = mapped_column("metadata", JSONB, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    user: Mapped[User] = relationship()

    __table_args__ = (
        Index("ix_activities_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Activity id={self.id} user={self.user_id} type={self.type!r}>"


# ---------------------------------------------------------------------------
# GameCollection + CollectionGame
# ---------------------------------------------------------------------------
class GameCollection(Base):
    __tablename__ = "game_collections"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    is_public: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    user: Mapped[User] = relationship(back_populates="collections")
    entries: Mapped[list[CollectionGame]] = relationship(
        back_populates="collection",
        cascade="all, delete-orphan",
        order_by="CollectionGame.position",
    )

    def __repr__(self) -> str:
        return f"<GameCollection id={self.id} name={self.name!r} public={self.is_public}>"


class CollectionGame(Base):
    __tablename__ = "collection_games"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    collection_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("game_collections.id", ondelete="CASCADE"), nullable=False
    )
    game_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("games.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, default=0)
    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    collection: Mapped[GameCollection] = relationship(back_populates="entries")
    game: Mapped[Game] = relationship()

    __table_args__ = (
        UniqueConstraint("collection_id", "game_id", name="uq_collection_games_pair"),
    )

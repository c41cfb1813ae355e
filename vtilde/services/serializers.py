"""
vtilde.services.serializers — ORM row → wire dict
==================================================

Every response body is a plain ``dict`` with camelCase keys, the shape the
web client reads.  Services build these while their session is still open,
so relationships are loaded before the rows leave the service.
"""

from __future__ import annotations

from datetime import UTC, datetime

from vtilde.database.models import (
    Activity,
    Art,
    Comment,
    Conversation,
    Game,
    GameCollection,
    LibraryEntry,
    Message,
    Notification,
    User,
)
from vtilde.engine.ranking import ArtCard


def _iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.isoformat()


# ---------------------------------------------------------------------------
# Users & games
# ---------------------------------------------------------------------------
def public_user(u: User) -> dict:
    """The identity shown next to content: id and username only."""
    return {"id": u.id, "username": u.username}


def user_dict(u: User) -> dict:
    return {
        "id": u.id,
        "username": u.username,
        "email": u.email,
        "bio": u.bio,
        "createdAt": _iso(u.created_at),
    }


def game_dict(g: Game) -> dict:
    return {
        "id": g.id,
        "apiId": g.api_id,
        "name": g.name,
        "imageUrl": g.image_url,
    }


# ---------------------------------------------------------------------------
# Art & comments
# ---------------------------------------------------------------------------
def art_dict(art: Art, card: ArtCard | None = None) -> dict:
    """Serialize *art*; *card* carries like count and the viewer's like state."""
    return {
        "id": art.id,
        "imageUrl": art.image_url,
        "tags": art.tags,
        "authorId": art.author_id,
        "gameId": art.game_id,
        "createdAt": _iso(art.created_at),
        "author": public_user(art.author),
        "game": game_dict(art.game),
        "likes": card.likes if card else 0,
        "isLiked": card.is_liked if card else False,
    }


def comment_dict(c: Comment) -> dict:
    return {
        "id": c.id,
        "content": c.content,
        "artId": c.art_id,
        "authorId": c.author_id,
        "createdAt": _iso(c.created_at),
        "author": public_user(c.author),
    }


# ---------------------------------------------------------------------------
# Library
# ---------------------------------------------------------------------------
def library_entry_dict(e: LibraryEntry) -> dict:
    return {
        "id": e.id,
        "userId": e.user_id,
        "gameId": e.game_id,
        "status": e.status,
        "rating": e.rating,
        "reviewText": e.review_text,
        "favoritedArtId": e.favorited_art_id,
        "favoritedArt": (
            {"id": e.favorited_art.id, "imageUrl": e.favorited_art.image_url}
            if e.favorited_art is not None else None
        ),
        "createdAt": _iso(e.created_at),
        "updatedAt": _iso(e.updated_at),
        "game": game_dict(e.game),
    }


def review_dict(e: LibraryEntry) -> dict:
    return {
        "id": e.id,
        "rating": e.rating,
        "reviewText": e.review_text,
        "updatedAt": _iso(e.updated_at),
        "user": public_user(e.user),
    }


# ---------------------------------------------------------------------------
# Notifications & activity
# ---------------------------------------------------------------------------
def notification_dict(n: Notification) -> dict:
    return {
        "id": n.id,
        "type": n.type,
        "content": n.content,
        "link": n.link,
        "read": n.read,
        "createdAt": _iso(n.created_at),
    }


def activity_dict(a: Activity) -> dict:
    return {
        "id": a.id,
        "type": a.type,
        "content": a.content,
        "link": a.link,
        "metadata": a.metadata_ or {},
        "createdAt": _iso(a.created_at),
        "user": public_user(a.user),
    }


# ---------------------------------------------------------------------------
# Messaging
# ---------------------------------------------------------------------------
def message_dict(m: Message) -> dict:
    return {
        "id": m.id,
        "conversationId": m.conversation_id,
        "senderId": m.sender_id,
        "content": m.content,
        "imageUrl": m.image_url,
        "read": m.read,
        "createdAt": _iso(m.created_at),
        "sender": public_user(m.sender),
    }


def conversation_dict(
    c: Conversation, last: Message | None = None, unread: int = 0
) -> dict:
    return {
        "id": c.id,
        "user1": public_user(c.user1),
        "user2": public_user(c.user2),
        "createdAt": _iso(c.created_at),
        "messages": [message_dict(last)] if last is not None else [],
        "unreadCount": unread,
    }


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------
def collection_dict(col: GameCollection, *, with_games: bool = True) -> dict:
    data = {
        "id": col.id,
        "userId": col.user_id,
        "name": col.name,
        "description": col.description,
        "isPublic": col.is_public,
        "createdAt": _iso(col.created_at),
        "user": public_user(col.user),
        "gameCount": len(col.entries),
    }
    if with_games:
        data["games"] = [
            {
                "id": entry.id,
                "position": entry.position,
                "addedAt": _iso(entry.added_at),
                "game": game_dict(entry.game),
            }
            for entry in col.entries
        ]
    return data

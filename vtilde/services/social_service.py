"""
vtilde.services.social_service — Follows, Profiles & User Search
=================================================================

The follow graph is a set of directed ``(follower, following)`` edges.
Self-follows are refused before they reach the database and duplicate
edges are caught by the unique constraint inside a SAVEPOINT, so two
concurrent follow requests produce exactly one edge.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from vtilde.constants import USER_SEARCH_LIMIT, profile_link
from vtilde.database.engine import get_session
from vtilde.database.models import Follow, LibraryEntry, NotificationType, User
from vtilde.errors import Conflict, NotFound, ValidationError
from vtilde.services.notification_service import notify
from vtilde.services.serializers import library_entry_dict, public_user, user_dict

if TYPE_CHECKING:
    from sqlalchemy import Engine
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

BIO_MAX_LENGTH = 500


# ---------------------------------------------------------------------------
# Graph lookups (caller's session)
# ---------------------------------------------------------------------------
def following_ids(session: Session, user_id: int) -> set[int]:
    """Ids of the users *user_id* follows."""
    return set(session.scalars(
        select(Follow.following_id).where(Follow.follower_id == user_id)
    ).all())


def follower_ids(session: Session, user_id: int) -> set[int]:
    """Ids of the users following *user_id*."""
    return set(session.scalars(
        select(Follow.follower_id).where(Follow.following_id == user_id)
    ).all())


def is_following(session: Session, follower_id: int, following_id: int) -> bool:
    return session.scalar(
        select(func.count())
        .select_from(Follow)
        .where(Follow.follower_id == follower_id, Follow.following_id == following_id)
    ) > 0


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------
def get_user(engine: Engine, user_id: int) -> dict:
    with get_session(engine) as session:
        user = session.get(User, user_id)
        if user is None:
            raise NotFound("User not found")
        return user_dict(user)


def get_profile(engine: Engine, username: str, viewer_id: int | None = None) -> dict:
    """Public profile: identity, library, follow lists and counts."""
    with get_session(engine) as session:
        user = session.scalar(select(User).where(User.username == username))
        if user is None:
            raise NotFound("User not found")

        entries = session.scalars(
            select(LibraryEntry)
            .options(selectinload(LibraryEntry.game), selectinload(LibraryEntry.favorited_art))
            .where(LibraryEntry.user_id == user.id)
            .order_by(LibraryEntry.created_at.desc(), LibraryEntry.id.desc())
        ).all()
        followers = session.scalars(
            select(User)
            .join(Follow, Follow.follower_id == User.id)
            .where(Follow.following_id == user.id)
            .order_by(User.username)
        ).all()
        following = session.scalars(
            select(User)
            .join(Follow, Follow.following_id == User.id)
            .where(Follow.follower_id == user.id)
            .order_by(User.username)
        ).all()

        return {
            "id": user.id,
            "username": user.username,
            "bio": user.bio,
            "createdAt": user_dict(user)["createdAt"],
            "games": [library_entry_dict(e) for e in entries],
            "followers": [public_user(u) for u in followers],
            "following": [public_user(u) for u in following],
            "followerCount": len(followers),
            "followingCount": len(following),
            "isFollowing": (
                viewer_id is not None
                and viewer_id != user.id
                and is_following(session, viewer_id, user.id)
            ),
        }


def search_users(engine: Engine, query: str, viewer_id: int | None = None) -> list[dict]:
    """Case-insensitive username substring search, at most ten hits."""
    q = (query or "").strip()
    if not q:
        return []
    stmt = select(User).where(func.lower(User.username).contains(q.lower(), autoescape=True))
    if viewer_id is not None:
        stmt = stmt.where(User.id != viewer_id)
    with get_session(engine) as session:
        users = session.scalars(stmt.order_by(User.username).limit(USER_SEARCH_LIMIT)).all()
        return [public_user(u) for u in users]


def update_profile(engine: Engine, user_id: int, *, bio: str | None) -> dict:
    if bio is not None and len(bio) > BIO_MAX_LENGTH:
        raise ValidationError(f"Bio is too long (max {BIO_MAX_LENGTH} characters)")
    with get_session(engine) as session:
        user = session.get(User, user_id)
        if user is None:
            raise NotFound("User not found")
        user.bio = (bio or "").strip() or None
        session.flush()
        return user_dict(user)


# ---------------------------------------------------------------------------
# Follow / unfollow
# ---------------------------------------------------------------------------
def follow(engine: Engine, follower_id: int, target_id: int) -> dict:
    """Create the edge ``follower → target`` and notify the target."""
    if follower_id == target_id:
        raise Conflict("You cannot follow yourself")

    with get_session(engine) as session:
        target = session.get(User, target_id)
        if target is None:
            raise NotFound("User not found")
        follower = session.get(User, follower_id)
        if follower is None:
            raise NotFound("User not found")

        try:
            with session.begin_nested():   # SAVEPOINT
                session.add(Follow(follower_id=follower.id, following_id=target.id))
                session.flush()
        except IntegrityError:
            raise Conflict("Already following") from None

        notify(
            session,
            user_id=target.id,
            actor_id=follower.id,
            type=NotificationType.FOLLOW,
            content=f"{follower.username} started following you",
            link=profile_link(follower.username),
        )
        logger.info("User %d now follows user %d", follower.id, target.id)
        return {"message": f"Now following {target.username}", "following": public_user(target)}


def unfollow(engine: Engine, follower_id: int, target_id: int) -> dict:
    with get_session(engine) as session:
        target = session.get(User, target_id)
        if target is None:
            raise NotFound("User not found")
        edge = session.scalar(
            select(Follow).where(
                Follow.follower_id == follower_id, Follow.following_id == target_id
            )
        )
        if edge is None:
            raise NotFound("Not following this user")
        session.delete(edge)
        return {"message": f"Unfollowed {target.username}"}

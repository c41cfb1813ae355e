"""
vtilde.services.collection_service — Curated Game Lists
========================================================

Named lists of games ("Best co-op of 2024").  A collection is either
public, visible on its owner's profile and announced to followers, or
private, in which case it does not exist for anyone but its owner.

Membership rows keep an explicit ``position``; new games are appended to
the end and removing one leaves the remaining order intact.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from vtilde.constants import collection_link
from vtilde.database.engine import get_session
from vtilde.database.models import (
    ActivityType,
    CollectionGame,
    GameCollection,
    User,
)
from vtilde.errors import Conflict, Forbidden, NotFound, ValidationError
from vtilde.services.library_service import upsert_game
from vtilde.services.notification_service import record_activity
from vtilde.services.serializers import collection_dict

if TYPE_CHECKING:
    from sqlalchemy import Engine
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

NAME_MAX_LENGTH = 100

COLLECTION_LOAD_OPTIONS = (
    selectinload(GameCollection.user),
    selectinload(GameCollection.entries).selectinload(CollectionGame.game),
)


def _clean_name(name: str | None) -> str:
    value = (name or "").strip()
    if not value:
        raise ValidationError("Collection name is required")
    if len(value) > NAME_MAX_LENGTH:
        raise ValidationError(f"Collection name is too long (max {NAME_MAX_LENGTH} characters)")
    return value


def _load(session: Session, collection_id: int) -> GameCollection | None:
    return session.scalar(
        select(GameCollection)
        .options(*COLLECTION_LOAD_OPTIONS)
        .where(GameCollection.id == collection_id)
        .execution_options(populate_existing=True)
    )


def _visible(session: Session, collection_id: int, viewer_id: int | None) -> GameCollection:
    """Private collections are reported missing to everyone but the owner."""
    col = _load(session, collection_id)
    if col is None or (not col.is_public and col.user_id != viewer_id):
        raise NotFound("Collection not found")
    return col


def _announce(
    session: Session, owner: User, col: GameCollection, verb: str = "created"
) -> None:
    """Post the collection to the owner's followers' activity feed."""
    record_activity(
        session,
        user_id=owner.id,
        type=ActivityType.COLLECTION,
        content=f"{owner.username} {verb} the collection {col.name}",
        link=collection_link(col.id),
        metadata={"collectionId": col.id},
    )


def _owned(session: Session, collection_id: int, user_id: int) -> GameCollection:
    col = _visible(session, collection_id, user_id)
    if col.user_id != user_id:
        raise Forbidden("You can only change your own collections")
    return col


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def list_mine(engine: Engine, user_id: int) -> list[dict]:
    with get_session(engine) as session:
        cols = session.scalars(
            select(GameCollection)
            .options(*COLLECTION_LOAD_OPTIONS)
            .where(GameCollection.user_id == user_id)
            .order_by(GameCollection.created_at.desc(), GameCollection.id.desc())
        ).all()
        return [collection_dict(c) for c in cols]


def list_public_for(engine: Engine, username: str, viewer_id: int | None = None) -> list[dict]:
    """*username*'s public collections, plus the private ones if it's the viewer."""
    with get_session(engine) as session:
        owner = session.scalar(select(User).where(User.username == username))
        if owner is None:
            raise NotFound("User not found")
        stmt = (
            select(GameCollection)
            .options(*COLLECTION_LOAD_OPTIONS)
            .where(GameCollection.user_id == owner.id)
        )
        if viewer_id != owner.id:
            stmt = stmt.where(GameCollection.is_public.is_(True))
        cols = session.scalars(
            stmt.order_by(GameCollection.created_at.desc(), GameCollection.id.desc())
        ).all()
        return [collection_dict(c) for c in cols]


def get_collection(engine: Engine, collection_id: int, viewer_id: int | None = None) -> dict:
    with get_session(engine) as session:
        return collection_dict(_visible(session, collection_id, viewer_id))


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------
def create_collection(
    engine: Engine,
    user_id: int,
    *,
    name: str | None,
    description: str | None = None,
    is_public: bool = True,
) -> dict:
    clean = _clean_name(name)
    with get_session(engine) as session:
        owner = session.get(User, user_id)
        if owner is None:
            raise NotFound("User not found")
        col = GameCollection(
            user_id=owner.id,
            name=clean,
            description=(description or "").strip() or None,
            is_public=bool(is_public),
        )
        session.add(col)
        session.flush()

        if col.is_public:
            _announce(session, owner, col)
            session.flush()
        logger.info("Collection %d created by user %d", col.id, owner.id)
        return collection_dict(_load(session, col.id))


def update_collection(
    engine: Engine, collection_id: int, user_id: int, changes: dict[str, Any]
) -> dict:
    """Apply ``name`` / ``description`` / ``isPublic`` from *changes*."""
    with get_session(engine) as session:
        col = _owned(session, collection_id, user_id)
        was_public = col.is_public
        if "name" in changes:
            col.name = _clean_name(changes["name"])
        if "description" in changes:
            col.description = (changes["description"] or "").strip() or None
        if "isPublic" in changes and changes["isPublic"] is not None:
            col.is_public = bool(changes["isPublic"])
        if col.is_public and not was_public:
            _announce(session, col.user, col, verb="shared")
        session.flush()
        return collection_dict(col)


def delete_collection(engine: Engine, collection_id: int, user_id: int) -> None:
    with get_session(engine) as session:
        session.delete(_owned(session, collection_id, user_id))


def add_game(
    engine: Engine,
    collection_id: int,
    user_id: int,
    *,
    game_api_id: str,
    game_name: str | None = None,
    game_image_url: str | None = None,
) -> dict:
    """Append a game; :class:`Conflict` when it is already in the list."""
    with get_session(engine) as session:
        col = _owned(session, collection_id, user_id)
        game = upsert_game(session, game_api_id, game_name, game_image_url)
        next_position = session.scalar(
            select(func.coalesce(func.max(CollectionGame.position), -1) + 1)
            .where(CollectionGame.collection_id == col.id)
        )
        try:
            with session.begin_nested():   # SAVEPOINT
                session.add(CollectionGame(
                    collection_id=col.id, game_id=game.id, position=next_position
                ))
                session.flush()
        except IntegrityError:
            raise Conflict("Game already in collection") from None

        return collection_dict(_load(session, col.id))


def remove_game(engine: Engine, collection_id: int, user_id: int, game_id: int) -> dict:
    with get_session(engine) as session:
        col = _owned(session, collection_id, user_id)
        entry = next((e for e in col.entries if e.game_id == game_id), None)
        if entry is None:
            raise NotFound("Game not in collection")
        col.entries.remove(entry)
        session.flush()
        return collection_dict(col)

"""
vtilde.services.library_service — Game Library, Ratings & Reviews
==================================================================

A user's library is one :class:`LibraryEntry` per saved game carrying a
status, an optional 1–5 rating, an optional review and an optional
favourite art piece.

Games are created lazily the first time anyone saves them; the GiantBomb
id is the natural key.  :func:`upsert_game` inserts inside a SAVEPOINT and
re-reads on conflict, so two users saving the same new game at once both
end up pointing at one row.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from vtilde.constants import RATING_MAX, RATING_MIN, game_link
from vtilde.database.engine import get_session
from vtilde.database.models import (
    ActivityType,
    Art,
    Game,
    LibraryEntry,
    LibraryStatus,
    User,
)
from vtilde.errors import Conflict, NotFound, ValidationError
from vtilde.services.notification_service import record_activity
from vtilde.services.serializers import game_dict, library_entry_dict, review_dict

if TYPE_CHECKING:
    from sqlalchemy import Engine
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

SORT_OPTIONS = ("recent", "rating")


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------
def _check_status(status: str | None) -> str:
    if status is None:
        return LibraryStatus.PLAYING.value
    try:
        return LibraryStatus(status).value
    except ValueError:
        allowed = ", ".join(s.value for s in LibraryStatus)
        raise ValidationError(f"Invalid status {status!r}. Allowed: {allowed}") from None


def _check_rating(rating: Any) -> int | None:
    """``None``/``0``/``""`` clear the rating; anything else must be 1–5."""
    if rating in (None, "", 0):
        return None
    try:
        value = int(rating)
    except (TypeError, ValueError):
        raise ValidationError("Rating must be a whole number") from None
    if not RATING_MIN <= value <= RATING_MAX:
        raise ValidationError(f"Rating must be between {RATING_MIN} and {RATING_MAX}")
    return value


def _require_entry(session: Session, user_id: int, game_id: int) -> LibraryEntry:
    entry = session.scalar(
        select(LibraryEntry).where(
            LibraryEntry.user_id == user_id, LibraryEntry.game_id == game_id
        )
    )
    if entry is None:
        raise NotFound("Game not found in library")
    return entry


# ---------------------------------------------------------------------------
# Games
# ---------------------------------------------------------------------------
def upsert_game(
    session: Session, api_id: str, name: str | None = None, image_url: str | None = None
) -> Game:
    """Return the stored game for *api_id*, creating it if needed."""
    api_id = str(api_id).strip()
    if not api_id:
        raise ValidationError("gameApiId is required")

    game = session.scalar(select(Game).where(Game.api_id == api_id))
    if game is not None:
        return game
    if not name:
        raise ValidationError("gameName is required")

    try:
        with session.begin_nested():   # SAVEPOINT
            game = Game(api_id=api_id, name=name, image_url=image_url)
            session.add(game)
            session.flush()
    except IntegrityError:
        # Someone else created it between our SELECT and INSERT.
        game = session.scalar(select(Game).where(Game.api_id == api_id))
        if game is None:
            raise
    return game


# ---------------------------------------------------------------------------
# Library reads
# ---------------------------------------------------------------------------
def list_library(
    engine: Engine,
    user_id: int,
    *,
    page: int = 1,
    limit: int = 20,
    sort_by: str = "recent",
    filter_by: str | None = None,
) -> dict:
    """One page of *user_id*'s library plus a pagination block."""
    if sort_by not in SORT_OPTIONS:
        raise ValidationError(f"Invalid sortBy {sort_by!r}. Allowed: {', '.join(SORT_OPTIONS)}")

    stmt = select(LibraryEntry).where(LibraryEntry.user_id == user_id)
    if filter_by and filter_by != "all":
        stmt = stmt.where(LibraryEntry.status == _check_status(filter_by))

    if sort_by == "rating":
        order = (LibraryEntry.rating.desc().nulls_last(), LibraryEntry.id.desc())
    else:
        order = (LibraryEntry.created_at.desc(), LibraryEntry.id.desc())

    with get_session(engine) as session:
        total = session.scalar(
            select(func.count()).select_from(stmt.subquery())
        ) or 0
        entries = session.scalars(
            stmt.options(selectinload(LibraryEntry.game), selectinload(LibraryEntry.favorited_art))
            .order_by(*order)
            .offset((page - 1) * limit)
            .limit(limit)
        ).all()
        return {
            "games": [library_entry_dict(e) for e in entries],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "totalPages": math.ceil(total / limit) if limit else 0,
            },
        }


def list_reviews(engine: Engine, api_id: str) -> list[dict]:
    """Entries with review text for the game stored under *api_id*, newest first."""
    with get_session(engine) as session:
        entries = session.scalars(
            select(LibraryEntry)
            .join(Game, LibraryEntry.game_id == Game.id)
            .options(selectinload(LibraryEntry.user))
            .where(Game.api_id == str(api_id), LibraryEntry.review_text.is_not(None))
            .order_by(LibraryEntry.updated_at.desc(), LibraryEntry.id.desc())
        ).all()
        return [review_dict(e) for e in entries]


# ---------------------------------------------------------------------------
# Library writes
# ---------------------------------------------------------------------------
def add_to_library(
    engine: Engine,
    user_id: int,
    *,
    game_api_id: str,
    game_name: str | None = None,
    game_image_url: str | None = None,
    status: str | None = None,
) -> dict:
    """Save a game to the user's library; :class:`Conflict` if already saved."""
    status_value = _check_status(status)
    with get_session(engine) as session:
        game = upsert_game(session, game_api_id, game_name, game_image_url)
        try:
            with session.begin_nested():   # SAVEPOINT
                entry = LibraryEntry(user_id=user_id, game_id=game.id, status=status_value)
                session.add(entry)
                session.flush()
        except IntegrityError:
            raise Conflict("Game already saved") from None

        logger.info("User %d saved game %s (%s)", user_id, game.api_id, status_value)
        return {"message": "Game saved successfully", "game": game_dict(game)}


def update_entry(engine: Engine, user_id: int, game_id: int, changes: dict[str, Any]) -> dict:
    """Apply the keys present in *changes* (``status``, ``rating``, ``reviewText``).

    Absent keys are left alone; an explicit ``None`` rating or review
    clears it.  Writing a new, non-empty review tells the user's
    followers through a ``review`` activity.
    """
    with get_session(engine) as session:
        entry = _require_entry(session, user_id, game_id)

        if "status" in changes and changes["status"] is not None:
            entry.status = _check_status(changes["status"])
        if "rating" in changes:
            entry.rating = _check_rating(changes["rating"])

        new_review = False
        if "reviewText" in changes:
            text = (changes["reviewText"] or "").strip() or None
            new_review = text is not None and text != entry.review_text
            entry.review_text = text

        if new_review:
            user = session.get(User, user_id)
            game = session.get(Game, game_id)
            record_activity(
                session,
                user_id=user_id,
                type=ActivityType.REVIEW,
                content=f"{user.username} reviewed {game.name}",
                link=game_link(game.api_id),
                metadata={"gameId": game.id, "gameApiId": game.api_id, "rating": entry.rating},
            )

        session.flush()
        session.refresh(entry)
        return library_entry_dict(entry)


def remove_entry(engine: Engine, user_id: int, game_id: int) -> None:
    with get_session(engine) as session:
        session.delete(_require_entry(session, user_id, game_id))


def set_favorite_art(
    engine: Engine, user_id: int, game_id: int, art_id: int | None
) -> dict:
    """Pin *art_id* as the entry's favourite, or clear it with ``None``.

    The art must belong to the same game as the entry.
    """
    with get_session(engine) as session:
        entry = _require_entry(session, user_id, game_id)
        if art_id is not None:
            art = session.get(Art, art_id)
            if art is None:
                raise NotFound("Art not found")
            if art.game_id != entry.game_id:
                raise ValidationError("Art belongs to a different game")
        entry.favorited_art_id = art_id
        session.flush()
        session.refresh(entry)
        return library_entry_dict(entry)

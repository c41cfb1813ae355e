"""
vtilde.services.art_service — Fan Art, Likes & Comments
========================================================

Posting art, liking it, commenting on it, and deleting it again.

Likes are inserted inside a SAVEPOINT and the unique constraint on
``(user_id, art_id)`` decides who wins a double-click race: the loser gets
:class:`~vtilde.errors.Conflict` and the like count is unchanged.

Deleting art is the single path that removes everything hanging off it:
favourite pointers are cleared, then likes and comments go with the row
(ORM cascade), and the caller gets the stored ``image_url`` back so it can
drop the uploaded file.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from vtilde.constants import COMMENT_MAX_LENGTH, art_link
from vtilde.database.engine import get_session
from vtilde.database.models import (
    ActivityType,
    Art,
    ArtLike,
    Comment,
    Game,
    LibraryEntry,
    NotificationType,
    User,
)
from vtilde.engine.ranking import ArtCard, build_cards
from vtilde.errors import Conflict, Forbidden, NotFound, ValidationError
from vtilde.services.notification_service import notify, record_activity
from vtilde.services.serializers import art_dict, comment_dict

if TYPE_CHECKING:
    from sqlalchemy import Engine
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

ART_LOAD_OPTIONS = (selectinload(Art.author), selectinload(Art.game))


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------
def like_counts(session: Session, art_ids: Iterable[int]) -> dict[int, int]:
    """``{art_id: likes}`` for *art_ids*; art without likes is absent."""
    ids = list(art_ids)
    if not ids:
        return {}
    rows = session.execute(
        select(ArtLike.art_id, func.count(ArtLike.id))
        .where(ArtLike.art_id.in_(ids))
        .group_by(ArtLike.art_id)
    ).all()
    return {art_id: count for art_id, count in rows}


def liked_art_ids(session: Session, viewer_id: int | None, art_ids: Iterable[int]) -> set[int]:
    """Subset of *art_ids* the viewer has liked.  Anonymous viewers like nothing."""
    ids = list(art_ids)
    if viewer_id is None or not ids:
        return set()
    return set(session.scalars(
        select(ArtLike.art_id).where(ArtLike.user_id == viewer_id, ArtLike.art_id.in_(ids))
    ).all())


def cards_for(session: Session, arts: Sequence[Art], viewer_id: int | None) -> list[ArtCard]:
    """Annotate loaded art rows with like counts and the viewer's like state."""
    ids = [a.id for a in arts]
    return build_cards(
        ((a.id, a.author_id, a.created_at) for a in arts),
        like_counts(session, ids),
        liked_art_ids(session, viewer_id, ids),
    )


def _count_likes(session: Session, art_id: int) -> int:
    return session.scalar(
        select(func.count()).select_from(ArtLike).where(ArtLike.art_id == art_id)
    ) or 0


def _require_art(session: Session, art_id: int) -> Art:
    art = session.get(Art, art_id)
    if art is None:
        raise NotFound("Art not found")
    return art


# ---------------------------------------------------------------------------
# Art
# ---------------------------------------------------------------------------
def get_art(engine: Engine, art_id: int, viewer_id: int | None = None) -> dict:
    with get_session(engine) as session:
        art = session.scalar(select(Art).options(*ART_LOAD_OPTIONS).where(Art.id == art_id))
        if art is None:
            raise NotFound("Art not found")
        (card,) = cards_for(session, [art], viewer_id)
        return art_dict(art, card)


def list_game_art(engine: Engine, api_id: str, viewer_id: int | None = None) -> list[dict]:
    """All art for the game stored under *api_id*, newest first.

    A game nobody has saved yet has no art, so an unknown id is an empty
    list rather than a 404.
    """
    with get_session(engine) as session:
        arts = session.scalars(
            select(Art)
            .join(Game, Art.game_id == Game.id)
            .options(*ART_LOAD_OPTIONS)
            .where(Game.api_id == api_id)
            .order_by(Art.created_at.desc(), Art.id.desc())
        ).all()
        cards = cards_for(session, arts, viewer_id)
        return [art_dict(a, c) for a, c in zip(arts, cards)]


def resolve_game(
    session: Session, *, game_id: int | None = None, game_api_id: str | None = None
) -> Game:
    """Find a stored game by internal id or by GiantBomb id."""
    game = None
    if game_id is not None:
        game = session.get(Game, game_id)
    elif game_api_id:
        game = session.scalar(select(Game).where(Game.api_id == str(game_api_id)))
    else:
        raise ValidationError("gameId or gameApiId is required")
    if game is None:
        raise NotFound("Game not found")
    return game


def create_art(
    engine: Engine,
    *,
    author_id: int,
    image_url: str,
    game_id: int | None = None,
    game_api_id: str | None = None,
    tags: str | None = None,
) -> dict:
    """Store a new art piece and announce it to the author's followers."""
    with get_session(engine) as session:
        game = resolve_game(session, game_id=game_id, game_api_id=game_api_id)
        author = session.get(User, author_id)
        if author is None:
            raise NotFound("User not found")

        art = Art(
            image_url=image_url,
            game_id=game.id,
            author_id=author.id,
            tags=(tags or "").strip() or None,
        )
        session.add(art)
        session.flush()

        record_activity(
            session,
            user_id=author.id,
            type=ActivityType.POST,
            content=f"{author.username} posted new art for {game.name}",
            link=art_link(art.id),
            metadata={"artId": art.id, "gameId": game.id, "gameApiId": game.api_id},
        )
        session.flush()
        session.refresh(art)
        logger.info("Art %d posted by user %d for game %s", art.id, author.id, game.api_id)
        return art_dict(art, ArtCard(art.id, art.author_id, art.created_at))


def delete_art(engine: Engine, art_id: int, user_id: int) -> str:
    """Delete art owned by *user_id*; returns the image URL that was stored."""
    with get_session(engine) as session:
        art = _require_art(session, art_id)
        if art.author_id != user_id:
            raise Forbidden("You can only delete your own art")

        session.execute(
            update(LibraryEntry)
            .where(LibraryEntry.favorited_art_id == art.id)
            .values(favorited_art_id=None)
        )
        image_url = art.image_url
        session.delete(art)
        logger.info("Art %d deleted by user %d", art_id, user_id)
        return image_url


# ---------------------------------------------------------------------------
# Likes
# ---------------------------------------------------------------------------
def like_art(engine: Engine, art_id: int, user_id: int) -> int:
    """Like *art_id*; returns the new like count.

    Raises :class:`Conflict` if the user already likes it.
    """
    with get_session(engine) as session:
        art = _require_art(session, art_id)
        liker = session.get(User, user_id)
        if liker is None:
            raise NotFound("User not found")
        try:
            with session.begin_nested():   # SAVEPOINT
                session.add(ArtLike(user_id=user_id, art_id=art.id))
                session.flush()
        except IntegrityError:
            raise Conflict("Already liked") from None

        notify(
            session,
            user_id=art.author_id,
            actor_id=user_id,
            type=NotificationType.LIKE,
            content=f"{liker.username} liked your art",
            link=art_link(art.id),
        )
        session.flush()
        return _count_likes(session, art.id)


def unlike_art(engine: Engine, art_id: int, user_id: int) -> int:
    with get_session(engine) as session:
        _require_art(session, art_id)
        like = session.scalar(
            select(ArtLike).where(ArtLike.art_id == art_id, ArtLike.user_id == user_id)
        )
        if like is None:
            raise NotFound("Not liked")
        session.delete(like)
        session.flush()
        return _count_likes(session, art_id)


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------
def list_comments(engine: Engine, art_id: int) -> list[dict]:
    """Comments on *art_id*, oldest first."""
    with get_session(engine) as session:
        _require_art(session, art_id)
        comments = session.scalars(
            select(Comment)
            .options(selectinload(Comment.author))
            .where(Comment.art_id == art_id)
            .order_by(Comment.created_at, Comment.id)
        ).all()
        return [comment_dict(c) for c in comments]


def add_comment(engine: Engine, art_id: int, author_id: int, content: str | None) -> dict:
    text = (content or "").strip()
    if not text:
        raise ValidationError("Comment content is required")
    if len(text) > COMMENT_MAX_LENGTH:
        raise ValidationError(f"Comment is too long (max {COMMENT_MAX_LENGTH} characters)")

    with get_session(engine) as session:
        art = _require_art(session, art_id)
        author = session.get(User, author_id)
        if author is None:
            raise NotFound("User not found")

        comment = Comment(content=text, art_id=art.id, author_id=author.id)
        session.add(comment)
        session.flush()

        notify(
            session,
            user_id=art.author_id,
            actor_id=author.id,
            type=NotificationType.COMMENT,
            content=f"{author.username} commented on your art",
            link=art_link(art.id),
        )
        record_activity(
            session,
            user_id=author.id,
            type=ActivityType.COMMENT,
            content=f"{author.username} commented on art",
            link=art_link(art.id),
            metadata={"artId": art.id, "commentId": comment.id},
        )
        session.flush()
        session.refresh(comment)
        return comment_dict(comment)


def delete_comment(engine: Engine, comment_id: int, user_id: int) -> None:
    with get_session(engine) as session:
        comment = session.get(Comment, comment_id)
        if comment is None:
            raise NotFound("Comment not found")
        if comment.author_id != user_id:
            raise Forbidden("You can only delete your own comments")
        session.delete(comment)

"""
vtilde.services.leaderboard_service — Artist & Game Leaderboards
=================================================================

Loads the full candidate sets and hands them to the pure ranking in
:mod:`vtilde.engine.leaderboards`.  Recomputed on every request.

Candidates are fed in ascending id order, so equal totals rank the older
account (or game row) first.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import TYPE_CHECKING

from sqlalchemy import func, select

from vtilde.database.engine import get_session
from vtilde.database.models import Art, ArtLike, Game, LibraryEntry, User
from vtilde.engine.leaderboards import (
    ArtistCandidate,
    GameCandidate,
    rank_artists,
    rank_games,
)

if TYPE_CHECKING:
    from sqlalchemy import Engine
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


def _artist_candidates(session: Session) -> list[ArtistCandidate]:
    likes_per_art = (
        select(ArtLike.art_id, func.count(ArtLike.id).label("likes"))
        .group_by(ArtLike.art_id)
        .subquery()
    )
    rows = session.execute(
        select(User.id, User.username, Art.id, func.coalesce(likes_per_art.c.likes, 0))
        .join(Art, Art.author_id == User.id)
        .outerjoin(likes_per_art, likes_per_art.c.art_id == Art.id)
        .order_by(User.id, Art.id)
    ).all()

    names: dict[int, str] = {}
    counts: dict[int, list[int]] = defaultdict(list)
    for user_id, username, _art_id, likes in rows:
        names[user_id] = username
        counts[user_id].append(int(likes))
    return [
        ArtistCandidate(user_id=uid, username=names[uid], like_counts=tuple(counts[uid]))
        for uid in names
    ]


def _game_candidates(session: Session) -> list[GameCandidate]:
    rows = session.execute(
        select(Game.id, Game.api_id, Game.name, Game.image_url, LibraryEntry.rating)
        .join(LibraryEntry, LibraryEntry.game_id == Game.id)
        .where(LibraryEntry.rating.is_not(None))
        .order_by(Game.id, LibraryEntry.id)
    ).all()

    games: dict[int, tuple[str, str, str | None]] = {}
    ratings: dict[int, list[int]] = defaultdict(list)
    for game_id, api_id, name, image_url, rating in rows:
        games[game_id] = (api_id, name, image_url)
        ratings[game_id].append(rating)
    return [
        GameCandidate(
            game_id=gid,
            api_id=api_id,
            name=name,
            image_url=image_url,
            ratings=tuple(ratings[gid]),
        )
        for gid, (api_id, name, image_url) in games.items()
    ]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def artist_leaderboard(engine: Engine, limit: int) -> list[dict]:
    """Top artists by total likes received."""
    with get_session(engine) as session:
        standings = rank_artists(_artist_candidates(session), limit)
    return [
        {
            "id": s.user_id,
            "username": s.username,
            "totalLikes": s.total_likes,
            "totalDrawings": s.total_drawings,
        }
        for s in standings
    ]


def game_leaderboard(engine: Engine, limit: int) -> list[dict]:
    """Top games by average rating; unrated games never appear."""
    with get_session(engine) as session:
        standings = rank_games(_game_candidates(session), limit)
    return [
        {
            "id": s.game_id,
            "apiId": s.api_id,
            "name": s.name,
            "imageUrl": s.image_url,
            "averageRating": round(s.average_rating, 2),
            "totalReviews": s.total_reviews,
        }
        for s in standings
    ]

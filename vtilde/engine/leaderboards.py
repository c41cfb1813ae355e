"""
vtilde.engine.leaderboards — Artist and game rankings
======================================================

Pure calculation over fully-loaded candidate sets:
filter → map → sort → slice.  Nothing is cached; callers recompute on
every request.

* Artists are ranked by the sum of likes over all of their art.
  Users without any art never appear.
* Games are ranked by the mean of their non-null library ratings.
  Games whose entries are all unrated never appear.

Sorting is stable, so ties keep the order the candidates were given in.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

__all__ = [
    "ArtistCandidate",
    "ArtistStanding",
    "GameCandidate",
    "GameStanding",
    "rank_artists",
    "rank_games",
]


# ---------------------------------------------------------------------------
# Artists
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class ArtistCandidate:
    """A user plus the like count of each art piece they authored."""

    user_id: int
    username: str
    like_counts: Sequence[int] = ()


@dataclass(slots=True)
class ArtistStanding:
    user_id: int
    username: str
    total_likes: int
    total_drawings: int


def rank_artists(candidates: Iterable[ArtistCandidate], limit: int) -> list[ArtistStanding]:
    """Return the top *limit* artists by total likes."""
    standings = [
        ArtistStanding(
            user_id=c.user_id,
            username=c.username,
            total_likes=sum(c.like_counts),
            total_drawings=len(c.like_counts),
        )
        for c in candidates
        if len(c.like_counts) > 0
    ]
    standings.sort(key=lambda s: s.total_likes, reverse=True)
    return standings[: max(limit, 0)]


# ---------------------------------------------------------------------------
# Games
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class GameCandidate:
    """A game plus every rating left on it (``None`` for unrated entries)."""

    game_id: int
    api_id: str
    name: str
    image_url: str | None = None
    ratings: Sequence[int | None] = ()


@dataclass(slots=True)
class GameStanding:
    game_id: int
    api_id: str
    name: str
    image_url: str | None
    average_rating: float
    total_reviews: int


def rank_games(candidates: Iterable[GameCandidate], limit: int) -> list[GameStanding]:
    """Return the top *limit* games by average (non-null) rating."""
    standings: list[GameStanding] = []
    for c in candidates:
        rated = [r for r in c.ratings if r is not None]
        if not rated:
            continue
        standings.append(GameStanding(
            game_id=c.game_id,
            api_id=c.api_id,
            name=c.name,
            image_url=c.image_url,
            average_rating=sum(rated) / len(rated),
            total_reviews=len(rated),
        ))
    standings.sort(key=lambda s: s.average_rating, reverse=True)
    return standings[: max(limit, 0)]

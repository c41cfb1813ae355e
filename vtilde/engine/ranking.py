"""
vtilde.engine.ranking — Art feed orderings
===========================================

Pure ranking functions.  No DB I/O, no HTTP.

Three orderings over the same list of :class:`ArtCard` items:

* ``recent`` — creation time, newest first (what the feeds return by default)
* ``hot``    — ``likes / (age_hours + 2) ** 1.5``, highest first
* ``top``    — like count, highest first

Every ordering is stable: items with an equal key keep their input order.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

__all__ = [
    "ArtCard",
    "HOT_GRAVITY",
    "HOT_OFFSET_HOURS",
    "SORT_MODES",
    "build_cards",
    "hot_score",
    "hot_sort",
    "recent_sort",
    "sort_cards",
    "top_sort",
]

HOT_OFFSET_HOURS = 2.0
HOT_GRAVITY = 1.5


# ---------------------------------------------------------------------------
# ArtCard — one art piece as seen by one viewer
# ---------------------------------------------------------------------------
@dataclass(slots=True)
class ArtCard:
    art_id: int
    author_id: int
    created_at: datetime
    likes: int = 0
    is_liked: bool = False


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def build_cards(
    rows: Iterable[tuple[int, int, datetime]],
    like_counts: dict[int, int],
    liked_ids: set[int] | frozenset[int] = frozenset(),
) -> list[ArtCard]:
    """Annotate ``(art_id, author_id, created_at)`` rows with like state.

    *liked_ids* is the set of art ids the viewer has liked; pass an empty
    set for anonymous viewers so ``is_liked`` is never true.
    """
    return [
        ArtCard(
            art_id=art_id,
            author_id=author_id,
            created_at=created_at,
            likes=like_counts.get(art_id, 0),
            is_liked=art_id in liked_ids,
        )
        for art_id, author_id, created_at in rows
    ]


# ---------------------------------------------------------------------------
# Scores
# ---------------------------------------------------------------------------
def hot_score(likes: int, created_at: datetime, now: datetime | None = None) -> float:
    """Time-decayed popularity.

    ``score = likes / (age_hours + HOT_OFFSET_HOURS) ** HOT_GRAVITY``

    Items from the future (clock skew) are treated as age zero.
    """
    now = _as_utc(now) if now is not None else datetime.now(UTC)
    age_hours = max(0.0, (now - _as_utc(created_at)).total_seconds() / 3600)
    return likes / (age_hours + HOT_OFFSET_HOURS) ** HOT_GRAVITY


# ---------------------------------------------------------------------------
# Orderings
# ---------------------------------------------------------------------------
def hot_sort(items: Sequence[ArtCard], now: datetime | None = None) -> list[ArtCard]:
    now = now or datetime.now(UTC)
    return sorted(items, key=lambda c: hot_score(c.likes, c.created_at, now), reverse=True)


def recent_sort(items: Sequence[ArtCard], now: datetime | None = None) -> list[ArtCard]:
    return sorted(items, key=lambda c: _as_utc(c.created_at), reverse=True)


def top_sort(items: Sequence[ArtCard], now: datetime | None = None) -> list[ArtCard]:
    return sorted(items, key=lambda c: c.likes, reverse=True)


SORT_MODES: dict[str, Callable[..., list[ArtCard]]] = {
    "recent": recent_sort,
    "hot": hot_sort,
    "top": top_sort,
}


def sort_cards(
    items: Sequence[ArtCard], mode: str = "recent", now: datetime | None = None
) -> list[ArtCard]:
    """Dispatch to one of :data:`SORT_MODES`.

    Raises
    ------
    ValueError
        If *mode* is not a known ordering.
    """
    try:
        sorter = SORT_MODES[mode]
    except KeyError:
        raise ValueError(
            f"Unknown sort mode {mode!r}. Allowed: {', '.join(sorted(SORT_MODES))}"
        ) from None
    return sorter(items, now)

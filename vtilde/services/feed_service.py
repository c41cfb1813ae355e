"""
vtilde.services.feed_service — Art Feeds & Activity Feed
=========================================================

Read-only aggregation over the social graph.

* :func:`popular_feed`   — newest art system-wide
* :func:`following_feed` — newest art by the people the viewer follows
* :func:`activity_feed`  — what the people the viewer follows have been doing

The viewer is always an explicit argument (``None`` for anonymous callers);
nothing here reads request state.  Both art feeds fetch the ``limit`` most
recent rows first and only then apply the requested ordering from
:mod:`vtilde.engine.ranking`, so ``sort=hot`` re-ranks a recency window
rather than scanning the whole table.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from vtilde.database.engine import get_session, normalize_dt
from vtilde.database.models import Activity, Art
from vtilde.engine.ranking import sort_cards
from vtilde.errors import ValidationError
from vtilde.services.art_service import ART_LOAD_OPTIONS, cards_for
from vtilde.services.serializers import activity_dict, art_dict
from vtilde.services.social_service import following_ids

if TYPE_CHECKING:
    from sqlalchemy import Engine
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


def _ranked(
    session: Session,
    arts: list[Art],
    viewer_id: int | None,
    sort: str,
    now: datetime | None,
) -> list[dict]:
    by_id = {a.id: a for a in arts}
    try:
        cards = sort_cards(cards_for(session, arts, viewer_id), sort, now)
    except ValueError as exc:
        raise ValidationError(str(exc)) from None
    return [art_dict(by_id[c.art_id], c) for c in cards]


# ---------------------------------------------------------------------------
# Art feeds
# ---------------------------------------------------------------------------
def popular_feed(
    engine: Engine,
    limit: int,
    viewer_id: int | None = None,
    *,
    sort: str = "recent",
    now: datetime | None = None,
) -> list[dict]:
    """The *limit* newest art pieces, annotated for *viewer_id*."""
    with get_session(engine) as session:
        arts = list(session.scalars(
            select(Art)
            .options(*ART_LOAD_OPTIONS)
            .order_by(Art.created_at.desc(), Art.id.desc())
            .limit(limit)
        ).all())
        return _ranked(session, arts, viewer_id, sort, now)


def following_feed(
    engine: Engine,
    viewer_id: int,
    limit: int,
    *,
    sort: str = "recent",
    now: datetime | None = None,
) -> list[dict]:
    """The *limit* newest art pieces by users *viewer_id* follows.

    Following nobody yields an empty feed, never a fallback to popular.
    """
    with get_session(engine) as session:
        followees = following_ids(session, viewer_id)
        if not followees:
            return []
        arts = list(session.scalars(
            select(Art)
            .options(*ART_LOAD_OPTIONS)
            .where(Art.author_id.in_(followees))
            .order_by(Art.created_at.desc(), Art.id.desc())
            .limit(limit)
        ).all())
        return _ranked(session, arts, viewer_id, sort, now)


# ---------------------------------------------------------------------------
# Activity feed
# ---------------------------------------------------------------------------
def activity_feed(
    engine: Engine,
    viewer_id: int,
    limit: int = 50,
    since: datetime | None = None,
) -> list[dict]:
    """Newest activity by the viewer's followees.

    *since* keeps only rows created strictly after it, so a client polling
    every few seconds only receives what is new.
    """
    with get_session(engine) as session:
        followees = following_ids(session, viewer_id)
        if not followees:
            return []
        stmt = (
            select(Activity)
            .options(selectinload(Activity.user))
            .where(Activity.user_id.in_(followees))
        )
        if since is not None:
            stmt = stmt.where(Activity.created_at > normalize_dt(since))
        rows = session.scalars(
            stmt.order_by(Activity.created_at.desc(), Activity.id.desc()).limit(limit)
        ).all()
        return [activity_dict(a) for a in rows]

"""
vtilde.api.routes.community — Activity feed and leaderboards
=============================================================
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query

from vtilde.api.deps import get_config, get_current_user_id, get_engine
from vtilde.config import VTildeConfig
from vtilde.constants import MAX_PAGE_SIZE
from vtilde.services import feed_service, leaderboard_service

router = APIRouter(tags=["community"])


@router.get("/activities")
def activities(
    limit: int | None = Query(None, ge=1, le=MAX_PAGE_SIZE),
    since: datetime | None = None,
    user_id: int = Depends(get_current_user_id),
    engine=Depends(get_engine),
    cfg: VTildeConfig = Depends(get_config),
):
    """What the caller's followees have been up to.

    Clients poll with ``since=<createdAt of the newest item they hold>``.
    """
    return feed_service.activity_feed(
        engine, user_id, limit or cfg.activity_page_size, since
    )


# ---------------------------------------------------------------------------
# Leaderboards
# ---------------------------------------------------------------------------
@router.get("/leaderboard/artists")
def artist_leaderboard(
    limit: int | None = Query(None, ge=1, le=MAX_PAGE_SIZE),
    engine=Depends(get_engine),
    cfg: VTildeConfig = Depends(get_config),
):
    return leaderboard_service.artist_leaderboard(engine, limit or cfg.leaderboard_size)


@router.get("/leaderboard/games")
def game_leaderboard(
    limit: int | None = Query(None, ge=1, le=MAX_PAGE_SIZE),
    engine=Depends(get_engine),
    cfg: VTildeConfig = Depends(get_config),
):
    return leaderboard_service.game_leaderboard(engine, limit or cfg.leaderboard_size)

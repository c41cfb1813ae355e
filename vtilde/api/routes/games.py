"""
vtilde.api.routes.games — Game search, detail, reviews and art
===============================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from vtilde.api.deps import get_engine, get_game_catalog, get_viewer_id
from vtilde.constants import MAX_PAGE_SIZE
from vtilde.database.engine import run_db
from vtilde.services import art_service, library_service
from vtilde.services.game_catalog import GameCatalog

router = APIRouter(tags=["games"])


# ---------------------------------------------------------------------------
# GiantBomb proxy
# ---------------------------------------------------------------------------
@router.get("/games")
async def search_games(
    search: str = "",
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    catalog: GameCatalog = Depends(get_game_catalog),
):
    """Search the external game catalogue."""
    return await catalog.search(search, page=page, limit=limit)


@router.get("/search")
async def search_games_alias(
    query: str = "",
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    catalog: GameCatalog = Depends(get_game_catalog),
):
    return await catalog.search(query, page=page, limit=limit)


@router.get("/game/{game_id}")
async def game_detail(game_id: str, catalog: GameCatalog = Depends(get_game_catalog)):
    return await catalog.detail(game_id)


# ---------------------------------------------------------------------------
# Local data keyed by GiantBomb id
# ---------------------------------------------------------------------------
@router.get("/game/{api_id}/reviews")
async def game_reviews(api_id: str, engine=Depends(get_engine)):
    return await run_db(library_service.list_reviews, engine, api_id)


@router.get("/game/{api_id}/art")
async def game_art(
    api_id: str,
    viewer_id: int | None = Depends(get_viewer_id),
    engine=Depends(get_engine),
):
    return await run_db(art_service.list_game_art, engine, api_id, viewer_id)

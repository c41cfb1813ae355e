"""
vtilde.api.routes.library — A user's saved games
=================================================
"""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Query

from vtilde.api.deps import get_config, get_current_user_id, get_engine
from vtilde.api.schemas import CamelModel
from vtilde.config import VTildeConfig
from vtilde.constants import MAX_PAGE_SIZE
from vtilde.services import library_service

router = APIRouter(tags=["library"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class LibraryAdd(CamelModel):
    game_api_id: str | int
    game_name: str | None = None
    game_image_url: str | None = None
    status: str | None = None


class LibraryUpdate(CamelModel):
    game_id: int
    status: str | None = None
    rating: int | None = None
    review_text: str | None = None


class FavoriteArt(CamelModel):
    game_id: int
    art_id: int | None = None


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@router.get("/user/{user_id}/games")
def list_library(
    user_id: int,
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1, le=MAX_PAGE_SIZE),
    sort_by: Literal["recent", "rating"] = Query("recent", alias="sortBy"),
    filter_by: str | None = Query(None, alias="filterBy"),
    engine=Depends(get_engine),
    cfg: VTildeConfig = Depends(get_config),
):
    """Paginated library; ``filterBy`` is a status or ``all``."""
    return library_service.list_library(
        engine,
        user_id,
        page=page,
        limit=limit or cfg.library_page_size,
        sort_by=sort_by,
        filter_by=filter_by,
    )


@router.post("/user/games", status_code=201)
def add_game(
    body: LibraryAdd,
    user_id: int = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    return library_service.add_to_library(
        engine,
        user_id,
        game_api_id=str(body.game_api_id),
        game_name=body.game_name,
        game_image_url=body.game_image_url,
        status=body.status,
    )


@router.put("/user/games")
def update_game(
    body: LibraryUpdate,
    user_id: int = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    """Change status, rating and/or review.  Omitted fields are untouched."""
    changes = body.changes()
    changes.pop("gameId", None)
    entry = library_service.update_entry(engine, user_id, body.game_id, changes)
    return {"message": "Game updated successfully", "entry": entry}


@router.put("/user/games/favorite-art")
def set_favorite_art(
    body: FavoriteArt,
    user_id: int = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    entry = library_service.set_favorite_art(engine, user_id, body.game_id, body.art_id)
    return {"message": "Favorite art updated", "entry": entry}


@router.delete("/user/games/{game_id}")
def remove_game(
    game_id: int,
    user_id: int = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    library_service.remove_entry(engine, user_id, game_id)
    return {"message": "Game removed from library"}

"""
vtilde.api.routes.collections — Curated game lists
===================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from vtilde.api.deps import get_current_user_id, get_engine, get_viewer_id
from vtilde.api.schemas import CamelModel
from vtilde.services import collection_service

router = APIRouter(tags=["collections"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class CollectionCreate(CamelModel):
    name: str | None = None
    description: str | None = None
    is_public: bool = True


class CollectionUpdate(CamelModel):
    name: str | None = None
    description: str | None = None
    is_public: bool | None = None


class CollectionGameAdd(CamelModel):
    game_api_id: str | int
    game_name: str | None = None
    game_image_url: str | None = None


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
@router.get("/collections")
def my_collections(
    user_id: int = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    return collection_service.list_mine(engine, user_id)


@router.get("/users/{username}/collections")
def user_collections(
    username: str,
    viewer_id: int | None = Depends(get_viewer_id),
    engine=Depends(get_engine),
):
    return collection_service.list_public_for(engine, username, viewer_id)


@router.get("/collections/{collection_id}")
def get_collection(
    collection_id: int,
    viewer_id: int | None = Depends(get_viewer_id),
    engine=Depends(get_engine),
):
    return collection_service.get_collection(engine, collection_id, viewer_id)


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------
@router.post("/collections", status_code=201)
def create_collection(
    body: CollectionCreate,
    user_id: int = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    return collection_service.create_collection(
        engine,
        user_id,
        name=body.name,
        description=body.description,
        is_public=body.is_public,
    )


@router.put("/collections/{collection_id}")
def update_collection(
    collection_id: int,
    body: CollectionUpdate,
    user_id: int = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    return collection_service.update_collection(
        engine, collection_id, user_id, body.changes()
    )


@router.delete("/collections/{collection_id}")
def delete_collection(
    collection_id: int,
    user_id: int = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    collection_service.delete_collection(engine, collection_id, user_id)
    return {"message": "Collection deleted"}


@router.post("/collections/{collection_id}/games", status_code=201)
def add_collection_game(
    collection_id: int,
    body: CollectionGameAdd,
    user_id: int = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    return collection_service.add_game(
        engine,
        collection_id,
        user_id,
        game_api_id=str(body.game_api_id),
        game_name=body.game_name,
        game_image_url=body.game_image_url,
    )


@router.delete("/collections/{collection_id}/games/{game_id}")
def remove_collection_game(
    collection_id: int,
    game_id: int,
    user_id: int = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    return collection_service.remove_game(engine, collection_id, user_id, game_id)

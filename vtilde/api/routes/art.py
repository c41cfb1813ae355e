"""
vtilde.api.routes.art — Feeds, art uploads, likes and comments
===============================================================
"""

from __future__ import annotations

import asyncio
import logging
from typing import Literal

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from pydantic import BaseModel

from vtilde.api.deps import (
    get_config,
    get_current_user_id,
    get_engine,
    get_viewer_id,
)
from vtilde.config import VTildeConfig
from vtilde.constants import MAX_PAGE_SIZE
from vtilde.database.engine import run_db
from vtilde.errors import ValidationError
from vtilde.services import art_service, feed_service
from vtilde.services.upload_service import delete_upload, save_upload

router = APIRouter(tags=["art"])
logger = logging.getLogger(__name__)

SortMode = Literal["recent", "hot", "top"]


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class CommentCreate(BaseModel):
    content: str | None = None


# ---------------------------------------------------------------------------
# Feeds
# ---------------------------------------------------------------------------
@router.get("/drawings/popular")
def popular_drawings(
    limit: int | None = Query(None, ge=1, le=MAX_PAGE_SIZE),
    sort: SortMode = "recent",
    viewer_id: int | None = Depends(get_viewer_id),
    engine=Depends(get_engine),
    cfg: VTildeConfig = Depends(get_config),
):
    """Newest art on the site.  No login needed."""
    return feed_service.popular_feed(
        engine, limit or cfg.feed_page_size, viewer_id, sort=sort
    )


@router.get("/drawings/following")
def following_drawings(
    limit: int | None = Query(None, ge=1, le=MAX_PAGE_SIZE),
    sort: SortMode = "recent",
    user_id: int = Depends(get_current_user_id),
    engine=Depends(get_engine),
    cfg: VTildeConfig = Depends(get_config),
):
    """Newest art by the people the caller follows."""
    return feed_service.following_feed(
        engine, user_id, limit or cfg.feed_page_size, sort=sort
    )


# ---------------------------------------------------------------------------
# Upload / fetch / delete
# ---------------------------------------------------------------------------
async def upload_art(
    art_file: UploadFile | None = File(None, alias="artFile"),
    game_api_id: str | None = Form(None, alias="gameApiId"),
    game_id: int | None = Form(None, alias="gameId"),
    tags: str | None = Form(None),
    user_id: int = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    """Store an image and attach it to a saved game as new art."""
    if art_file is None or not art_file.filename:
        raise ValidationError("No file uploaded")

    content = await art_file.read()
    image_url = await save_upload(art_file.filename, content, art_file.content_type)
    try:
        return await run_db(
            art_service.create_art,
            engine,
            author_id=user_id,
            image_url=image_url,
            game_id=game_id,
            game_api_id=game_api_id,
            tags=tags,
        )
    except Exception:
        await asyncio.to_thread(delete_upload, image_url)
        raise


router.add_api_route("/art", upload_art, methods=["POST"], status_code=201)
router.add_api_route("/user/games/upload-art", upload_art, methods=["POST"], status_code=201)


@router.get("/art/{art_id}")
def get_art(
    art_id: int,
    viewer_id: int | None = Depends(get_viewer_id),
    engine=Depends(get_engine),
):
    return art_service.get_art(engine, art_id, viewer_id)


@router.delete("/art/{art_id}")
def delete_art(
    art_id: int,
    user_id: int = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    """Delete the caller's own art, its likes, comments and stored image."""
    image_url = art_service.delete_art(engine, art_id, user_id)
    delete_upload(image_url)
    return {"message": "Art deleted successfully"}


# ---------------------------------------------------------------------------
# Likes
# ---------------------------------------------------------------------------
@router.post("/art/{art_id}/like", status_code=201)
def like_art(
    art_id: int,
    user_id: int = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    likes = art_service.like_art(engine, art_id, user_id)
    return {"message": "Liked", "likes": likes}


@router.delete("/art/{art_id}/like")
def unlike_art(
    art_id: int,
    user_id: int = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    likes = art_service.unlike_art(engine, art_id, user_id)
    return {"message": "Unliked", "likes": likes}


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------
@router.get("/art/{art_id}/comments")
def list_comments(art_id: int, engine=Depends(get_engine)):
    return art_service.list_comments(engine, art_id)


@router.post("/art/{art_id}/comments", status_code=201)
def add_comment(
    art_id: int,
    body: CommentCreate,
    user_id: int = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    return art_service.add_comment(engine, art_id, user_id, body.content)


@router.delete("/comments/{comment_id}")
def delete_comment(
    comment_id: int,
    user_id: int = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    art_service.delete_comment(engine, comment_id, user_id)
    return {"message": "Comment deleted"}

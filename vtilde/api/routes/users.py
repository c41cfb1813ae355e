"""
vtilde.api.routes.users — Profiles, user search and follows
============================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from vtilde.api.deps import get_current_user_id, get_engine, get_viewer_id
from vtilde.api.schemas import CamelModel
from vtilde.services import social_service

router = APIRouter(tags=["users"])


class ProfileUpdate(CamelModel):
    bio: str | None = None


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------
@router.get("/search/users")
def search_users(
    q: str = "",
    viewer_id: int | None = Depends(get_viewer_id),
    engine=Depends(get_engine),
):
    """Username substring search; never returns the caller."""
    return social_service.search_users(engine, q, viewer_id)


@router.get("/users/search")
def search_users_legacy(
    query: str = "",
    viewer_id: int | None = Depends(get_viewer_id),
    engine=Depends(get_engine),
):
    return social_service.search_users(engine, query, viewer_id)


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------
@router.put("/users/me")
def update_me(
    body: ProfileUpdate,
    user_id: int = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    return social_service.update_profile(engine, user_id, bio=body.bio)


@router.get("/users/{username}")
def get_profile(
    username: str,
    viewer_id: int | None = Depends(get_viewer_id),
    engine=Depends(get_engine),
):
    return social_service.get_profile(engine, username, viewer_id)


# ---------------------------------------------------------------------------
# Follows
# ---------------------------------------------------------------------------
@router.post("/users/{target_id}/follow", status_code=201)
def follow(
    target_id: int,
    user_id: int = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    return social_service.follow(engine, user_id, target_id)


@router.delete("/users/{target_id}/follow")
def unfollow(
    target_id: int,
    user_id: int = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    return social_service.unfollow(engine, user_id, target_id)

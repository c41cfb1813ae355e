"""
vtilde.api.routes.notifications — The caller's inbox
=====================================================
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query

from vtilde.api.deps import get_current_user_id, get_engine
from vtilde.constants import MAX_PAGE_SIZE
from vtilde.services import notification_service

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("")
def list_notifications(
    limit: int = Query(50, ge=1, le=MAX_PAGE_SIZE),
    since: datetime | None = None,
    unread: bool = False,
    user_id: int = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    return notification_service.list_notifications(
        engine, user_id, limit=limit, since=since, unread_only=unread
    )


@router.get("/unread-count")
def unread_count(
    user_id: int = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    return {"count": notification_service.unread_count(engine, user_id)}


@router.put("/read-all")
def mark_all_read(
    user_id: int = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    updated = notification_service.mark_all_read(engine, user_id)
    return {"message": "All notifications marked as read", "updated": updated}


@router.put("/{notification_id}/read")
def mark_read(
    notification_id: int,
    user_id: int = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    return notification_service.mark_read(engine, user_id, notification_id)

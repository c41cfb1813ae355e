"""
vtilde.api.routes.conversations — Direct messaging
===================================================
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query

from vtilde.api.deps import get_current_user_id, get_engine
from vtilde.api.schemas import CamelModel
from vtilde.constants import MAX_PAGE_SIZE
from vtilde.services import messaging_service

router = APIRouter(prefix="/conversations", tags=["messaging"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class ConversationOpen(CamelModel):
    recipient_id: int


class MessageSend(CamelModel):
    content: str | None = None
    image_url: str | None = None


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@router.get("")
def list_conversations(
    user_id: int = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    return messaging_service.list_conversations(engine, user_id)


@router.post("")
def open_conversation(
    body: ConversationOpen,
    user_id: int = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    """Get or create the caller's conversation with ``recipientId``."""
    return messaging_service.open_conversation(engine, user_id, body.recipient_id)


@router.get("/unread-count")
def unread_count(
    user_id: int = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    return {"count": messaging_service.unread_total(engine, user_id)}


@router.get("/{conversation_id}/messages")
def list_messages(
    conversation_id: int,
    since: datetime | None = None,
    limit: int | None = Query(None, ge=1, le=MAX_PAGE_SIZE),
    user_id: int = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    return messaging_service.list_messages(
        engine, conversation_id, user_id, since=since, limit=limit
    )


@router.post("/{conversation_id}/messages", status_code=201)
def send_message(
    conversation_id: int,
    body: MessageSend,
    user_id: int = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    return messaging_service.send_message(
        engine, conversation_id, user_id, content=body.content, image_url=body.image_url
    )

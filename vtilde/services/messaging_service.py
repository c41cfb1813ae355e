"""
vtilde.services.messaging_service — Direct Messages
====================================================

A conversation is an *unordered* pair of users.  The pair is stored
normalized (``user1_id < user2_id``) so a unique constraint holds no
matter who started it, and :func:`open_conversation` is idempotent: the
second caller, or the loser of a race, gets the existing row back.

Only the two participants can read or post in a conversation.  Reading
the messages marks everything the *other* participant sent as read.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from vtilde.constants import MESSAGE_MAX_LENGTH
from vtilde.database.engine import get_session, normalize_dt
from vtilde.database.models import Conversation, Message, User
from vtilde.errors import Conflict, Forbidden, NotFound, ValidationError
from vtilde.services.serializers import conversation_dict, message_dict

if TYPE_CHECKING:
    from sqlalchemy import Engine
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

CONVERSATION_LOAD_OPTIONS = (selectinload(Conversation.user1), selectinload(Conversation.user2))


def _ordered_pair(a: int, b: int) -> tuple[int, int]:
    return (a, b) if a < b else (b, a)


def _participant_conversation(session: Session, conversation_id: int, user_id: int) -> Conversation:
    conversation = session.get(Conversation, conversation_id)
    if conversation is None:
        raise NotFound("Conversation not found")
    if user_id not in (conversation.user1_id, conversation.user2_id):
        raise Forbidden("Access denied")
    return conversation


def _find_pair(session: Session, low: int, high: int) -> Conversation | None:
    return session.scalar(
        select(Conversation)
        .options(*CONVERSATION_LOAD_OPTIONS)
        .where(Conversation.user1_id == low, Conversation.user2_id == high)
    )


# ---------------------------------------------------------------------------
# Conversations
# ---------------------------------------------------------------------------
def list_conversations(engine: Engine, user_id: int) -> list[dict]:
    """The user's conversations, most recently active first.

    Each carries its latest message (or none) and how many messages from
    the other side are still unread.
    """
    with get_session(engine) as session:
        conversations = session.scalars(
            select(Conversation)
            .options(*CONVERSATION_LOAD_OPTIONS)
            .where(or_(Conversation.user1_id == user_id, Conversation.user2_id == user_id))
        ).all()
        if not conversations:
            return []
        ids = [c.id for c in conversations]

        last_ids = session.execute(
            select(Message.conversation_id, func.max(Message.id))
            .where(Message.conversation_id.in_(ids))
            .group_by(Message.conversation_id)
        ).all()
        last_by_conv: dict[int, Message] = {}
        if last_ids:
            messages = session.scalars(
                select(Message)
                .options(selectinload(Message.sender))
                .where(Message.id.in_([mid for _, mid in last_ids]))
            ).all()
            last_by_conv = {m.conversation_id: m for m in messages}

        unread = dict(session.execute(
            select(Message.conversation_id, func.count(Message.id))
            .where(
                Message.conversation_id.in_(ids),
                Message.sender_id != user_id,
                Message.read.is_(False),
            )
            .group_by(Message.conversation_id)
        ).all())

        def activity_key(c: Conversation):
            last = last_by_conv.get(c.id)
            return (normalize_dt(last.created_at if last else c.created_at), c.id)

        ordered = sorted(conversations, key=activity_key, reverse=True)
        return [
            conversation_dict(c, last_by_conv.get(c.id), unread.get(c.id, 0))
            for c in ordered
        ]


def open_conversation(engine: Engine, user_id: int, recipient_id: int) -> dict:
    """Return the conversation between the two users, creating it if needed."""
    if recipient_id == user_id:
        raise Conflict("You cannot message yourself")

    low, high = _ordered_pair(user_id, recipient_id)
    with get_session(engine) as session:
        if session.get(User, recipient_id) is None:
            raise NotFound("User not found")

        conversation = _find_pair(session, low, high)
        if conversation is None:
            try:
                with session.begin_nested():   # SAVEPOINT
                    session.add(Conversation(user1_id=low, user2_id=high))
                    session.flush()
            except IntegrityError:
                # Created concurrently by the other participant.
                pass
            conversation = _find_pair(session, low, high)
            logger.info("Conversation %d opened between %d and %d", conversation.id, low, high)

        return conversation_dict(conversation)


def unread_total(engine: Engine, user_id: int) -> int:
    """Unread messages addressed to *user_id* across all conversations."""
    with get_session(engine) as session:
        return session.scalar(
            select(func.count(Message.id))
            .join(Conversation, Message.conversation_id == Conversation.id)
            .where(
                or_(Conversation.user1_id == user_id, Conversation.user2_id == user_id),
                Message.sender_id != user_id,
                Message.read.is_(False),
            )
        ) or 0


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------
def list_messages(
    engine: Engine,
    conversation_id: int,
    user_id: int,
    *,
    since: datetime | None = None,
    limit: int | None = None,
) -> list[dict]:
    """Messages oldest first; with *limit*, the newest *limit* of them."""
    with get_session(engine) as session:
        conversation = _participant_conversation(session, conversation_id, user_id)

        stmt = (
            select(Message)
            .options(selectinload(Message.sender))
            .where(Message.conversation_id == conversation.id)
        )
        if since is not None:
            stmt = stmt.where(Message.created_at > normalize_dt(since))
        stmt = stmt.order_by(Message.created_at.desc(), Message.id.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        messages = list(reversed(session.scalars(stmt).all()))

        session.execute(
            update(Message)
            .where(
                Message.conversation_id == conversation.id,
                Message.sender_id != user_id,
                Message.read.is_(False),
            )
            .values(read=True)
        )
        return [message_dict(m) for m in messages]


def send_message(
    engine: Engine,
    conversation_id: int,
    sender_id: int,
    *,
    content: str | None = None,
    image_url: str | None = None,
) -> dict:
    text = (content or "").strip() or None
    image_url = (image_url or "").strip() or None
    if text is None and image_url is None:
        raise ValidationError("Message content or image is required")
    if text is not None and len(text) > MESSAGE_MAX_LENGTH:
        raise ValidationError(f"Message is too long (max {MESSAGE_MAX_LENGTH} characters)")

    with get_session(engine) as session:
        conversation = _participant_conversation(session, conversation_id, sender_id)
        message = Message(
            conversation_id=conversation.id,
            sender_id=sender_id,
            content=text,
            image_url=image_url,
        )
        session.add(message)
        session.flush()
        session.refresh(message)
        return message_dict(message)

"""
vtilde.services.notification_service — Inbox & Activity Journal
================================================================

Two append-only streams written as side effects of other actions:

* **Notifications** land in the *target* user's inbox (someone liked your
  art, commented on it, followed you).
* **Activities** are written against the *actor* and fan out to followers
  through :func:`vtilde.services.feed_service.activity_feed`.

The writers take an open :class:`Session` so they commit atomically with
the action that caused them.  The readers open their own session.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select, update

from vtilde.database.engine import get_session, normalize_dt
from vtilde.database.models import Activity, ActivityType, Notification, NotificationType
from vtilde.errors import Forbidden, NotFound
from vtilde.services.serializers import notification_dict

if TYPE_CHECKING:
    from sqlalchemy import Engine
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Writers (run inside the caller's transaction)
# ---------------------------------------------------------------------------
def notify(
    session: Session,
    *,
    user_id: int,
    type: NotificationType,
    content: str,
    link: str | None = None,
    actor_id: int | None = None,
) -> Notification | None:
    """Queue a notification for *user_id*.

    Returns ``None`` without writing when the actor is the recipient;
    nobody is told about their own likes or comments.
    """
    if actor_id is not None and actor_id == user_id:
        return None
    row = Notification(user_id=user_id, type=type.value, content=content, link=link)
    session.add(row)
    return row


def record_activity(
    session: Session,
    *,
    user_id: int,
    type: ActivityType,
    content: str,
    link: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> Activity:
    row = Activity(
        user_id=user_id,
        type=type.value,
        content=content,
        link=link,
        metadata_=metadata,
    )
    session.add(row)
    return row


# ---------------------------------------------------------------------------
# Readers
# ---------------------------------------------------------------------------
def list_notifications(
    engine: Engine,
    user_id: int,
    *,
    limit: int = 50,
    since: datetime | None = None,
    unread_only: bool = False,
) -> list[dict]:
    """Newest-first inbox for *user_id*."""
    stmt = select(Notification).where(Notification.user_id == user_id)
    if since is not None:
        stmt = stmt.where(Notification.created_at > normalize_dt(since))
    if unread_only:
        stmt = stmt.where(Notification.read.is_(False))
    stmt = stmt.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)

    with get_session(engine) as session:
        return [notification_dict(n) for n in session.scalars(stmt).all()]


def unread_count(engine: Engine, user_id: int) -> int:
    with get_session(engine) as session:
        return session.scalar(
            select(func.count())
            .select_from(Notification)
            .where(Notification.user_id == user_id, Notification.read.is_(False))
        ) or 0


def mark_read(engine: Engine, user_id: int, notification_id: int) -> dict:
    """Mark one notification read.  Only its recipient may do this."""
    with get_session(engine) as session:
        row = session.get(Notification, notification_id)
        if row is None:
            raise NotFound("Notification not found")
        if row.user_id != user_id:
            raise Forbidden("Not your notification")
        row.read = True
        session.flush()
        return notification_dict(row)


def mark_all_read(engine: Engine, user_id: int) -> int:
    """Mark every unread notification read; returns how many changed."""
    with get_session(engine) as session:
        result = session.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.read.is_(False))
            .values(read=True)
        )
        logger.debug("Marked %d notifications read for user %d", result.rowcount, user_id)
        return result.rowcount or 0

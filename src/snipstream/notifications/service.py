"""Notification store: append, list and read-state transitions.

Every query is scoped to the owning user; a notification id belonging to
someone else behaves exactly like a missing one.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from snipstream.db.models import Notification, User
from snipstream.notifications.factory import DomainEvent, build_notification
from snipstream.notifications.schemas import ActorResponse, NotificationResponse

logger = logging.getLogger(__name__)

UNKNOWN_ACTOR_NAME = "Unknown User"


async def append_notification(db: AsyncSession, notification: Notification) -> Notification:
    """Persist a built notification. The row has an ``id`` after the flush."""
    db.add(notification)
    await db.flush()
    return notification


async def create_notification(db: AsyncSession, event: DomainEvent) -> Notification | None:
    """Build and append the notification for ``event``; None when suppressed."""
    notification = build_notification(event)
    if notification is None:
        logger.debug("Suppressed self-notification %s for user %s", event.kind, event.recipient_id)
        return None
    return await append_notification(db, notification)


async def get_notifications(
    db: AsyncSession,
    user_id: str,
    limit: int = 50,
) -> list[Notification]:
    """User's notifications, most recent first."""
    result = await db.execute(
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def get_notification(db: AsyncSession, user_id: str, notification_id: int) -> Notification | None:
    result = await db.execute(
        select(Notification).where(
            Notification.id == notification_id,
            Notification.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def mark_as_read(db: AsyncSession, user_id: str, notification_id: int) -> bool:
    """Mark a single notification as read. Returns True if found.

    Marking an already-read notification is a no-op that still returns True.
    """
    result = await db.execute(
        update(Notification)
        .where(Notification.id == notification_id, Notification.user_id == user_id)
        .values(read=True)
    )
    await db.flush()
    return result.rowcount > 0


async def mark_all_as_read(db: AsyncSession, user_id: str) -> int:
    """Mark all unread notifications as read. Returns count updated."""
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.read.is_(False))
        .values(read=True)
    )
    await db.flush()
    return result.rowcount


async def clear_all(db: AsyncSession, user_id: str) -> int:
    """Hard-delete every notification of the user. Returns count deleted."""
    result = await db.execute(
        delete(Notification)
        .where(Notification.user_id == user_id)
    )
    await db.flush()
    return result.rowcount


async def delete_notification(db: AsyncSession, user_id: str, notification_id: int) -> bool:
    """Delete one notification owned by the user. Returns True if found."""
    result = await db.execute(
        delete(Notification)
        .where(Notification.id == notification_id, Notification.user_id == user_id)
    )
    await db.flush()
    return result.rowcount > 0


async def get_unread_count(db: AsyncSession, user_id: str) -> int:
    """Get count of unread notifications."""
    result = await db.execute(
        select(func.count())
        .select_from(Notification)
        .where(Notification.user_id == user_id, Notification.read.is_(False))
    )
    return result.scalar_one()


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


async def load_actors(db: AsyncSession, notifications: Iterable[Notification]) -> dict[str, User]:
    """Fetch the actor users referenced by ``notifications`` in one query."""
    actor_ids = {n.actor_id for n in notifications if n.actor_id}
    if not actor_ids:
        return {}
    result = await db.execute(select(User).where(User.id.in_(actor_ids)))
    return {u.id: u for u in result.scalars()}


def serialize_actor(actor_id: str | None, actor: User | None) -> ActorResponse | None:
    if actor_id is None:
        return None
    if actor is None:
        return ActorResponse(id=actor_id, username=UNKNOWN_ACTOR_NAME, profile_url=None)
    return ActorResponse(id=actor.id, username=actor.username, profile_url=actor.profile_url)


def serialize_notification(notification: Notification, actor: User | None = None) -> NotificationResponse:
    return NotificationResponse(
        id=str(notification.id),
        recipient_id=notification.user_id,
        type=notification.type,
        message=notification.message,
        read=notification.read,
        created_at=notification.created_at,
        target_id=notification.target_id,
        metadata=notification.notification_metadata or {},
        actor=serialize_actor(notification.actor_id, actor),
    )


def build_push_payload(notification: Notification, actor: User | None = None) -> dict[str, Any]:
    """Realtime frame: ``{"type": "notification", "data": <notification>}``."""
    return {
        "type": "notification",
        "data": serialize_notification(notification, actor).model_dump(mode="json", by_alias=True),
    }

"""Notification API endpoints: inbox, read state, event creation and the live stream."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sse_starlette.sse import EventSourceResponse

from snipstream.auth.dependencies import get_current_user, get_streaming_user
from snipstream.config import get_settings
from snipstream.database import get_session
from snipstream.db.models import User
from snipstream.dependencies import get_hub
from snipstream.events.ingestion import EventIngestion
from snipstream.exceptions import InvalidEventError
from snipstream.notifications.schemas import (
    ActionResponse,
    CreateEventRequest,
    MarkReadRequest,
    NotificationEnvelope,
    NotificationListResponse,
    UnreadCountResponse,
)
from snipstream.notifications.service import (
    clear_all,
    delete_notification,
    get_notification,
    get_notifications,
    get_unread_count,
    load_actors,
    mark_all_as_read,
    mark_as_read,
    serialize_notification,
)
from snipstream.realtime.hub import NotificationHub
from snipstream.realtime.stream import notification_stream

router = APIRouter(prefix="/api/v1", tags=["Notifications"])


@router.get("/notifications", response_model=NotificationListResponse)
async def list_notifications(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """List the caller's notifications, newest first."""
    notifications = await get_notifications(db, user.id, get_settings().notification_list_limit)
    actors = await load_actors(db, notifications)
    return NotificationListResponse(
        notifications=[
            serialize_notification(n, actors.get(n.actor_id or ""))
            for n in notifications
        ],
    )


@router.post("/notifications", response_model=NotificationEnvelope, status_code=201)
async def create_event_notification(
    body: CreateEventRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    hub: NotificationHub = Depends(get_hub),
):
    """Record a domain event with the caller as actor.

    ``notification`` is null when the event is a self-action.
    """
    recipient = await db.execute(select(User.id).where(User.id == body.recipient_id))
    if recipient.scalar_one_or_none() is None:
        raise HTTPException(status_code=404, detail="Recipient not found")

    try:
        notification = await EventIngestion(db, hub).record_event(
            body.kind, user.id, body.recipient_id, body.target_id, body.metadata,
        )
    except InvalidEventError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    if notification is None:
        return NotificationEnvelope(notification=None)
    return NotificationEnvelope(notification=serialize_notification(notification, user))


@router.get("/notifications/unread-count", response_model=UnreadCountResponse)
async def get_unread_notification_count(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Get unread notification count."""
    count = await get_unread_count(db, user.id)
    return UnreadCountResponse(unread_count=count)


@router.get("/notifications/sse")
async def stream_notifications(
    request: Request,
    user: User = Depends(get_streaming_user),
    hub: NotificationHub = Depends(get_hub),
) -> EventSourceResponse:
    """Live notification stream (Server-Sent Events).

    Clients should keep polling ``GET /notifications`` as a fallback and
    de-duplicate by ``_id`` against frames received here.
    """
    settings = get_settings()
    return EventSourceResponse(
        notification_stream(request, hub, user.id, settings.sse_heartbeat_interval_seconds),
    )


@router.patch("/notifications/mark-all-read", response_model=ActionResponse)
async def mark_all_read(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Mark all of the caller's notifications as read."""
    count = await mark_all_as_read(db, user.id)
    await db.commit()
    return ActionResponse(message=f"Marked {count} notifications as read", count=count)


@router.delete("/notifications/clear", response_model=ActionResponse)
async def clear_notifications(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Delete all of the caller's notifications. Irreversible."""
    count = await clear_all(db, user.id)
    await db.commit()
    return ActionResponse(message=f"Cleared {count} notifications", count=count)


@router.patch("/notifications/{notification_id}", response_model=NotificationEnvelope)
async def mark_notification_read(
    notification_id: int,
    body: MarkReadRequest | None = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Mark one notification as read (idempotent). Body: ``{"read": true}``."""
    found = await mark_as_read(db, user.id, notification_id)
    if not found:
        raise HTTPException(status_code=404, detail="Notification not found")
    await db.commit()

    notification = await get_notification(db, user.id, notification_id)
    actors = await load_actors(db, [notification])
    return NotificationEnvelope(
        notification=serialize_notification(notification, actors.get(notification.actor_id or "")),
    )


@router.delete("/notifications/{notification_id}", response_model=ActionResponse)
async def delete_single_notification(
    notification_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Delete one of the caller's notifications."""
    found = await delete_notification(db, user.id, notification_id)
    if not found:
        raise HTTPException(status_code=404, detail="Notification not found")
    await db.commit()
    return ActionResponse(message="Notification deleted successfully")

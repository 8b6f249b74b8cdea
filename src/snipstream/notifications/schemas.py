"""Pydantic models for the notification endpoints and realtime frames.

Field aliases are the wire names the web client already consumes
(``_id``, ``createdAt``, ``profileURL``...).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ActorResponse(_WireModel):
    id: str | None = Field(default=None, alias="_id")
    username: str
    profile_url: str | None = Field(default=None, alias="profileURL")


class NotificationResponse(_WireModel):
    id: str = Field(alias="_id")
    recipient_id: str = Field(alias="recipientId")
    type: str
    message: str
    read: bool
    created_at: datetime = Field(alias="createdAt")
    target_id: str | None = Field(default=None, alias="targetId")
    metadata: dict[str, Any] = {}
    actor: ActorResponse | None = None


class NotificationListResponse(_WireModel):
    success: bool = True
    notifications: list[NotificationResponse]


class NotificationEnvelope(_WireModel):
    success: bool = True
    notification: NotificationResponse | None = None


class UnreadCountResponse(_WireModel):
    success: bool = True
    unread_count: int = Field(alias="unreadCount")


class ActionResponse(_WireModel):
    success: bool = True
    message: str
    count: int | None = None


class MarkReadRequest(_WireModel):
    read: Literal[True] = True


class CreateEventRequest(_WireModel):
    kind: str = Field(alias="type")
    recipient_id: str = Field(alias="recipientId", min_length=1)
    target_id: str | None = Field(default=None, alias="targetId")
    metadata: dict[str, Any] = {}

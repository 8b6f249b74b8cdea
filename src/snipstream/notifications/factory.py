"""Notification factory: turns a typed domain event into an inbox row."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

from snipstream.config import get_settings
from snipstream.db.models import Notification
from snipstream.exceptions import InvalidEventError


class NotificationKind(StrEnum):
    FOLLOW = "follow"
    LIKE = "like"
    COMMENT = "comment"
    MENTION = "mention"
    ACHIEVEMENT = "achievement"


def parse_kind(kind: str | NotificationKind) -> NotificationKind:
    """Validate an event kind, raising InvalidEventError for anything unknown."""
    try:
        return NotificationKind(kind)
    except ValueError:
        raise InvalidEventError(
            f"Invalid event kind: {kind!r}. Must be one of {[k.value for k in NotificationKind]}"
        ) from None


@dataclass(frozen=True)
class DomainEvent:
    kind: NotificationKind
    recipient_id: str
    actor_id: str | None = None
    target_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        kind: str | NotificationKind,
        actor_id: str | None,
        recipient_id: str,
        target_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> DomainEvent:
        if not recipient_id:
            raise InvalidEventError("Event recipient is required")
        return cls(
            kind=parse_kind(kind),
            recipient_id=str(recipient_id),
            actor_id=str(actor_id) if actor_id is not None else None,
            target_id=str(target_id) if target_id is not None else None,
            metadata=dict(metadata or {}),
        )

    @property
    def is_self_action(self) -> bool:
        return self.actor_id is not None and self.actor_id == self.recipient_id


def build_message(kind: NotificationKind, metadata: dict[str, Any]) -> str:
    """Canned phrase for each kind; the actor's name is rendered by the client."""
    snippet_title = metadata.get("snippetTitle")
    snippet_ref = f' "{snippet_title}"' if snippet_title else ""

    if kind is NotificationKind.LIKE:
        return f"liked your snippet{snippet_ref}"
    if kind is NotificationKind.FOLLOW:
        return "started following you"
    if kind is NotificationKind.COMMENT:
        return f"commented on your snippet{snippet_ref}"
    if kind is NotificationKind.MENTION:
        return f"mentioned you in a snippet{snippet_ref}"
    title = metadata.get("achievementTitle")
    return f'earned a new achievement: "{title}"' if title else "earned a new achievement"


def _normalize_metadata(event: DomainEvent, excerpt_length: int) -> dict[str, Any]:
    metadata = dict(event.metadata)
    if event.kind is NotificationKind.COMMENT:
        content = metadata.pop("commentContent", None)
        excerpt = metadata.get("commentExcerpt", content)
        if excerpt is not None:
            metadata["commentExcerpt"] = str(excerpt)[:excerpt_length]
    return metadata


def build_notification(
    event: DomainEvent,
    now: datetime | None = None,
    excerpt_length: int | None = None,
) -> Notification | None:
    """Build (but do not persist) the notification for ``event``.

    Returns None when the actor is the recipient.
    """
    if event.is_self_action:
        return None

    if excerpt_length is None:
        excerpt_length = get_settings().comment_excerpt_length
    metadata = _normalize_metadata(event, excerpt_length)

    return Notification(
        user_id=event.recipient_id,
        type=event.kind.value,
        actor_id=event.actor_id,
        target_id=event.target_id,
        message=build_message(event.kind, metadata),
        read=False,
        notification_metadata=metadata,
        created_at=now or datetime.now(timezone.utc),
    )

"""Event ingestion: the engine's entry point for domain actions.

``record_metric`` feeds an absolute metric reading into achievement
progress and turns every unlock into an ``achievement`` notification.
``record_event`` turns a like/comment/follow/mention into a notification.
Both persist, commit, then push to any live connection of the recipient.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from snipstream.achievements.catalog import AchievementCatalog, AchievementDefinition, get_catalog
from snipstream.achievements.progress_service import update_metric
from snipstream.db.models import Notification
from snipstream.notifications.factory import DomainEvent, NotificationKind
from snipstream.notifications.service import build_push_payload, create_notification, load_actors
from snipstream.realtime.hub import NotificationHub

logger = logging.getLogger(__name__)


def achievement_event(user_id: str, definition: AchievementDefinition) -> DomainEvent:
    """System-generated event for an unlock (no actor)."""
    return DomainEvent(
        kind=NotificationKind.ACHIEVEMENT,
        recipient_id=user_id,
        actor_id=None,
        target_id=definition.id,
        metadata={
            "achievementId": definition.id,
            "achievementTitle": definition.title,
            "rarity": definition.rarity,
            "icon": definition.icon,
        },
    )


class EventIngestion:
    """Records domain events and metrics against one session.

    The session is committed by each call; give it a session of its own,
    not the one carrying the caller's primary write.
    """

    def __init__(
        self,
        db: AsyncSession,
        hub: NotificationHub | None,
        catalog: AchievementCatalog | None = None,
    ) -> None:
        self.db = db
        self.hub = hub
        self.catalog = catalog or get_catalog()

    async def record_metric(
        self,
        user_id: str,
        metric: str,
        value: float,
    ) -> list[AchievementDefinition]:
        """Apply ``value`` (the current total, not a delta) for ``metric``.

        Returns the achievements this call unlocked.
        """
        unlocked = await update_metric(self.db, user_id, metric, value, self.catalog)

        created: list[Notification] = []
        for definition in unlocked:
            notification = await create_notification(self.db, achievement_event(user_id, definition))
            if notification is not None:
                created.append(notification)

        await self.db.commit()

        for notification in created:
            await self.push(notification)
        return unlocked

    async def record_event(
        self,
        kind: str | NotificationKind,
        actor_id: str | None,
        recipient_id: str,
        target_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Notification | None:
        """Create, persist and push the notification for a domain event.

        Returns None for self-actions. Raises InvalidEventError on bad input.
        """
        event = DomainEvent.create(kind, actor_id, recipient_id, target_id, metadata)
        notification = await create_notification(self.db, event)
        if notification is None:
            return None

        await self.db.commit()
        await self.push(notification)
        return notification

    async def push(self, notification: Notification) -> int:
        """Broadcast a committed notification. Never raises."""
        if self.hub is None:
            return 0
        try:
            actors = await load_actors(self.db, [notification])
            payload = build_push_payload(notification, actors.get(notification.actor_id or ""))
            return self.hub.broadcast(notification.user_id, payload)
        except Exception:
            logger.warning(
                "Failed to push notification %s to user %s",
                notification.id, notification.user_id, exc_info=True,
            )
            return 0

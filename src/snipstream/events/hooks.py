"""Best-effort side effects for the platform's CRUD handlers.

A handler performs (and commits) its primary write, then calls one of the
``on_*`` helpers. Each helper runs in a session of its own; storage and
transport failures are logged and swallowed so they can never fail or roll
back the primary action. Bad input (unknown metric, unknown event kind) is
a programming error and still raises.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any, TypeVar

from sqlalchemy import select

from snipstream.achievements.catalog import AchievementDefinition, Metric
from snipstream.achievements.streak import next_daily_streak
from snipstream.database import get_session_factory
from snipstream.db.models import Notification, User
from snipstream.events.ingestion import EventIngestion
from snipstream.exceptions import SnipstreamError
from snipstream.notifications.factory import NotificationKind
from snipstream.realtime.hub import NotificationHub

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def best_effort(
    label: str,
    hub: NotificationHub | None,
    effect: Callable[[EventIngestion], Awaitable[T]],
    default: T,
) -> T:
    """Run ``effect`` in its own session; log and return ``default`` on failure."""
    try:
        async with get_session_factory()() as db:
            return await effect(EventIngestion(db, hub))
    except SnipstreamError:
        raise
    except Exception:
        logger.warning("Side effect %s failed; primary action unaffected", label, exc_info=True)
        return default


async def safe_record_metric(
    hub: NotificationHub | None,
    user_id: str,
    metric: str,
    value: float,
) -> list[AchievementDefinition]:
    return await best_effort(
        f"record_metric:{metric}",
        hub,
        lambda ingest: ingest.record_metric(user_id, metric, value),
        [],
    )


async def safe_record_event(
    hub: NotificationHub | None,
    kind: str | NotificationKind,
    actor_id: str | None,
    recipient_id: str,
    target_id: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> Notification | None:
    return await best_effort(
        f"record_event:{kind}",
        hub,
        lambda ingest: ingest.record_event(kind, actor_id, recipient_id, target_id, metadata),
        None,
    )


# ---------------------------------------------------------------------------
# Domain actions
# ---------------------------------------------------------------------------


async def on_user_registered(hub: NotificationHub | None, user_id: str) -> list[AchievementDefinition]:
    return await safe_record_metric(hub, user_id, Metric.JOIN_DATE, 1)


async def on_user_login(
    hub: NotificationHub | None,
    user_id: str,
    now: datetime | None = None,
) -> int | None:
    """Advance the user's daily streak and feed it to the streak achievements.

    Returns the new streak, or None if it could not be stored.
    """
    now = now or datetime.now(timezone.utc)

    async def _update(ingest: EventIngestion) -> int | None:
        result = await ingest.db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if user is None:
            logger.warning("Login streak skipped: user %s not found", user_id)
            return None
        streak = next_daily_streak(user.daily_streak or 0, user.last_login_at, now)
        user.daily_streak = streak
        user.last_login_at = now
        await ingest.record_metric(user_id, Metric.DAILY_STREAK, streak)
        return streak

    return await best_effort("login_streak", hub, _update, None)


async def on_snippet_count_changed(
    hub: NotificationHub | None,
    user_id: str,
    total_snippets: int,
) -> list[AchievementDefinition]:
    """After a snippet is created or deleted; ``total_snippets`` is the new count."""
    return await safe_record_metric(hub, user_id, Metric.SNIPPETS_CREATED, total_snippets)


async def on_snippet_liked(
    hub: NotificationHub | None,
    actor_id: str,
    owner_id: str,
    snippet_id: str,
    snippet_title: str | None = None,
    total_likes: int | None = None,
) -> Notification | None:
    notification = await safe_record_event(
        hub,
        NotificationKind.LIKE,
        actor_id,
        owner_id,
        snippet_id,
        {"snippetId": snippet_id, "snippetTitle": snippet_title or "Untitled Snippet"},
    )
    if total_likes is not None:
        await safe_record_metric(hub, owner_id, Metric.LIKES_RECEIVED, total_likes)
    return notification


async def on_comment_created(
    hub: NotificationHub | None,
    actor_id: str,
    owner_id: str,
    snippet_id: str,
    content: str,
    snippet_title: str | None = None,
    total_comments: int | None = None,
) -> Notification | None:
    """``total_comments`` is the number of comments the owner's snippets have received."""
    notification = await safe_record_event(
        hub,
        NotificationKind.COMMENT,
        actor_id,
        owner_id,
        snippet_id,
        {
            "snippetId": snippet_id,
            "snippetTitle": snippet_title or "Untitled Snippet",
            "commentExcerpt": content,
        },
    )
    if total_comments is not None:
        await safe_record_metric(hub, owner_id, Metric.COMMENTS_RECEIVED, total_comments)
    return notification


async def on_user_followed(
    hub: NotificationHub | None,
    follower_id: str,
    followed_id: str,
) -> Notification | None:
    return await safe_record_event(hub, NotificationKind.FOLLOW, follower_id, followed_id, followed_id, {})


async def on_user_mentioned(
    hub: NotificationHub | None,
    actor_id: str,
    mentioned_id: str,
    snippet_id: str,
    snippet_title: str | None = None,
) -> Notification | None:
    return await safe_record_event(
        hub,
        NotificationKind.MENTION,
        actor_id,
        mentioned_id,
        snippet_id,
        {"snippetId": snippet_id, "snippetTitle": snippet_title or "Untitled Snippet"},
    )


async def on_snippet_viewed(
    hub: NotificationHub | None,
    owner_id: str,
    total_views: int,
) -> list[AchievementDefinition]:
    """``total_views`` is the sum of views across all of the owner's snippets."""
    return await safe_record_metric(hub, owner_id, Metric.VIEWS_RECEIVED, total_views)

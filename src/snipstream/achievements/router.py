"""Achievement API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from snipstream.achievements.catalog import get_catalog
from snipstream.achievements.progress_service import get_or_create_all
from snipstream.achievements.schemas import (
    AchievementListResponse,
    AchievementProgressResponse,
    RecordMetricRequest,
    RecordMetricResponse,
    UnlockedAchievement,
)
from snipstream.auth.dependencies import get_current_user
from snipstream.database import get_session
from snipstream.db.models import User
from snipstream.dependencies import get_hub
from snipstream.events.ingestion import EventIngestion
from snipstream.exceptions import InvalidMetricValueError, UnknownMetricError
from snipstream.realtime.hub import NotificationHub

router = APIRouter(prefix="/api/v1", tags=["Achievements"])


@router.get("/achievements", response_model=AchievementListResponse)
async def list_achievements(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """The caller's progress on every catalog achievement, in catalog order.

    Missing progress rows are created on first read.
    """
    catalog = get_catalog()
    rows = await get_or_create_all(db, user.id, catalog)
    await db.commit()

    items = []
    for row in rows:
        definition = catalog.get(row.achievement_id)
        items.append(AchievementProgressResponse(
            id=str(row.id),
            achievement_id=definition.id,
            title=definition.title,
            description=definition.description,
            icon=definition.icon,
            rarity=definition.rarity,
            color=definition.color,
            category=definition.category,
            metric=definition.metric.value,
            criteria_type=definition.criteria_type,
            threshold=definition.threshold,
            current=row.current,
            progress=row.progress,
            unlocked=row.unlocked_at is not None,
            unlocked_at=row.unlocked_at,
            last_updated=row.last_updated,
            metrics=row.metrics or {},
        ))
    return AchievementListResponse(achievements=items)


@router.post("/achievements/metrics", response_model=RecordMetricResponse)
async def record_my_metric(
    body: RecordMetricRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    hub: NotificationHub = Depends(get_hub),
):
    """Feed the caller's current total for a metric into achievement progress."""
    try:
        unlocked = await EventIngestion(db, hub).record_metric(user.id, body.metric, body.value)
    except (UnknownMetricError, InvalidMetricValueError) as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    return RecordMetricResponse(
        unlocked=[UnlockedAchievement(id=d.id, title=d.title, rarity=d.rarity) for d in unlocked],
    )

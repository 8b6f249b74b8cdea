"""Progress store: per-user achievement rows, lazy creation and metric updates."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from snipstream.achievements.catalog import (
    AchievementCatalog,
    AchievementDefinition,
    Metric,
    canonical_metric,
    get_catalog,
)
from snipstream.achievements.evaluator import ProgressState, evaluate
from snipstream.db.models import AchievementProgress
from snipstream.exceptions import InvalidMetricValueError

logger = logging.getLogger(__name__)


def empty_metrics_snapshot() -> dict[str, float]:
    return {m.value: 0 for m in Metric}


async def _load_rows(db: AsyncSession, user_id: str) -> list[AchievementProgress]:
    result = await db.execute(
        select(AchievementProgress).where(AchievementProgress.user_id == user_id)
    )
    return list(result.scalars().all())


def _match(
    rows_by_id: dict[str, AchievementProgress],
    definition: AchievementDefinition,
) -> AchievementProgress | None:
    """Pick the row for ``definition``, preferring the canonical spelling."""
    return rows_by_id.get(definition.id) or rows_by_id.get(definition.legacy_id)


async def find_progress(
    db: AsyncSession,
    user_id: str,
    achievement_id: str,
    catalog: AchievementCatalog | None = None,
) -> AchievementProgress | None:
    """Fetch a user's row for an achievement given either id spelling."""
    catalog = catalog or get_catalog()
    definition = catalog.get(achievement_id)
    if definition is None:
        return None

    result = await db.execute(
        select(AchievementProgress).where(
            AchievementProgress.user_id == user_id,
            AchievementProgress.achievement_id.in_([definition.id, definition.legacy_id]),
        )
    )
    return _match({r.achievement_id: r for r in result.scalars()}, definition)


async def get_or_create_all(
    db: AsyncSession,
    user_id: str,
    catalog: AchievementCatalog | None = None,
) -> list[AchievementProgress]:
    """Return one row per catalog entry, creating missing rows with current=0.

    Existing rows are recognised under the canonical id or the legacy alias,
    so a legacy row is never shadowed by a fresh canonical one. The inserts
    run in a savepoint: a concurrent creator winning the unique constraint
    rolls back only that savepoint, the caller's pending writes survive,
    and the rows are re-read.
    """
    catalog = catalog or get_catalog()

    for attempt in range(2):
        rows_by_id = {r.achievement_id: r for r in await _load_rows(db, user_id)}
        missing = [d for d in catalog if _match(rows_by_id, d) is None]
        if not missing:
            break

        now = datetime.now(timezone.utc)
        try:
            async with db.begin_nested():
                for definition in missing:
                    row = AchievementProgress(
                        user_id=user_id,
                        achievement_id=definition.id,
                        metric=definition.metric.value,
                        threshold=definition.threshold,
                        current=0,
                        progress=0.0,
                        metrics=empty_metrics_snapshot(),
                        created_at=now,
                        last_updated=now,
                    )
                    db.add(row)
                    rows_by_id[definition.id] = row
                await db.flush()
            break
        except IntegrityError:
            if attempt:
                raise
            logger.info("Achievement rows for user %s created concurrently, re-reading", user_id)

    return [row for d in catalog if (row := _match(rows_by_id, d)) is not None]


async def _claim_unlock(db: AsyncSession, row: AchievementProgress, now: datetime) -> bool:
    """Set ``unlocked_at`` only if no writer has set it yet.

    Returns True for the single caller that performed the transition.
    """
    result = await db.execute(
        update(AchievementProgress)
        .where(
            AchievementProgress.id == row.id,
            AchievementProgress.unlocked_at.is_(None),
        )
        .values(unlocked_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 1:
        set_committed_value(row, "unlocked_at", now)
        return True

    await db.refresh(row, ["unlocked_at"])
    return False


async def update_metric(
    db: AsyncSession,
    user_id: str,
    metric: str,
    value: float,
    catalog: AchievementCatalog | None = None,
    now: datetime | None = None,
) -> list[AchievementDefinition]:
    """Apply an absolute metric reading to every achievement fed by that metric.

    Returns the definitions unlocked by this call, in catalog order. Raises
    UnknownMetricError / InvalidMetricValueError for bad input.
    """
    catalog = catalog or get_catalog()
    resolved = canonical_metric(metric)
    try:
        value = float(value)
    except (TypeError, ValueError) as e:
        raise InvalidMetricValueError(value) from e
    if not math.isfinite(value) or value < 0:
        raise InvalidMetricValueError(value)

    now = now or datetime.now(timezone.utc)
    rows = await get_or_create_all(db, user_id, catalog)
    unlocked: list[AchievementDefinition] = []

    for row in rows:
        row.metrics = {**(row.metrics or {}), resolved.value: value}

        definition = catalog.get(row.achievement_id)
        if definition is None or definition.metric != resolved:
            continue

        state, unlocked_now = evaluate(
            ProgressState(current=row.current, progress=row.progress, unlocked_at=row.unlocked_at),
            definition,
            value,
            now=now,
        )
        row.current = state.current
        row.progress = state.progress
        row.threshold = definition.threshold
        row.last_updated = now

        if unlocked_now:
            await db.flush()
            if await _claim_unlock(db, row, now):
                unlocked.append(definition)

    await db.flush()

    if unlocked:
        logger.info(
            "User %s unlocked %s via %s=%s",
            user_id, [d.id for d in unlocked], resolved.value, value,
        )
    return unlocked

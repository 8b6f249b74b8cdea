"""Pure achievement evaluation: no I/O, no clock unless one is passed in."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone

from snipstream.achievements.catalog import AchievementDefinition


@dataclass(frozen=True)
class ProgressState:
    """The evaluator's view of an AchievementProgress row."""

    current: float = 0
    progress: float = 0.0
    unlocked_at: datetime | None = None

    @property
    def unlocked(self) -> bool:
        return self.unlocked_at is not None


def compute_progress(definition: AchievementDefinition, value: float) -> float:
    """Fraction of the threshold reached, clamped to [0, 1].

    Boolean criteria are all-or-nothing.
    """
    if definition.criteria_type == "boolean":
        return 1.0 if value >= definition.threshold else 0.0
    return min(max(value / definition.threshold, 0.0), 1.0)


def evaluate(
    state: ProgressState,
    definition: AchievementDefinition,
    new_value: float,
    now: datetime | None = None,
) -> tuple[ProgressState, bool]:
    """Apply an absolute metric reading to a progress state.

    ``new_value`` is the caller's recomputed total, never a delta. It may be
    lower than the previous reading; progress follows it down but an
    existing ``unlocked_at`` is kept. Returns the new state and whether this
    call is the one that unlocked the achievement.
    """
    updated = replace(
        state,
        current=new_value,
        progress=compute_progress(definition, new_value),
    )
    if state.unlocked_at is None and new_value >= definition.threshold:
        return replace(updated, unlocked_at=now or datetime.now(timezone.utc)), True
    return updated, False

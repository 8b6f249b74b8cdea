"""Achievement catalog: definitions, metric names and id aliases.

The catalog is static configuration loaded once at process start. Two id
spellings exist for every achievement: the canonical kebab-case id
(``code-master``) and the legacy upper-snake alias (``CODE_MASTER``) that
older progress rows were stored under. All id and metric lookups go
through ``canonical_achievement_id`` / ``canonical_metric`` so callers never
deal with the aliases themselves.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from snipstream.config import get_settings
from snipstream.exceptions import CatalogError, UnknownMetricError

logger = logging.getLogger(__name__)


class Metric(StrEnum):
    SNIPPETS_CREATED = "snippetsCreated"
    LIKES_RECEIVED = "likesReceived"
    DAILY_STREAK = "dailyStreak"
    COMMENTS_RECEIVED = "commentsReceived"
    VIEWS_RECEIVED = "viewsReceived"
    JOIN_DATE = "joinDate"


CRITERIA_TYPES = {"count", "boolean"}


@dataclass(frozen=True)
class AchievementDefinition:
    id: str
    title: str
    description: str
    metric: Metric
    threshold: float
    criteria_type: str = "count"
    icon: str = "Award"
    rarity: str = "Common"
    color: str = "blue"
    category: str = "milestone"

    @property
    def legacy_id(self) -> str:
        return legacy_alias(self.id)

    def display(self) -> dict[str, Any]:
        """Catalog metadata merged into API responses."""
        return {
            "title": self.title,
            "description": self.description,
            "icon": self.icon,
            "rarity": self.rarity,
            "color": self.color,
            "category": self.category,
            "threshold": self.threshold,
            "criteriaType": self.criteria_type,
            "metric": str(self.metric),
        }


def legacy_alias(achievement_id: str) -> str:
    """``code-master`` -> ``CODE_MASTER``."""
    return achievement_id.upper().replace("-", "_")


# Metric spellings seen from callers, mapped to the canonical metric.
METRIC_ALIASES: dict[str, Metric] = {
    **{m.value.lower(): m for m in Metric},
    **{m.name.lower(): m for m in Metric},
}


def canonical_metric(name: str) -> Metric:
    """Resolve a metric name or alias, raising UnknownMetricError otherwise."""
    metric = METRIC_ALIASES.get(name.strip().lower()) if isinstance(name, str) else None
    if metric is None:
        raise UnknownMetricError(str(name))
    return metric


DEFAULT_ACHIEVEMENTS: list[AchievementDefinition] = [
    AchievementDefinition(
        id="early-adopter",
        title="Early Adopter",
        description="Joined in the first month of launch",
        metric=Metric.JOIN_DATE,
        threshold=1,
        criteria_type="boolean",
        icon="Award",
        rarity="Rare",
        color="yellow",
    ),
    AchievementDefinition(
        id="snippet-creator",
        title="Snippet Creator",
        description="Created your first code snippet",
        metric=Metric.SNIPPETS_CREATED,
        threshold=1,
        criteria_type="boolean",
        icon="Code",
    ),
    AchievementDefinition(
        id="discussion-starter",
        title="Discussion Starter",
        description="Received your first comment",
        metric=Metric.COMMENTS_RECEIVED,
        threshold=1,
        criteria_type="boolean",
        icon="MessageSquare",
        color="violet",
        category="engagement",
    ),
    AchievementDefinition(
        id="getting-noticed",
        title="Getting Noticed",
        description="Snippet viewed 10 times",
        metric=Metric.VIEWS_RECEIVED,
        threshold=10,
        icon="Eye",
        color="indigo",
        category="engagement",
    ),
    AchievementDefinition(
        id="streak-starter",
        title="Streak Starter",
        description="Maintain a 3-day login streak",
        metric=Metric.DAILY_STREAK,
        threshold=3,
        icon="Flame",
        color="orange",
        category="streak",
    ),
    AchievementDefinition(
        id="weekly-warrior",
        title="Weekly Warrior",
        description="Maintain a 7-day login streak",
        metric=Metric.DAILY_STREAK,
        threshold=7,
        icon="Flame",
        rarity="Rare",
        color="red",
        category="streak",
    ),
    AchievementDefinition(
        id="popular-creator",
        title="Popular Creator",
        description="Get 5 likes on your snippets",
        metric=Metric.LIKES_RECEIVED,
        threshold=5,
        icon="Heart",
        color="pink",
        category="engagement",
    ),
    AchievementDefinition(
        id="rising-star",
        title="Rising Star",
        description="Get 50 likes on your snippets",
        metric=Metric.LIKES_RECEIVED,
        threshold=50,
        icon="Trophy",
        rarity="Epic",
        color="purple",
        category="engagement",
    ),
    AchievementDefinition(
        id="snippet-collector",
        title="Snippet Collector",
        description="Create 5 snippets",
        metric=Metric.SNIPPETS_CREATED,
        threshold=5,
        icon="FolderPlus",
        color="emerald",
    ),
    AchievementDefinition(
        id="code-master",
        title="Code Master",
        description="Create 20 snippets",
        metric=Metric.SNIPPETS_CREATED,
        threshold=20,
        icon="Code2",
        rarity="Rare",
        color="cyan",
    ),
    AchievementDefinition(
        id="conversation-starter",
        title="Conversation Starter",
        description="Receive 10 comments on your snippets",
        metric=Metric.COMMENTS_RECEIVED,
        threshold=10,
        icon="MessagesSquare",
        category="engagement",
    ),
    AchievementDefinition(
        id="viral-sensation",
        title="Viral Sensation",
        description="Get 100 views on your snippets",
        metric=Metric.VIEWS_RECEIVED,
        threshold=100,
        icon="TrendingUp",
        rarity="Epic",
        color="amber",
        category="engagement",
    ),
]


@dataclass
class AchievementCatalog:
    """Ordered, read-only set of achievement definitions with alias lookup."""

    definitions: list[AchievementDefinition]
    _by_id: dict[str, AchievementDefinition] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        validate_definitions(self.definitions)
        self._by_id = {}
        for d in self.definitions:
            self._by_id[d.id] = d
            self._by_id[d.legacy_id] = d

    def __iter__(self):
        return iter(self.definitions)

    def __len__(self) -> int:
        return len(self.definitions)

    def get(self, achievement_id: str) -> AchievementDefinition | None:
        """Look up a definition by canonical id or legacy alias."""
        return self._by_id.get(achievement_id) or self._by_id.get(legacy_alias(achievement_id))

    def canonical_achievement_id(self, achievement_id: str) -> str | None:
        definition = self.get(achievement_id)
        return definition.id if definition else None

    def for_metric(self, metric: Metric) -> list[AchievementDefinition]:
        """All definitions fed by ``metric``, in catalog order."""
        return [d for d in self.definitions if d.metric == metric]


def validate_definitions(definitions: list[AchievementDefinition]) -> None:
    """Reject duplicate ids, non-positive thresholds and unknown criteria types."""
    seen: set[str] = set()
    for d in definitions:
        if d.id in seen:
            raise CatalogError(f"Duplicate achievement id: {d.id}")
        seen.add(d.id)
        if d.threshold <= 0:
            raise CatalogError(f"Threshold must be positive for {d.id}")
        if d.criteria_type not in CRITERIA_TYPES:
            raise CatalogError(f"Unknown criteria type {d.criteria_type!r} for {d.id}")


class DefinitionEntry(BaseModel):
    """One achievement in a catalog file. Display fields are optional."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    description: str
    metric: Metric
    threshold: float = Field(gt=0, allow_inf_nan=False)
    criteria_type: str = Field(default="count", alias="criteriaType")
    icon: str = "Award"
    rarity: str = "Common"
    color: str = "blue"
    category: str = "milestone"

    @field_validator("metric", mode="before")
    @classmethod
    def _resolve_metric(cls, value: Any) -> Metric:
        return canonical_metric(value)

    def to_definition(self) -> AchievementDefinition:
        return AchievementDefinition(**self.model_dump())


_CATALOG_FILE = TypeAdapter(list[DefinitionEntry])


def load_definitions_file(path: str | Path) -> list[AchievementDefinition]:
    """Load definitions from a JSON list of objects.

    Each entry needs ``id``, ``title``, ``description``, ``metric`` and
    ``threshold``; metric names go through the alias table.
    """
    try:
        entries = _CATALOG_FILE.validate_json(Path(path).read_bytes())
    except ValidationError as e:
        raise CatalogError(f"Invalid achievement file {path}: {e}") from e
    return [entry.to_definition() for entry in entries]


@lru_cache
def get_catalog() -> AchievementCatalog:
    """Process-wide catalog: the configured file, or the built-in defaults."""
    path = get_settings().achievements_file
    if path:
        definitions = load_definitions_file(path)
        logger.info("Loaded %d achievement definitions from %s", len(definitions), path)
        return AchievementCatalog(definitions)
    return AchievementCatalog(list(DEFAULT_ACHIEVEMENTS))

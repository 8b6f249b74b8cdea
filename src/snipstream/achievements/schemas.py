"""Pydantic models for the achievement endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class AchievementProgressResponse(_WireModel):
    id: str
    achievement_id: str = Field(alias="achievementId")
    title: str
    description: str
    icon: str
    rarity: str
    color: str
    category: str
    metric: str
    criteria_type: str = Field(alias="criteriaType")
    threshold: float
    current: float
    progress: float
    unlocked: bool
    unlocked_at: datetime | None = Field(default=None, alias="unlockedAt")
    last_updated: datetime | None = Field(default=None, alias="lastUpdated")
    metrics: dict[str, float] = {}


class AchievementListResponse(_WireModel):
    success: bool = True
    achievements: list[AchievementProgressResponse]


class RecordMetricRequest(_WireModel):
    metric: str = Field(min_length=1)
    value: float = Field(ge=0)


class UnlockedAchievement(_WireModel):
    id: str
    title: str
    rarity: str


class RecordMetricResponse(_WireModel):
    success: bool = True
    unlocked: list[UnlockedAchievement]

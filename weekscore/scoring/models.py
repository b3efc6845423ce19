"""Tactic / record / score contract — Pydantic v2 models.

Python attributes are snake_case; the JSON surface is camelCase
(``tacticId``, ``dailyStatus``...) through the alias generator.
"""

from __future__ import annotations

import datetime as dt
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TacticType(str, Enum):
    daily_check = "daily_check"
    daily_number = "daily_number"
    daily_time = "daily_time"
    weekly_count = "weekly_count"
    weekly_number = "weekly_number"


class TargetDirection(str, Enum):
    gte = "gte"
    lte = "lte"


class QuarterStatus(str, Enum):
    planning = "planning"
    active = "active"
    completed = "completed"


# ---------------------------------------------------------------------------
# Stored entities
# ---------------------------------------------------------------------------


class Tactic(CamelModel):
    id: str
    user_id: str | None = None
    name: str = ""
    type: TacticType
    target_value: float | None = None
    target_direction: TargetDirection = TargetDirection.gte
    unit: str | None = None
    category: str | None = None
    quarter_id: str | None = None
    sort_order: int = 0
    active: bool = True

    @field_validator("target_direction", mode="before")
    @classmethod
    def _default_direction(cls, v):
        # NULL column means "at least"
        return TargetDirection.gte if v is None else v


class Record(CamelModel):
    id: str | None = None
    tactic_id: str
    date: dt.date
    value: float
    updated_at: dt.datetime | None = None


class WeekSelection(CamelModel):
    user_id: str
    week_start: dt.date
    tactic_ids: list[str] = Field(default_factory=list)


class QuarterGoal(BaseModel):
    title: str
    description: str | None = None


class Quarter(CamelModel):
    id: str
    user_id: str | None = None
    name: str
    start_date: dt.date
    end_date: dt.date
    goals: list[QuarterGoal] | None = None
    review_notes: str | None = None
    status: QuarterStatus = QuarterStatus.planning


# ---------------------------------------------------------------------------
# Computed
# ---------------------------------------------------------------------------


class ScoreDetail(CamelModel):
    tactic_id: str
    tactic_name: str
    type: TacticType
    category: str | None = None
    target: float
    current: float
    achieved: bool
    unit: str | None = None
    daily_status: list[bool] | None = None
    daily_values: list[float] | None = None

    @property
    def progress(self) -> float:
        """Fraction of target reached, capped at 1.0. Zero when target is not positive."""
        if self.target <= 0:
            return 0.0
        return min(self.current / self.target, 1.0)


class ScoreResult(CamelModel):
    score: int = 0
    details: list[ScoreDetail] = Field(default_factory=list)


class WeekSelectionView(CamelModel):
    week_start: dt.date
    tactic_ids: list[str] = Field(default_factory=list)
    is_custom: bool = False


class QuarterDetail(CamelModel):
    quarter: Quarter
    tactics: list[Tactic] = Field(default_factory=list)


class ActiveQuarterView(CamelModel):
    quarter: Quarter | None = None
    week_number: int | None = None
    days_remaining: int | None = None


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------


class RecordUpsert(CamelModel):
    tactic_id: str
    date: str
    value: float = Field(allow_inf_nan=False)


class WeekSelectionUpdate(CamelModel):
    week_start: str
    tactic_ids: list[str]


class TacticCreate(CamelModel):
    name: str = Field(min_length=1)
    type: TacticType
    target_value: float | None = Field(default=None, allow_inf_nan=False)
    target_direction: TargetDirection = TargetDirection.gte
    unit: str | None = None
    category: str | None = None
    quarter_id: str | None = None
    sort_order: int = 0


class TacticUpdate(CamelModel):
    name: str | None = None
    type: TacticType | None = None
    target_value: float | None = Field(default=None, allow_inf_nan=False)
    target_direction: TargetDirection | None = None
    unit: str | None = None
    category: str | None = None
    quarter_id: str | None = None
    sort_order: int | None = None
    active: bool | None = None


class QuarterCreate(CamelModel):
    name: str = Field(min_length=1)
    start_date: str
    goals: list[QuarterGoal] | None = None


class QuarterUpdate(CamelModel):
    name: str | None = None
    start_date: str | None = None
    goals: list[QuarterGoal] | None = None
    review_notes: str | None = None
    status: QuarterStatus | None = None

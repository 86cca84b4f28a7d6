"""
Response schemas for the AI analysis service.

The model is asked to answer with camelCase JSON; fields are exposed in
snake_case on the Python side.
"""
from __future__ import annotations

import typing as t

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ImportantDate(_CamelModel):
    """A dated evaluation event, e.g. {"event": "Midterm", "date": "2024-09-15", "weight": 30}."""
    event: str
    date: str                                # "YYYY-MM-DD"
    weight: int = Field(ge=0, le=100)        # percent of the final grade


class WeeklySchedule(_CamelModel):
    week: int
    topics: list[str] = Field(default_factory=list)
    hours: float = 0


class SyllabusAnalysis(_CamelModel):
    """
    Structured view of one syllabus:
    - main topics,
    - important dates with their grade weight,
    - a suggested week-by-week schedule,
    - prerequisites and the evaluation breakdown.
    """
    topics: list[str] = Field(default_factory=list)
    important_dates: list[ImportantDate] = Field(default_factory=list)
    study_schedule: list[WeeklySchedule] = Field(default_factory=list)
    prerequisites: list[str] = Field(default_factory=list)
    evaluation: dict[str, float] = Field(default_factory=dict)


SessionKind = t.Literal["focus", "review", "pomodoro", "reading", "break"]


class PlanSession(_CamelModel):
    task: str
    start_time: str                 # "HH:MM" 24h
    duration: int = Field(gt=0)     # minutes
    type: SessionKind = "focus"


class DailyPlan(_CamelModel):
    date: str                       # "YYYY-MM-DD"
    total_hours: float
    sessions: list[PlanSession] = Field(default_factory=list)


class WeeklyPlan(_CamelModel):
    """A seven-day plan of ordered study sessions."""
    daily_plans: list[DailyPlan]
    tips: list[str] = Field(default_factory=list)
    total_week_hours: float

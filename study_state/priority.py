"""Priority rules for imported and derived tasks."""
from __future__ import annotations

from datetime import datetime, timedelta
import typing as t

from study_state.models import Priority

SECONDS_PER_DAY = 86400


def infer_priority(due_date: t.Optional[datetime], now: datetime) -> Priority:
    """Infer a task priority from how many days remain until it is due.

    Each bracket includes its upper bound: one day or less is urgent, up to
    three days high, up to seven days medium, anything later low. A task
    without a due date is medium.

    Args:
        due_date: When the task is due, or None if unknown
        now: The reference time

    Returns:
        The inferred priority
    """
    if due_date is None:
        return Priority.MEDIUM

    days = (due_date - now).total_seconds() / SECONDS_PER_DAY
    if days <= 1:
        return Priority.URGENT
    if days <= 3:
        return Priority.HIGH
    if days <= 7:
        return Priority.MEDIUM
    return Priority.LOW


def priority_from_weight(weight: float) -> Priority:
    """Map an evaluation weight (percent of the final grade) to a priority."""
    if weight >= 40:
        return Priority.URGENT
    if weight >= 20:
        return Priority.HIGH
    if weight >= 10:
        return Priority.MEDIUM
    return Priority.LOW


def effort_from_weight(weight: float, minutes_per_point: float) -> timedelta:
    return timedelta(minutes=weight * minutes_per_point)

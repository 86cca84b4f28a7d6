"""
Data models for the local study state.

This module contains the dataclasses owned by ``LocalStudyState``: tasks,
courses, study sessions and notifications.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
import typing as t


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Priority(str, Enum):
    """Task priority, lowest to highest."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class SessionType(str, Enum):
    FOCUS = "focus"
    REVIEW = "review"
    POMODORO = "pomodoro"
    READING = "reading"


class NotificationKind(str, Enum):
    DEADLINE = "deadline"
    REMINDER = "reminder"
    SUGGESTION = "suggestion"
    WARNING = "warning"


@dataclass
class Task:
    """
    A unit of work attached to a course.

    ``course`` holds the course *name*, which is the join key between tasks
    and courses. ``completed_at`` is set iff ``is_completed`` is true.
    """
    title: str
    due_date: datetime
    course: str
    priority: Priority = Priority.MEDIUM
    description: str = ""
    estimated_time: timedelta = timedelta(hours=1)
    is_completed: bool = False
    completed_at: t.Optional[datetime] = None
    external_id: t.Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    id: uuid.UUID = field(default_factory=uuid.uuid4)


@dataclass
class Course:
    """A course the student is enrolled in."""
    name: str
    code: str = "N/A"
    instructor: str = ""
    color_hex: str = "#007AFF"
    syllabus_url: t.Optional[str] = None
    external_id: t.Optional[str] = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)


@dataclass
class StudySession:
    """
    A block of study time.

    When ``end_time`` is known the real duration is ``end_time - start_time``;
    otherwise ``duration`` is only the planned estimate.
    """
    task_id: uuid.UUID
    course_id: uuid.UUID
    start_time: datetime
    duration: timedelta
    session_type: SessionType = SessionType.FOCUS
    end_time: t.Optional[datetime] = None
    notes: str = ""
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    @property
    def actual_duration(self) -> timedelta:
        if self.end_time is None:
            return timedelta(0)
        return self.end_time - self.start_time


@dataclass
class Notification:
    """A scheduled message about a task. Delivered notifications are terminal."""
    task_id: uuid.UUID
    title: str
    message: str
    scheduled_at: datetime
    kind: NotificationKind
    priority: Priority
    is_delivered: bool = False
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    def is_due(self, now: datetime) -> bool:
        return not self.is_delivered and self.scheduled_at <= now

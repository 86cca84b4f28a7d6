"""
Read-only projections of the roster (Canvas) REST API.
"""
from __future__ import annotations

from datetime import datetime
import typing as t

from pydantic import BaseModel, ConfigDict


class RemoteTerm(BaseModel):
    id: int
    name: str = ""


class RemoteCourse(BaseModel):
    """A course as reported by ``GET /courses``."""
    model_config = ConfigDict(extra="ignore")

    id: int
    name: t.Optional[str] = None
    course_code: t.Optional[str] = None
    term: t.Optional[RemoteTerm] = None
    syllabus_body: t.Optional[str] = None
    access_restricted_by_date: t.Optional[bool] = None

    @property
    def is_valid(self) -> bool:
        """Only named, unrestricted courses can be imported."""
        return self.name is not None and self.access_restricted_by_date is not True


class RemoteAssignment(BaseModel):
    """An assignment as reported by ``GET /courses/{id}/assignments``."""
    model_config = ConfigDict(extra="ignore")

    id: int
    name: str
    description: t.Optional[str] = None
    due_at: t.Optional[str] = None
    points_possible: t.Optional[float] = None
    course_id: t.Optional[int] = None

    @property
    def due_date(self) -> t.Optional[datetime]:
        """Parse ``due_at`` (ISO-8601, with or without fractional seconds).

        Only date-times carrying a UTC offset are accepted; anything else is
        treated as having no due date.
        """
        if not self.due_at:
            return None
        try:
            parsed = datetime.fromisoformat(self.due_at.replace("Z", "+00:00"))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            return None
        return parsed


class RemoteFrontPage(BaseModel):
    """The course front page, where instructors usually post the syllabus."""
    model_config = ConfigDict(extra="ignore")

    title: str = ""
    body: t.Optional[str] = None

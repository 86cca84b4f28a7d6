"""Roster import: scan courses, then fan out assignment fetches and join them.

The import resolves only once every per-course fetch has settled. A course
whose fetch fails contributes no tasks; the others are unaffected.
"""
from __future__ import annotations

import logging
import random
import typing as t
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from orchestrator.errors import CredentialMissing
from orchestrator.executor import gather_settled
from roster_client.client import RosterClient
from roster_client.models import RemoteAssignment, RemoteCourse
from study_state.models import Course, Task, utcnow
from study_state.priority import infer_priority

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTION = "Imported from Canvas"
DEFAULT_COURSE_NAME = "Untitled Course"
DEFAULT_COURSE_CODE = "N/A"
DEFAULT_INSTRUCTOR = "Professor"
DEFAULT_DUE_OFFSET = timedelta(hours=24)
DEFAULT_ESTIMATED_TIME = timedelta(hours=1)

COURSE_COLORS = (
    "#007AFF", "#34C759", "#FF9500", "#FF3B30",
    "#AF52DE", "#FF2D92", "#5AC8FA", "#FFCC00",
)


@dataclass
class ImportResult:
    """Tasks and courses produced by one import, ready to merge into the state."""
    tasks: list[Task] = field(default_factory=list)
    courses: list[Course] = field(default_factory=list)
    failed_course_ids: list[int] = field(default_factory=list)


class ImportOrchestrator:
    """Turns roster courses and assignments into local tasks and courses.

    Args:
        roster: Client for the roster API
        max_concurrency: Limit on assignment fetches in flight at once
        clock: Source of "now" for default due dates and priority inference
        rng: Random source for course colours
    """

    def __init__(
        self,
        roster: RosterClient,
        max_concurrency: t.Optional[int] = None,
        clock: t.Callable[[], datetime] = utcnow,
        rng: t.Optional[random.Random] = None,
    ) -> None:
        self.roster = roster
        self.max_concurrency = max_concurrency
        self.clock = clock
        self.rng = rng or random.Random()

    async def scan_courses(self, credential: str) -> list[RemoteCourse]:
        """Fetch the roster and keep only importable courses.

        Raises:
            CredentialMissing: If ``credential`` is empty (no request is made)
            NetworkFailure, InvalidResponse: If the roster fetch fails
        """
        if not credential or not credential.strip():
            raise CredentialMissing("Canvas API token is missing", status="A Canvas token is required")
        courses = await self.roster.with_token(credential).fetch_courses()
        valid = [course for course in courses if course.is_valid]
        logger.info("Valid courses found: %d/%d", len(valid), len(courses))
        return valid

    async def import_courses(
        self,
        selected: t.Sequence[RemoteCourse],
        credential: t.Optional[str] = None,
    ) -> ImportResult:
        """Fetch every selected course's assignments concurrently and convert them.

        ``credential`` overrides the roster client's token for this import only.
        """
        roster = self.roster.with_token(credential) if credential else self.roster
        result = ImportResult(courses=[self._convert_course(course) for course in selected])
        if not selected:
            return result

        outcomes = await gather_settled(
            (roster.fetch_assignments(course.id) for course in selected),
            max_concurrent=self.max_concurrency,
        )
        now = self.clock()
        for course, outcome in zip(selected, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning("Assignments for course %s failed: %s", course.id, outcome)
                result.failed_course_ids.append(course.id)
                continue
            course_name = course.name or DEFAULT_COURSE_NAME
            result.tasks.extend(self._convert_assignment(a, course_name, now) for a in outcome)

        logger.info("Imported %d task(s) and %d course(s)", len(result.tasks), len(result.courses))
        return result

    async def sync(self, credential: str) -> ImportResult:
        """Scan the roster and import every valid course."""
        courses = await self.scan_courses(credential)
        return await self.import_courses(courses, credential)

    def _convert_course(self, course: RemoteCourse) -> Course:
        return Course(
            name=course.name or DEFAULT_COURSE_NAME,
            code=course.course_code or DEFAULT_COURSE_CODE,
            instructor=DEFAULT_INSTRUCTOR,
            color_hex=self.rng.choice(COURSE_COLORS),
            external_id=str(course.id),
        )

    @staticmethod
    def _convert_assignment(assignment: RemoteAssignment, course_name: str, now: datetime) -> Task:
        due = assignment.due_date
        return Task(
            title=assignment.name,
            description=assignment.description or DEFAULT_DESCRIPTION,
            due_date=due or now + DEFAULT_DUE_OFFSET,
            course=course_name,
            priority=infer_priority(due, now),
            estimated_time=DEFAULT_ESTIMATED_TIME,
            external_id=str(assignment.id),
            created_at=now,
        )

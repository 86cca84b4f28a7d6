"""The single in-memory source of truth for tasks, courses, sessions and notifications.

All mutation goes through ``LocalStudyState`` methods. Each mutation persists
the whole state synchronously, and adding a task always schedules its
notifications. Methods are plain synchronous functions, so when they are
called from the event loop no two mutations can interleave.
"""
from __future__ import annotations

import logging
import typing as t
import uuid
from datetime import datetime, timedelta

from pydantic import TypeAdapter, ValidationError

from study_state.models import (
    Course,
    Notification,
    NotificationKind,
    Priority,
    StudySession,
    Task,
    utcnow,
)
from study_state.storage import InMemoryStorage, StateStorage

logger = logging.getLogger(__name__)

TASKS_KEY = "tasks"
COURSES_KEY = "courses"
SESSIONS_KEY = "sessions"
NOTIFICATIONS_KEY = "notifications"

REMINDER_LEAD = timedelta(hours=24)
DEADLINE_LEAD = timedelta(hours=1)
WEEK = timedelta(days=7)

_tasks_adapter = TypeAdapter(list[Task])
_courses_adapter = TypeAdapter(list[Course])
_sessions_adapter = TypeAdapter(list[StudySession])
_notifications_adapter = TypeAdapter(list[Notification])


class ImportedRecords(t.Protocol):
    tasks: list[Task]
    courses: list[Course]


class LocalStudyState:
    """Owns the canonical task/course/session/notification collections."""

    def __init__(
        self,
        storage: t.Optional[StateStorage] = None,
        clock: t.Callable[[], datetime] = utcnow,
    ) -> None:
        self.storage: StateStorage = storage if storage is not None else InMemoryStorage()
        self.clock = clock
        self.tasks: list[Task] = []
        self.courses: list[Course] = []
        self.sessions: list[StudySession] = []
        self.notifications: list[Notification] = []

    # -----------------------------
    # Tasks
    # -----------------------------

    def add_task(self, task: Task) -> Task:
        self._normalize_completion(task)
        self.tasks.append(task)
        self._schedule_notifications(task)
        self.save()
        return task

    def update_task(self, task: Task) -> bool:
        """Replace the stored task with the same id.

        Unknown ids are ignored: the caller's view is treated as already
        consistent. Returns whether anything changed.
        """
        index = self._index_of(self.tasks, task.id)
        if index is None:
            return False
        self._normalize_completion(task)
        self.tasks[index] = task
        self.save()
        return True

    def delete_task(self, task_id: uuid.UUID) -> bool:
        # scheduled notifications for the task are left in place
        before = len(self.tasks)
        self.tasks = [task for task in self.tasks if task.id != task_id]
        if len(self.tasks) == before:
            return False
        self.save()
        return True

    def complete_task(self, task_id: uuid.UUID) -> bool:
        index = self._index_of(self.tasks, task_id)
        if index is None:
            return False
        task = self.tasks[index]
        task.is_completed = True
        task.completed_at = self.clock()
        self.save()
        return True

    def find_task(self, task_id: uuid.UUID) -> t.Optional[Task]:
        index = self._index_of(self.tasks, task_id)
        return None if index is None else self.tasks[index]

    # -----------------------------
    # Courses
    # -----------------------------

    def add_course(self, course: Course) -> Course:
        self.courses.append(course)
        self.save()
        return course

    def update_course(self, course: Course) -> bool:
        index = self._index_of(self.courses, course.id)
        if index is None:
            return False
        self.courses[index] = course
        self.save()
        return True

    def delete_course(self, course_id: uuid.UUID) -> bool:
        """Delete a course and every task whose course name matches it."""
        index = self._index_of(self.courses, course_id)
        if index is None:
            return False
        course = self.courses.pop(index)
        self.tasks = [task for task in self.tasks if task.course != course.name]
        self.save()
        return True

    def find_course_by_name(self, name: str) -> t.Optional[Course]:
        for course in self.courses:
            if course.name == name:
                return course
        return None

    # -----------------------------
    # Sessions
    # -----------------------------

    def add_session(self, session: StudySession) -> StudySession:
        self.sessions.append(session)
        self.save()
        return session

    # -----------------------------
    # Merging remote results
    # -----------------------------

    def merge_import(self, imported: ImportedRecords) -> tuple[int, int]:
        """Merge roster import results without creating duplicates.

        Courses are matched by name, tasks by (title, course name).

        Returns:
            Number of (courses, tasks) actually added
        """
        added_courses = 0
        for course in imported.courses:
            if self.find_course_by_name(course.name) is None:
                self.add_course(course)
                added_courses += 1

        added_tasks = 0
        for task in imported.tasks:
            if not any(
                existing.title == task.title and existing.course == task.course
                for existing in self.tasks
            ):
                self.add_task(task)
                added_tasks += 1

        logger.info("Merged import: %d new course(s), %d new task(s)", added_courses, added_tasks)
        return added_courses, added_tasks

    def merge_pulled_tasks(self, tasks: t.Iterable[Task]) -> int:
        """Add backup-store tasks whose id is not known locally."""
        known = {task.id for task in self.tasks}
        added = 0
        for task in tasks:
            if task.id not in known:
                self.add_task(task)
                known.add(task.id)
                added += 1
        return added

    def merge_pulled_courses(self, courses: t.Iterable[Course]) -> int:
        added = 0
        for course in courses:
            if self.find_course_by_name(course.name) is None:
                self.add_course(course)
                added += 1
        return added

    # -----------------------------
    # Notifications
    # -----------------------------

    def _schedule_notifications(self, task: Task) -> None:
        reminder = Notification(
            task_id=task.id,
            title="Task Reminder",
            message=f"'{task.title}' is due tomorrow!",
            scheduled_at=task.due_date - REMINDER_LEAD,
            kind=NotificationKind.REMINDER,
            priority=task.priority,
        )
        deadline = Notification(
            task_id=task.id,
            title="Deadline Approaching",
            message=f"'{task.title}' is due in 1 hour!",
            scheduled_at=task.due_date - DEADLINE_LEAD,
            kind=NotificationKind.DEADLINE,
            priority=Priority.URGENT,
        )
        self.notifications.extend([reminder, deadline])

    def deliver_due_notifications(self, now: t.Optional[datetime] = None) -> list[Notification]:
        """Mark every scheduled notification whose time has come as delivered.

        Already delivered notifications are skipped, so calling this twice
        with the same ``now`` delivers nothing the second time.
        """
        now = now or self.clock()
        delivered: list[Notification] = []
        for notification in self.notifications:
            if notification.is_due(now):
                notification.is_delivered = True
                delivered.append(notification)
        if delivered:
            self.save()
        return delivered

    def notifications_for(self, task_id: uuid.UUID) -> list[Notification]:
        return [n for n in self.notifications if n.task_id == task_id]

    # -----------------------------
    # Derived views
    # -----------------------------

    @property
    def pending_tasks(self) -> list[Task]:
        return [task for task in self.tasks if not task.is_completed]

    @property
    def upcoming_tasks(self) -> list[Task]:
        now = self.clock()
        upcoming = [task for task in self.pending_tasks if task.due_date > now]
        return sorted(upcoming, key=lambda task: task.due_date)

    @property
    def overdue_tasks(self) -> list[Task]:
        now = self.clock()
        return [task for task in self.pending_tasks if task.due_date < now]

    @property
    def completed_tasks_this_week(self) -> list[Task]:
        week_ago = self.clock() - WEEK
        return [
            task for task in self.tasks
            if task.is_completed and task.completed_at is not None and task.completed_at > week_ago
        ]

    @property
    def study_time_this_week(self) -> timedelta:
        week_ago = self.clock() - WEEK
        return sum(
            (s.actual_duration for s in self.sessions if s.start_time > week_ago),
            timedelta(0),
        )

    # -----------------------------
    # Persistence
    # -----------------------------

    def save(self) -> None:
        self.storage.set(TASKS_KEY, _tasks_adapter.dump_json(self.tasks))
        self.storage.set(COURSES_KEY, _courses_adapter.dump_json(self.courses))
        self.storage.set(SESSIONS_KEY, _sessions_adapter.dump_json(self.sessions))
        self.storage.set(NOTIFICATIONS_KEY, _notifications_adapter.dump_json(self.notifications))

    def load(self) -> None:
        """Restore every key that decodes; keys that don't stay empty."""
        self.tasks = self._load_key(TASKS_KEY, _tasks_adapter)
        self.courses = self._load_key(COURSES_KEY, _courses_adapter)
        self.sessions = self._load_key(SESSIONS_KEY, _sessions_adapter)
        self.notifications = self._load_key(NOTIFICATIONS_KEY, _notifications_adapter)

    def _load_key(self, key: str, adapter: TypeAdapter) -> list:
        data = self.storage.get(key)
        if data is None:
            return []
        try:
            return adapter.validate_json(data)
        except ValidationError as e:
            logger.warning("Could not decode stored %s, starting empty: %s", key, e)
            return []

    def clear_all(self) -> None:
        self.tasks = []
        self.courses = []
        self.sessions = []
        self.notifications = []
        for key in (TASKS_KEY, COURSES_KEY, SESSIONS_KEY, NOTIFICATIONS_KEY):
            self.storage.delete(key)

    # -----------------------------
    # Helpers
    # -----------------------------

    def _normalize_completion(self, task: Task) -> None:
        if task.is_completed and task.completed_at is None:
            task.completed_at = self.clock()
        elif not task.is_completed:
            task.completed_at = None

    @staticmethod
    def _index_of(records: t.Sequence[t.Any], record_id: uuid.UUID) -> t.Optional[int]:
        for index, record in enumerate(records):
            if record.id == record_id:
                return index
        return None

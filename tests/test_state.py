"""Tests for LocalStudyState: mutations, merges, derived views and persistence."""
from datetime import timedelta
from types import SimpleNamespace

from study_state.models import Course, NotificationKind, Priority, StudySession, Task
from study_state.state import (
    COURSES_KEY,
    NOTIFICATIONS_KEY,
    SESSIONS_KEY,
    TASKS_KEY,
    LocalStudyState,
)
from study_state.storage import InMemoryStorage, JsonFileStorage


def make_task(now, title="Essay", course="History", days=3, **kwargs) -> Task:
    return Task(title=title, due_date=now + timedelta(days=days), course=course, **kwargs)


def test_add_task_schedules_reminder_and_deadline(state, now) -> None:
    task = state.add_task(make_task(now, priority=Priority.HIGH))

    notifications = state.notifications_for(task.id)
    assert len(notifications) == 2
    reminder, deadline = notifications
    assert reminder.kind is NotificationKind.REMINDER
    assert reminder.title == "Task Reminder"
    assert reminder.priority is Priority.HIGH
    assert reminder.scheduled_at == task.due_date - timedelta(hours=24)
    assert deadline.kind is NotificationKind.DEADLINE
    assert deadline.title == "Deadline Approaching"
    assert deadline.priority is Priority.URGENT
    assert deadline.scheduled_at == task.due_date - timedelta(hours=1)
    assert not reminder.is_delivered and not deadline.is_delivered


def test_add_task_persists(state, storage, now) -> None:
    state.add_task(make_task(now))
    assert b"Essay" in storage.get(TASKS_KEY)
    assert storage.get(NOTIFICATIONS_KEY) is not None


def test_completed_task_gets_completion_time(state, now) -> None:
    task = state.add_task(make_task(now, is_completed=True))
    assert task.completed_at == now


def test_incomplete_task_drops_completion_time(state, now) -> None:
    task = state.add_task(make_task(now, completed_at=now))
    assert task.completed_at is None


def test_complete_task(state, now) -> None:
    task = state.add_task(make_task(now))
    assert state.complete_task(task.id)
    assert task.is_completed
    assert task.completed_at == now
    assert state.completed_tasks_this_week == [task]


def test_update_of_unknown_task_is_a_noop(state, storage, now) -> None:
    state.add_task(make_task(now))
    before = dict(storage.blobs)

    assert state.update_task(make_task(now, title="Ghost")) is False
    assert [task.title for task in state.tasks] == ["Essay"]
    assert storage.blobs == before


def test_update_replaces_task(state, now) -> None:
    task = state.add_task(make_task(now))
    edited = Task(title="Essay v2", due_date=task.due_date, course=task.course, id=task.id)
    assert state.update_task(edited)
    assert state.find_task(task.id).title == "Essay v2"
    assert len(state.tasks) == 1


def test_delete_task(state, now) -> None:
    task = state.add_task(make_task(now))
    assert state.delete_task(task.id)
    assert state.tasks == []
    assert state.delete_task(task.id) is False


def test_delete_course_cascades_to_its_tasks(state, now) -> None:
    history = state.add_course(Course(name="History"))
    state.add_course(Course(name="Math"))
    state.add_task(make_task(now, title="Essay", course="History"))
    state.add_task(make_task(now, title="Reading", course="History"))
    state.add_task(make_task(now, title="Problem set", course="Math"))

    assert state.delete_course(history.id)

    assert [course.name for course in state.courses] == ["Math"]
    assert [task.title for task in state.tasks] == ["Problem set"]


def test_update_course(state) -> None:
    course = state.add_course(Course(name="History"))
    assert state.update_course(Course(name="History II", id=course.id))
    assert state.courses[0].name == "History II"
    assert state.update_course(Course(name="Unknown")) is False


def test_merge_import_is_idempotent(state, now) -> None:
    imported = SimpleNamespace(
        courses=[Course(name="History"), Course(name="Math")],
        tasks=[make_task(now, title="Essay"), make_task(now, title="Problem set", course="Math")],
    )
    assert state.merge_import(imported) == (2, 2)

    again = SimpleNamespace(
        courses=[Course(name="History"), Course(name="Math")],
        tasks=[make_task(now, title="Essay"), make_task(now, title="Problem set", course="Math")],
    )
    assert state.merge_import(again) == (0, 0)
    assert len(state.courses) == 2
    assert len(state.tasks) == 2
    assert len(state.notifications) == 4


def test_same_title_in_another_course_is_not_a_duplicate(state, now) -> None:
    state.add_task(make_task(now, title="Quiz", course="History"))
    imported = SimpleNamespace(courses=[], tasks=[make_task(now, title="Quiz", course="Math")])
    assert state.merge_import(imported) == (0, 1)


def test_merge_pulled_tasks_dedupes_by_id(state, now) -> None:
    local = state.add_task(make_task(now))
    copy = Task(title=local.title, due_date=local.due_date, course=local.course, id=local.id)
    fresh = make_task(now, title="New")
    assert state.merge_pulled_tasks([copy, fresh, fresh]) == 1
    assert len(state.tasks) == 2


def test_merge_pulled_courses_dedupes_by_name(state) -> None:
    state.add_course(Course(name="History"))
    assert state.merge_pulled_courses([Course(name="History"), Course(name="Art")]) == 1


def test_derived_views(state, now) -> None:
    soon = state.add_task(make_task(now, title="Soon", days=1))
    later = state.add_task(make_task(now, title="Later", days=5))
    late = state.add_task(make_task(now, title="Late", days=-1))
    done = state.add_task(make_task(now, title="Done", days=-2, is_completed=True))

    assert state.pending_tasks == [soon, later, late]
    assert state.upcoming_tasks == [soon, later]
    assert state.overdue_tasks == [late]
    assert state.completed_tasks_this_week == [done]


def test_study_time_counts_only_finished_sessions_this_week(state, now) -> None:
    task = state.add_task(make_task(now))
    course = state.add_course(Course(name="History"))

    def session(start_offset, length=None):
        start = now - start_offset
        return StudySession(
            task_id=task.id,
            course_id=course.id,
            start_time=start,
            duration=timedelta(hours=2),
            end_time=start + length if length else None,
        )

    state.add_session(session(timedelta(days=1), timedelta(minutes=90)))
    state.add_session(session(timedelta(days=2), timedelta(minutes=30)))
    state.add_session(session(timedelta(hours=1)))
    state.add_session(session(timedelta(days=8), timedelta(hours=3)))

    assert state.study_time_this_week == timedelta(hours=2)


def test_save_and_load_roundtrip(tmp_path, now) -> None:
    state = LocalStudyState(JsonFileStorage(tmp_path), clock=lambda: now)
    state.add_course(Course(name="History", code="HIS101"))
    task = state.add_task(make_task(now, priority=Priority.URGENT, estimated_time=timedelta(minutes=45)))

    restored = LocalStudyState(JsonFileStorage(tmp_path), clock=lambda: now)
    restored.load()

    assert restored.tasks == [task]
    assert restored.courses[0].code == "HIS101"
    assert len(restored.notifications) == 2
    assert (tmp_path / "tasks.json").exists()


def test_load_with_one_corrupt_key_keeps_the_others(now) -> None:
    storage = InMemoryStorage()
    state = LocalStudyState(storage, clock=lambda: now)
    state.add_course(Course(name="History"))
    state.add_task(make_task(now))
    storage.set(TASKS_KEY, b"{not json")

    restored = LocalStudyState(storage, clock=lambda: now)
    restored.load()

    assert restored.tasks == []
    assert [course.name for course in restored.courses] == ["History"]
    assert len(restored.notifications) == 2


def test_load_from_empty_storage(state) -> None:
    state.load()
    assert state.tasks == [] and state.courses == []


def test_clear_all(state, storage, now) -> None:
    state.add_task(make_task(now))
    state.add_course(Course(name="History"))
    state.clear_all()

    assert state.tasks == [] and state.courses == [] and state.notifications == []
    for key in (TASKS_KEY, COURSES_KEY, SESSIONS_KEY, NOTIFICATIONS_KEY):
        assert storage.get(key) is None

"""Shared fixtures: a fixed clock, a fake AI SDK client and config helpers."""
import json
import typing as t
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from orchestrator.config import StudyConfig
from study_state.state import LocalStudyState
from study_state.storage import InMemoryStorage

NOW = datetime(2024, 9, 2, 12, 0, tzinfo=timezone.utc)


class FakeCompletions:
    """Stands in for ``AsyncOpenAI().chat.completions``."""

    def __init__(self, responses: list[t.Optional[str]]) -> None:
        self.responses = list(responses)
        self.calls: list[dict[str, t.Any]] = []

    async def create(self, **kwargs: t.Any) -> SimpleNamespace:
        self.calls.append(kwargs)
        content = self.responses.pop(0)
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class FakeOpenAI:
    def __init__(self, *responses: t.Optional[str]) -> None:
        self.chat = SimpleNamespace(completions=FakeCompletions(list(responses)))

    @property
    def calls(self) -> list[dict[str, t.Any]]:
        return self.chat.completions.calls

    @property
    def prompts(self) -> list[str]:
        return [call["messages"][-1]["content"] for call in self.calls]


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def config(tmp_path) -> StudyConfig:
    return StudyConfig(
        canvas_base_url="https://canvas.test/api/v1",
        canvas_token="token",
        ai_api_key="ai-key",
        firebase_api_key="fb-key",
        firebase_project_id="study-project",
        firestore_base_url="https://firestore.test/v1",
        max_concurrency=2,
        data_dir=tmp_path,
    )


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def state(storage, now) -> LocalStudyState:
    return LocalStudyState(storage, clock=lambda: now)


@pytest.fixture
def fake_openai_factory():
    def _make(*responses: t.Optional[str]) -> FakeOpenAI:
        return FakeOpenAI(*responses)
    return _make


@pytest.fixture
def weekly_plan_json() -> str:
    return json.dumps({
        "dailyPlans": [
            {
                "date": "2024-09-03",
                "totalHours": 3,
                "sessions": [
                    {"task": "Essay draft", "startTime": "09:00", "duration": 120, "type": "focus"},
                    {"task": "Lecture notes", "startTime": "14:00", "duration": 60, "type": "review"},
                ],
            }
        ],
        "tips": ["Take a break every hour"],
        "totalWeekHours": 3,
    })


@pytest.fixture
def syllabus_json() -> str:
    return json.dumps({
        "topics": ["Limits", "Derivatives"],
        "importantDates": [
            {"event": "Midterm", "date": "2024-10-15", "weight": 40},
            {"event": "Project", "date": "2024-11-01", "weight": 25},
            {"event": "Quiz 1", "date": "2024-09-20", "weight": 10},
            {"event": "Participation", "date": "weekly", "weight": 5},
            {"event": "Reading check", "date": "2024-09-10", "weight": 5},
        ],
        "studySchedule": [{"week": 1, "topics": ["Limits"], "hours": 4}],
        "prerequisites": ["Precalculus"],
        "evaluation": {"exams": 60, "projects": 40},
    })

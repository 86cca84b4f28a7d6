"""Tests for the AI client, the document pipeline and the plan generator."""
import json
from datetime import datetime, timedelta, timezone

import pytest

from orchestrator.config import StudyConfig
from orchestrator.errors import CredentialMissing, EmptyInput, ExtractionFailure, InvalidResponse
from study_state.models import Priority, Task
from syllabus_analysis.ai_client import MAX_DOCUMENT_CHARS, AIAnalysisClient
from syllabus_analysis.models import ImportantDate, SyllabusAnalysis
from syllabus_analysis.pipeline import DERIVED_TASK_DESCRIPTION, DocumentAnalysisPipeline
from syllabus_analysis.planner import PlanGenerationService


def failing_extractor(document):
    raise ExtractionFailure("corrupt PDF")


# -----------------------------
# AI client
# -----------------------------

@pytest.mark.asyncio
async def test_analyze_syllabus_parses_camel_case(config, fake_openai_factory, syllabus_json) -> None:
    fake = fake_openai_factory(syllabus_json)
    analysis = await AIAnalysisClient(config, client=fake).analyze_syllabus("Calculus I syllabus")

    assert analysis.topics == ["Limits", "Derivatives"]
    assert analysis.important_dates[0] == ImportantDate(event="Midterm", date="2024-10-15", weight=40)
    assert analysis.study_schedule[0].hours == 4
    assert analysis.evaluation == {"exams": 60, "projects": 40}

    call = fake.calls[0]
    assert call["model"] == config.ai_model
    assert call["response_format"] == {"type": "json_object"}
    assert "Calculus I syllabus" in fake.prompts[0]


@pytest.mark.asyncio
async def test_long_documents_are_truncated(config, fake_openai_factory, syllabus_json) -> None:
    fake = fake_openai_factory(syllabus_json)
    await AIAnalysisClient(config, client=fake).analyze_syllabus("x" * (MAX_DOCUMENT_CHARS + 500))
    assert "x" * MAX_DOCUMENT_CHARS in fake.prompts[0]
    assert "x" * (MAX_DOCUMENT_CHARS + 1) not in fake.prompts[0]


@pytest.mark.asyncio
@pytest.mark.parametrize("content", [None, ""])
async def test_missing_text_is_invalid_response(config, fake_openai_factory, content) -> None:
    client = AIAnalysisClient(config, client=fake_openai_factory(content))
    with pytest.raises(InvalidResponse):
        await client.generate_content("hello")


@pytest.mark.asyncio
async def test_non_json_answer_is_invalid_response(config, fake_openai_factory) -> None:
    client = AIAnalysisClient(config, client=fake_openai_factory("Sure! Here is your analysis"))
    with pytest.raises(InvalidResponse):
        await client.analyze_syllabus("text")


@pytest.mark.asyncio
async def test_weight_out_of_range_is_invalid_response(config, fake_openai_factory) -> None:
    answer = json.dumps({"importantDates": [{"event": "Final", "date": "2024-12-10", "weight": 150}]})
    client = AIAnalysisClient(config, client=fake_openai_factory(answer))
    with pytest.raises(InvalidResponse):
        await client.analyze_syllabus("text")


@pytest.mark.asyncio
async def test_answer_question_returns_plain_text(config, fake_openai_factory) -> None:
    fake = fake_openai_factory("The midterm is on October 15.")
    answer = await AIAnalysisClient(config, client=fake).answer_question("When is the midterm?", "Midterm: Oct 15")

    assert answer == "The midterm is on October 15."
    assert "response_format" not in fake.calls[0]
    assert "When is the midterm?" in fake.prompts[0]
    assert "Midterm: Oct 15" in fake.prompts[0]


@pytest.mark.asyncio
async def test_missing_api_key(tmp_path) -> None:
    client = AIAnalysisClient(StudyConfig(ai_api_key="", data_dir=tmp_path))
    with pytest.raises(CredentialMissing):
        await client.generate_content("hello")


# -----------------------------
# Document pipeline
# -----------------------------

@pytest.mark.asyncio
@pytest.mark.parametrize("document", [b"", ""])
async def test_empty_document_is_rejected_before_any_work(config, fake_openai_factory, document) -> None:
    fake = fake_openai_factory()
    calls: list = []
    pipeline = DocumentAnalysisPipeline(AIAnalysisClient(config, client=fake), extractor=calls.append)

    with pytest.raises(EmptyInput):
        await pipeline.analyze_document(document)
    assert calls == []
    assert fake.calls == []


@pytest.mark.asyncio
async def test_extraction_failure_makes_no_ai_call(config, fake_openai_factory) -> None:
    fake = fake_openai_factory()
    pipeline = DocumentAnalysisPipeline(AIAnalysisClient(config, client=fake), extractor=failing_extractor)

    with pytest.raises(ExtractionFailure):
        await pipeline.analyze_document(b"%PDF-broken")
    assert fake.calls == []


@pytest.mark.asyncio
async def test_analyze_document_sends_extracted_text(config, fake_openai_factory, syllabus_json) -> None:
    fake = fake_openai_factory(syllabus_json)
    pipeline = DocumentAnalysisPipeline(
        AIAnalysisClient(config, client=fake),
        extractor=lambda document: "Week 1: Limits",
    )
    analysis = await pipeline.analyze_document(b"%PDF-1.7")

    assert len(analysis.important_dates) == 5
    assert "Week 1: Limits" in fake.prompts[0]


@pytest.mark.asyncio
async def test_ask_document(config, fake_openai_factory) -> None:
    fake = fake_openai_factory("Two exams.")
    pipeline = DocumentAnalysisPipeline(AIAnalysisClient(config, client=fake), extractor=lambda d: "Exams: 2")
    assert await pipeline.ask_document("How many exams?", "syllabus.pdf") == "Two exams."

    with pytest.raises(EmptyInput):
        await pipeline.ask_document("  ", "syllabus.pdf")


def test_derive_tasks_drops_bad_dates_and_maps_weights(syllabus_json) -> None:
    analysis = SyllabusAnalysis.model_validate_json(syllabus_json)
    tasks = DocumentAnalysisPipeline.derive_tasks_from_analysis(analysis, "Calculus I")

    assert [task.title for task in tasks] == ["Midterm", "Project", "Quiz 1", "Reading check"]
    by_title = {task.title: task for task in tasks}
    assert by_title["Midterm"].priority is Priority.URGENT
    assert by_title["Project"].priority is Priority.HIGH
    assert by_title["Quiz 1"].priority is Priority.MEDIUM
    assert by_title["Reading check"].priority is Priority.LOW
    assert by_title["Midterm"].estimated_time == timedelta(minutes=40)
    assert by_title["Midterm"].due_date == datetime(2024, 10, 15, tzinfo=timezone.utc)
    assert all(task.course == "Calculus I" for task in tasks)
    assert all(task.description == DERIVED_TASK_DESCRIPTION for task in tasks)


# -----------------------------
# Plan generation
# -----------------------------

@pytest.mark.asyncio
async def test_plan_with_no_tasks_makes_no_call(config, fake_openai_factory) -> None:
    fake = fake_openai_factory()
    with pytest.raises(EmptyInput):
        await PlanGenerationService(AIAnalysisClient(config, client=fake)).generate_plan([])
    assert fake.calls == []


@pytest.mark.asyncio
async def test_plan_serializes_tasks(config, fake_openai_factory, weekly_plan_json, now) -> None:
    fake = fake_openai_factory(weekly_plan_json)
    task = Task(
        title="Essay draft",
        due_date=now + timedelta(days=2),
        course="History",
        priority=Priority.HIGH,
        estimated_time=timedelta(minutes=90),
    )
    plan = await PlanGenerationService(AIAnalysisClient(config, client=fake)).generate_plan([task])

    assert plan.total_week_hours == 3
    assert plan.daily_plans[0].sessions[1].type == "review"
    assert plan.tips == ["Take a break every hour"]

    prompt = fake.prompts[0]
    assert '"title": "Essay draft"' in prompt
    assert '"priority": "high"' in prompt
    assert '"estimatedTime": 5400.0' in prompt
    assert '"dueDate": "2024-09-04T12:00:00+00:00"' in prompt


@pytest.mark.asyncio
async def test_incomplete_plan_is_invalid_response(config, fake_openai_factory, now) -> None:
    fake = fake_openai_factory(json.dumps({"tips": ["rest"]}))
    task = Task(title="Essay", due_date=now, course="History")
    with pytest.raises(InvalidResponse):
        await PlanGenerationService(AIAnalysisClient(config, client=fake)).generate_plan([task])

"""AI-generated weekly study plans."""
from __future__ import annotations

import json
import logging
import typing as t

from orchestrator.errors import EmptyInput
from study_state.models import Task
from syllabus_analysis.ai_client import AIAnalysisClient
from syllabus_analysis.models import WeeklyPlan

logger = logging.getLogger(__name__)


def _serialize_task_for_llm(task: Task) -> dict[str, t.Any]:
    """Convert a task to the JSON shape the plan prompt describes."""
    return {
        "title": task.title,
        "course": task.course,
        "dueDate": task.due_date.isoformat(),
        "priority": task.priority.value,
        "estimatedTime": task.estimated_time.total_seconds(),
    }


class PlanGenerationService:
    def __init__(self, ai_client: AIAnalysisClient) -> None:
        self.ai_client = ai_client

    async def generate_plan(self, pending_tasks: t.Sequence[Task]) -> WeeklyPlan:
        """Ask the AI service for a seven-day plan covering ``pending_tasks``.

        Raises:
            EmptyInput: If there are no tasks (no remote call is made)
            InvalidResponse: If the answer is not a complete ``WeeklyPlan``
        """
        if not pending_tasks:
            raise EmptyInput("No pending tasks", status="Add some tasks first")
        tasks_json = json.dumps([_serialize_task_for_llm(task) for task in pending_tasks], indent=2)
        plan = await self.ai_client.generate_weekly_plan(tasks_json)
        logger.info("Generated plan with %d day(s), %.1f hour(s)", len(plan.daily_plans), plan.total_week_hours)
        return plan

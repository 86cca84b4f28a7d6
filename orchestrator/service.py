"""Facade tying the remote services to the local study state.

Each operation awaits the remote work, merges the completed result into
``LocalStudyState`` and keeps a human-readable ``status_message`` next to the
typed errors it re-raises.
"""
from __future__ import annotations

import logging
import typing as t

from backup_store.client import BackupStoreClient
from orchestrator.config import StudyConfig
from orchestrator.errors import StudyAssistantError
from orchestrator.importer import ImportOrchestrator, ImportResult
from roster_client.client import RosterClient
from roster_client.models import RemoteCourse
from study_state.models import Task
from study_state.scheduler import NotificationScheduler
from study_state.state import LocalStudyState
from study_state.storage import JsonFileStorage
from syllabus_analysis.ai_client import AIAnalysisClient
from syllabus_analysis.models import SyllabusAnalysis, WeeklyPlan
from syllabus_analysis.pipeline import Document, DocumentAnalysisPipeline
from syllabus_analysis.planner import PlanGenerationService

logger = logging.getLogger(__name__)

T = t.TypeVar("T")


class StudyService:
    """Runs imports, analyses, plans and backups against one ``LocalStudyState``."""

    def __init__(
        self,
        config: StudyConfig,
        state: LocalStudyState,
        importer: ImportOrchestrator,
        pipeline: DocumentAnalysisPipeline,
        planner: PlanGenerationService,
        backup: BackupStoreClient,
    ) -> None:
        self.config = config
        self.state = state
        self.importer = importer
        self.pipeline = pipeline
        self.planner = planner
        self.backup = backup
        self.scheduler = NotificationScheduler(state, interval=config.notification_interval)
        self.status_message = ""

    @classmethod
    def from_config(cls, config: StudyConfig) -> "StudyService":
        """Wire every component from one config, loading the persisted state."""
        state = LocalStudyState(JsonFileStorage(config.data_dir))
        state.load()
        ai_client = AIAnalysisClient(config)
        return cls(
            config=config,
            state=state,
            importer=ImportOrchestrator(
                RosterClient(config, token=config.canvas_token),
                max_concurrency=config.max_concurrency,
            ),
            pipeline=DocumentAnalysisPipeline(ai_client),
            planner=PlanGenerationService(ai_client),
            backup=BackupStoreClient(config),
        )

    async def _run(self, operation: t.Awaitable[T], working: str, done: t.Callable[[T], str]) -> T:
        self.status_message = working
        try:
            result = await operation
        except StudyAssistantError as e:
            self.status_message = f"Error: {e.status}"
            logger.error("%s failed: %s", working, e)
            raise
        self.status_message = done(result)
        return result

    async def scan_courses(self, credential: str) -> list[RemoteCourse]:
        return await self._run(
            self.importer.scan_courses(credential),
            "Scanning Canvas courses...",
            lambda courses: f"Found {len(courses)} course(s)",
        )

    async def import_courses(
        self,
        selected: t.Sequence[RemoteCourse],
        credential: t.Optional[str] = None,
    ) -> ImportResult:
        """Import the selected courses and merge them without duplicates."""
        if not selected:
            self.status_message = "No courses selected"
            return ImportResult()
        result = await self._run(
            self.importer.import_courses(selected, credential),
            f"Importing {len(selected)} course(s)...",
            lambda r: f"Imported {len(r.tasks)} task(s) and {len(r.courses)} course(s)",
        )
        self.state.merge_import(result)
        return result

    async def sync_with_canvas(self, credential: str) -> ImportResult:
        result = await self._run(
            self.importer.sync(credential),
            "Connecting to Canvas...",
            lambda r: f"Imported {len(r.tasks)} task(s) and {len(r.courses)} course(s)",
        )
        self.state.merge_import(result)
        return result

    async def analyze_syllabus(self, document: Document, course_name: t.Optional[str] = None) -> SyllabusAnalysis:
        """Analyze a syllabus; when ``course_name`` is given, add the derived tasks."""
        analysis = await self._run(
            self.pipeline.analyze_document(document),
            "Analyzing document...",
            lambda a: f"Analysis complete: {len(a.important_dates)} important date(s)",
        )
        if course_name:
            for task in self.pipeline.derive_tasks_from_analysis(analysis, course_name):
                self.state.add_task(task)
        return analysis

    async def ask_document(self, question: str, document: Document) -> str:
        return await self._run(
            self.pipeline.ask_document(question, document),
            "Reading document...",
            lambda _: "Answer ready",
        )

    async def generate_weekly_plan(self, tasks: t.Optional[t.Sequence[Task]] = None) -> WeeklyPlan:
        pending = list(tasks) if tasks is not None else self.state.pending_tasks
        return await self._run(
            self.planner.generate_plan(pending),
            "Generating your study plan...",
            lambda _: "Study plan generated",
        )

    async def backup_tasks(self) -> None:
        await self._run(
            self.backup.push_tasks(self.state.tasks),
            "Syncing with backup store...",
            lambda _: "All tasks backed up",
        )

    async def backup_courses(self) -> None:
        await self._run(
            self.backup.push_courses(self.state.courses),
            "Syncing courses with backup store...",
            lambda _: "All courses backed up",
        )

    async def restore_from_backup(self) -> int:
        """Pull courses and tasks from the backup store and merge the new ones."""
        courses = await self._run(self.backup.pull_courses(), "Loading courses from backup...", lambda c: "")
        self.state.merge_pulled_courses(courses)
        tasks = await self._run(self.backup.pull_tasks(), "Loading tasks from backup...", lambda c: "")
        added = self.state.merge_pulled_tasks(tasks)
        self.status_message = f"Restored {added} task(s) from backup"
        return added

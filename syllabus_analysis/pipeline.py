"""Document analysis: text extraction, then AI analysis, then task derivation.

The steps are strictly sequential; analysis needs the extracted text, and a
failed extraction stops the pipeline before any AI call is made.
"""
from __future__ import annotations

import asyncio
import logging
import typing as t
from datetime import datetime, timezone

from orchestrator.errors import EmptyInput
from study_state.models import Task
from study_state.priority import effort_from_weight, priority_from_weight
from syllabus_analysis.ai_client import AIAnalysisClient
from syllabus_analysis.models import SyllabusAnalysis
from syllabus_analysis.pdf_utils import extract_pdf_text

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d"
DERIVED_TASK_DESCRIPTION = "Created automatically from the syllabus analysis"
MINUTES_PER_WEIGHT_POINT = 1

Document = t.Union[bytes, str]


class DocumentAnalysisPipeline:
    """Runs extraction and analysis for one document at a time.

    Args:
        ai_client: Client used for the analysis step
        extractor: Blocking text extractor; runs in a worker thread
    """

    def __init__(
        self,
        ai_client: AIAnalysisClient,
        extractor: t.Callable[[Document], str] = extract_pdf_text,
    ) -> None:
        self.ai_client = ai_client
        self.extractor = extractor

    async def extract_text(self, document: Document) -> str:
        if not document:
            raise EmptyInput("Empty document", status="The PDF is empty or invalid")
        text = await asyncio.to_thread(self.extractor, document)
        logger.info("Extracted %d characters of text", len(text))
        return text

    async def analyze_document(self, document: Document) -> SyllabusAnalysis:
        """Extract the document's text and ask the AI service to structure it.

        Raises:
            EmptyInput: If the document is empty (checked before any work)
            ExtractionFailure: If the document cannot be read; no AI call is made
            InvalidResponse: If the AI answer does not match ``SyllabusAnalysis``
        """
        text = await self.extract_text(document)
        return await self.ai_client.analyze_syllabus(text)

    async def ask_document(self, question: str, document: Document) -> str:
        if not question.strip():
            raise EmptyInput("Empty question", status="Ask a question first")
        text = await self.extract_text(document)
        return await self.ai_client.answer_question(question, text)

    @staticmethod
    def derive_tasks_from_analysis(analysis: SyllabusAnalysis, course_name: str) -> list[Task]:
        """Turn each dated event of an analysis into a task for ``course_name``.

        Events whose date is not ``YYYY-MM-DD`` are dropped.
        """
        tasks: list[Task] = []
        for important_date in analysis.important_dates:
            try:
                due = datetime.strptime(important_date.date, DATE_FORMAT).replace(tzinfo=timezone.utc)
            except ValueError:
                logger.debug("Dropping event %r with unparsable date %r", important_date.event, important_date.date)
                continue
            tasks.append(
                Task(
                    title=important_date.event,
                    description=DERIVED_TASK_DESCRIPTION,
                    due_date=due,
                    course=course_name,
                    priority=priority_from_weight(important_date.weight),
                    estimated_time=effort_from_weight(important_date.weight, MINUTES_PER_WEIGHT_POINT),
                )
            )
        return tasks

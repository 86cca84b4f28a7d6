"""Client for the generative-text service.

All use cases share a single ``generate_content`` call; they differ only in
the prompt template and the schema the answer is validated against.
"""
from __future__ import annotations

import json
import logging
import typing as t

import openai
from openai import AsyncOpenAI
from pydantic import BaseModel, ValidationError

from orchestrator.config import StudyConfig
from orchestrator.errors import CredentialMissing, InvalidResponse, NetworkFailure
from prompts import render_prompt
from syllabus_analysis.models import SyllabusAnalysis, WeeklyPlan

logger = logging.getLogger(__name__)

M = t.TypeVar("M", bound=BaseModel)

SYSTEM_PROMPT = (
    "You are a study-planning assistant for university students. "
    "When asked for JSON, answer with a single JSON object and nothing else."
)

# Inputs are truncated to keep prompts within the model's context window
MAX_DOCUMENT_CHARS = 30000


class AIAnalysisClient:
    """Sends prompts to an OpenAI-compatible chat-completions endpoint.

    Args:
        config: Service configuration (API key, model, optional base URL)
        client: Optional pre-built ``AsyncOpenAI``-like client, used by tests
    """

    def __init__(self, config: StudyConfig, client: t.Optional[t.Any] = None) -> None:
        self.model = config.ai_model
        self._config = config
        self._client = client

    @property
    def client(self) -> t.Any:
        if self._client is None:
            if not self._config.ai_api_key:
                raise CredentialMissing("OPENAI_API_KEY is missing", status="An AI API key is required")
            self._client = AsyncOpenAI(
                api_key=self._config.ai_api_key,
                base_url=self._config.ai_base_url,
                timeout=self._config.http_timeout,
            )
        return self._client

    async def generate_content(self, prompt: str, json_output: bool = True) -> str:
        """Send one prompt and return the text of the first choice.

        Raises:
            NetworkFailure: If the API call fails
            InvalidResponse: If the response carries no text
        """
        kwargs: dict[str, t.Any] = {}
        if json_output:
            kwargs["response_format"] = {"type": "json_object"}
        try:
            completion = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                **kwargs,
            )
        except openai.APIError as e:
            raise NetworkFailure(f"AI service error: {e}", status="The AI service is unavailable") from e

        try:
            text = completion.choices[0].message.content
        except (AttributeError, IndexError) as e:
            raise InvalidResponse("AI response has no choices") from e
        if not text:
            raise InvalidResponse("AI response has no text part")
        return text

    async def analyze_syllabus(self, syllabus_text: str) -> SyllabusAnalysis:
        prompt = render_prompt("syllabus_analysis", syllabus_text=syllabus_text[:MAX_DOCUMENT_CHARS])
        raw = await self.generate_content(prompt)
        return _parse_json(raw, SyllabusAnalysis)

    async def generate_weekly_plan(self, tasks_json: str) -> WeeklyPlan:
        prompt = render_prompt("weekly_plan", tasks_json=tasks_json)
        raw = await self.generate_content(prompt)
        return _parse_json(raw, WeeklyPlan)

    async def answer_question(self, question: str, document_text: str) -> str:
        prompt = render_prompt(
            "document_question",
            document_text=document_text[:MAX_DOCUMENT_CHARS],
            question=question,
        )
        return await self.generate_content(prompt, json_output=False)


def _parse_json(raw: str, schema: type[M]) -> M:
    """Decode a JSON answer and validate it against ``schema``.

    Raises:
        InvalidResponse: If the text is not JSON or does not match the schema
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise InvalidResponse(f"Invalid JSON response from AI service: {e}") from e
    try:
        return schema.model_validate(data)
    except ValidationError as e:
        logger.debug("Rejected AI response: %s", raw)
        raise InvalidResponse(
            f"AI response does not match {schema.__name__}: {e}",
            status="The AI answer could not be understood",
        ) from e

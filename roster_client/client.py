"""
HTTP client for the roster (Canvas) REST API.

Roster failures propagate as typed errors. Assignment failures degrade to an
empty list for that course so one broken course never sinks an import.
"""
from __future__ import annotations

import logging
import typing as t

import httpx
from pydantic import TypeAdapter, ValidationError

from orchestrator.config import StudyConfig
from orchestrator.errors import CredentialMissing, InvalidResponse, NetworkFailure
from roster_client.models import RemoteAssignment, RemoteCourse, RemoteFrontPage

logger = logging.getLogger(__name__)

_courses_adapter = TypeAdapter(list[RemoteCourse])
_assignments_adapter = TypeAdapter(list[RemoteAssignment])


class RosterClient:
    """Thin async wrapper around the roster endpoints.

    :param config: Service configuration (base URL, timeout).
    :param token: Bearer credential; defaults to the configured roster token.
    :param transport: Optional httpx transport, used by tests.
    """

    def __init__(
        self,
        config: StudyConfig,
        token: t.Optional[str] = None,
        transport: t.Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config
        self.base_url = config.canvas_base_url.rstrip("/")
        self.timeout = config.http_timeout
        self.token = (config.canvas_token if token is None else token).strip()
        self._transport = transport

    def with_token(self, token: str) -> "RosterClient":
        """Return a client for the same roster using a different credential."""
        return RosterClient(self.config, token=token, transport=self._transport)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {self.token}"},
            timeout=self.timeout,
            transport=self._transport,
        )

    def _require_token(self) -> None:
        if not self.token:
            raise CredentialMissing("Canvas API token is missing", status="A Canvas token is required")

    async def fetch_courses(self) -> list[RemoteCourse]:
        """Fetch every course visible to the token.

        :raises CredentialMissing: If no token is set (no request is made).
        :raises NetworkFailure: On transport errors or non-2xx responses.
        :raises InvalidResponse: If the body is not a list of courses.
        """
        self._require_token()
        try:
            async with self._client() as client:
                response = await client.get("/courses")
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise NetworkFailure(
                f"HTTP error from roster service: {e.response.status_code}",
                status=f"Canvas error: HTTP {e.response.status_code}",
            ) from e
        except httpx.HTTPError as e:
            raise NetworkFailure(f"Error calling roster service: {e}", status="Could not reach Canvas") from e

        logger.debug("Roster /courses responded %d", response.status_code)
        try:
            return _courses_adapter.validate_json(response.content)
        except ValidationError as e:
            raise InvalidResponse(f"Unexpected course list: {e}", status="Canvas returned unexpected data") from e

    async def fetch_assignments(self, course_id: int | str) -> list[RemoteAssignment]:
        """Fetch assignments for one course; any non-2xx or bad body yields ``[]``.

        :raises CredentialMissing: If no token is set.
        :raises NetworkFailure: On transport errors (the caller decides whether to absorb them).
        """
        self._require_token()
        try:
            async with self._client() as client:
                response = await client.get(f"/courses/{course_id}/assignments")
        except httpx.HTTPError as e:
            raise NetworkFailure(f"Error fetching assignments for course {course_id}: {e}") from e

        if not response.is_success:
            logger.warning("HTTP %d fetching assignments for course %s", response.status_code, course_id)
            return []
        try:
            return _assignments_adapter.validate_json(response.content)
        except ValidationError as e:
            logger.warning("Undecodable assignments for course %s: %s", course_id, e)
            return []

    async def fetch_front_page(self, course_id: int | str) -> RemoteFrontPage:
        """Fetch the course front page, which often carries the syllabus text."""
        self._require_token()
        try:
            async with self._client() as client:
                response = await client.get(f"/courses/{course_id}/front_page")
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise NetworkFailure(f"HTTP error from roster service: {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise NetworkFailure(f"Error calling roster service: {e}") from e
        try:
            return RemoteFrontPage.model_validate_json(response.content)
        except ValidationError as e:
            raise InvalidResponse(f"Unexpected front page: {e}") from e

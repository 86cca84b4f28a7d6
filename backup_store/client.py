"""
Client for the remote backup store (Firestore REST API).

Pushes issue one POST per record and wait for all of them; the aggregate
fails if any write failed, but writes that already went through stay written.
Pulls decode every document independently and drop the ones that don't decode.
"""
from __future__ import annotations

import logging
import typing as t

import httpx

from backup_store.codec import COURSE_CODEC, TASK_CODEC, DocumentCodec, DocumentDecodeError
from orchestrator.config import StudyConfig
from orchestrator.errors import CredentialMissing, InvalidResponse, NetworkFailure
from orchestrator.executor import gather_all_or_raise
from study_state.models import Course, Task

logger = logging.getLogger(__name__)

R = t.TypeVar("R")

TASKS_COLLECTION = "tasks"
COURSES_COLLECTION = "courses"
PAGE_SIZE = 300


class BackupStoreClient:
    """Push/pull tasks and courses to a project's document collections.

    :param config: Service configuration (API key, project id, base URL, concurrency).
    :param transport: Optional httpx transport, used by tests.
    """

    def __init__(
        self,
        config: StudyConfig,
        transport: t.Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = config.firebase_api_key
        self.project_id = config.firebase_project_id
        self.documents_url = (
            f"{config.firestore_base_url.rstrip('/')}/projects/{self.project_id}"
            f"/databases/(default)/documents"
        )
        self.timeout = config.http_timeout
        self.max_concurrency = config.max_concurrency
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            params={"key": self.api_key},
            transport=self._transport,
        )

    def _require_project(self) -> None:
        if not self.project_id or not self.api_key:
            raise CredentialMissing(
                "Firebase project id and API key are required",
                status="Configure the backup project first",
            )

    async def _write(self, client: httpx.AsyncClient, collection: str, document: dict[str, t.Any], label: str) -> None:
        try:
            response = await client.post(f"{self.documents_url}/{collection}", json=document)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise NetworkFailure(
                f"HTTP error saving '{label}': {e.response.status_code} {e.response.text}",
                status=f"Backup failed for '{label}'",
            ) from e
        except httpx.HTTPError as e:
            raise NetworkFailure(f"Error saving '{label}': {e}", status=f"Backup failed for '{label}'") from e
        logger.debug("Saved '%s' to %s", label, collection)

    async def _push(self, collection: str, codec: DocumentCodec[R], records: t.Sequence[R], label: t.Callable[[R], str]) -> None:
        self._require_project()
        # encode everything up front so a bad record fails before any write
        documents = [(codec.encode(record), label(record)) for record in records]
        async with self._client() as client:
            await gather_all_or_raise(
                (self._write(client, collection, document, name) for document, name in documents),
                max_concurrent=self.max_concurrency,
            )
        logger.info("Pushed %d record(s) to %s", len(documents), collection)

    async def _pull(self, collection: str, codec: DocumentCodec[R]) -> list[R]:
        self._require_project()
        records: list[R] = []
        skipped = 0
        page_token: t.Optional[str] = None
        async with self._client() as client:
            while True:
                params: dict[str, t.Any] = {"pageSize": PAGE_SIZE}
                if page_token:
                    params["pageToken"] = page_token
                try:
                    response = await client.get(f"{self.documents_url}/{collection}", params=params)
                    response.raise_for_status()
                    body = response.json()
                except httpx.HTTPStatusError as e:
                    raise NetworkFailure(f"HTTP error loading {collection}: {e.response.status_code}") from e
                except httpx.HTTPError as e:
                    raise NetworkFailure(f"Error loading {collection}: {e}") from e
                except ValueError as e:
                    raise InvalidResponse(f"Backup store returned non-JSON for {collection}") from e
                if not isinstance(body, dict):
                    raise InvalidResponse(f"Backup store returned an unexpected body for {collection}")

                for document in body.get("documents", []) or []:
                    try:
                        records.append(codec.decode(document))
                    except DocumentDecodeError as e:
                        skipped += 1
                        logger.debug("Skipping document %s: %s", document.get("name", "?"), e)

                page_token = body.get("nextPageToken")
                if not page_token:
                    break

        logger.info("Pulled %d record(s) from %s (%d undecodable)", len(records), collection, skipped)
        return records

    async def push_tasks(self, tasks: t.Sequence[Task]) -> None:
        """Write every task; raise the first failure after all writes settle."""
        await self._push(TASKS_COLLECTION, TASK_CODEC, tasks, lambda task: task.title)

    async def pull_tasks(self) -> list[Task]:
        return await self._pull(TASKS_COLLECTION, TASK_CODEC)

    async def push_courses(self, courses: t.Sequence[Course]) -> None:
        await self._push(COURSES_COLLECTION, COURSE_CODEC, courses, lambda course: course.name)

    async def pull_courses(self) -> list[Course]:
        return await self._pull(COURSES_COLLECTION, COURSE_CODEC)

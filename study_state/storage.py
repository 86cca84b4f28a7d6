"""
Durable storage backends for the local study state.

The state is kept under four independent keys (tasks, courses, sessions,
notifications), each holding a JSON list of records.
"""
from __future__ import annotations

import logging
from pathlib import Path
import typing as t

logger = logging.getLogger(__name__)


class StateStorage(t.Protocol):
    """Key/blob store used by ``LocalStudyState``."""

    def get(self, key: str) -> t.Optional[bytes]: ...

    def set(self, key: str, data: bytes) -> None: ...

    def delete(self, key: str) -> None: ...


class InMemoryStorage:
    """Keeps blobs in a dict. Useful for tests and short-lived runs."""

    def __init__(self) -> None:
        self.blobs: dict[str, bytes] = {}

    def get(self, key: str) -> t.Optional[bytes]:
        return self.blobs.get(key)

    def set(self, key: str, data: bytes) -> None:
        self.blobs[key] = data

    def delete(self, key: str) -> None:
        self.blobs.pop(key, None)


class JsonFileStorage:
    """Stores each key as ``<directory>/<key>.json``."""

    def __init__(self, directory: str | Path = "data"):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> t.Optional[bytes]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_bytes()

    def set(self, key: str, data: bytes) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        # write then rename so a crash never leaves a half-written blob
        tmp = self._path(key).with_suffix(".json.tmp")
        tmp.write_bytes(data)
        tmp.replace(self._path(key))

    def delete(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            path.unlink()
            logger.debug("Removed %s", path)

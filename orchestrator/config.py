"""Configuration for the study assistant services.

A single immutable ``StudyConfig`` is built once (usually from the environment)
and handed to each service constructor. Services never read the environment
themselves.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path


DEFAULT_CANVAS_BASE_URL = "https://canvas.instructure.com/api/v1"
DEFAULT_FIRESTORE_BASE_URL = "https://firestore.googleapis.com/v1"
DEFAULT_AI_MODEL = "gpt-4o-mini"

# Timeouts and intervals (in seconds)
DEFAULT_HTTP_TIMEOUT = 30.0
DEFAULT_NOTIFICATION_INTERVAL = 300.0
DEFAULT_MAX_CONCURRENCY = 8


@dataclass(frozen=True)
class StudyConfig:
    """Immutable settings for every remote service the core talks to."""
    canvas_base_url: str = DEFAULT_CANVAS_BASE_URL
    canvas_token: str = ""
    ai_api_key: str = ""
    ai_model: str = DEFAULT_AI_MODEL
    ai_base_url: str | None = None
    firebase_api_key: str = ""
    firebase_project_id: str = ""
    firestore_base_url: str = DEFAULT_FIRESTORE_BASE_URL
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    notification_interval: float = DEFAULT_NOTIFICATION_INTERVAL
    data_dir: Path = Path("data")

    def __post_init__(self) -> None:
        if self.max_concurrency < 1:
            raise ValueError(f"max_concurrency must be at least 1, got {self.max_concurrency}")
        if self.notification_interval <= 0:
            raise ValueError("notification_interval must be positive")

    @classmethod
    def from_env(cls) -> "StudyConfig":
        """Build a config from environment variables, falling back to defaults."""
        return cls(
            canvas_base_url=os.getenv("CANVAS_BASE_URL", DEFAULT_CANVAS_BASE_URL).strip(),
            canvas_token=os.getenv("CANVAS_API_TOKEN", "").strip(),
            ai_api_key=os.getenv("OPENAI_API_KEY", "").strip(),
            ai_model=os.getenv("OPENAI_MODEL", DEFAULT_AI_MODEL).strip(),
            ai_base_url=os.getenv("OPENAI_BASE_URL") or None,
            firebase_api_key=os.getenv("FIREBASE_API_KEY", "").strip(),
            firebase_project_id=os.getenv("FIREBASE_PROJECT_ID", "").strip(),
            firestore_base_url=os.getenv("FIRESTORE_BASE_URL", DEFAULT_FIRESTORE_BASE_URL).strip(),
            max_concurrency=int(os.getenv("STUDY_MAX_CONCURRENCY", DEFAULT_MAX_CONCURRENCY)),
            http_timeout=float(os.getenv("STUDY_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT)),
            notification_interval=float(
                os.getenv("STUDY_NOTIFICATION_INTERVAL", DEFAULT_NOTIFICATION_INTERVAL)
            ),
            data_dir=Path(os.getenv("STUDY_DATA_DIR", "data")),
        )

    def with_canvas_token(self, token: str) -> "StudyConfig":
        """Return a copy of this config using a different roster token."""
        return replace(self, canvas_token=token.strip())

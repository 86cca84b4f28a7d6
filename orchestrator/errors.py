"""Error types shared by the remote clients, the pipelines and the orchestrator.

Every error carries a human-readable ``status`` string so callers can surface
it directly next to the typed error value.
"""
from __future__ import annotations


class StudyAssistantError(Exception):
    """Base class for all errors raised by the study assistant core."""

    default_status = "Something went wrong"

    def __init__(self, message: str = "", status: str | None = None) -> None:
        super().__init__(message or self.default_status)
        self.status = status or message or self.default_status


class CredentialMissing(StudyAssistantError):
    """A required access credential was empty or absent."""

    default_status = "An access token is required"


class InvalidResponse(StudyAssistantError):
    """A remote response did not match the expected schema."""

    default_status = "The service returned an unexpected response"


class NetworkFailure(StudyAssistantError):
    """A remote call failed at the transport level or returned a non-2xx status."""

    default_status = "Could not reach the remote service"


class EncodingFailure(StudyAssistantError):
    """A local record could not be turned into a remote document."""

    default_status = "Could not encode the record"


class EmptyInput(StudyAssistantError):
    """There was nothing to work on (no pending tasks, empty document)."""

    default_status = "Nothing to process"


class ExtractionFailure(StudyAssistantError):
    """A document could not be opened or read at all."""

    default_status = "Could not read the document"

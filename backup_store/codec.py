"""
Typed codec between local records and Firestore REST documents.

Each record type has one table of ``FieldSpec`` entries naming the attribute,
the remote field name and the Firestore value tag. Encoding and decoding are
both driven by that table, so the two directions cannot drift apart.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import typing as t

from orchestrator.errors import EncodingFailure
from study_state.models import Course, Priority, Task

R = t.TypeVar("R")

STRING = "stringValue"
TIMESTAMP = "timestampValue"
BOOLEAN = "booleanValue"
DOUBLE = "doubleValue"
INTEGER = "integerValue"
NULL = "nullValue"


class DocumentDecodeError(ValueError):
    """A remote document is missing a field or carries a value of the wrong type."""


def _format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_timestamp(value: t.Any) -> datetime:
    if not isinstance(value, str):
        raise DocumentDecodeError(f"timestamp must be a string, got {type(value).__name__}")
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise DocumentDecodeError(f"bad timestamp {value!r}") from e
    if parsed.tzinfo is None:
        raise DocumentDecodeError(f"timestamp {value!r} has no UTC offset")
    return parsed


def _expect(kind: type | tuple[type, ...]) -> t.Callable[[t.Any], t.Any]:
    def check(value: t.Any) -> t.Any:
        # bool is an int subclass; never accept it as a number
        if not isinstance(value, kind) or (isinstance(value, bool) and kind is not bool):
            raise DocumentDecodeError(f"expected {kind}, got {type(value).__name__}")
        return value
    return check


_WIRE: dict[str, tuple[t.Callable[[t.Any], t.Any], t.Callable[[t.Any], t.Any]]] = {
    # tag: (python -> wire, wire -> python)
    STRING: (str, _expect(str)),
    TIMESTAMP: (_format_timestamp, _parse_timestamp),
    BOOLEAN: (bool, _expect(bool)),
    DOUBLE: (float, lambda v: float(_expect((int, float))(v))),
    INTEGER: (lambda v: str(int(v)), lambda v: int(_expect((str, int))(v))),
}


@dataclass(frozen=True)
class FieldSpec:
    """Maps one record attribute to one typed document field.

    ``to_value`` / ``from_value`` convert between the attribute and the plain
    value stored under the tag (e.g. uuid <-> str, timedelta <-> seconds).
    """
    attribute: str
    remote_name: str
    tag: str
    optional: bool = False
    to_value: t.Callable[[t.Any], t.Any] = lambda v: v
    from_value: t.Callable[[t.Any], t.Any] = lambda v: v


@dataclass(frozen=True)
class DocumentCodec(t.Generic[R]):
    record_type: type[R]
    fields: tuple[FieldSpec, ...]

    def encode(self, record: R) -> dict[str, t.Any]:
        """Build a ``{"fields": {...}}`` document for ``record``.

        Raises:
            EncodingFailure: If an attribute cannot be converted
        """
        fields: dict[str, t.Any] = {}
        for spec in self.fields:
            value = getattr(record, spec.attribute)
            if value is None:
                if not spec.optional:
                    raise EncodingFailure(f"{spec.attribute} is required")
                fields[spec.remote_name] = {NULL: None}
                continue
            to_wire, _ = _WIRE[spec.tag]
            try:
                fields[spec.remote_name] = {spec.tag: to_wire(spec.to_value(value))}
            except (TypeError, ValueError, AttributeError) as e:
                raise EncodingFailure(f"Cannot encode {spec.attribute}: {e}") from e
        return {"fields": fields}

    def decode(self, document: t.Mapping[str, t.Any]) -> R:
        """Rebuild a record from a document.

        Missing optional fields fall back to the record's defaults.

        Raises:
            DocumentDecodeError: If a required field is missing or mistyped
        """
        fields = document.get("fields")
        if not isinstance(fields, dict):
            raise DocumentDecodeError("document has no fields")

        kwargs: dict[str, t.Any] = {}
        for spec in self.fields:
            typed = fields.get(spec.remote_name)
            if typed is None or (isinstance(typed, dict) and NULL in typed):
                if not spec.optional:
                    raise DocumentDecodeError(f"missing field {spec.remote_name}")
                continue
            if not isinstance(typed, dict) or spec.tag not in typed:
                raise DocumentDecodeError(f"field {spec.remote_name} is not a {spec.tag}")
            _, from_wire = _WIRE[spec.tag]
            try:
                kwargs[spec.attribute] = spec.from_value(from_wire(typed[spec.tag]))
            except (TypeError, ValueError, OverflowError) as e:
                raise DocumentDecodeError(f"bad value for {spec.remote_name}: {e}") from e
        return self.record_type(**kwargs)


TASK_CODEC: DocumentCodec[Task] = DocumentCodec(
    Task,
    (
        FieldSpec("id", "id", STRING, optional=True, to_value=str, from_value=uuid.UUID),
        FieldSpec("title", "title", STRING),
        FieldSpec("description", "description", STRING),
        FieldSpec("course", "course", STRING),
        FieldSpec("priority", "priority", STRING, to_value=lambda p: p.value, from_value=Priority),
        FieldSpec("due_date", "dueDate", TIMESTAMP),
        FieldSpec("is_completed", "isCompleted", BOOLEAN),
        FieldSpec("completed_at", "completedAt", TIMESTAMP, optional=True),
        FieldSpec(
            "estimated_time", "estimatedTime", DOUBLE,
            to_value=timedelta.total_seconds, from_value=lambda s: timedelta(seconds=s),
        ),
        FieldSpec("external_id", "canvasId", STRING, optional=True),
        FieldSpec("created_at", "createdAt", TIMESTAMP, optional=True),
    ),
)

COURSE_CODEC: DocumentCodec[Course] = DocumentCodec(
    Course,
    (
        FieldSpec("id", "id", STRING, optional=True, to_value=str, from_value=uuid.UUID),
        FieldSpec("name", "name", STRING),
        FieldSpec("code", "code", STRING),
        FieldSpec("instructor", "professor", STRING),
        FieldSpec("color_hex", "colorHex", STRING),
        FieldSpec("syllabus_url", "syllabusUrl", STRING, optional=True),
        FieldSpec("external_id", "canvasId", STRING, optional=True),
    ),
)

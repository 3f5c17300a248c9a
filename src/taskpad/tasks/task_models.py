# src/taskpad/tasks/task_models.py

from __future__ import annotations

import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, TypedDict

from ..storage.errors import InvalidRecordError

DEFAULT_LIST_ID = "default"


class Priority(StrEnum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_raw(cls, raw: Any) -> Priority:
        if not raw:
            return cls.NONE
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return cls.NONE

    @property
    def rank(self) -> int:
        """Sort rank: high first, none last."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    Priority.HIGH: 0,
    Priority.MEDIUM: 1,
    Priority.LOW: 2,
    Priority.NONE: 3,
}


class SourceType(StrEnum):
    """Where an imported task came from."""

    TEXT = "text"
    IMAGE = "image"
    PDF = "pdf"

    @classmethod
    def from_raw(cls, raw: Any) -> SourceType | None:
        if not raw:
            return None
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return None


class FilterType(StrEnum):
    ALL = "all"
    TODAY = "today"
    MYDAY = "myday"
    IMPORTANT = "important"
    PLANNED = "planned"


class SortOption(StrEnum):
    CREATED_AT = "createdAt"
    DUE_DATE = "dueDate"
    PRIORITY = "priority"
    ALPHABETICAL = "alphabetical"


# ---- capabilities ----

Clock = Callable[[], datetime]
IdFactory = Callable[[], str]


def utc_now() -> datetime:
    return datetime.now(UTC)


def new_id() -> str:
    return str(uuid.uuid4())


# ---- entities ----


@dataclass(slots=True)
class Step:
    id: str
    text: str
    completed: bool = False


@dataclass(slots=True)
class Task:
    """
    A single actionable item.

    Notes:
    - id and created_at never change after creation.
    - text is always trimmed and non-empty; the store re-trims on every edit.
    - tags behave like an ordered set (no duplicates, insertion order kept).
    """

    id: str
    text: str
    created_at: datetime
    completed: bool = False
    list_id: str = DEFAULT_LIST_ID
    my_day: bool = False
    priority: Priority = Priority.NONE
    tags: list[str] = field(default_factory=list)
    steps: list[Step] = field(default_factory=list)
    due_date: datetime | None = None
    reminder: datetime | None = None
    attachments: list[str] = field(default_factory=list)

    # Import provenance
    description: str | None = None
    source_type: SourceType | None = None
    source_data: str | None = None

    def find_step(self, step_id: str) -> Step | None:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None


# ---- persisted records ----


class StepRecord(TypedDict):
    id: str
    text: str
    completed: bool


class CurrentTaskRecord(TypedDict):
    """The shape written by this version; every key present."""

    id: str
    text: str
    completed: bool
    createdAt: str
    listId: str
    myDay: bool
    priority: str
    tags: list[str]
    steps: list[StepRecord]
    dueDate: str | None
    reminder: str | None
    attachments: list[str]
    description: str | None
    sourceType: str | None
    sourceData: str | None


class LegacyTaskRecord(TypedDict, total=False):
    """
    Historical records: early versions only wrote id/text/completed/createdAt,
    later ones added fields one by one. Any key may be missing.
    """

    id: str
    text: str
    completed: bool
    createdAt: str
    listId: str
    myDay: bool
    priority: str
    tags: list[Any]
    steps: list[Any]
    dueDate: str | None
    reminder: str | None
    attachments: list[Any]
    description: str | None
    sourceType: str | None
    sourceData: str | None


TaskRecord = CurrentTaskRecord | LegacyTaskRecord


def format_timestamp(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat()


def parse_timestamp(raw: Any) -> datetime | None:
    """Parse an ISO-8601 value; naive timestamps are taken as UTC."""
    if isinstance(raw, datetime):
        dt = raw
    elif isinstance(raw, str) and raw.strip():
        try:
            dt = datetime.fromisoformat(raw.strip())
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


def task_to_record(task: Task) -> CurrentTaskRecord:
    return {
        "id": task.id,
        "text": task.text,
        "completed": task.completed,
        "createdAt": task.created_at.isoformat(),
        "listId": task.list_id,
        "myDay": task.my_day,
        "priority": task.priority.value,
        "tags": list(task.tags),
        "steps": [{"id": s.id, "text": s.text, "completed": s.completed} for s in task.steps],
        "dueDate": format_timestamp(task.due_date),
        "reminder": format_timestamp(task.reminder),
        "attachments": list(task.attachments),
        "description": task.description,
        "sourceType": task.source_type.value if task.source_type else None,
        "sourceData": task.source_data,
    }


def optional_text(raw: Any) -> str | None:
    """Blank or missing text is stored as None."""
    if raw is None:
        return None
    s = str(raw)
    return s if s.strip() else None


def _clean_tags(raw: Any) -> list[str]:
    if not isinstance(raw, list):
        return []
    out: list[str] = []
    for tag in raw:
        if not isinstance(tag, str):
            continue
        tag = tag.strip()
        if tag and tag not in out:
            out.append(tag)
    return out


def clean_steps(raw: Any, new_id: IdFactory) -> list[Step]:
    """Keep Step instances and step-shaped mappings with non-blank text."""
    if not isinstance(raw, (list, tuple)):
        return []
    out: list[Step] = []
    for item in raw:
        if isinstance(item, Step):
            text = item.text.strip()
            if text:
                out.append(Step(id=item.id or new_id(), text=text, completed=item.completed))
            continue
        if not isinstance(item, Mapping):
            continue
        text = str(item.get("text") or "").strip()
        if not text:
            continue
        out.append(
            Step(
                id=str(item.get("id") or new_id()),
                text=text,
                completed=bool(item.get("completed", False)),
            )
        )
    return out


def migrate_record(raw: Any, *, clock: Clock = utc_now, new_id: IdFactory = new_id) -> Task:
    """
    Bring a stored record (current or legacy) forward to a Task.

    Missing fields take their defaults; the result is the same whether the
    record was written by this version or an older one. Raises
    InvalidRecordError when the record is not a mapping or has no usable text.
    """
    if not isinstance(raw, Mapping):
        raise InvalidRecordError(f"task record must be a mapping, got {type(raw).__name__}")

    text = raw.get("text")
    if not isinstance(text, str) or not text.strip():
        raise InvalidRecordError(f"task record {raw.get('id')!r} has no text")

    attachments = raw.get("attachments")

    return Task(
        id=str(raw.get("id") or new_id()),
        text=text.strip(),
        created_at=parse_timestamp(raw.get("createdAt")) or clock(),
        completed=bool(raw.get("completed", False)),
        list_id=str(raw.get("listId") or DEFAULT_LIST_ID),
        my_day=bool(raw.get("myDay", False)),
        priority=Priority.from_raw(raw.get("priority")),
        tags=_clean_tags(raw.get("tags")),
        steps=clean_steps(raw.get("steps"), new_id),
        due_date=parse_timestamp(raw.get("dueDate")),
        reminder=parse_timestamp(raw.get("reminder")),
        attachments=[str(a) for a in attachments] if isinstance(attachments, list) else [],
        description=optional_text(raw.get("description")),
        source_type=SourceType.from_raw(raw.get("sourceType")),
        source_data=optional_text(raw.get("sourceData")),
    )

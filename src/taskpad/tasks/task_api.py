# src/taskpad/tasks/task_api.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from .task_extractor import extract_tasks
from .task_models import SourceType, Task
from .task_store import TaskStore

logger = logging.getLogger(__name__)


class ImportOutcome(StrEnum):
    EMPTY_INPUT = "empty_input"  # nothing pasted
    NO_TASKS = "no_tasks"
    IMPORTED = "imported"


@dataclass(slots=True, frozen=True)
class ImportResult:
    outcome: ImportOutcome
    tasks: list[Task] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.tasks)


def import_text(store: TaskStore, text: str) -> ImportResult:
    """
    Run the extractor over pasted text and batch-add whatever it finds.
    Tasks land in the currently selected list, in the order they appeared.
    """
    if not (text or "").strip():
        return ImportResult(ImportOutcome.EMPTY_INPUT)

    candidates = extract_tasks(text)
    if not candidates:
        logger.info("Import found no tasks (%d chars)", len(text))
        return ImportResult(ImportOutcome.NO_TASKS)

    created = store.add_tasks(candidates, source_type=SourceType.TEXT)
    logger.info("Imported %d tasks", len(created))
    return ImportResult(ImportOutcome.IMPORTED, created)


def import_file(store: TaskStore, path: str | Path) -> ImportResult:
    """Same as import_text, reading the text from a UTF-8 file."""
    text = Path(path).expanduser().read_text("utf-8")
    return import_text(store, text)

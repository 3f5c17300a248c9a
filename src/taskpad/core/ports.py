# src/taskpad/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The store depends on Protocols instead of concrete implementations.
This keeps storage backends swappable and makes testing easier.
"""

from collections.abc import Callable, Mapping, Sequence
from typing import Any, Protocol

from ..tasks.task_models import Clock, IdFactory, Task

ChangeListener = Callable[[], None]
# Called with no arguments; listeners re-query the store.

__all__ = ["ChangeListener", "Clock", "IdFactory", "PreferencesRepo", "TaskStorage"]


class TaskStorage(Protocol):
    """
    Durable storage for the full task collection.

    - read_tasks returns raw records in stored order ([] when nothing is stored);
      it raises StorageUnavailableError only when stored data cannot be read.
    - write_tasks overwrites the whole collection (never appends) and raises
      StorageError on failure.
    """

    async def read_tasks(self) -> list[Mapping[str, Any]]: ...

    async def write_tasks(self, tasks: Sequence[Task]) -> None: ...


class PreferencesRepo(Protocol):
    """Independent key-value view settings (language, theme)."""

    def get(self, key: str, default: str | None = None) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

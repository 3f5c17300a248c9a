# src/taskpad/storage/json_storage.py

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from ..tasks.task_models import CurrentTaskRecord, Task, task_to_record
from .errors import StorageError, StorageUnavailableError

logger = logging.getLogger(__name__)


class JsonTaskStorage:
    """
    Task storage as a single JSON array file.

    - missing file -> no tasks
    - unreadable / corrupt file -> StorageUnavailableError (never silently empty)
    - writes go to a tmp file first, then os.replace, so a crash mid-write keeps
      the previous version intact
    """

    def __init__(self, path: str | Path = "tasks.json") -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read_sync(self) -> list[Mapping[str, Any]]:
        if not self._path.exists():
            return []
        try:
            data = json.loads(self._path.read_text("utf-8"))
        except (OSError, ValueError) as e:
            raise StorageUnavailableError(f"cannot read {self._path}: {e}") from e

        # Older files wrapped the list: {"todos": [...]}
        if isinstance(data, dict):
            data = data.get("tasks", data.get("todos"))
        if not isinstance(data, list):
            raise StorageUnavailableError(f"{self._path} does not hold a task list")
        return data

    def _write_sync(self, records: list[CurrentTaskRecord]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(".tmp")
            tmp.write_text(json.dumps(records, ensure_ascii=False, indent=2), "utf-8")
            os.replace(tmp, self._path)
        except OSError as e:
            raise StorageError(f"cannot write {self._path}: {e}") from e
        with contextlib.suppress(OSError):
            # Task text is personal; keep the file private on disk.
            os.chmod(self._path, 0o600)

    async def read_tasks(self) -> list[Mapping[str, Any]]:
        records = await asyncio.to_thread(self._read_sync)
        logger.info("Loaded %d task records from %s", len(records), self._path)
        return records

    async def write_tasks(self, tasks: Sequence[Task]) -> None:
        records = [task_to_record(t) for t in tasks]
        await asyncio.to_thread(self._write_sync, records)
        logger.debug("Saved %d tasks to %s", len(records), self._path)

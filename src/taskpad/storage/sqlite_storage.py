# src/taskpad/storage/sqlite_storage.py

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import sqlite3
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from ..tasks.task_models import CurrentTaskRecord, Task, task_to_record
from .errors import StorageError, StorageUnavailableError

logger = logging.getLogger(__name__)

# Nested values are stored as JSON text.
_JSON_COLUMNS = ("tags", "steps", "attachments")

# record key -> column name
_COLUMNS: dict[str, str] = {
    "id": "id",
    "text": "text",
    "completed": "completed",
    "createdAt": "created_at",
    "listId": "list_id",
    "myDay": "my_day",
    "priority": "priority",
    "tags": "tags",
    "steps": "steps",
    "dueDate": "due_date",
    "reminder": "reminder",
    "attachments": "attachments",
    "description": "description",
    "sourceType": "source_type",
    "sourceData": "source_data",
}


class SqliteTaskStorage:
    """
    SQLite task storage.

    The schema is intentionally simple and migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Order is kept in an explicit position column. A write replaces every row in
    one transaction, so readers never see a half-written collection.

    Each call opens its own connection and runs in a worker thread.
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("SqliteTaskStorage ready db=%s", self._db_path)

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise StorageUnavailableError(f"cannot open {self._db_path}: {e}") from e
        try:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    position INTEGER NOT NULL,
                    id TEXT PRIMARY KEY,
                    text TEXT NOT NULL,
                    completed INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT
                )
                """
            )

            # Migrations (safe): add missing columns.
            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("SqliteTaskStorage migration: added column %s", name)

            add_col("position", "INTEGER NOT NULL DEFAULT 0")
            add_col("list_id", "TEXT")
            add_col("my_day", "INTEGER NOT NULL DEFAULT 0")
            add_col("priority", "TEXT")
            add_col("tags", "TEXT")
            add_col("steps", "TEXT")
            add_col("due_date", "TEXT")
            add_col("reminder", "TEXT")
            add_col("attachments", "TEXT")
            add_col("description", "TEXT")
            add_col("source_type", "TEXT")
            add_col("source_data", "TEXT")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_position ON tasks(position)")
            conn.commit()
        except sqlite3.DatabaseError as e:
            raise StorageUnavailableError(f"cannot prepare {self._db_path}: {e}") from e
        finally:
            conn.close()

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> dict[str, Any]:
        """
        Rows written by older versions have NULLs in newer columns; those keys
        are left out so migration fills defaults.
        """
        out: dict[str, Any] = {}
        for key, col in _COLUMNS.items():
            value = row[col]
            if value is None:
                continue
            if col in _JSON_COLUMNS:
                try:
                    value = json.loads(value)
                except ValueError:
                    logger.warning("Bad JSON in column %s for task %s", col, row["id"])
                    continue
            elif col in ("completed", "my_day"):
                value = bool(value)
            out[key] = value
        return out

    @staticmethod
    def _record_to_params(position: int, record: CurrentTaskRecord) -> tuple[Any, ...]:
        values: list[Any] = [position]
        for key, col in _COLUMNS.items():
            value = record[key]  # type: ignore[literal-required]
            if col in _JSON_COLUMNS:
                value = json.dumps(value, ensure_ascii=False)
            elif col in ("completed", "my_day"):
                value = int(bool(value))
            values.append(value)
        return tuple(values)

    # ---- sync implementation (runs in a worker thread) ----

    def _read_sync(self) -> list[Mapping[str, Any]]:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT * FROM tasks ORDER BY position ASC, rowid ASC")
            return [self._row_to_record(r) for r in cur.fetchall()]
        except sqlite3.DatabaseError as e:
            raise StorageUnavailableError(f"cannot read {self._db_path}: {e}") from e
        finally:
            conn.close()

    def _write_sync(self, records: list[CurrentTaskRecord]) -> None:
        cols = ", ".join(["position", *_COLUMNS.values()])
        placeholders = ", ".join("?" for _ in range(len(_COLUMNS) + 1))
        rows = [self._record_to_params(i, r) for i, r in enumerate(records)]

        conn = self._get_conn()
        try:
            with conn:
                conn.execute("DELETE FROM tasks")
                conn.executemany(f"INSERT INTO tasks ({cols}) VALUES ({placeholders})", rows)
        except sqlite3.Error as e:
            raise StorageError(f"cannot write {self._db_path}: {e}") from e
        finally:
            conn.close()

    # ---- TaskStorage ----

    async def read_tasks(self) -> list[Mapping[str, Any]]:
        return await asyncio.to_thread(self._read_sync)

    async def write_tasks(self, tasks: Sequence[Task]) -> None:
        # Serialize on the loop thread; the store may mutate tasks while we write.
        records = [task_to_record(t) for t in tasks]
        await asyncio.to_thread(self._write_sync, records)
        logger.debug("SqliteTaskStorage wrote %d tasks", len(records))

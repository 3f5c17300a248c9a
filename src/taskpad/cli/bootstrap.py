# src/taskpad/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the chosen storage backend, the task store and preferences into AppState.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.ports import TaskStorage
from ..core.state import AppState
from ..storage.json_storage import JsonTaskStorage
from ..storage.preferences import PreferencesStore
from ..storage.sqlite_storage import SqliteTaskStorage
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_path.parent.mkdir(parents=True, exist_ok=True)
    settings.preferences_path.parent.mkdir(parents=True, exist_ok=True)


def create_storage(settings) -> TaskStorage:
    backend = str(getattr(settings, "storage_backend", "sqlite"))
    if backend == "json":
        return JsonTaskStorage(settings.tasks_json_path)
    return SqliteTaskStorage(settings.tasks_db_path)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().

    The store is returned unloaded; the caller awaits state.store.load().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    storage = create_storage(settings)
    logger.info("Using %s storage at %s", settings.storage_backend, settings.tasks_path)

    return AppState(
        settings=settings,
        store=TaskStore(storage, save_delay=settings.save_delay_seconds),
        preferences=PreferencesStore(settings.preferences_path),
    )

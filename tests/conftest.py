# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskpad.core.state import AppState
from taskpad.storage.preferences import PreferencesStore
from taskpad.tasks.task_store import TaskStore

from .fakes import FakeClock, MemoryTaskStorage, SequentialIds


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the bootstrap helpers.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="taskpad-test",
        log_level="DEBUG",
        log_to_file=False,
        data_dir=tmp_path,
        storage_backend="json",
        tasks_db_path=tmp_path / "tasks.sqlite3",
        tasks_json_path=tmp_path / "tasks.json",
        tasks_path=tmp_path / "tasks.json",
        preferences_path=tmp_path / "preferences.json",
        save_delay_seconds=0.01,
        default_language="en",
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def ids() -> SequentialIds:
    # Distinct from hand-written record ids such as "t1" used in load tests.
    return SequentialIds("gen-")


@pytest.fixture()
def storage() -> MemoryTaskStorage:
    return MemoryTaskStorage()


@pytest.fixture()
def store(storage: MemoryTaskStorage, clock: FakeClock, ids: SequentialIds) -> TaskStore:
    """
    Store wired with deterministic fakes. Not loaded: tests that care about
    load() call it themselves.
    """
    return TaskStore(storage, clock=clock, id_factory=ids, save_delay=0.01)


@pytest.fixture()
def state(settings: SimpleNamespace, store: TaskStore) -> AppState:
    return AppState(
        settings=settings,
        store=store,
        preferences=PreferencesStore(settings.preferences_path),
    )

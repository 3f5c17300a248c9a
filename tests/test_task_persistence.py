# tests/test_task_persistence.py

from __future__ import annotations

import asyncio
from datetime import UTC, datetime

import pytest

from taskpad.storage.errors import StorageError, StorageUnavailableError
from taskpad.tasks.task_models import Priority
from taskpad.tasks.task_persistence import WriteOutcome
from taskpad.tasks.task_store import TaskStore

from .fakes import FakeClock, MemoryTaskStorage, Recorder, SequentialIds


class BrokenReadStorage(MemoryTaskStorage):
    async def read_tasks(self):
        raise StorageError("disk went away")


@pytest.mark.asyncio
async def test_burst_of_mutations_writes_once(store: TaskStore, storage: MemoryTaskStorage) -> None:
    for i in range(5):
        store.add_task(f"task {i}")
    assert storage.writes == []

    await asyncio.sleep(0.1)

    assert len(storage.writes) == 1
    assert [r["text"] for r in storage.writes[0]] == [f"task {i}" for i in reversed(range(5))]
    assert store.last_write.outcome == WriteOutcome.OK
    assert store.last_write.writes == 1


@pytest.mark.asyncio
async def test_quiet_period_restarts_on_each_change(storage: MemoryTaskStorage, clock: FakeClock) -> None:
    store = TaskStore(storage, clock=clock, id_factory=SequentialIds(), save_delay=0.2)

    store.add_task("a")
    await asyncio.sleep(0.12)
    store.add_task("b")
    await asyncio.sleep(0.12)
    assert storage.writes == []

    await asyncio.sleep(0.2)
    assert len(storage.writes) == 1
    assert {r["text"] for r in storage.writes[0]} == {"a", "b"}


@pytest.mark.asyncio
async def test_write_failure_is_reported_not_retried(store: TaskStore, storage: MemoryTaskStorage) -> None:
    storage.fail_writes = True
    store.add_task("doomed")

    await asyncio.sleep(0.1)
    status = store.last_write
    assert status.outcome == WriteOutcome.FAILED
    assert isinstance(status.error, StorageError)
    assert status.writes == 0
    # In-memory state is untouched by the failure.
    assert [t.text for t in store.get_tasks()] == ["doomed"]

    await asyncio.sleep(0.05)
    assert storage.writes == []

    storage.fail_writes = False
    store.add_task("recovered")
    status = await store.flush()
    assert status.outcome == WriteOutcome.OK
    assert status.error is None
    assert [r["text"] for r in storage.records] == ["recovered", "doomed"]


@pytest.mark.asyncio
async def test_flush_without_changes_is_noop(store: TaskStore, storage: MemoryTaskStorage) -> None:
    status = await store.flush()
    assert status.outcome == WriteOutcome.IDLE
    assert storage.writes == []


@pytest.mark.asyncio
async def test_close_flushes_pending_write(storage: MemoryTaskStorage, clock: FakeClock) -> None:
    store = TaskStore(storage, clock=clock, id_factory=SequentialIds(), save_delay=10)
    store.add_task("keep me")

    await store.close()

    assert len(storage.writes) == 1
    assert storage.records[0]["text"] == "keep me"


def test_pending_write_without_loop_waits_for_flush(store: TaskStore, storage: MemoryTaskStorage) -> None:
    store.add_task("offline")
    assert store.last_write.outcome == WriteOutcome.PENDING
    assert storage.writes == []

    status = asyncio.run(store.flush())
    assert status.outcome == WriteOutcome.OK
    assert len(storage.writes) == 1


# ---- load ----


@pytest.mark.asyncio
async def test_load_migrates_legacy_records(clock: FakeClock, ids: SequentialIds) -> None:
    storage = MemoryTaskStorage(
        [
            {"id": "old-1", "text": "Legacy", "completed": True, "createdAt": "2023-05-01T10:00:00"},
            {
                "id": "new-1",
                "text": "Current",
                "completed": False,
                "createdAt": "2024-01-09T08:00:00+00:00",
                "listId": "work",
                "myDay": True,
                "priority": "high",
                "tags": ["x"],
                "steps": [{"id": "s1", "text": "sub", "completed": True}],
                "dueDate": "2024-01-20T00:00:00+00:00",
            },
        ]
    )
    store = TaskStore(storage, clock=clock, id_factory=ids, save_delay=0.01)
    rec = Recorder()
    store.subscribe(rec)

    await store.load()

    assert store.is_loaded
    assert rec.calls == 1
    assert storage.writes == []

    legacy = store.get_task_by_id("old-1")
    assert legacy is not None
    assert legacy.completed is True
    assert legacy.created_at == datetime(2023, 5, 1, 10, 0, tzinfo=UTC)
    assert legacy.list_id == "default"
    assert legacy.priority == Priority.NONE
    assert legacy.tags == [] and legacy.steps == [] and legacy.attachments == []
    assert legacy.due_date is None and legacy.reminder is None

    current = store.get_task_by_id("new-1")
    assert current.list_id == "work"
    assert current.my_day and current.priority == Priority.HIGH
    assert current.steps[0].completed is True


@pytest.mark.asyncio
async def test_load_skips_invalid_and_duplicate_records(clock: FakeClock, ids: SequentialIds) -> None:
    storage = MemoryTaskStorage(
        [
            {"id": "a", "text": "first"},
            "not a record",
            {"id": "b", "text": "   "},
            {"id": "a", "text": "duplicate"},
            {"id": "c", "text": "third"},
        ]
    )
    store = TaskStore(storage, clock=clock, id_factory=ids)

    await store.load()

    assert [t.text for t in store.get_tasks()] == ["first", "third"]


@pytest.mark.asyncio
async def test_load_twice_raises(store: TaskStore) -> None:
    await store.load()
    with pytest.raises(RuntimeError):
        await store.load()


@pytest.mark.asyncio
async def test_load_refuses_unreadable_storage(store: TaskStore, storage: MemoryTaskStorage) -> None:
    storage.fail_reads = True

    with pytest.raises(StorageUnavailableError):
        await store.load()

    assert store.get_tasks() == []
    assert not store.is_loaded
    assert storage.writes == []


@pytest.mark.asyncio
async def test_load_wraps_generic_storage_errors(clock: FakeClock) -> None:
    store = TaskStore(BrokenReadStorage(), clock=clock)
    with pytest.raises(StorageUnavailableError):
        await store.load()


@pytest.mark.asyncio
async def test_load_focuses_first_visible_task(clock: FakeClock) -> None:
    storage = MemoryTaskStorage(
        [
            {"id": "a", "text": "older", "createdAt": "2024-01-01T00:00:00+00:00"},
            {"id": "b", "text": "newer", "createdAt": "2024-01-05T00:00:00+00:00"},
        ]
    )
    store = TaskStore(storage, clock=clock)
    await store.load()
    assert store.get_focused_task_id() == "b"


@pytest.mark.asyncio
async def test_round_trip_through_storage(store: TaskStore, storage: MemoryTaskStorage, clock: FakeClock) -> None:
    await store.load()
    task = store.add_task("plan trip", description="from chat")
    store.add_step(task.id, "book flights")
    store.add_tag(task.id, "travel")
    store.set_priority(task.id, Priority.MEDIUM)
    store.set_due_date(task.id, datetime(2024, 2, 1, 12, 0, tzinfo=UTC))
    store.toggle_my_day(task.id)
    store.add_task("second", description="  ", source_data="")
    blank = store.add_task("third")
    store.update_task(blank.id, description="\n", source_type="text", reminder="2024-02-01T08:00:00")
    await store.flush()

    reloaded = TaskStore(storage, clock=clock)
    await reloaded.load()

    assert reloaded.get_tasks() == store.get_tasks()


@pytest.mark.asyncio
async def test_serialized_update_values_still_persist(store: TaskStore, storage: MemoryTaskStorage) -> None:
    task = store.add_task("imported")
    store.update_task(task.id, source_type="text", due_date="2024-02-01")

    status = await store.flush()

    assert status.outcome == WriteOutcome.OK
    record = storage.records[0]
    assert record["sourceType"] == "text"
    assert record["dueDate"] == "2024-02-01T00:00:00+00:00"


@pytest.mark.asyncio
async def test_ids_stay_unique_after_load(storage: MemoryTaskStorage, clock: FakeClock, ids: SequentialIds) -> None:
    storage.records = [
        {"id": "t1", "text": "stored one"},
        {"id": "t2", "text": "stored two"},
        {"text": "stored without id"},
    ]
    store = TaskStore(storage, clock=clock, id_factory=ids)
    await store.load()
    store.add_task("fresh")
    store.add_step(store.get_tasks()[0].id, "step")

    task_ids = [t.id for t in store.get_tasks()]
    assert len(task_ids) == 4
    assert len(set(task_ids)) == 4

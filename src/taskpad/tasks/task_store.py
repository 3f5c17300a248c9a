# src/taskpad/tasks/task_store.py

from __future__ import annotations

import locale
import logging
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from typing import Any

from ..core.ports import ChangeListener, TaskStorage
from ..storage.errors import InvalidRecordError, StorageError, StorageUnavailableError
from .task_models import (
    DEFAULT_LIST_ID,
    Clock,
    FilterType,
    IdFactory,
    Priority,
    SortOption,
    SourceType,
    Step,
    Task,
    clean_steps,
    migrate_record,
    new_id,
    optional_text,
    parse_timestamp,
    utc_now,
)
from .task_persistence import DebouncedWriter, WriteStatus

logger = logging.getLogger(__name__)

_NO_DUE = datetime.max.replace(tzinfo=UTC)

# Fields update_task() may touch; id/created_at are immutable.
_UPDATABLE_FIELDS = frozenset(
    {
        "text",
        "completed",
        "list_id",
        "my_day",
        "priority",
        "tags",
        "steps",
        "due_date",
        "reminder",
        "attachments",
        "description",
        "source_type",
        "source_data",
    }
)


def _coerce_when(value: Any, name: str) -> datetime | None:
    """None/blank clears; datetimes and ISO strings become aware (naive = UTC)."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    when = parse_timestamp(value)
    if when is None:
        raise TypeError(f"{name} must be a datetime or an ISO-8601 string, got {value!r}")
    return when


def _coerce_source_type(value: Any) -> SourceType | None:
    if value is None or value == "":
        return None
    source_type = SourceType.from_raw(value)
    if source_type is None:
        raise TypeError(f"unknown source_type {value!r}")
    return source_type


class TaskStore:
    """
    In-memory task store with debounced persistence.

    The single source of truth for tasks and view state (selected list, filter,
    search term, sort option, focused task).

    - queries are synchronous and side-effect-free
    - every mutation: update memory -> schedule write -> repair focus -> notify
    - mutations targeting an unknown id are silent no-ops (no write, no notify)
    - listeners must not mutate the store from inside their own notification

    load() must be awaited exactly once before use; it is not re-entrant.
    """

    def __init__(
        self,
        storage: TaskStorage,
        *,
        clock: Clock = utc_now,
        id_factory: IdFactory = new_id,
        save_delay: float = 0.2,
    ) -> None:
        self._storage = storage
        self._clock = clock
        self._new_id = id_factory

        self._tasks: list[Task] = []
        self._selected_list = DEFAULT_LIST_ID
        self._filter = FilterType.ALL
        self._search_term = ""
        self._sort = SortOption.CREATED_AT
        self._focused_id: str | None = None
        self._listeners: list[ChangeListener] = []

        self._loaded = False
        self._load_started = False
        self._writer = DebouncedWriter(storage, lambda: self._tasks, delay=save_delay, clock=clock)

    # ---- observers ----

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a change listener; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    def _changed(self, *, persist: bool = True) -> None:
        if persist:
            self._writer.schedule()
        self._update_focus()
        self._notify()

    # ---- queries ----

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def last_write(self) -> WriteStatus:
        return self._writer.status

    def get_tasks(self) -> list[Task]:
        return list(self._tasks)

    def get_task_by_id(self, task_id: str) -> Task | None:
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    def get_filter(self) -> FilterType:
        return self._filter

    def get_search_term(self) -> str:
        return self._search_term

    def get_sort_option(self) -> SortOption:
        return self._sort

    def get_selected_list(self) -> str:
        return self._selected_list

    def get_focused_task_id(self) -> str | None:
        return self._focused_id

    def get_list_ids(self) -> list[str]:
        """Distinct list ids in use; the default list always comes first."""
        out = [DEFAULT_LIST_ID]
        for task in self._tasks:
            if task.list_id not in out:
                out.append(task.list_id)
        if self._selected_list not in out:
            out.append(self._selected_list)
        return out

    def _matches_filter(self, task: Task, today: datetime) -> bool:
        f = self._filter
        if f == FilterType.TODAY:
            return task.created_at.astimezone(today.tzinfo).date() == today.date()
        if f == FilterType.MYDAY:
            return task.my_day
        if f == FilterType.IMPORTANT:
            return task.priority in (Priority.HIGH, Priority.MEDIUM)
        if f == FilterType.PLANNED:
            return task.due_date is not None
        return True

    def get_visible_tasks(self) -> list[Task]:
        """
        Tasks in the selected list that pass the filter and the search term,
        ordered by the active sort option.
        """
        now = self._clock()
        needle = self._search_term.casefold()

        visible = [
            t
            for t in self._tasks
            if t.list_id == self._selected_list
            and self._matches_filter(t, now)
            and needle in t.text.casefold()
        ]
        return self._sorted(visible)

    def _sorted(self, tasks: list[Task]) -> list[Task]:
        # All sorts are stable; ties keep stored (newest-first) order.
        if self._sort == SortOption.DUE_DATE:
            return sorted(tasks, key=lambda t: t.due_date or _NO_DUE)
        if self._sort == SortOption.PRIORITY:
            return sorted(tasks, key=lambda t: t.priority.rank)
        if self._sort == SortOption.ALPHABETICAL:
            return sorted(tasks, key=lambda t: locale.strxfrm(t.text.casefold()))
        return sorted(tasks, key=lambda t: t.created_at, reverse=True)

    # ---- load ----

    async def load(self) -> None:
        """
        Replace in-memory tasks with what storage holds.

        Raises StorageUnavailableError when stored data cannot be read; the store
        then stays empty and unloaded instead of pretending nothing was stored.
        """
        if self._load_started:
            raise RuntimeError("TaskStore.load() may only be called once")
        self._load_started = True

        try:
            records = await self._storage.read_tasks()
        except StorageUnavailableError:
            logger.exception("Task storage unavailable; refusing to start with an empty list")
            raise
        except StorageError as e:
            logger.exception("Task storage read failed")
            raise StorageUnavailableError(str(e)) from e

        tasks: list[Task] = []
        seen: set[str] = set()
        for raw in records:
            try:
                task = migrate_record(raw, clock=self._clock, new_id=self._new_id)
            except InvalidRecordError as e:
                logger.warning("Skipping stored task: %s", e)
                continue
            if task.id in seen:
                logger.warning("Duplicate task id %s in storage; keeping the first", task.id)
                continue
            seen.add(task.id)
            tasks.append(task)

        self._tasks = tasks
        self._loaded = True
        logger.info("TaskStore loaded total=%d skipped=%d", len(tasks), len(records) - len(tasks))
        self._changed(persist=False)

    # ---- adding ----

    def _new_task(
        self,
        text: str,
        *,
        created_at: datetime,
        description: str | None = None,
        source_type: SourceType | None = None,
        source_data: str | None = None,
    ) -> Task:
        return Task(
            id=self._new_id(),
            text=text,
            created_at=created_at,
            list_id=self._selected_list,
            description=optional_text(description),
            source_type=_coerce_source_type(source_type),
            source_data=optional_text(source_data),
        )

    def add_task(
        self,
        text: str,
        *,
        description: str | None = None,
        source_type: SourceType | None = None,
        source_data: str | None = None,
    ) -> Task | None:
        text = (text or "").strip()
        if not text:
            return None

        task = self._new_task(
            text,
            created_at=self._clock(),
            description=description,
            source_type=source_type,
            source_data=source_data,
        )
        self._tasks.insert(0, task)
        logger.debug("Task added id=%s list=%s", task.id, task.list_id)
        self._changed()
        return task

    def add_tasks(
        self,
        texts: Iterable[str],
        *,
        source_type: SourceType | None = None,
        source_data: str | None = None,
    ) -> list[Task]:
        """
        Insert a batch at the front as one block, keeping the batch order.
        The whole batch shares one timestamp so newest-first sorting keeps it intact.
        """
        now = self._clock()
        created = [
            self._new_task(text, created_at=now, source_type=source_type, source_data=source_data)
            for text in ((t or "").strip() for t in texts)
            if text
        ]
        if not created:
            return []

        self._tasks[0:0] = created
        logger.debug("Tasks added count=%d list=%s", len(created), self._selected_list)
        self._changed()
        return created

    # ---- targeted mutations ----

    def _mutate(self, task_id: str, fn: Callable[[Task], bool | None]) -> bool:
        """
        Apply fn to the task with task_id. fn may return False to signal
        "nothing changed". Unknown ids and no-op changes skip write + notify.
        """
        task = self.get_task_by_id(task_id)
        if task is None:
            return False
        if fn(task) is False:
            return False
        self._changed()
        return True

    def delete_task(self, task_id: str) -> bool:
        before = len(self._tasks)
        self._tasks = [t for t in self._tasks if t.id != task_id]
        if len(self._tasks) == before:
            return False
        logger.debug("Task deleted id=%s", task_id)
        self._changed()
        return True

    def update_task_text(self, task_id: str, text: str) -> bool:
        text = (text or "").strip()
        if not text:
            return False

        def apply(task: Task) -> bool:
            if task.text == text:
                return False
            task.text = text
            return True

        return self._mutate(task_id, apply)

    def update_task(self, task_id: str, **changes: Any) -> bool:
        """
        Apply a partial update. Only mutable fields are accepted; unknown or
        immutable names raise TypeError. Text is re-trimmed and a blank text
        is ignored; tags are de-duplicated. Timestamps, source_type and steps
        are coerced to their model types; unconvertible values raise TypeError.
        """
        bad = set(changes) - _UPDATABLE_FIELDS
        if bad:
            raise TypeError(f"update_task() got unsupported fields: {', '.join(sorted(bad))}")

        if "text" in changes:
            text = (changes["text"] or "").strip()
            if text:
                changes["text"] = text
            else:
                del changes["text"]
        if "priority" in changes:
            changes["priority"] = Priority.from_raw(changes["priority"])
        if "list_id" in changes:
            changes["list_id"] = str(changes["list_id"] or DEFAULT_LIST_ID)
        if "tags" in changes:
            tags: list[str] = []
            for tag in changes["tags"] or []:
                tag = str(tag).strip()
                if tag and tag not in tags:
                    tags.append(tag)
            changes["tags"] = tags
        if "steps" in changes:
            changes["steps"] = clean_steps(list(changes["steps"] or []), self._new_id)
        if "attachments" in changes:
            changes["attachments"] = [str(a) for a in changes["attachments"] or []]
        for key in ("due_date", "reminder"):
            if key in changes:
                changes[key] = _coerce_when(changes[key], key)
        if "source_type" in changes:
            changes["source_type"] = _coerce_source_type(changes["source_type"])
        for key in ("description", "source_data"):
            if key in changes:
                changes[key] = optional_text(changes[key])
        if "completed" in changes:
            changes["completed"] = bool(changes["completed"])
        if "my_day" in changes:
            changes["my_day"] = bool(changes["my_day"])
        if not changes:
            return False

        def apply(task: Task) -> None:
            for key, value in changes.items():
                setattr(task, key, value)

        return self._mutate(task_id, apply)

    def toggle_completion(self, task_id: str) -> bool:
        def apply(task: Task) -> None:
            task.completed = not task.completed

        return self._mutate(task_id, apply)

    def toggle_my_day(self, task_id: str) -> bool:
        def apply(task: Task) -> None:
            task.my_day = not task.my_day

        return self._mutate(task_id, apply)

    def set_priority(self, task_id: str, priority: Priority | str) -> bool:
        value = Priority.from_raw(priority)

        def apply(task: Task) -> bool:
            if task.priority == value:
                return False
            task.priority = value
            return True

        return self._mutate(task_id, apply)

    def add_tag(self, task_id: str, tag: str) -> bool:
        tag = (tag or "").strip()
        if not tag:
            return False

        def apply(task: Task) -> bool:
            if tag in task.tags:
                return False
            task.tags.append(tag)
            return True

        return self._mutate(task_id, apply)

    def remove_tag(self, task_id: str, tag: str) -> bool:
        tag = (tag or "").strip()

        def apply(task: Task) -> bool:
            if tag not in task.tags:
                return False
            task.tags.remove(tag)
            return True

        return self._mutate(task_id, apply)

    def add_step(self, task_id: str, text: str) -> Step | None:
        text = (text or "").strip()
        if not text:
            return None
        step = Step(id=self._new_id(), text=text)

        def apply(task: Task) -> None:
            task.steps.append(step)

        return step if self._mutate(task_id, apply) else None

    def toggle_step(self, task_id: str, step_id: str) -> bool:
        def apply(task: Task) -> bool:
            step = task.find_step(step_id)
            if step is None:
                return False
            step.completed = not step.completed
            return True

        return self._mutate(task_id, apply)

    def delete_step(self, task_id: str, step_id: str) -> bool:
        def apply(task: Task) -> bool:
            step = task.find_step(step_id)
            if step is None:
                return False
            task.steps.remove(step)
            return True

        return self._mutate(task_id, apply)

    def set_due_date(self, task_id: str, when: datetime | str | None) -> bool:
        when = _coerce_when(when, "due_date")

        def apply(task: Task) -> bool:
            if task.due_date == when:
                return False
            task.due_date = when
            return True

        return self._mutate(task_id, apply)

    def set_reminder(self, task_id: str, when: datetime | str | None) -> bool:
        when = _coerce_when(when, "reminder")

        def apply(task: Task) -> bool:
            if task.reminder == when:
                return False
            task.reminder = when
            return True

        return self._mutate(task_id, apply)

    def move_to_list(self, task_id: str, list_id: str) -> bool:
        list_id = (list_id or "").strip() or DEFAULT_LIST_ID

        def apply(task: Task) -> bool:
            if task.list_id == list_id:
                return False
            task.list_id = list_id
            return True

        return self._mutate(task_id, apply)

    # ---- view state ----

    def set_filter(self, filter_type: FilterType | str) -> None:
        self._filter = FilterType(filter_type)
        self._changed(persist=False)

    def set_search_term(self, term: str) -> None:
        self._search_term = term or ""
        self._changed(persist=False)

    def set_sort_option(self, sort: SortOption | str) -> None:
        self._sort = SortOption(sort)
        self._changed(persist=False)

    def select_list(self, list_id: str) -> None:
        self._selected_list = (list_id or "").strip() or DEFAULT_LIST_ID
        self._changed(persist=False)

    # ---- focus ----

    def _update_focus(self) -> None:
        """Keep focus either None or on a visible task (first one as fallback)."""
        visible = self.get_visible_tasks()
        if not visible:
            self._focused_id = None
        elif not any(t.id == self._focused_id for t in visible):
            self._focused_id = visible[0].id

    def set_focused_task_id(self, task_id: str | None) -> bool:
        """Focus a visible task (or clear focus). Other ids are ignored."""
        if task_id is not None and not any(t.id == task_id for t in self.get_visible_tasks()):
            return False
        self._focused_id = task_id
        self._notify()
        return True

    def _move_focus(self, step: int) -> None:
        visible = self.get_visible_tasks()
        if not visible:
            return
        ids = [t.id for t in visible]
        if self._focused_id not in ids:
            self._focused_id = ids[0]
        else:
            idx = ids.index(self._focused_id) + step
            self._focused_id = ids[max(0, min(len(ids) - 1, idx))]
        self._notify()

    def focus_next(self) -> None:
        self._move_focus(1)

    def focus_previous(self) -> None:
        self._move_focus(-1)

    # ---- persistence ----

    async def flush(self) -> WriteStatus:
        """Write pending changes now instead of waiting for the quiet period."""
        return await self._writer.flush()

    async def close(self) -> None:
        await self._writer.close()

# src/taskpad/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from typing import cast

from ..core.state import AppState
from ..i18n import LANGUAGES, t
from ..storage.preferences import LANGUAGE_KEY, THEME_KEY, THEMES
from ..tasks.task_api import ImportOutcome, ImportResult, import_file
from ..tasks.task_models import FilterType, Priority, SortOption, Task, parse_timestamp

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)

SORT_ALIASES: dict[str, SortOption] = {
    "created": SortOption.CREATED_AT,
    "createdat": SortOption.CREATED_AT,
    "new": SortOption.CREATED_AT,
    "due": SortOption.DUE_DATE,
    "duedate": SortOption.DUE_DATE,
    "priority": SortOption.PRIORITY,
    "prio": SortOption.PRIORITY,
    "alpha": SortOption.ALPHABETICAL,
    "alphabetical": SortOption.ALPHABETICAL,
    "az": SortOption.ALPHABETICAL,
}

_PRIORITY_MARKS = {
    Priority.HIGH: "!!!",
    Priority.MEDIUM: "!!",
    Priority.LOW: "!",
    Priority.NONE: "",
}

_CLEAR_WORDS = {"none", "clear", "-", "off"}


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- rendering ----


def format_task_line(task: Task, index: int, *, focused: bool = False) -> str:
    cursor = ">" if focused else " "
    box = "[x]" if task.completed else "[ ]"
    parts = [f"{cursor} {index:>2}. {box} {task.text}"]
    mark = _PRIORITY_MARKS[task.priority]
    if mark:
        parts.append(mark)
    if task.my_day:
        parts.append("*")
    if task.due_date is not None:
        parts.append(f"(due {task.due_date.date().isoformat()})")
    if task.steps:
        done = sum(1 for s in task.steps if s.completed)
        parts.append(f"[{done}/{len(task.steps)}]")
    if task.tags:
        parts.append(" ".join(f"#{tag}" for tag in task.tags))
    return " ".join(parts)


def render_tasks(state: AppState) -> str:
    store = state.store
    lang = state.language
    header = (
        f"{t(lang, 'app_title')} | "
        f"{t(lang, 'list_label')}: {store.get_selected_list()} | "
        f"{t(lang, 'filter_label')}: {store.get_filter().value} | "
        f"{t(lang, 'sort_label')}: {store.get_sort_option().value}"
    )
    if store.get_search_term():
        header += f" | {t(lang, 'search_label')}: {store.get_search_term()!r}"

    visible = store.get_visible_tasks()
    if not visible:
        return f"{header}\n  {t(lang, 'empty_state')}"

    focused = store.get_focused_task_id()
    lines = [header]
    for i, task in enumerate(visible, start=1):
        lines.append(format_task_line(task, i, focused=task.id == focused))
    return "\n".join(lines)


def describe_task(state: AppState, task: Task) -> str:
    lang = state.language
    lines = [
        task.text,
        f"  id: {task.id}",
        f"  created: {task.created_at.isoformat(timespec='seconds')}",
        f"  list: {task.list_id}",
        f"  priority: {task.priority.value}",
    ]
    if task.due_date is not None:
        lines.append(f"  due: {task.due_date.isoformat(timespec='minutes')}")
    if task.reminder is not None:
        lines.append(f"  reminder: {task.reminder.isoformat(timespec='minutes')}")
    if task.tags:
        lines.append("  tags: " + ", ".join(task.tags))
    if task.steps:
        lines.append(f"  {t(lang, 'steps')}:")
        for i, step in enumerate(task.steps, start=1):
            lines.append(f"    {i}. [{'x' if step.completed else ' '}] {step.text}")
    if task.description:
        lines.append(f"  {t(lang, 'description')}: {task.description}")
    if task.source_type is not None:
        lines.append(f"  {t(lang, 'source')}: {task.source_type.value}")
    return "\n".join(lines)


def describe_import(state: AppState, result: ImportResult) -> str:
    lang = state.language
    if result.outcome == ImportOutcome.EMPTY_INPUT:
        return t(lang, "paste_first")
    if result.outcome == ImportOutcome.NO_TASKS:
        return t(lang, "no_tasks")
    return t(lang, "imported", count=result.count)


# ---- argument helpers ----


def resolve_task(state: AppState, ref: str) -> Task | None:
    """
    Resolve a task reference:
    - "."      -> focused task
    - "3"      -> 3rd visible task
    - anything else is tried as a task id
    """
    store = state.store
    if ref == ".":
        focused = store.get_focused_task_id()
        return store.get_task_by_id(focused) if focused else None
    if ref.isdigit():
        visible = store.get_visible_tasks()
        idx = int(ref) - 1
        return visible[idx] if 0 <= idx < len(visible) else None
    return store.get_task_by_id(ref)


def _task_or_error(state: AppState, args: list[str], usage: str) -> tuple[Task | None, str | None]:
    lang = state.language
    if not args:
        return None, t(lang, "usage", usage=usage)
    task = resolve_task(state, args[0])
    if task is None:
        if args[0] == ".":
            return None, t(lang, "no_focus")
        return None, t(lang, "not_found", ref=args[0])
    return task, None


# ---- handlers ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    store = state.store
    status = store.last_write
    tasks = store.get_tasks()
    done = sum(1 for task in tasks if task.completed)
    return (
        "Status:\n"
        f"  Tasks: {len(tasks)} ({done} done)\n"
        f"  Lists: {', '.join(store.get_list_ids())}\n"
        f"  Storage: {getattr(state.settings, 'storage_backend', '?')}\n"
        f"  {t(state.language, 'write_status', outcome=status.outcome.value, writes=status.writes)}\n"
        f"  Language: {state.language}, theme: {state.theme}"
    )


def cmd_add(state: AppState, args: list[str]) -> str:
    task = state.store.add_task(" ".join(args))
    if task is None:
        return t(state.language, "usage", usage="/add <text>")
    return t(state.language, "added")


def cmd_done(state: AppState, args: list[str]) -> str:
    task, err = _task_or_error(state, args, "/done <n|.>")
    if task is None:
        return err or ""
    state.store.toggle_completion(task.id)
    return t(state.language, "updated")


def cmd_rm(state: AppState, args: list[str]) -> str:
    task, err = _task_or_error(state, args, "/rm <n|.>")
    if task is None:
        return err or ""
    state.store.delete_task(task.id)
    return t(state.language, "deleted")


def cmd_edit(state: AppState, args: list[str]) -> str:
    task, err = _task_or_error(state, args, "/edit <n|.> <text>")
    if task is None:
        return err or ""
    text = " ".join(args[1:]).strip()
    if not text:
        return t(state.language, "usage", usage="/edit <n|.> <text>")
    state.store.update_task_text(task.id, text)
    return t(state.language, "updated")


def cmd_prio(state: AppState, args: list[str]) -> str:
    usage = "/prio <n|.> none|low|medium|high"
    task, err = _task_or_error(state, args, usage)
    if task is None:
        return err or ""
    if len(args) < 2 or args[1].lower() not in {p.value for p in Priority}:
        return t(state.language, "usage", usage=usage)
    state.store.set_priority(task.id, args[1].lower())
    return t(state.language, "updated")


def cmd_tag(state: AppState, args: list[str]) -> str:
    task, err = _task_or_error(state, args, "/tag <n|.> <tag>")
    if task is None:
        return err or ""
    if len(args) < 2:
        return t(state.language, "usage", usage="/tag <n|.> <tag>")
    for tag in args[1:]:
        state.store.add_tag(task.id, tag.lstrip("#"))
    return t(state.language, "updated")


def cmd_untag(state: AppState, args: list[str]) -> str:
    task, err = _task_or_error(state, args, "/untag <n|.> <tag>")
    if task is None:
        return err or ""
    if len(args) < 2:
        return t(state.language, "usage", usage="/untag <n|.> <tag>")
    for tag in args[1:]:
        state.store.remove_tag(task.id, tag.lstrip("#"))
    return t(state.language, "updated")


def cmd_step(state: AppState, args: list[str]) -> str:
    """
    /step <n|.> add <text>   -> append a checklist step
    /step <n|.> toggle <k>   -> toggle step k
    /step <n|.> rm <k>       -> delete step k
    """
    usage = "/step <n|.> add <text> | toggle <k> | rm <k>"
    task, err = _task_or_error(state, args, usage)
    if task is None:
        return err or ""
    if len(args) < 3:
        return t(state.language, "usage", usage=usage)

    sub = args[1].lower()
    if sub == "add":
        state.store.add_step(task.id, " ".join(args[2:]))
        return t(state.language, "updated")

    if sub in ("toggle", "rm"):
        if not args[2].isdigit() or not 0 < int(args[2]) <= len(task.steps):
            return t(state.language, "bad_value", value=args[2])
        step = task.steps[int(args[2]) - 1]
        if sub == "toggle":
            state.store.toggle_step(task.id, step.id)
        else:
            state.store.delete_step(task.id, step.id)
        return t(state.language, "updated")

    return t(state.language, "usage", usage=usage)


def _set_when(state: AppState, args: list[str], usage: str, *, reminder: bool) -> str:
    task, err = _task_or_error(state, args, usage)
    if task is None:
        return err or ""
    if len(args) < 2:
        return t(state.language, "usage", usage=usage)

    raw = " ".join(args[1:]).strip()
    when = None
    if raw.lower() not in _CLEAR_WORDS:
        when = parse_timestamp(raw.replace(" ", "T"))
        if when is None:
            return t(state.language, "bad_value", value=raw)

    if reminder:
        state.store.set_reminder(task.id, when)
    else:
        state.store.set_due_date(task.id, when)
    return t(state.language, "updated")


def cmd_due(state: AppState, args: list[str]) -> str:
    return _set_when(state, args, "/due <n|.> YYYY-MM-DD|none", reminder=False)


def cmd_remind(state: AppState, args: list[str]) -> str:
    return _set_when(state, args, "/remind <n|.> YYYY-MM-DD HH:MM|none", reminder=True)


def cmd_myday(state: AppState, args: list[str]) -> str:
    task, err = _task_or_error(state, args, "/myday <n|.>")
    if task is None:
        return err or ""
    state.store.toggle_my_day(task.id)
    return t(state.language, "updated")


def cmd_list(state: AppState, args: list[str]) -> str:
    """
    /list          -> show known lists
    /list <name>   -> switch to list <name>
    """
    store = state.store
    if not args:
        current = store.get_selected_list()
        return "\n".join(
            f"{'>' if list_id == current else ' '} {list_id}" for list_id in store.get_list_ids()
        )
    store.select_list(args[0])
    return f"{t(state.language, 'list_label')}: {store.get_selected_list()}"


def cmd_move(state: AppState, args: list[str]) -> str:
    task, err = _task_or_error(state, args, "/move <n|.> <list>")
    if task is None:
        return err or ""
    if len(args) < 2:
        return t(state.language, "usage", usage="/move <n|.> <list>")
    state.store.move_to_list(task.id, args[1])
    return t(state.language, "updated")


def cmd_filter(state: AppState, args: list[str]) -> str:
    usage = "/filter " + "|".join(f.value for f in FilterType)
    if not args:
        return t(state.language, "usage", usage=usage)
    try:
        state.store.set_filter(FilterType(args[0].lower()))
    except ValueError:
        return t(state.language, "bad_value", value=args[0])
    return f"{t(state.language, 'filter_label')}: {state.store.get_filter().value}"


def cmd_search(state: AppState, args: list[str]) -> str:
    state.store.set_search_term(" ".join(args))
    return f"{t(state.language, 'search_label')}: {state.store.get_search_term()!r}"


def cmd_sort(state: AppState, args: list[str]) -> str:
    usage = "/sort created|due|priority|alpha"
    if not args:
        return t(state.language, "usage", usage=usage)
    sort = SORT_ALIASES.get(args[0].lower())
    if sort is None:
        return t(state.language, "bad_value", value=args[0])
    state.store.set_sort_option(sort)
    return f"{t(state.language, 'sort_label')}: {sort.value}"


def cmd_up(state: AppState, args: list[str]) -> str:
    state.store.focus_previous()
    return ""


def cmd_down(state: AppState, args: list[str]) -> str:
    state.store.focus_next()
    return ""


def cmd_focus(state: AppState, args: list[str]) -> str:
    task, err = _task_or_error(state, args, "/focus <n>")
    if task is None:
        return err or ""
    state.store.set_focused_task_id(task.id)
    return ""


def cmd_show(state: AppState, args: list[str]) -> str:
    task, err = _task_or_error(state, args or ["."], "/show <n|.>")
    if task is None:
        return err or ""
    return describe_task(state, task)


def cmd_import(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/import <path> -> extract tasks from a text file (pasting is handled by the console)."""
    if not args:
        return t(state.language, "usage", usage="/import <path>")
    path = " ".join(args)
    if emit is not None:
        emit(f"Reading {path}...")
    try:
        result = import_file(state.store, path)
    except (OSError, UnicodeDecodeError) as e:
        logger.info("Import from %s failed: %s", path, e)
        return t(state.language, "bad_value", value=path)
    return describe_import(state, result)


def cmd_lang(state: AppState, args: list[str]) -> str:
    if not args or args[0].lower() not in LANGUAGES:
        return t(state.language, "usage", usage="/lang " + "|".join(LANGUAGES))
    state.preferences.set(LANGUAGE_KEY, args[0].lower())
    return t(state.language, "language_set", value=state.language)


def cmd_theme(state: AppState, args: list[str]) -> str:
    if not args or args[0].lower() not in THEMES:
        return t(state.language, "usage", usage="/theme " + "|".join(THEMES))
    state.preferences.set(THEME_KEY, args[0].lower())
    return t(state.language, "theme_set", value=state.theme)


def cmd_ls(state: AppState, args: list[str]) -> str:
    return render_tasks(state)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("ls", cmd_ls, help_text="Show visible tasks.", aliases=["l"])
registry.register("add", cmd_add, help_text="Add a task: /add <text> (plain text works too).")
registry.register("done", cmd_done, help_text="Toggle completion: /done <n|.>.", aliases=["x"])
registry.register("rm", cmd_rm, help_text="Delete a task: /rm <n|.>.", aliases=["del"])
registry.register("edit", cmd_edit, help_text="Edit text: /edit <n|.> <text>.", aliases=["e"])
registry.register("prio", cmd_prio, help_text="Set priority: /prio <n|.> none|low|medium|high.")
registry.register("tag", cmd_tag, help_text="Add tags: /tag <n|.> <tag>...")
registry.register("untag", cmd_untag, help_text="Remove tags: /untag <n|.> <tag>...")
registry.register("step", cmd_step, help_text="Checklist: /step <n|.> add <text> | toggle <k> | rm <k>.")
registry.register("due", cmd_due, help_text="Due date: /due <n|.> YYYY-MM-DD | none.")
registry.register("remind", cmd_remind, help_text="Reminder: /remind <n|.> YYYY-MM-DD HH:MM | none.")
registry.register("myday", cmd_myday, help_text="Toggle My Day: /myday <n|.>.")
registry.register("list", cmd_list, help_text="Lists: /list shows them, /list <name> switches.")
registry.register("move", cmd_move, help_text="Move to list: /move <n|.> <list>.")
registry.register("filter", cmd_filter, help_text="Filter: /filter all|today|myday|important|planned.")
registry.register("search", cmd_search, help_text="Search text: /search <term> (empty clears).")
registry.register("sort", cmd_sort, help_text="Sort: /sort created|due|priority|alpha.")
registry.register("up", cmd_up, help_text="Move focus up.", aliases=["k"])
registry.register("down", cmd_down, help_text="Move focus down.", aliases=["j"])
registry.register("focus", cmd_focus, help_text="Focus a task: /focus <n>.")
registry.register("show", cmd_show, help_text="Task details: /show <n|.>.")
registry.register("import", cmd_import, help_text="Import: /import <path>, or /import alone to paste.")
registry.register("lang", cmd_lang, help_text="Language: /lang en|ko.")
registry.register("theme", cmd_theme, help_text="Theme: /theme light|dark.")
registry.register("status", cmd_status, help_text="Show totals, storage and last write outcome.")

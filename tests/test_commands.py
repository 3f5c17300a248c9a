# tests/test_commands.py

from __future__ import annotations

from pathlib import Path

from taskpad.cli.commands import CommandRegistry, registry, resolve_task
from taskpad.tasks.task_models import FilterType, Priority, SortOption


def test_command_registry_routes_2_and_3_params(state) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}
    notes: list[str] = []

    def h2(state, args):
        called["h2"] += 1
        return "h2:" + ",".join(args)

    def h3(state, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a", aliases=["aa"])
    reg.register("b", h3, "b")

    assert reg.handle(state, "/a x y") == "h2:x,y"
    assert reg.handle(state, "/AA") == "h2:"
    assert reg.handle(state, "/b", emit=notes.append) == "h3"
    assert called == {"h2": 2, "h3": 1}
    assert notes == ["note"]


def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert reg.handle(state, "hello") is None
    assert "Unknown command" in (reg.handle(state, "/nope") or "")
    assert "Empty command" in (reg.handle(state, "/") or "")


def test_help_lists_commands(state) -> None:
    out = registry.handle(state, "/help") or ""
    assert "/add" in out and "/import" in out and "/sort" in out


def test_add_and_ls(state) -> None:
    assert registry.handle(state, "/add Buy milk") == "Task added."
    registry.handle(state, "/add Call mom")

    out = registry.handle(state, "/ls") or ""
    lines = out.splitlines()
    assert "TaskPad" in lines[0]
    assert "Call mom" in lines[1]
    assert "Buy milk" in lines[2]
    # Focus stays on the first task added while it is still visible.
    assert lines[2].startswith(">")
    assert not lines[1].startswith(">")


def test_ls_empty_state(state) -> None:
    out = registry.handle(state, "/ls") or ""
    assert "No tasks found" in out


def test_task_references(state) -> None:
    registry.handle(state, "/add one")
    registry.handle(state, "/add two")
    store = state.store

    assert resolve_task(state, "1").text == "two"
    assert resolve_task(state, "2").text == "one"
    assert resolve_task(state, "3") is None
    assert resolve_task(state, ".").text == store.get_task_by_id(store.get_focused_task_id()).text
    first = store.get_tasks()[-1]
    assert resolve_task(state, first.id) is first


def test_mutating_commands(state) -> None:
    registry.handle(state, "/add Write report")
    task = state.store.get_tasks()[0]

    registry.handle(state, "/done 1")
    registry.handle(state, "/prio 1 high")
    registry.handle(state, "/tag 1 #work q1")
    registry.handle(state, "/untag 1 q1")
    registry.handle(state, "/myday .")
    registry.handle(state, "/due 1 2024-03-01")
    registry.handle(state, "/remind 1 2024-02-28 09:30")
    registry.handle(state, "/step 1 add outline")
    registry.handle(state, "/step 1 toggle 1")
    registry.handle(state, "/edit 1 Write the report")

    assert task.completed is True
    assert task.priority == Priority.HIGH
    assert task.tags == ["work"]
    assert task.my_day is True
    assert task.due_date is not None and task.due_date.date().isoformat() == "2024-03-01"
    assert task.reminder is not None and task.reminder.hour == 9
    assert [(s.text, s.completed) for s in task.steps] == [("outline", True)]
    assert task.text == "Write the report"

    registry.handle(state, "/due 1 none")
    assert task.due_date is None

    assert registry.handle(state, "/rm 1") == "Task deleted."
    assert state.store.get_tasks() == []


def test_bad_arguments(state) -> None:
    registry.handle(state, "/add x")
    assert "Usage" in (registry.handle(state, "/done") or "")
    assert "No such task" in (registry.handle(state, "/done 9") or "")
    assert "Invalid value" in (registry.handle(state, "/due 1 someday") or "")
    assert "Usage" in (registry.handle(state, "/prio 1 urgent") or "")
    assert "Invalid value" in (registry.handle(state, "/step 1 toggle 4") or "")
    assert "Invalid value" in (registry.handle(state, "/filter later") or "")
    assert "Invalid value" in (registry.handle(state, "/sort random") or "")


def test_no_focus_message(state) -> None:
    assert registry.handle(state, "/done .") == "No task is focused."


def test_view_commands(state) -> None:
    store = state.store
    registry.handle(state, "/add banana")
    registry.handle(state, "/add apple")

    assert registry.handle(state, "/filter planned") == "filter: planned"
    assert store.get_filter() == FilterType.PLANNED
    registry.handle(state, "/filter all")

    assert registry.handle(state, "/sort alpha") == "sort: alphabetical"
    assert store.get_sort_option() == SortOption.ALPHABETICAL

    registry.handle(state, "/search ban")
    assert [t.text for t in store.get_visible_tasks()] == ["banana"]
    registry.handle(state, "/search")
    assert store.get_search_term() == ""


def test_focus_commands(state) -> None:
    store = state.store
    registry.handle(state, "/add a")
    registry.handle(state, "/add b")
    registry.handle(state, "/add c")
    ids = [t.id for t in store.get_visible_tasks()]
    # Adding does not steal focus from the first task.
    assert store.get_focused_task_id() == ids[2]

    registry.handle(state, "/focus 1")
    assert store.get_focused_task_id() == ids[0]
    registry.handle(state, "/down")
    assert store.get_focused_task_id() == ids[1]
    registry.handle(state, "/up")
    assert store.get_focused_task_id() == ids[0]
    registry.handle(state, "/up")
    assert store.get_focused_task_id() == ids[0]
    registry.handle(state, "/focus 3")
    assert store.get_focused_task_id() == ids[2]


def test_lists_and_move(state) -> None:
    registry.handle(state, "/add home chore")
    registry.handle(state, "/move 1 work")

    assert state.store.get_visible_tasks() == []
    assert registry.handle(state, "/list work") == "list: work"
    assert [t.text for t in state.store.get_visible_tasks()] == ["home chore"]

    listing = registry.handle(state, "/list") or ""
    assert listing.splitlines() == ["  default", "> work"]


def test_show_details(state) -> None:
    registry.handle(state, "/add Plan trip")
    registry.handle(state, "/step . add pack bags")
    out = registry.handle(state, "/show") or ""
    assert out.startswith("Plan trip")
    assert "pack bags" in out


def test_import_from_file(state, tmp_path: Path) -> None:
    path = tmp_path / "chat.txt"
    path.write_text("Here you go:\n- [ ] Buy milk\n1. Call mom\n", "utf-8")
    notes: list[str] = []

    out = registry.handle(state, f"/import {path}", emit=notes.append)

    assert out == "Imported 2 tasks!"
    assert len(notes) == 1
    assert [t.text for t in state.store.get_visible_tasks()] == ["Buy milk", "Call mom"]


def test_import_missing_file(state, tmp_path: Path) -> None:
    out = registry.handle(state, f"/import {tmp_path / 'nope.txt'}")
    assert "Invalid value" in (out or "")


def test_language_and_theme(state) -> None:
    assert state.language == "en"
    registry.handle(state, "/lang ko")
    assert state.language == "ko"
    assert registry.handle(state, "/add 우유") == "할 일이 추가되었습니다!"

    assert "Usage" not in (registry.handle(state, "/theme dark") or "")
    assert state.theme == "dark"
    assert state.preferences.get("language") == "ko"


def test_status(state) -> None:
    registry.handle(state, "/add x")
    out = registry.handle(state, "/status") or ""
    assert "Tasks: 1 (0 done)" in out
    assert "pending" in out

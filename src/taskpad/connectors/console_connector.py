# src/taskpad/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
import sys
import threading
from datetime import datetime

from ..cli.commands import describe_import, registry as command_registry, render_tasks
from ..core.state import AppState
from ..i18n import t
from ..tasks.task_api import import_text

logger = logging.getLogger(__name__)

PASTE_END = "/end"


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


class _StdinReader:
    """
    Reads stdin lines on a daemon thread and hands them to the event loop.

    input() would block the loop (and with it the debounced writes); a daemon
    thread also never holds up interpreter shutdown while waiting for a line.
    None marks EOF.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop
        self._queue: asyncio.Queue[str | None] = asyncio.Queue()
        self._thread = threading.Thread(target=self._run, name="stdin-reader", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def _run(self) -> None:
        for line in sys.stdin:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, line.rstrip("\r\n"))
        self._loop.call_soon_threadsafe(self._queue.put_nowait, None)

    async def readline(self, prompt: str) -> str | None:
        print(prompt, end="", flush=True)
        return await self._queue.get()


class _Redraw:
    """Store listener: remembers that something changed since the last redraw."""

    def __init__(self) -> None:
        self.pending = False

    def __call__(self) -> None:
        self.pending = True


async def _read_paste(reader: _StdinReader) -> str:
    lines: list[str] = []
    while True:
        line = await reader.readline("")
        if line is None or line.strip() == PASTE_END:
            break
        lines.append(line)
    return "\n".join(lines)


async def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started (lang=%s).", state.language)
    _print_ts(t(state.language, "welcome"))
    print(render_tasks(state))

    def emit(text: str) -> None:
        print(f"[{_ts_local()}] {text}", flush=True)

    redraw = _Redraw()
    unsubscribe = state.store.subscribe(redraw)
    reader = _StdinReader(asyncio.get_running_loop())
    reader.start()

    try:
        while True:
            raw = await reader.readline("\n>>> ")
            if raw is None:
                logger.info("Console EOF received, exiting.")
                break

            user_input = raw.strip()
            if not user_input:
                continue

            if user_input.lower() in ("/exit", "/quit"):
                logger.info("Console exit command received.")
                break

            # "/import" alone: paste mode until PASTE_END.
            if user_input.lower() == "/import":
                _print_ts(t(state.language, "paste_prompt"))
                result = import_text(state.store, await _read_paste(reader))
                reply: str | None = describe_import(state, result)
            else:
                try:
                    reply = command_registry.handle(state, user_input, emit=emit)
                except Exception:
                    logger.exception("Command handler crashed.")
                    reply = "Internal error while handling a command."

                if reply is None:
                    # Plain text adds a task.
                    if state.store.add_task(user_input) is not None:
                        reply = t(state.language, "added")

            if reply:
                _print_ts(reply)
            if redraw.pending:
                redraw.pending = False
                print(render_tasks(state))
    finally:
        unsubscribe()

    logger.info("Console connector finished.")

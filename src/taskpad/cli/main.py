# src/taskpad/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, loads tasks, then runs the console REPL.
Pending writes are flushed before exit.
"""

from __future__ import annotations

import asyncio
import locale
import logging
import sys

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..core.state import AppState
from ..logging_setup import setup_logging
from ..storage.errors import StorageError

logger = logging.getLogger(__name__)


def _init_locale() -> None:
    """Use the user's collation rules for the alphabetical sort."""
    try:
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error:
        logger.warning("Cannot apply the system locale; alphabetical sort uses code-point order.")


async def _shutdown(state: AppState) -> None:
    """Flush pending task writes; report (not raise) a failed final write."""
    try:
        await state.store.close()
    except Exception:
        logger.exception("Final task flush crashed.")
        return
    status = state.store.last_write
    if status.error is not None:
        logger.error("Last task write failed: %s", status.error)


async def run(state: AppState) -> int:
    try:
        await state.store.load()
    except StorageError as e:
        # Refuse to run on top of an unreadable store: the next write would wipe it.
        print(f"Cannot read tasks: {e}", file=sys.stderr)
        return 1

    try:
        await run_console_loop(state)
    finally:
        await _shutdown(state)
    return 0


def main() -> None:
    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    setup_logging(
        log_dir=settings.data_dir,
        console_level=console_level,
        log_to_file=settings.log_to_file,
    )

    _init_locale()
    logger.info("Starting %s...", settings.app_name)

    try:
        state = create_initial_state(settings=settings)
    except StorageError as e:
        print(f"Cannot open task storage: {e}", file=sys.stderr)
        raise SystemExit(1) from e

    try:
        code = asyncio.run(run(state))
    except KeyboardInterrupt:
        logger.info("Interrupted, bye.")
        code = 130

    logger.info("Bye.")
    raise SystemExit(code)


if __name__ == "__main__":
    main()

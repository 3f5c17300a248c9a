# src/taskpad/tasks/task_persistence.py

"""
Debounced persistence.

Every mutation calls schedule(); the writer (re)starts a trailing-edge timer and,
once the quiet period passes, writes the full task sequence in one go.

- the snapshot is taken when the timer fires, not when it is scheduled
- writes are serialized; a write that starts while another is running waits
- failures are logged and recorded on WriteStatus, never retried automatically
- without a running event loop the write stays pending until flush()
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from ..core.ports import TaskStorage
from .task_models import Clock, Task, utc_now

logger = logging.getLogger(__name__)


class WriteOutcome(StrEnum):
    IDLE = "idle"  # nothing written yet, nothing pending
    PENDING = "pending"
    OK = "ok"
    FAILED = "failed"


@dataclass(slots=True, frozen=True)
class WriteStatus:
    outcome: WriteOutcome = WriteOutcome.IDLE
    error: BaseException | None = None
    last_written_at: datetime | None = None
    writes: int = 0


class DebouncedWriter:
    def __init__(
        self,
        storage: TaskStorage,
        snapshot: Callable[[], Sequence[Task]],
        *,
        delay: float = 0.2,
        clock: Clock = utc_now,
    ) -> None:
        self._storage = storage
        self._snapshot = snapshot
        self._delay = max(0.0, float(delay))
        self._clock = clock

        self._dirty = False
        self._handle: asyncio.TimerHandle | None = None
        self._inflight: asyncio.Task[None] | None = None
        self._lock = asyncio.Lock()
        self._status = WriteStatus()

    @property
    def status(self) -> WriteStatus:
        return self._status

    @property
    def pending(self) -> bool:
        return self._dirty

    def schedule(self) -> None:
        """Mark dirty and restart the quiet period."""
        self._dirty = True
        self._status = WriteStatus(
            outcome=WriteOutcome.PENDING,
            error=None,
            last_written_at=self._status.last_written_at,
            writes=self._status.writes,
        )
        self._cancel_timer()

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop; write stays pending until flush().")
            return

        self._handle = loop.call_later(self._delay, self._fire)

    def _fire(self) -> None:
        self._handle = None
        self._inflight = asyncio.get_running_loop().create_task(self.flush())

    def _cancel_timer(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    async def flush(self) -> WriteStatus:
        """Write now if anything is pending. Returns the resulting status."""
        self._cancel_timer()
        async with self._lock:
            if not self._dirty:
                return self._status
            self._dirty = False
            tasks = list(self._snapshot())
            try:
                await self._storage.write_tasks(tasks)
            except Exception as e:
                logger.exception("Task write failed (%d tasks)", len(tasks))
                self._status = WriteStatus(
                    outcome=WriteOutcome.FAILED,
                    error=e,
                    last_written_at=self._status.last_written_at,
                    writes=self._status.writes,
                )
                return self._status

            self._status = WriteStatus(
                outcome=WriteOutcome.PENDING if self._dirty else WriteOutcome.OK,
                error=None,
                last_written_at=self._clock(),
                writes=self._status.writes + 1,
            )
            logger.debug("Tasks written count=%d writes=%d", len(tasks), self._status.writes)
            return self._status

    async def close(self) -> None:
        """Flush pending work and wait for any in-flight write."""
        self._cancel_timer()
        inflight = self._inflight
        if inflight is not None and not inflight.done():
            await inflight
        await self.flush()

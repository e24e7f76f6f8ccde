"""In-process background task queue.

Work the caller should not wait for (persisting discovered events, the
embedding backfill) is submitted here instead of being launched as a
bare ``asyncio.create_task``.  The queue keeps a strong reference to
every task, logs failures per task, and exposes :meth:`drain` so tests
and application shutdown can wait for outstanding work.
"""

from __future__ import annotations

import asyncio
from typing import Any, Coroutine

import structlog

from kickflip.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)


class TaskQueue:
    """Tracks fire-and-forget coroutines until they finish."""

    def __init__(self, name: str = "background") -> None:
        self._name = name
        self._tasks: set[asyncio.Task[Any]] = set()
        self._failures = 0

    @property
    def pending(self) -> int:
        return len(self._tasks)

    @property
    def failures(self) -> int:
        """Number of submitted tasks that raised."""
        return self._failures

    def submit(self, label: str, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        """Schedule *coro* on the running loop and return its task."""
        task = asyncio.create_task(self._guard(label, coro), name=f"{self._name}:{label}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        _logger.debug("task_submitted", queue=self._name, label=label, pending=len(self._tasks))
        return task

    async def drain(self, timeout: float | None = None) -> None:
        """Wait until every submitted task (including ones submitted meanwhile) finishes.

        Raises ``TimeoutError`` if work is still running after *timeout*
        seconds.  Unfinished tasks are left running.
        """
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout
        while self._tasks:
            remaining = None if deadline is None else max(0.0, deadline - loop.time())
            _done, pending = await asyncio.wait(set(self._tasks), timeout=remaining)
            if pending and deadline is not None and loop.time() >= deadline:
                raise TimeoutError(f"{len(pending)} {self._name} task(s) still running")

    async def _guard(self, label: str, coro: Coroutine[Any, Any, Any]) -> Any:
        try:
            return await coro
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001 -- background failures never reach callers
            self._failures += 1
            _logger.error(
                "background_task_failed",
                queue=self._name,
                label=label,
                error=str(exc),
                exc_info=True,
            )
            return None

"""Trailing-edge debounce for coroutine callbacks."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine
    from typing import Any

log = structlog.get_logger()


class Debouncer:
    """Coalesce bursts of triggers into one trailing call.

    Every ``trigger()`` restarts the quiet window; ``func`` runs once the
    window elapses with no further trigger. Must be used from inside a
    running event loop.
    """

    def __init__(
        self,
        func: Callable[[], Coroutine[Any, Any, None]],
        wait_seconds: float,
    ) -> None:
        self._func = func
        self._wait_seconds = wait_seconds
        self._handle: asyncio.TimerHandle | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self._wait_seconds, self._fire)

    def cancel(self) -> None:
        """Discard a pending trailing call. A call already running is left alone."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        self._task = asyncio.create_task(self._func())
        self._task.add_done_callback(_log_task_failure)


def _log_task_failure(task: asyncio.Task[None]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        log.warning("debounced_call_failed", exc_info=exc)

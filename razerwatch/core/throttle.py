"""Leading+trailing throttle for coroutine callbacks on an asyncio loop."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

LOGGER = logging.getLogger(__name__)


class Throttle:
    """Run ``func`` at most once per ``interval_s`` window.

    The first trigger in an idle window runs immediately. Any triggers that
    arrive while the window is open collapse into a single run when it closes,
    and that run opens a new window.
    """

    def __init__(
        self,
        func: Callable[[], Awaitable[None]],
        interval_s: float,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        if interval_s <= 0:
            raise ValueError("Throttle interval must be positive")
        self._func = func
        self._interval_s = interval_s
        self._loop = loop or asyncio.get_running_loop()
        self._timer: asyncio.TimerHandle | None = None
        self._pending = False
        self._cancelled = False
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def interval_s(self) -> float:
        return self._interval_s

    @property
    def pending(self) -> bool:
        return self._pending

    def __call__(self) -> None:
        if self._cancelled:
            return
        if self._timer is None:
            self._fire()
        else:
            self._pending = True

    def cancel(self) -> None:
        self._cancelled = True
        self._pending = False
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        for task in list(self._tasks):
            task.cancel()

    def _fire(self) -> None:
        task = self._loop.create_task(self._func())
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        self._timer = self._loop.call_later(self._interval_s, self._on_window_closed)

    def _on_window_closed(self) -> None:
        self._timer = None
        if self._cancelled or not self._pending:
            return
        self._pending = False
        self._fire()

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.error("Throttled callback failed", exc_info=exc)

"""File change notification sources."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

LOGGER = logging.getLogger(__name__)

_Signature = tuple[int, int] | None


class ChangeSource(Protocol):
    def start(self) -> None:
        """Begin delivering "file may have changed" notifications."""

    def close(self) -> None:
        """Stop delivering notifications."""


class StatPollChangeSource:
    """Poll a file's mtime and size and report any difference.

    Delivery is at-least-once with no delta; a file that disappears or
    reappears also counts as a change.
    """

    def __init__(self, path: Path, on_change: Callable[[], None], *, interval_s: float = 0.5) -> None:
        self.path = Path(path)
        self.on_change = on_change
        self.interval_s = interval_s
        self._task: asyncio.Task[None] | None = None

    def start(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        LOGGER.debug("Started polling %s every %.2fs", self.path, self.interval_s)

    def close(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
            LOGGER.debug("Stopped polling %s", self.path)

    def _signature(self) -> _Signature:
        try:
            stat = os.stat(self.path)
        except OSError:
            return None
        return stat.st_mtime_ns, stat.st_size

    async def _run(self) -> None:
        last = self._signature()
        while True:
            await asyncio.sleep(self.interval_s)
            current = self._signature()
            if current != last:
                last = current
                self.on_change()

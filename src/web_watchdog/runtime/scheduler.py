from __future__ import annotations

import asyncio
import contextlib
from typing import Protocol

from web_watchdog.observability import get_logger

logger = get_logger(__name__)


class Runner(Protocol):
    async def check_all(self) -> object: ...


class WatchScheduler:
    """Re-runs a watch cycle every ``interval_seconds`` until shut down."""

    def __init__(self, interval_seconds: float, runner: Runner) -> None:
        if interval_seconds <= 0:
            msg = "interval_seconds must be positive"
            raise ValueError(msg)
        if not callable(getattr(runner, "check_all", None)):
            msg = "runner must define check_all"
            raise TypeError(msg)

        self._interval_seconds = interval_seconds
        self._runner = runner
        self._task: asyncio.Task[None] | None = None
        self._stop_event = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run())

    async def shutdown(self) -> None:
        if self._task is None:
            return
        self._stop_event.set()
        await self._task
        self._task = None

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                await self._runner.check_all()
            except Exception:
                logger.exception("watch_cycle_failed")
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval_seconds)

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from logging_utils import log_event

logger = logging.getLogger("flighttracker.tasks")


class PeriodicTask:
    """
    Runs `callback` every `interval` seconds on the current event loop until
    `stop()` is awaited. A failing run is logged and the next tick proceeds
    as usual.
    """

    def __init__(
        self,
        name: str,
        interval: float,
        callback: Callable[[], Awaitable[None]],
        *,
        run_immediately: bool = True,
    ) -> None:
        self._name = name
        self._interval = float(interval)
        self._callback = callback
        self._run_immediately = run_immediately
        self._task: Optional[asyncio.Task] = None

    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running():
            return
        log_event(logger, "periodic_task_starting", task=self._name, interval_s=self._interval)
        self._task = asyncio.create_task(self._run(), name=self._name)

    async def stop(self) -> None:
        if self._task is None:
            return
        log_event(logger, "periodic_task_stopping", task=self._name)
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        if not self._run_immediately:
            await asyncio.sleep(self._interval)
        while True:
            try:
                await self._callback()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                log_event(
                    logger,
                    "periodic_task_failed",
                    level=logging.ERROR,
                    task=self._name,
                    error=str(e),
                )
            await asyncio.sleep(self._interval)

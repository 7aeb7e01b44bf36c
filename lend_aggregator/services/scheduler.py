"""Cancellable periodic task."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Run a unit of work, wait ``interval`` seconds, repeat until stopped.

    Stopping is cooperative: the flag is checked before each run, so a run
    already in flight completes. ``stop()`` is idempotent and only wakes the
    wait between runs early.
    """

    def __init__(
        self,
        work: Callable[[], Awaitable[None]],
        interval: float,
        name: str = "periodic",
    ) -> None:
        self._work = work
        self._interval = interval
        self._name = name
        self._stopped = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def start(self) -> "PeriodicTask":
        if self._task is not None:
            raise RuntimeError(f"Task '{self._name}' was already started")
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name=self._name
        )
        return self

    def stop(self) -> None:
        if not self._stopped.is_set():
            logger.info("Stopping %s", self._name)
            self._stopped.set()

    async def wait(self) -> None:
        """Wait until the loop has exited."""
        if self._task is not None:
            await self._task

    async def _run(self) -> None:
        while not self._stopped.is_set():
            try:
                await self._work()
            except Exception as e:
                logger.error("Error in %s: %s", self._name, e)
            try:
                await asyncio.wait_for(self._stopped.wait(), self._interval)
            except asyncio.TimeoutError:
                pass

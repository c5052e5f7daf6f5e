"""Periodic full-rebuild requests."""

import asyncio
from typing import Optional

import structlog

from ..invalidation.invalidator import TimelineInvalidator


logger = structlog.get_logger(__name__)


class FullRebuildScheduler:
    """Asks for a full rebuild every ``interval_seconds``.

    Signals lost to a full channel are eventually repaired by the next
    full rebuild. The scheduler only enqueues; the worker still does
    every write. An interval of 0 disables it.
    """

    def __init__(self, invalidator: TimelineInvalidator, interval_seconds: float):
        self.invalidator = invalidator
        self.interval_seconds = interval_seconds
        self.ticks = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def enabled(self) -> bool:
        return self.interval_seconds > 0

    async def start(self) -> None:
        if not self.enabled:
            logger.info("Periodic full rebuild disabled")
            return
        if self._task and not self._task.done():
            return
        self._task = asyncio.create_task(self._run())
        logger.info("Scheduled periodic full rebuild", interval_seconds=self.interval_seconds)

    async def stop(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            self.ticks += 1
            logger.debug("Requesting periodic full rebuild", tick=self.ticks)
            self.invalidator.invalidate_full()

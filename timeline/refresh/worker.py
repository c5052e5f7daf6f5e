"""Debounced background worker that applies invalidation signals."""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Set

import structlog

from shared.framework.metrics import MetricsCollector

from ..invalidation.channel import InvalidationChannel
from ..models import EntityRef, FullRebuild, RefreshEntity, TimelineInvalidation
from .resolver import CascadeResolver


logger = structlog.get_logger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 2.0


class WorkerState(Enum):
    """Rebuild worker lifecycle."""
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    DRAINING = "draining"
    REBUILDING = "rebuilding"
    STOPPED = "stopped"


@dataclass
class RebuildBatch:
    """Signals collected during one debounce window.

    Targets are de-duplicated by entity. A full rebuild signal replaces
    every targeted one, before or after it arrives.
    """
    full: bool = False
    targets: Set[EntityRef] = field(default_factory=set)

    def add(self, signal: TimelineInvalidation) -> None:
        if isinstance(signal, FullRebuild):
            self.full = True
            self.targets.clear()
        elif isinstance(signal, RefreshEntity) and not self.full:
            self.targets.add(signal.target)

    def drain(self, channel: InvalidationChannel) -> int:
        """Pull every pending signal off the channel without waiting."""
        drained = 0
        while True:
            signal = channel.try_recv()
            if signal is None:
                return drained
            self.add(signal)
            drained += 1

    @property
    def is_empty(self) -> bool:
        return not self.full and not self.targets

    @property
    def mode(self) -> str:
        return "full" if self.full else "targeted"


class TimelineRebuildWorker:
    """
    Single consumer of the invalidation channel.

    Waits for a signal, sleeps through the debounce window, drains
    whatever else arrived, then rebuilds the coalesced batch. A failing
    refresh is logged and does not affect the rest of the batch. The
    loop ends when the channel is closed.
    """

    def __init__(
        self,
        channel: InvalidationChannel,
        resolver: CascadeResolver,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.channel = channel
        self.resolver = resolver
        self.debounce_seconds = debounce_seconds
        self.metrics = metrics

        self.batches_processed = 0
        self._state = WorkerState.IDLE
        self._task: Optional[asyncio.Task] = None

    @property
    def state(self) -> WorkerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _set_state(self, state: WorkerState) -> None:
        self._state = state
        if self.metrics:
            self.metrics.set_worker_state(state.value, [s.value for s in WorkerState])

    async def start(self) -> None:
        """Start the worker loop in the background."""
        if self.is_running:
            return
        self._task = asyncio.create_task(self.run())
        logger.info("Timeline rebuild worker started", debounce_seconds=self.debounce_seconds)

    async def stop(self) -> None:
        """Close the channel and stop the loop; pending signals are discarded."""
        self.channel.close()
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        self._set_state(WorkerState.STOPPED)
        logger.info("Timeline rebuild worker stopped")

    async def run(self) -> None:
        """Consume signals until the channel is closed."""
        try:
            while True:
                self._set_state(WorkerState.IDLE)
                first = await self.channel.recv()
                if first is None:
                    break

                batch = RebuildBatch()
                batch.add(first)

                self._set_state(WorkerState.DEBOUNCING)
                await asyncio.sleep(self.debounce_seconds)

                self._set_state(WorkerState.DRAINING)
                batch.drain(self.channel)

                self._set_state(WorkerState.REBUILDING)
                await self.process_batch(batch)
        finally:
            self._set_state(WorkerState.STOPPED)

    async def process_batch(self, batch: RebuildBatch) -> None:
        """Apply one coalesced batch."""
        if batch.is_empty:
            return

        logger.info("Rebuilding timeline batch", mode=batch.mode, targets=len(batch.targets))
        if self.metrics:
            with self.metrics.time_batch(batch.mode):
                await self._apply(batch)
        else:
            await self._apply(batch)
        self.batches_processed += 1

    async def _apply(self, batch: RebuildBatch) -> None:
        if batch.full:
            try:
                await self.resolver.full_rebuild()
            except Exception as e:
                logger.error("Full timeline rebuild failed", error=str(e), exc_info=True)
            return

        for target in batch.targets:
            await self._refresh(target)

    async def _refresh(self, target: EntityRef) -> None:
        kind = target.entity_type.value
        try:
            await self.resolver.refresh_entity(target.entity_type, target.entity_id)
        except Exception as e:
            logger.error(
                "Timeline refresh failed",
                entity_type=kind,
                entity_id=target.entity_id,
                error=str(e),
                exc_info=True,
            )
            if self.metrics:
                self.metrics.record_refresh(kind, "failed")
            return

        if self.metrics:
            self.metrics.record_refresh(kind, "success")

"""Bounded multi-producer, single-consumer channel for invalidation signals."""

import asyncio
from typing import Optional

from ..models import TimelineInvalidation


DEFAULT_CAPACITY = 32

_CLOSED = object()


class InvalidationChannel:
    """
    Bounded queue between request handlers and the rebuild worker.

    Producers never wait: ``try_send`` either enqueues or reports the
    signal as dropped. Once closed, ``recv`` returns None after the
    consumer reaches the close marker and every later send is refused.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("Channel capacity must be at least 1")
        self.capacity = capacity
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=capacity + 1)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def qsize(self) -> int:
        return self._queue.qsize()

    def try_send(self, signal: TimelineInvalidation) -> bool:
        """Enqueue without waiting; False when the channel is full or closed."""
        if self._closed or self._queue.qsize() >= self.capacity:
            return False
        self._queue.put_nowait(signal)
        return True

    async def recv(self) -> Optional[TimelineInvalidation]:
        """Wait for the next signal; None once the channel is closed."""
        if self._closed and self._queue.empty():
            return None
        item = await self._queue.get()
        if item is _CLOSED:
            return None
        return item

    def try_recv(self) -> Optional[TimelineInvalidation]:
        """Take a pending signal without waiting; None when nothing is pending."""
        try:
            item = self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None
        if item is _CLOSED:
            # Leave the marker for the next recv
            self._queue.put_nowait(_CLOSED)
            return None
        return item

    def close(self) -> None:
        """Refuse further sends and wake the consumer."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)

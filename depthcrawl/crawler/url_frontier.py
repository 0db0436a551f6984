"""
Frontier queue of work items waiting to be crawled.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import AsyncIterator, Optional

from ..errors import FrontierClosedError


@dataclass(frozen=True)
class WorkItem:
    """A canonical URI paired with the depth at which it was discovered."""
    uri: str
    depth: int
    parent: Optional[str] = None
    seed: bool = False
    discovered_time: float = field(default_factory=time.time, compare=False)


# marks end-of-stream inside the queue
_CLOSED = object()


class FrontierQueue:
    """
    Unbounded multi-producer, single-consumer queue of ``WorkItem``.

    ``close()`` puts an end-of-stream marker behind whatever is already
    buffered, so the consumer drains pending items before its loop ends.
    Sending after close raises ``FrontierClosedError``.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self._drained = False
        self.enqueued = 0
        self.dequeued = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def drained(self) -> bool:
        """True once the consumer has read the end-of-stream marker."""
        return self._drained

    def qsize(self) -> int:
        """Number of buffered work items."""
        size = self._queue.qsize()
        return size - 1 if self._closed and not self._drained else size

    def put_nowait(self, item: WorkItem):
        """Add an item without suspending."""
        if self._closed:
            raise FrontierClosedError(f"frontier closed, cannot enqueue {item.uri}")
        self._queue.put_nowait(item)
        self.enqueued += 1
        self.logger.debug(f"Enqueued {item.uri} @ depth {item.depth}")

    async def put(self, item: WorkItem):
        """Add an item to the frontier."""
        if self._closed:
            raise FrontierClosedError(f"frontier closed, cannot enqueue {item.uri}")
        await self._queue.put(item)
        self.enqueued += 1
        self.logger.debug(f"Enqueued {item.uri} @ depth {item.depth}")

    async def get(self) -> Optional[WorkItem]:
        """
        Wait for the next item.

        Returns None once the frontier is closed and every buffered item has
        been handed out.
        """
        if self._drained:
            return None

        item = await self._queue.get()
        if item is _CLOSED:
            self._drained = True
            return None

        self.dequeued += 1
        return item

    def close(self) -> bool:
        """Close the frontier. Returns False if it was already closed."""
        if self._closed:
            return False
        self._closed = True
        self._queue.put_nowait(_CLOSED)
        self.logger.debug(f"Frontier closed with {self.qsize()} items buffered")
        return True

    async def __aiter__(self) -> AsyncIterator[WorkItem]:
        while True:
            item = await self.get()
            if item is None:
                return
            yield item

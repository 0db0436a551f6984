"""
Reference-counted termination detection for the crawl.

Each work item that is about to be processed holds one unit of credit.
``register()`` takes a unit, ``complete()`` returns it. The crawl is
quiescent exactly when no credit is outstanding: at that instant the
detector closes the frontier, which ends the driver loop.

Discovered items are registered by the task that finds them, before they are
enqueued, and that task completes only after all of its children have been
registered. A parent's credit therefore covers its children until they hold
their own, so the count cannot reach zero while any item is still buffered
or being processed. The seed is the only item enqueued before anybody holds
credit; the driver registers it when it dequeues it.
"""

import asyncio
import logging
import threading
from typing import Callable, List, Optional

from ..errors import TerminationError
from .url_frontier import FrontierQueue


class TerminationDetector:
    """Counts outstanding work items and shuts the frontier down once."""

    def __init__(self, frontier: FrontierQueue):
        self.frontier = frontier
        self.logger = logging.getLogger(__name__)

        self._lock = threading.Lock()
        self._outstanding = 0
        self._terminated = False
        self._event = asyncio.Event()
        self._callbacks: List[Callable[[], None]] = []

        # Bookkeeping for diagnostics and tests
        self.registered = 0
        self.completed = 0
        self.zero_crossings = 0

    @property
    def outstanding(self) -> int:
        return self._outstanding

    @property
    def terminated(self) -> bool:
        return self._terminated

    def add_shutdown_callback(self, callback: Callable[[], None]):
        """Run ``callback`` after the one-time shutdown."""
        self._callbacks.append(callback)

    def register(self) -> int:
        """Take one unit of credit for an item about to be processed."""
        with self._lock:
            if self._terminated:
                raise TerminationError("register() called after termination")
            self._outstanding += 1
            self.registered += 1
            return self._outstanding

    def complete(self) -> int:
        """
        Return one unit of credit.

        When the count drops to exactly zero the frontier is closed and the
        detector's event is set. That happens at most once.
        """
        with self._lock:
            if self._outstanding <= 0:
                raise TerminationError("complete() called with no outstanding work")
            self._outstanding -= 1
            self.completed += 1
            remaining = self._outstanding

            shutdown = False
            if remaining == 0:
                self.zero_crossings += 1
                if not self._terminated:
                    self._terminated = True
                    shutdown = True

        if shutdown:
            self._shutdown()
        return remaining

    async def wait(self, timeout: Optional[float] = None) -> bool:
        """Wait until termination. Returns False on timeout."""
        try:
            await asyncio.wait_for(self._event.wait(), timeout)
            return True
        except asyncio.TimeoutError:
            return False

    def _shutdown(self):
        self.logger.info(
            f"Outstanding work reached zero after {self.registered} items, closing frontier"
        )
        self.frontier.close()
        self._event.set()
        for callback in self._callbacks:
            try:
                callback()
            except Exception as e:
                self.logger.error(f"Shutdown callback failed: {e}")

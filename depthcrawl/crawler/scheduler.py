"""
Crawler scheduler: drives the frontier, dispatches page tasks and stops when
the termination detector reports that no work is outstanding.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Set

from bs4 import BeautifulSoup

from ..errors import CrawlerError, ResolutionError
from ..storage.records import PageRecord, RecordStore
from ..utils.config import SearchConstraints
from ..utils.monitoring import CrawlerMonitor
from .canonicalizer import Canonicalizer, default_canonicalizer
from .fetcher import WebFetcher
from .parser import ContentParser
from .termination import TerminationDetector
from .url_frontier import FrontierQueue, WorkItem
from .visited import VisitedSet


class CrawlState(Enum):
    """Lifecycle of a crawl."""
    IDLE = 'idle'
    RUNNING = 'running'
    DRAINING = 'draining'
    TERMINATED = 'terminated'
    CANCELLED = 'cancelled'


@dataclass
class CrawlStats:
    """Statistics for crawl operations."""
    start_time: float = field(default_factory=time.time)
    end_time: Optional[float] = None
    pages_fetched: int = 0
    fetch_errors: int = 0
    links_found: int = 0
    links_enqueued: int = 0
    links_discarded: int = 0
    depth_dropped: int = 0
    record_errors: int = 0

    @property
    def elapsed_time(self) -> float:
        return (self.end_time or time.time()) - self.start_time


@dataclass
class CrawlResult:
    """Outcome of a crawl that ran to quiescence."""
    seed: str
    visited: FrozenSet[str]
    records: List[PageRecord]
    stats: CrawlStats
    state: CrawlState
    registered: int
    completed: int


class CrawlHandle:
    """
    Awaitable, cancellable handle on a running crawl.

    ``await handle`` returns the ``CrawlResult``; awaiting a cancelled
    handle raises ``asyncio.CancelledError``.
    """

    def __init__(self, scheduler: 'CrawlerScheduler', task: asyncio.Task):
        self.scheduler = scheduler
        self._task = task

    @property
    def state(self) -> CrawlState:
        return self.scheduler.state

    def done(self) -> bool:
        return self._task.done()

    def cancel(self) -> bool:
        """Request cancellation of the crawl and all of its page tasks."""
        cancelled = self._task.cancel()
        if cancelled and self.scheduler.state is CrawlState.IDLE:
            # the driver never ran, so its own cleanup will not either
            self.scheduler.state = CrawlState.CANCELLED
            self.scheduler.frontier.close()
        return cancelled

    async def wait(self) -> CrawlResult:
        return await self._task

    def __await__(self):
        return self._task.__await__()


class CrawlerScheduler:
    """
    Runs one depth-bounded crawl.

    The scheduler owns the visited set, the frontier and the termination
    detector of its crawl, so independent crawls can share a process. A
    scheduler can be started once.
    """

    def __init__(self, constraints: SearchConstraints, fetcher: WebFetcher,
                 record_store: Optional[RecordStore] = None,
                 canonicalizer: Optional[Canonicalizer] = None,
                 monitor: Optional[CrawlerMonitor] = None):
        self.constraints = constraints
        self.fetcher = fetcher
        self.record_store = record_store or RecordStore()
        self.canonicalizer = canonicalizer or default_canonicalizer
        self.monitor = monitor or CrawlerMonitor()
        self.logger = logging.getLogger(__name__)

        self.parser = ContentParser(
            record_attr=constraints.record_attr,
            record_tags=constraints.record_tags,
            contains_tags=constraints.contains_tags
        )

        # Crawl state
        self.visited = VisitedSet()
        self.frontier = FrontierQueue()
        self.detector = TerminationDetector(self.frontier)
        self.detector.add_shutdown_callback(self._on_quiescent)
        self.state = CrawlState.IDLE
        self.stats = CrawlStats()
        self.seed: Optional[str] = None
        self._tasks: Set[asyncio.Task] = set()
        self._started = False

    def start(self, seed: str) -> CrawlHandle:
        """
        Start crawling from ``seed`` in the running event loop.

        Raises:
            ResolutionError: if the seed is not a valid http(s) URI.
        """
        self.canonicalizer.normalize(seed)
        self._claim_start()
        task = asyncio.create_task(self._run(seed))
        return CrawlHandle(self, task)

    async def crawl(self, seed: str) -> CrawlResult:
        """Crawl from ``seed`` until no work is outstanding."""
        return await self.start(seed)

    async def run(self, seed: str) -> CrawlResult:
        """
        Driver loop. Returns once the frontier has been closed by the
        termination detector and drained.
        """
        self.canonicalizer.normalize(seed)
        self._claim_start()
        return await self._run(seed)

    def _claim_start(self):
        if self._started:
            raise CrawlerError("Crawler has already been started")
        self._started = True

    async def _run(self, seed: str) -> CrawlResult:
        self.seed = self.canonicalizer.normalize(seed)
        self.stats = CrawlStats()
        self.visited.try_claim(self.seed)

        # The seed is enqueued without credit; it is registered on dequeue.
        self.frontier.put_nowait(WorkItem(uri=self.seed, depth=0, seed=True))
        self.state = CrawlState.RUNNING
        self.logger.info(f"Crawl started from {self.seed}")

        try:
            async for item in self.frontier:
                self._dispatch(item)

            # Every task has returned its credit; let them finish returning.
            await asyncio.gather(*self._tasks, return_exceptions=True)
            self.state = CrawlState.TERMINATED

        except asyncio.CancelledError:
            self.state = CrawlState.CANCELLED
            self.logger.info("Crawl cancelled")
            raise

        finally:
            await self._cancel_tasks()
            self.frontier.close()
            self.stats.end_time = time.time()
            self._log_final_stats()

        return CrawlResult(
            seed=self.seed,
            visited=self.visited.snapshot(),
            records=list(self.record_store.records),
            stats=self.stats,
            state=self.state,
            registered=self.detector.registered,
            completed=self.detector.completed
        )

    def _dispatch(self, item: WorkItem):
        """Accept one dequeued item: drop it past the depth bound or spawn its task."""
        if item.seed:
            self.detector.register()

        if item.depth > self.constraints.max_depth:
            self.logger.debug(f"Skipping URL beyond max depth: {item.uri}")
            self.stats.depth_dropped += 1
            self.monitor.record_depth_dropped(item.uri)
            self.monitor.update_outstanding(self.detector.complete())
            return

        self.logger.info(f"fetching {item.uri} @ depth {item.depth}")
        task = asyncio.create_task(self._process_page(item))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _process_page(self, item: WorkItem):
        """Fetch a page, record its attributes and enqueue its unseen links."""
        try:
            result = await self.fetcher.fetch(item.uri)
            if not result.ok:
                self.logger.warning(f"Failed to fetch {item.uri}: {result.error}")
                self.stats.fetch_errors += 1
                self.monitor.record_fetch_error(item.uri, result.error or '')
                return

            self.stats.pages_fetched += 1
            self.monitor.record_page_fetched(item.uri, result.fetch_time)

            await self._record(item, result.document)
            self._enqueue_links(item, result.document)

        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.error(f"Error processing {item.uri}: {e}", exc_info=True)
            self.stats.fetch_errors += 1

        finally:
            self.monitor.update_outstanding(self.detector.complete())

    async def _record(self, item: WorkItem, document: BeautifulSoup):
        """Record attribute values. Failures never affect traversal."""
        if not self.constraints.record_attr:
            return

        try:
            values = self.parser.record_values(document)
            stored = await self.record_store.store(
                PageRecord(uri=item.uri, depth=item.depth, values=values)
            )
            if not stored:
                self.stats.record_errors += 1
        except Exception as e:
            self.logger.error(f"Error recording attributes for {item.uri}: {e}")
            self.stats.record_errors += 1

    def _enqueue_links(self, item: WorkItem, document: BeautifulSoup):
        """Resolve candidate links and enqueue the ones not yet visited."""
        hrefs = self.parser.candidate_links(document)
        self.stats.links_found += len(hrefs)

        enqueued = 0
        discarded = 0
        for href in hrefs:
            try:
                candidate = self.canonicalizer.resolve(item.uri, href, self.constraints.same_host)
            except ResolutionError as e:
                self.logger.debug(f"Discarding link {href!r} on {item.uri}: {e}")
                discarded += 1
                continue

            if not self.visited.try_claim(candidate):
                continue

            # credit is taken before the item becomes visible to the driver
            self.detector.register()
            self.frontier.put_nowait(WorkItem(uri=candidate, depth=item.depth + 1, parent=item.uri))
            enqueued += 1

        self.stats.links_enqueued += enqueued
        self.stats.links_discarded += discarded
        self.monitor.record_links(enqueued, discarded)
        self.logger.debug(f"Queued {enqueued} new URLs from {item.uri}")

    def _on_quiescent(self):
        if self.state is CrawlState.RUNNING:
            self.state = CrawlState.DRAINING

    async def _cancel_tasks(self):
        """Cancel and await any page tasks still running."""
        pending = [task for task in self._tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._tasks.clear()

    def _log_final_stats(self):
        """Log final crawl statistics."""
        self.logger.info("=== CRAWL FINISHED ===")
        self.logger.info(f"State: {self.state.value}")
        self.logger.info(f"URLs visited: {len(self.visited)}")
        self.logger.info(f"Pages fetched: {self.stats.pages_fetched}")
        self.logger.info(f"Fetch errors: {self.stats.fetch_errors}")
        self.logger.info(f"Links enqueued: {self.stats.links_enqueued}")
        self.logger.info(f"Links discarded: {self.stats.links_discarded}")
        self.logger.info(f"Items beyond max depth: {self.stats.depth_dropped}")
        self.logger.info(f"Total time: {self.stats.elapsed_time:.2f} seconds")
        self.logger.debug(f"Fetcher stats: {self.fetcher.get_stats()}")
        self.logger.debug(f"Record stats: {self.record_store.get_stats()}")

    def get_stats(self) -> Dict:
        """Get current crawl statistics."""
        return {
            'state': self.state.value,
            'visited': len(self.visited),
            'outstanding': self.detector.outstanding,
            'queued': self.frontier.qsize(),
            'pages_fetched': self.stats.pages_fetched,
            'fetch_errors': self.stats.fetch_errors,
            'links_enqueued': self.stats.links_enqueued,
            'links_discarded': self.stats.links_discarded,
            'depth_dropped': self.stats.depth_dropped,
            'elapsed_time': self.stats.elapsed_time
        }

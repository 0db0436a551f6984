"""
Crawler components: frontier, visited set, termination detection, fetching,
extraction and the scheduler that drives them.
"""

from .scheduler import CrawlerScheduler, CrawlHandle, CrawlResult, CrawlState
from .termination import TerminationDetector
from .url_frontier import FrontierQueue, WorkItem
from .visited import VisitedSet

__all__ = [
    'CrawlerScheduler', 'CrawlHandle', 'CrawlResult', 'CrawlState',
    'TerminationDetector', 'FrontierQueue', 'WorkItem', 'VisitedSet',
]

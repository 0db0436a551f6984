"""
Visited set shared by all page tasks of one crawl.
"""

import threading
from typing import FrozenSet, Iterable, Iterator, Set


class VisitedSet:
    """
    Set of canonical URIs that have already been scheduled.

    ``try_claim`` is the single point that prevents a URI from being
    scheduled twice: the membership test and the insert happen under one lock.
    The set only grows.
    """

    def __init__(self, initial: Iterable[str] = ()):
        self._lock = threading.Lock()
        self._uris: Set[str] = set(initial)
        self.claims = 0
        self.rejections = 0

    def try_claim(self, uri: str) -> bool:
        """Mark ``uri`` as visited. Returns False if it already was."""
        with self._lock:
            if uri in self._uris:
                self.rejections += 1
                return False
            self._uris.add(uri)
            self.claims += 1
            return True

    def snapshot(self) -> FrozenSet[str]:
        """Return an immutable copy of the current contents."""
        with self._lock:
            return frozenset(self._uris)

    def __contains__(self, uri: object) -> bool:
        with self._lock:
            return uri in self._uris

    def __len__(self) -> int:
        with self._lock:
            return len(self._uris)

    def __iter__(self) -> Iterator[str]:
        return iter(self.snapshot())

"""Shared fixtures: an in-memory document graph served by a fake fetcher."""

from __future__ import annotations

import asyncio
import random
from typing import Dict, List, Optional, Set

import pytest

from depthcrawl.crawler.fetcher import FetchResult
from depthcrawl.crawler.parser import parse_document


class FakeFetcher:
    """Serves HTML from a dict instead of the network.

    URIs missing from ``pages`` answer with an HTTP 404 error, URIs in
    ``raises`` raise, and URIs in ``blocked`` wait until ``release`` is set.
    """

    def __init__(self, pages: Dict[str, str], max_delay: float = 0.0,
                 raises: Optional[Set[str]] = None, blocked: Optional[Set[str]] = None,
                 seed: int = 1234):
        self.pages = pages
        self.max_delay = max_delay
        self.raises = raises or set()
        self.blocked = blocked or set()
        self.release = asyncio.Event()
        self.requests: List[str] = []
        self._random = random.Random(seed)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None

    async def fetch(self, url: str) -> FetchResult:
        self.requests.append(url)
        if self.max_delay:
            await asyncio.sleep(self._random.uniform(0, self.max_delay))
        if url in self.blocked:
            await self.release.wait()
        if url in self.raises:
            raise RuntimeError(f"boom while fetching {url}")
        if url not in self.pages:
            return FetchResult(url=url, status_code=404, error="HTTP 404")
        return FetchResult(url=url, status_code=200, document=parse_document(self.pages[url]))

    def get_stats(self):
        return {'requests': len(self.requests)}


def links_page(*hrefs: str, body: str = '') -> str:
    anchors = ''.join(f'<a href="{href}">link</a>' for href in hrefs)
    return f"<html><body>{body}{anchors}</body></html>"


@pytest.fixture
def fake_fetcher():
    return FakeFetcher


@pytest.fixture
def page():
    return links_page

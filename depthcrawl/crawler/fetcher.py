"""
Page fetcher built on aiohttp.

``WebFetcher.fetch`` never raises for network, TLS or HTTP problems. They are
reported through ``FetchResult.error`` so that a failing page only ends its
own task.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Dict, Optional

import aiohttp
from aiohttp import ClientError, ClientResponse, ClientSession, ClientTimeout
from bs4 import BeautifulSoup

from ..errors import FetchError
from .parser import parse_document


HTML_CONTENT_TYPES = (
    'text/html',
    'application/xhtml+xml',
    'text/xml',
    'application/xml',
)

CHUNK_SIZE = 64 * 1024


@dataclass
class FetchResult:
    """Outcome of fetching one URI."""
    url: str
    status_code: int
    document: Optional[BeautifulSoup] = None
    error: Optional[str] = None
    fetch_time: float = 0.0
    content_type: Optional[str] = None
    final_url: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.document is not None


class WebFetcher:
    """
    Fetches pages and parses them into documents.

    At most ``max_concurrent_requests`` requests are in flight at once.
    TLS certificates are verified unless ``verify_tls`` is turned off.
    """

    def __init__(self, user_agent: str = 'Mozilla/5.0', request_timeout: float = 30,
                 max_concurrent_requests: int = 10, verify_tls: bool = True,
                 max_content_size: int = 10 * 1024 * 1024):
        self.user_agent = user_agent
        self.request_timeout = request_timeout
        self.max_concurrent_requests = max_concurrent_requests
        self.verify_tls = verify_tls
        self.max_content_size = max_content_size
        self.logger = logging.getLogger(__name__)

        self.session: Optional[ClientSession] = None
        self._slots = asyncio.Semaphore(max_concurrent_requests)

        self.stats = {
            'requests': 0,
            'pages': 0,
            'failures': 0,
            'bytes_downloaded': 0
        }

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def start(self):
        """Open the HTTP session if it is not open yet."""
        if self.session is not None:
            return

        if not self.verify_tls:
            self.logger.warning("TLS certificate verification is DISABLED")

        connector = aiohttp.TCPConnector(
            limit=self.max_concurrent_requests,
            ssl=self.verify_tls
        )
        self.session = aiohttp.ClientSession(
            connector=connector,
            timeout=ClientTimeout(total=self.request_timeout),
            headers={'User-Agent': self.user_agent}
        )
        self.logger.debug(f"HTTP session opened (timeout={self.request_timeout}s)")

    async def close(self):
        """Close the HTTP session."""
        if self.session is None:
            return
        await self.session.close()
        self.session = None
        self.logger.debug("HTTP session closed")

    async def fetch(self, url: str) -> FetchResult:
        """Fetch ``url`` and parse it as HTML."""
        if self.session is None:
            await self.start()

        started = time.time()
        result = FetchResult(url=url, status_code=0)

        async with self._slots:
            self.stats['requests'] += 1
            try:
                async with self.session.get(url) as response:
                    result.status_code = response.status
                    result.final_url = str(response.url)
                    result.content_type = response.headers.get('Content-Type', '').lower()
                    result.document = await self._read_document(response, result.content_type)

            except FetchError as e:
                result.error = str(e)
            except asyncio.TimeoutError:
                result.error = "Request timeout"
            except ClientError as e:
                result.error = f"Client error: {e}"
            except ValueError as e:
                # yarl rejects some URLs before a request is made
                result.error = f"Invalid request: {e}"

        result.fetch_time = time.time() - started
        if result.ok:
            self.stats['pages'] += 1
        else:
            self.stats['failures'] += 1
            self.logger.debug(f"Fetch of {url} failed: {result.error}")
        return result

    async def _read_document(self, response: ClientResponse, content_type: str) -> BeautifulSoup:
        if response.status >= 400:
            raise FetchError(f"HTTP {response.status}")
        if content_type and not any(kind in content_type for kind in HTML_CONTENT_TYPES):
            raise FetchError("Non-HTML content type")

        body = await self._read_body(response)
        self.stats['bytes_downloaded'] += len(body)

        encoding = response.charset or 'utf-8'
        try:
            text = body.decode(encoding)
        except (UnicodeDecodeError, LookupError):
            text = body.decode('utf-8', errors='replace')
        return parse_document(text)

    async def _read_body(self, response: ClientResponse) -> bytes:
        """Read the body, refusing anything larger than ``max_content_size``."""
        declared = response.content_length
        if declared is not None and declared > self.max_content_size:
            raise FetchError(f"Body too large ({declared} bytes)")

        body = bytearray()
        async for chunk in response.content.iter_chunked(CHUNK_SIZE):
            body.extend(chunk)
            if len(body) > self.max_content_size:
                raise FetchError(f"Body exceeded {self.max_content_size} bytes")
        return bytes(body)

    def get_stats(self) -> Dict[str, int]:
        """Get fetcher statistics."""
        return dict(self.stats)

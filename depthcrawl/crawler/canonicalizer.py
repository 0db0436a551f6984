"""
URI canonicalization and reference resolution.

Every URI that enters the visited set goes through ``Canonicalizer.normalize``
so that two spellings of the same location compare equal.
"""

import logging
import re
from typing import List
from urllib.parse import urljoin, urlsplit, urlunsplit

from ..errors import ResolutionError


DIRECTORY_INDEX_PATTERN = re.compile(
    r'^(index|default)\.(html?|php|aspx?|jsp|cgi)$', re.IGNORECASE
)
DUPLICATE_SLASHES_PATTERN = re.compile(r'/{2,}')
DEFAULT_PORTS = {'http': 80, 'https': 443}
SUPPORTED_SCHEMES = ('http', 'https')


def remove_dot_segments(path: str) -> str:
    """Remove '.' and '..' segments from an absolute path (RFC 3986, 5.2.4)."""
    if not path:
        return path

    output: List[str] = []
    segments = path.split('/')
    for segment in segments[1:] if path.startswith('/') else segments:
        if segment == '.':
            continue
        if segment == '..':
            if output:
                output.pop()
            continue
        output.append(segment)

    # a trailing dot segment still denotes a directory
    if segments[-1] in ('.', '..'):
        output.append('')

    return '/' + '/'.join(output)


class Canonicalizer:
    """
    Normalizes URIs to a comparable canonical form and resolves references.

    The normalization is greedy: scheme and host are lower cased, default
    ports, fragments, dot segments, duplicate slashes, a leading ``www.`` and
    directory index documents are removed, and query parameters are sorted.
    """

    def __init__(self, remove_www: bool = True, remove_directory_index: bool = True,
                 sort_query: bool = True, force_http: bool = False):
        self.remove_www = remove_www
        self.remove_directory_index = remove_directory_index
        self.sort_query = sort_query
        self.force_http = force_http
        self.logger = logging.getLogger(__name__)

    def normalize(self, uri: str) -> str:
        """
        Return the canonical form of an absolute http(s) URI.

        Raises:
            ResolutionError: if the URI is malformed, relative, hostless or
                uses a scheme other than http/https.
        """
        if uri is None or not uri.strip():
            raise ResolutionError("empty uri")

        try:
            parsed = urlsplit(uri.strip())
            port = parsed.port
        except ValueError as e:
            raise ResolutionError(f"malformed uri {uri!r}: {e}")

        scheme = parsed.scheme.lower()
        if scheme not in SUPPORTED_SCHEMES:
            raise ResolutionError(f"unsupported scheme in {uri!r}")
        if self.force_http:
            scheme = 'http'

        hostname = (parsed.hostname or '').lower()
        if not hostname:
            raise ResolutionError(f"invalid uri: {uri}")
        if self.remove_www and hostname.startswith('www.'):
            hostname = hostname[4:]

        netloc = f"[{hostname}]" if ':' in hostname else hostname
        if port is not None and port != DEFAULT_PORTS.get(scheme):
            netloc = f"{netloc}:{port}"
        if parsed.username is not None:
            userinfo = parsed.username
            if parsed.password is not None:
                userinfo = f"{userinfo}:{parsed.password}"
            netloc = f"{userinfo}@{netloc}"

        path = self._normalize_path(parsed.path)
        query = self._normalize_query(parsed.query)

        return urlunsplit((scheme, netloc, path, query, ''))

    def resolve(self, base: str, ref: str, same_host: bool = False) -> str:
        """
        Resolve ``ref`` against ``base`` and return the canonical result.

        Raises:
            ResolutionError: if either side is malformed, the result has no
                host, or ``same_host`` is set and the hosts differ.
        """
        base_uri = self.normalize(base)
        resolved = self.normalize(urljoin(base_uri, (ref or '').strip()))

        hostname = self.hostname(resolved)
        if same_host and hostname != self.hostname(base_uri):
            raise ResolutionError(f"external hostname: {hostname}")

        return resolved

    def hostname(self, uri: str) -> str:
        """Return the host part of a URI, or an empty string."""
        try:
            return (urlsplit(uri).hostname or '').lower()
        except ValueError:
            return ''

    def _normalize_path(self, path: str) -> str:
        if not path:
            return '/'

        path = DUPLICATE_SLASHES_PATTERN.sub('/', path)
        path = remove_dot_segments(path)

        if self.remove_directory_index:
            head, _, last = path.rpartition('/')
            if DIRECTORY_INDEX_PATTERN.match(last):
                path = f"{head}/"

        return path or '/'

    def _normalize_query(self, query: str) -> str:
        if not query:
            return ''
        if not self.sort_query:
            return query
        return '&'.join(sorted(param for param in query.split('&') if param))


default_canonicalizer = Canonicalizer()


def normalize(uri: str) -> str:
    """Normalize a URI with the default canonicalizer."""
    return default_canonicalizer.normalize(uri)


def resolve(base: str, ref: str, same_host: bool = False) -> str:
    """Resolve a reference with the default canonicalizer."""
    return default_canonicalizer.resolve(base, ref, same_host)

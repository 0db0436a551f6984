"""
Exception types shared by the crawler components.
"""


class CrawlerError(Exception):
    """Base class for all crawler errors."""
    pass


class ConfigError(CrawlerError):
    """Configuration file is missing, unreadable or invalid."""
    pass


class FetchError(CrawlerError):
    """A page could not be fetched or was not usable HTML."""
    pass


class ResolutionError(CrawlerError):
    """A link could not be normalized or resolved to a crawlable URI."""
    pass


class FrontierClosedError(CrawlerError):
    """An item was sent to a frontier that has already been closed."""
    pass


class TerminationError(CrawlerError):
    """The register/complete protocol was violated."""
    pass


class RecordError(CrawlerError):
    """Recorded attribute values could not be written."""
    pass

"""
Logging setup for the crawler.
"""

import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from .config import LoggingConfig


NOISY_LOGGERS = ('aiohttp.access', 'aiohttp.client', 'asyncio')
THIRD_PARTY_LOGGERS = ('aiohttp', 'asyncio', 'chardet', 'charset_normalizer')


class JSONFormatter(logging.Formatter):
    """Formats each record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'function': record.funcName,
            'line': record.lineno
        }
        if record.exc_info:
            entry['exception'] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


class PerformanceFilter(logging.Filter):
    """Drops chatty third-party records below WARNING."""

    def __init__(self, noisy: Iterable[str] = NOISY_LOGGERS):
        super().__init__()
        self.noisy = tuple(noisy)

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name.startswith(self.noisy):
            return record.levelno >= logging.WARNING
        return True


def _rotating_handler(path: Path, max_mb: int, backups: int, level: int,
                      formatter: logging.Formatter) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=max_mb * 1024 * 1024,
        backupCount=backups,
        encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(config: LoggingConfig, verbose: bool = False) -> logging.Logger:
    """
    Configure the root logger.

    Console output goes to stderr so that recorded values on stdout stay
    clean. With ``config.file`` set, a rotating log file and an ``errors.log``
    next to it are added.

    Args:
        config: Logging configuration
        verbose: Force DEBUG level

    Returns:
        The root logger
    """
    level = logging.DEBUG if verbose else getattr(logging, config.level.upper())
    formatter = JSONFormatter() if config.json else logging.Formatter(config.format)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(formatter)
    console.addFilter(PerformanceFilter())
    root.addHandler(console)

    if config.file:
        log_file = Path(config.file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        crawl_log = _rotating_handler(log_file, 50, 5, logging.DEBUG, formatter)
        crawl_log.addFilter(PerformanceFilter())
        root.addHandler(crawl_log)
        root.addHandler(
            _rotating_handler(log_file.parent / 'errors.log', 10, 3, logging.ERROR, formatter)
        )

    for name in THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root.debug(f"Logging initialized at {logging.getLevelName(level)}")
    return root

#!/usr/bin/env python3
"""
Main entry point for the depth crawler.
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import Optional

from depthcrawl import __version__
from depthcrawl.crawler.fetcher import WebFetcher
from depthcrawl.crawler.scheduler import CrawlerScheduler, CrawlHandle
from depthcrawl.errors import ConfigError, RecordError, ResolutionError
from depthcrawl.storage.records import create_record_store
from depthcrawl.utils.config import DEFAULT_CONFIG_PATH, Config, SearchConstraints, load_config
from depthcrawl.utils.logger import setup_logging
from depthcrawl.utils.monitoring import initialize_monitoring


EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130


class CrawlerApp:
    """Main application class for the crawler."""

    def __init__(self):
        self.handle: Optional[CrawlHandle] = None
        self.logger = logging.getLogger(__name__)

    def setup_signal_handlers(self):
        """Cancel the crawl on SIGINT/SIGTERM."""
        loop = asyncio.get_running_loop()

        def signal_handler(signum):
            self.logger.info(f"Received signal {signum}, cancelling crawl...")
            if self.handle:
                self.handle.cancel()

        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, signal_handler, signum)
            except (NotImplementedError, RuntimeError):
                # add_signal_handler is unavailable on some platforms
                pass

    async def run(self, seed: str, config: Config) -> int:
        """Run the crawler until quiescence or interruption."""
        constraints = SearchConstraints.from_config(config)
        print("max depth:", constraints.max_depth)
        print("visit same hostname only:", constraints.same_host)
        print("a tags must contain the following tags:", list(constraints.contains_tags))

        monitor = initialize_monitoring(
            config.monitoring.metrics_enabled,
            config.monitoring.prometheus_port
        )
        record_store = create_record_store(config.record)

        try:
            await record_store.initialize()
        except RecordError as e:
            self.logger.error(str(e))
            return EXIT_ERROR

        try:
            async with WebFetcher(
                user_agent=config.fetcher.user_agent,
                request_timeout=config.fetcher.request_timeout,
                max_concurrent_requests=config.fetcher.max_concurrent_requests,
                verify_tls=config.fetcher.verify_tls
            ) as fetcher:
                scheduler = CrawlerScheduler(constraints, fetcher, record_store, monitor=monitor)
                try:
                    self.handle = scheduler.start(seed)
                except ResolutionError as e:
                    self.logger.error(f"Invalid starting location: {e}")
                    return EXIT_ERROR

                self.setup_signal_handlers()
                try:
                    result = await self.handle
                except asyncio.CancelledError:
                    self.logger.info("Crawl interrupted")
                    return EXIT_INTERRUPTED

            self.logger.info(
                f"Visited {len(result.visited)} URLs, recorded {len(result.records)} pages"
            )
            return EXIT_OK

        finally:
            await record_store.close()
            self.logger.debug(f"Metrics: {monitor.get_summary()}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Depth-bounded concurrent web crawler",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  depthcrawl https://example.com/                      # Use crawl.yml
  depthcrawl https://example.com/ --config other.yml   # Custom constraints
  depthcrawl https://example.com/ --depth 2 --same-host
        """
    )

    parser.add_argument('seed', help='Starting location (absolute http/https URI)')

    parser.add_argument(
        '--config', '--cyml',
        dest='config',
        default=DEFAULT_CONFIG_PATH,
        help=f'yml file outlining search constraints (default: {DEFAULT_CONFIG_PATH})'
    )

    parser.add_argument(
        '--depth',
        type=int,
        help='Override search.depth from the configuration'
    )

    parser.add_argument(
        '--same-host',
        action=argparse.BooleanOptionalAction,
        default=None,
        help='Only follow links on the seed host (--no-same-host follows all hosts)'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable debug logging'
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'depthcrawl {__version__}'
    )

    return parser


def main(argv=None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
        if args.depth is not None:
            if args.depth < 0:
                raise ConfigError("--depth must be non-negative")
            config.search.depth = args.depth
        if args.same_host is not None:
            config.search.same_host = args.same_host
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    setup_logging(config.logging, verbose=args.verbose)

    app = CrawlerApp()
    try:
        return asyncio.run(app.run(args.seed, config))
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return EXIT_INTERRUPTED


if __name__ == '__main__':
    sys.exit(main())

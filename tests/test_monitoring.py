"""Tests for metrics collection and logging setup."""

import json
import logging

import pytest

from depthcrawl.utils.config import LoggingConfig
from depthcrawl.utils.logger import JSONFormatter, PerformanceFilter, setup_logging
from depthcrawl.utils.monitoring import CrawlerMonitor, MetricsCollector


class TestCrawlerMonitor:

    def test_in_memory_values(self):
        monitor = CrawlerMonitor()
        monitor.record_page_fetched("http://a.test/", 0.5)
        monitor.record_page_fetched("http://a.test/x", 1.5)
        monitor.record_links(enqueued=3, discarded=1)
        monitor.record_depth_dropped("http://a.test/deep")
        monitor.update_outstanding(4)

        values = monitor.get_summary()['metrics']
        assert values['pages_fetched_total'] == 2
        assert values['fetch_time_seconds_sum'] == 2.0
        assert values['links_enqueued_total'] == 3
        assert values['links_discarded_total'] == 1
        assert values['depth_dropped_total'] == 1
        assert values['outstanding_work'] == 4

    def test_prometheus_registry_mirrors_values(self):
        collector = MetricsCollector(enable_prometheus=True)
        monitor = CrawlerMonitor(collector)
        monitor.record_fetch_error("http://a.test/", "HTTP 500")
        monitor.update_outstanding(2)

        registry = collector.prometheus_registry
        assert registry.get_sample_value('crawler_fetch_errors_total') == 1
        assert registry.get_sample_value('crawler_outstanding_work') == 2


@pytest.fixture
def root_logger():
    logger = logging.getLogger()
    saved_handlers, saved_level = logger.handlers[:], logger.level
    yield logger
    for handler in logger.handlers:
        handler.close()
    logger.handlers[:] = saved_handlers
    logger.setLevel(saved_level)


class TestLogging:

    def test_json_formatter(self):
        record = logging.LogRecord("depthcrawl.test", logging.INFO, __file__, 10, "hello %s", ("world",), None)
        entry = json.loads(JSONFormatter().format(record))
        assert entry['message'] == "hello world"
        assert entry['level'] == "INFO"
        assert entry['logger'] == "depthcrawl.test"

    def test_performance_filter(self):
        noisy = logging.LogRecord("aiohttp.access", logging.INFO, __file__, 1, "GET /", (), None)
        ours = logging.LogRecord("depthcrawl.crawler", logging.INFO, __file__, 1, "fetching", (), None)
        log_filter = PerformanceFilter()
        assert not log_filter.filter(noisy)
        assert log_filter.filter(ours)

    def test_file_handlers(self, tmp_path, root_logger):
        log_file = tmp_path / "logs" / "crawler.log"
        setup_logging(LoggingConfig(level='INFO', file=str(log_file)))

        logging.getLogger("depthcrawl.test").info("page fetched")
        logging.getLogger("depthcrawl.test").error("page failed")
        for handler in root_logger.handlers:
            handler.flush()

        assert "page fetched" in log_file.read_text(encoding="utf-8")
        errors = (tmp_path / "logs" / "errors.log").read_text(encoding="utf-8")
        assert "page failed" in errors
        assert "page fetched" not in errors

    def test_verbose_forces_debug(self, root_logger):
        setup_logging(LoggingConfig(level='WARNING'), verbose=True)
        assert root_logger.level == logging.DEBUG

"""
Monitoring and metrics collection for the crawler.
"""

import logging
import time
from collections import defaultdict
from typing import Any, Dict, Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, start_http_server


# key -> (metric type, help text); exported with a ``crawler_`` prefix
METRICS = {
    'pages_fetched_total': (Counter, 'Pages fetched and parsed'),
    'fetch_errors_total': (Counter, 'Failed fetches'),
    'links_enqueued_total': (Counter, 'Unseen links added to the frontier'),
    'links_discarded_total': (Counter, 'Links that failed resolution'),
    'depth_dropped_total': (Counter, 'Work items dropped past the depth bound'),
    'fetch_time_seconds': (Histogram, 'Time spent fetching a page'),
    'outstanding_work': (Gauge, 'Work items registered but not yet complete'),
}


class MetricsCollector:
    """
    Collects crawler metrics in memory and, when enabled, mirrors them into a
    Prometheus registry.
    """

    def __init__(self, enable_prometheus: bool = False, prometheus_port: int = 8000):
        self.logger = logging.getLogger(__name__)
        self.values: Dict[str, float] = defaultdict(float)
        self.enable_prometheus = enable_prometheus
        self.prometheus_port = prometheus_port

        self.prometheus_registry: Optional[CollectorRegistry] = None
        self.prometheus_metrics: Dict[str, Any] = {}

        if self.enable_prometheus:
            self._setup_prometheus()

    def _setup_prometheus(self):
        registry = CollectorRegistry()
        self.prometheus_metrics = {
            key: metric_type(f'crawler_{key}', description, registry=registry)
            for key, (metric_type, description) in METRICS.items()
        }
        self.prometheus_registry = registry
        self.logger.debug(f"Registered {len(self.prometheus_metrics)} Prometheus metrics")

    def start_prometheus_server(self):
        """Start Prometheus metrics HTTP server."""
        if not self.enable_prometheus:
            return

        try:
            start_http_server(self.prometheus_port, registry=self.prometheus_registry)
            self.logger.info(f"Prometheus metrics server started on port {self.prometheus_port}")
        except OSError as e:
            self.logger.error(f"Failed to start Prometheus server: {e}")

    def increment_counter(self, name: str, amount: float = 1):
        """Increment a counter metric."""
        self.values[name] += amount
        metric = self.prometheus_metrics.get(name)
        if metric is not None:
            metric.inc(amount)

    def set_gauge(self, name: str, value: float):
        """Set a gauge metric value."""
        self.values[name] = value
        metric = self.prometheus_metrics.get(name)
        if metric is not None:
            metric.set(value)

    def observe_histogram(self, name: str, value: float):
        """Record a histogram observation."""
        self.values[f"{name}_sum"] += value
        self.values[f"{name}_count"] += 1
        metric = self.prometheus_metrics.get(name)
        if metric is not None:
            metric.observe(value)

    def get_current_values(self) -> Dict[str, float]:
        """Get current values of all metrics."""
        return dict(self.values)


class CrawlerMonitor:
    """High-level monitoring interface for the crawler."""

    def __init__(self, metrics_collector: Optional[MetricsCollector] = None):
        self.metrics = metrics_collector or MetricsCollector()
        self.logger = logging.getLogger(__name__)
        self.start_time = time.time()

    def record_page_fetched(self, url: str, fetch_time: float):
        """Record a successfully fetched page."""
        self.metrics.increment_counter('pages_fetched_total')
        self.metrics.observe_histogram('fetch_time_seconds', fetch_time)

    def record_fetch_error(self, url: str, error: str):
        """Record a failed fetch."""
        self.metrics.increment_counter('fetch_errors_total')

    def record_links(self, enqueued: int, discarded: int):
        """Record the link outcome of one page."""
        if enqueued:
            self.metrics.increment_counter('links_enqueued_total', enqueued)
        if discarded:
            self.metrics.increment_counter('links_discarded_total', discarded)

    def record_depth_dropped(self, url: str):
        """Record a work item dropped past the depth bound."""
        self.metrics.increment_counter('depth_dropped_total')

    def update_outstanding(self, count: int):
        """Update the outstanding work gauge."""
        self.metrics.set_gauge('outstanding_work', count)

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of all metrics."""
        current_values = self.metrics.get_current_values()
        runtime = time.time() - self.start_time

        return {
            'runtime_seconds': runtime,
            'metrics': current_values,
            'rates': {
                'pages_per_second': current_values.get('pages_fetched_total', 0) / runtime if runtime > 0 else 0,
            }
        }


def initialize_monitoring(enable_prometheus: bool = False, prometheus_port: int = 8000) -> CrawlerMonitor:
    """Create a monitor and start the Prometheus endpoint if enabled."""
    metrics_collector = MetricsCollector(enable_prometheus, prometheus_port)
    metrics_collector.start_prometheus_server()
    return CrawlerMonitor(metrics_collector)

"""
Simple Prometheus metrics exporter for the DB benchmark.
"""

import logging
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, start_http_server

from configuration import NANOS_PER_SECOND
from persistence.record import Sample

logger = logging.getLogger(__name__)


class SimplePrometheusExporter:
    """Simple Prometheus metrics exporter.

    Each exporter owns its registry so several benchmark runs in one process
    do not collide on metric names.
    """

    def __init__(self, port: int = 9100, registry: Optional[CollectorRegistry] = None):
        self.port = port
        self.server_started = False
        self.registry = registry or CollectorRegistry()

        # Define metrics
        self.requests_total = Counter(
            'db_benchmark_requests_total', 'Total requests', ['status'], registry=self.registry
        )
        self.connection_duration = Histogram(
            'db_benchmark_connection_duration_seconds', 'Connection acquisition duration',
            registry=self.registry,
        )
        self.query_duration = Histogram(
            'db_benchmark_query_duration_seconds', 'Query execution duration', registry=self.registry
        )
        self.threads = Gauge('db_benchmark_threads', 'Configured worker threads', registry=self.registry)
        self.progress = Gauge('db_benchmark_progress_percent', 'Last announced progress', registry=self.registry)

    def start_server(self):
        """Start the Prometheus HTTP server."""
        if not self.server_started:
            try:
                start_http_server(self.port, registry=self.registry)
                self.server_started = True
                logger.info(f"Prometheus server started on port {self.port}")
            except Exception as e:
                logger.error(f"Failed to start Prometheus server: {e}")

    def record_sample(self, sample: Sample):
        """Record a finished request."""
        try:
            self.requests_total.labels(status="success" if sample.success else "failure").inc()
            self.connection_duration.observe(sample.connection_time_ns / NANOS_PER_SECOND)
            if sample.success:
                self.query_duration.observe(sample.query_time_ns / NANOS_PER_SECOND)
        except Exception as e:
            logger.error(f"Failed to record request metric: {e}")

    def update_threads(self, threads: int):
        """Update worker thread metric."""
        try:
            self.threads.set(threads)
        except Exception as e:
            logger.error(f"Failed to update threads metric: {e}")

    def update_progress(self, percent: int):
        """Update progress metric."""
        try:
            self.progress.set(percent)
        except Exception as e:
            logger.error(f"Failed to update progress metric: {e}")

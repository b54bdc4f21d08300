"""
Connection pool benchmark: fixed-concurrency run of acquire-and-execute requests.
"""

import sys
import logging
import argparse
import threading
from functools import partial
from typing import Optional, TextIO, Tuple

from configuration import (
    DEFAULT_POOL_TYPE,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_METRICS_PORT,
    POOL_TYPES,
    PERCENTILES,
    EXIT_OK,
    EXIT_SOFTWARE,
    EXIT_USAGE,
)
from algorithms.request_cycle import RequestCycle
from common.exceptions import ConfigurationError, RunInterruptedError, RunTimeoutError
from common.progress import ProgressReporter
from common.report import ReportPrinter
from common.worker_pool import WorkerPool
from persistence.parquet import ParquetPersistence
from persistence.prom import SimplePrometheusExporter
from persistence.sample_buffer import SampleBuffer
from systems.base import ResourceClient
from systems.datasource import DataSourceSettings, load_properties
from systems.sql_pool import SqlPoolSystem

logger = logging.getLogger(__name__)


def parse_positive_int(value, name: str) -> int:
    """Parse a strictly positive integer option."""
    try:
        parsed = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid {name} value: {value}") from e
    if parsed <= 0:
        raise ConfigurationError(f"Invalid {name} value: {value}")
    return parsed


def resolve_workload(connections, threads=None, total_requests=None,
                     requests_per_thread=None) -> Tuple[int, int, int]:
    """Validate the workload options.

    Threads default to the number of connections. The request count is either
    a flat total or `requests_per_thread` for each thread.

    Returns:
        (connections, threads, total_requests)

    Raises:
        ConfigurationError: On a non-positive count or when neither or both request options are given
    """
    connections = parse_positive_int(connections, "connections")
    threads = connections if threads is None else parse_positive_int(threads, "threads")

    if (total_requests is None) == (requests_per_thread is None):
        raise ConfigurationError("Exactly one of total requests or requests per thread must be given")
    if total_requests is not None:
        total = parse_positive_int(total_requests, "total requests")
    else:
        total = threads * parse_positive_int(requests_per_thread, "requests per thread")
    return connections, threads, total


class BenchmarkResult:
    """Outcome of a completed run."""

    def __init__(self, buffer: SampleBuffer, total_requests: int, samples_file: Optional[str] = None):
        self.buffer = buffer
        self.total_requests = total_requests
        self.samples_file = samples_file

    @property
    def success_count(self) -> int:
        return self.buffer.success_count()

    @property
    def sample_count(self) -> int:
        return self.buffer.written_count()


class BenchmarkRunner:
    """Drives `total_requests` request cycles on `threads` workers and reports their latencies."""

    def __init__(
        self,
        client: ResourceClient,
        query: str,
        threads: int,
        total_requests: int,
        connections: Optional[int] = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        stream: Optional[TextIO] = None,
        persistence: Optional[ParquetPersistence] = None,
        exporter: Optional[SimplePrometheusExporter] = None,
    ):
        if total_requests <= 0:
            raise ConfigurationError(f"Invalid total requests value: {total_requests}")

        self.client = client
        self.query = query
        self.threads = threads
        self.total_requests = total_requests
        self.connections = connections
        self.stream = stream or sys.stdout
        self.persistence = persistence
        self.exporter = exporter

        self.worker_pool = WorkerPool(threads, timeout_seconds)
        self.printer = ReportPrinter(self.stream, PERCENTILES)

        logger.info(
            f"Initialized benchmark runner: {total_requests} requests on {threads} threads"
            + (f", pool size {connections}" if connections is not None else "")
        )

    def _emit_progress(self, percent: int) -> None:
        print(f"Progress: {percent}%", file=self.stream, flush=True)
        if self.exporter:
            self.exporter.update_progress(percent)

    def _run_request(self, cycle: RequestCycle, buffer: SampleBuffer, progress: ProgressReporter) -> None:
        """One worker unit: claim a slot, run the cycle, store the sample, count it."""
        index = buffer.claim_slot()
        sample = cycle.run_one(index)
        buffer.write(index, sample)
        if self.worker_pool.stop_event.is_set():
            return
        progress.on_completion()
        if self.exporter:
            self.exporter.record_sample(sample)

    def run(self, cancel_event: Optional[threading.Event] = None) -> BenchmarkResult:
        """Execute the benchmark and print its report.

        Raises:
            RunTimeoutError: The run exceeded the timeout ceiling; nothing is printed
            RunInterruptedError: The run was cancelled; nothing is printed
        """
        if self.connections is not None and self.threads > self.connections:
            print(
                f"Warning: threads ({self.threads}) exceed pool size ({self.connections}). "
                f"This may cause contention.",
                file=self.stream,
            )

        buffer = SampleBuffer(self.total_requests)
        progress = ProgressReporter(self.total_requests, emit=self._emit_progress)
        cycle = RequestCycle(self.client, self.query)

        if self.exporter:
            self.exporter.update_threads(self.threads)

        try:
            self.worker_pool.run(
                self.total_requests,
                partial(self._run_request, cycle, buffer, progress),
                cancel_event=cancel_event,
            )
        except BaseException:
            # Workers left in flight must not report after the abort
            progress.close()
            raise

        self.printer.print_report(
            buffer,
            total_requests=self.total_requests,
            success_count=buffer.success_count(),
            sample_count=buffer.written_count(),
        )

        samples_file = None
        if self.persistence:
            samples_file = self.persistence.save_samples(buffer)
            if samples_file:
                logger.info(f"Detailed samples saved to: {samples_file}")

        return BenchmarkResult(buffer, self.total_requests, samples_file)

    @property
    def abandoned_workers(self) -> int:
        """Workers still running after an aborted run."""
        return self.worker_pool.started - self.worker_pool.finished


def add_benchmark_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('-p', '--properties', required=True, metavar='<propertiesFile>',
                        help='Path to the database properties file')
    parser.add_argument('-q', '--query', required=True, metavar='<query>',
                        help='SQL query to execute for benchmarking')
    parser.add_argument('-c', '--connections', required=True, metavar='<connections>',
                        help='Number of connections in the pool')
    parser.add_argument('-t', '--threads', metavar='<threads>',
                        help='Number of threads (default: number of connections)')
    requests_group = parser.add_mutually_exclusive_group(required=True)
    requests_group.add_argument('-n', '--total-requests', metavar='<totalRequests>',
                                help='Total number of requests to execute across all threads')
    requests_group.add_argument('-r', '--requests-per-thread', metavar='<requestsPerThread>',
                                help='Number of requests per thread (total = threads x value)')
    parser.add_argument('--pool-type', choices=POOL_TYPES, default=DEFAULT_POOL_TYPE,
                        help=f'Pool checkout order (default: {DEFAULT_POOL_TYPE})')
    parser.add_argument('--timeout', type=float, default=DEFAULT_TIMEOUT_SECONDS,
                        help=f'Run timeout in seconds (default: {DEFAULT_TIMEOUT_SECONDS:g})')
    parser.add_argument('--save-samples', action='store_true',
                        help='Save raw samples to a Parquet file')
    parser.add_argument('--output-dir', default=DEFAULT_OUTPUT_DIR,
                        help=f'Directory for saved samples (default: {DEFAULT_OUTPUT_DIR})')
    parser.add_argument('--metrics-port', type=int, default=DEFAULT_METRICS_PORT,
                        help='Expose Prometheus metrics on this port (default: disabled)')


class BenchmarkCommand:
    """Runs the benchmark from parsed command line arguments and maps outcomes to exit codes."""

    def __init__(self, stream: Optional[TextIO] = None, cancel_event: Optional[threading.Event] = None):
        self.stream = stream or sys.stdout
        self.cancel_event = cancel_event
        self.abandoned_workers = 0

    def run(self, args) -> int:
        try:
            connections, threads, total_requests = resolve_workload(
                args.connections, args.threads, args.total_requests, args.requests_per_thread
            )
            if args.timeout <= 0:
                raise ConfigurationError(f"Invalid timeout value: {args.timeout}")
        except ConfigurationError as e:
            print(str(e), file=sys.stderr)
            return EXIT_USAGE

        try:
            properties = load_properties(args.properties)
        except ConfigurationError as e:
            logger.error(f"Failed to read properties file: {e}")
            return EXIT_SOFTWARE

        try:
            settings = DataSourceSettings.from_properties(properties, connections, args.pool_type)
            client = SqlPoolSystem.from_settings(settings)
        except ConfigurationError as e:
            logger.error(f"Invalid datasource configuration: {e}")
            return EXIT_USAGE

        exporter = None
        if args.metrics_port:
            exporter = SimplePrometheusExporter(args.metrics_port)
            exporter.start_server()
        persistence = ParquetPersistence(args.output_dir) if args.save_samples else None

        with client:
            runner = BenchmarkRunner(
                client,
                args.query,
                threads=threads,
                total_requests=total_requests,
                connections=connections,
                timeout_seconds=args.timeout,
                stream=self.stream,
                persistence=persistence,
                exporter=exporter,
            )
            client.prefill(connections)
            try:
                runner.run(self.cancel_event)
            except (RunTimeoutError, RunInterruptedError) as e:
                logger.error(str(e))
                self.abandoned_workers = runner.abandoned_workers
                return EXIT_SOFTWARE

        return EXIT_OK

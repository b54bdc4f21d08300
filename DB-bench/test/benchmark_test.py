"""
End-to-end tests of the benchmark runner against in-memory resource clients.
"""

import unittest
import tempfile
import os
import sys
import io
import time
import threading

# Add the parent directory to Python path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cli.benchmark import BenchmarkRunner, resolve_workload
from common.exceptions import ConfigurationError, RunInterruptedError, RunTimeoutError
from persistence.parquet import ParquetPersistence
from persistence.prom import SimplePrometheusExporter
from fake_systems import FakeResourceClient


class TestBenchmarkRunner(unittest.TestCase):
    """Test complete benchmark runs."""

    def _run(self, client, threads=4, total_requests=40, connections=None, **kwargs):
        stream = io.StringIO()
        runner = BenchmarkRunner(
            client, "SELECT 1", threads=threads, total_requests=total_requests,
            connections=connections, stream=stream, **kwargs
        )
        result = runner.run()
        return result, stream.getvalue()

    def test_every_slot_written_once(self):
        client = FakeResourceClient()
        result, _ = self._run(client, threads=8, total_requests=200)

        buffer = result.buffer
        self.assertTrue(buffer.is_complete())
        self.assertEqual(result.sample_count, 200)
        self.assertEqual([s.request_id for s in buffer.samples()], list(range(200)))
        self.assertEqual(client.acquire_calls, 200)
        self.assertEqual(client.released, 200)
        self.assertEqual(len(client.executed), 200)
        self.assertEqual(result.success_count, 200)

    def test_concurrency_bounded_by_threads(self):
        client = FakeResourceClient(delay_seconds=0.005)
        self._run(client, threads=3, total_requests=30)
        self.assertLessEqual(client.max_in_use, 3)

    def test_progress_lines(self):
        _, output = self._run(FakeResourceClient(), threads=4, total_requests=50)
        progress = [line for line in output.splitlines() if line.startswith("Progress:")]
        self.assertEqual(progress, [f"Progress: {p}%" for p in range(10, 101, 10)])

    def test_partial_failures_still_report(self):
        client = FakeResourceClient(fail_acquire_every=4)
        result, output = self._run(client, threads=2, total_requests=20)

        self.assertEqual(result.success_count, 15)
        self.assertLessEqual(result.success_count, result.total_requests)
        self.assertIn("Successful requests: 15/20 (75.00%)", output)
        self.assertIn("Connection acquisition:", output)
        self.assertIn("  p99:", output)

    def test_all_acquisitions_fail(self):
        client = FakeResourceClient(acquire_error=RuntimeError("connection refused"))
        with self.assertLogs("algorithms.request_cycle", level="ERROR") as logs:
            result, output = self._run(client, threads=2, total_requests=5)

        self.assertEqual(result.success_count, 0)
        self.assertEqual(len(logs.output), 5)
        self.assertIn("Successful requests: 0/5 (0.00%)", output)
        for title in ("Connection acquisition", "Query execution", "Total time"):
            self.assertIn(f"{title}: no successful samples to report.", output)

    def test_threads_above_pool_size_warns_and_completes(self):
        result, output = self._run(FakeResourceClient(), threads=8, total_requests=16, connections=4)

        lines = output.splitlines()
        self.assertEqual(lines[0], "Warning: threads (8) exceed pool size (4). This may cause contention.")
        self.assertIn("Successful requests: 16/16 (100.00%)", output)
        self.assertTrue(result.buffer.is_complete())

    def test_no_warning_within_pool_size(self):
        _, output = self._run(FakeResourceClient(), threads=4, total_requests=4, connections=4)
        self.assertNotIn("Warning", output)

    def test_timeout_prints_no_statistics(self):
        release = threading.Event()
        client = FakeResourceClient(block_event=release)
        stream = io.StringIO()
        runner = BenchmarkRunner(
            client, "SELECT 1", threads=2, total_requests=10, stream=stream, timeout_seconds=0.2
        )
        runner.worker_pool.poll_interval_seconds = 0.05
        try:
            with self.assertRaises(RunTimeoutError):
                runner.run()
            self.assertEqual(runner.abandoned_workers, 2)
        finally:
            release.set()

        self.assertNotIn("Successful requests", stream.getvalue())
        self.assertNotIn("min:", stream.getvalue())

    def test_cancellation_prints_no_statistics(self):
        release = threading.Event()
        cancel = threading.Event()
        cancel.set()
        client = FakeResourceClient(block_event=release)
        stream = io.StringIO()
        runner = BenchmarkRunner(client, "SELECT 1", threads=2, total_requests=10, stream=stream)
        try:
            with self.assertRaises(RunInterruptedError):
                runner.run(cancel_event=cancel)
        finally:
            release.set()
        self.assertNotIn("Successful requests", stream.getvalue())

    def test_workers_in_flight_stay_silent_after_timeout(self):
        release = threading.Event()
        client = FakeResourceClient(block_event=release)
        stream = io.StringIO()
        exporter = SimplePrometheusExporter()
        runner = BenchmarkRunner(
            client, "SELECT 1", threads=2, total_requests=10, stream=stream,
            timeout_seconds=0.2, exporter=exporter,
        )
        runner.worker_pool.poll_interval_seconds = 0.05
        try:
            with self.assertRaises(RunTimeoutError):
                runner.run()
        finally:
            release.set()

        deadline = time.monotonic() + 5
        while client.released < 2 and time.monotonic() < deadline:
            time.sleep(0.01)
        time.sleep(0.1)

        self.assertEqual(client.released, 2)
        self.assertNotIn("Progress", stream.getvalue())
        self.assertIsNone(
            exporter.registry.get_sample_value("db_benchmark_requests_total", {"status": "success"})
        )

    def test_saves_samples(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            persistence = ParquetPersistence(tmpdir)
            result, _ = self._run(FakeResourceClient(), threads=2, total_requests=12, persistence=persistence)
            self.assertIsNotNone(result.samples_file)
            self.assertTrue(os.path.exists(result.samples_file))
            self.assertEqual(len(ParquetPersistence.load_samples(result.samples_file)), 12)

    def test_invalid_total(self):
        with self.assertRaises(ConfigurationError):
            BenchmarkRunner(FakeResourceClient(), "SELECT 1", threads=1, total_requests=0)


class TestResolveWorkload(unittest.TestCase):
    """Test option validation."""

    def test_threads_default_to_connections(self):
        self.assertEqual(resolve_workload("4", None, "100", None), (4, 4, 100))

    def test_requests_per_thread(self):
        self.assertEqual(resolve_workload(4, 8, None, 25), (4, 8, 200))

    def test_non_positive_values(self):
        with self.assertRaises(ConfigurationError) as ctx:
            resolve_workload(0, None, 10, None)
        self.assertIn("Invalid connections value: 0", str(ctx.exception))
        with self.assertRaises(ConfigurationError):
            resolve_workload(2, -1, 10, None)
        with self.assertRaises(ConfigurationError):
            resolve_workload(2, None, "abc", None)
        with self.assertRaises(ConfigurationError):
            resolve_workload(2, None, None, 0)

    def test_exactly_one_request_option(self):
        with self.assertRaises(ConfigurationError):
            resolve_workload(2, None, None, None)
        with self.assertRaises(ConfigurationError):
            resolve_workload(2, None, 10, 5)


if __name__ == '__main__':
    unittest.main()

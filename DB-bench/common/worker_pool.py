"""
Fixed-size thread worker pool that runs a known number of benchmark requests.
"""

import time
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, Future, wait, FIRST_EXCEPTION
from typing import Callable, List, Optional, Set

from configuration import DEFAULT_TIMEOUT_SECONDS, WAIT_POLL_INTERVAL_SECONDS
from common.exceptions import ConfigurationError, RunInterruptedError, RunTimeoutError

logger = logging.getLogger(__name__)


class WorkerPool:
    """Runs exactly N units of work on at most `threads` concurrent worker threads.

    Every unit is submitted up front; the bounded worker count is the only
    backpressure. The driver then waits up to the timeout ceiling. A timeout
    or a cancellation sets `stop_event`, which keeps queued units from
    starting, cancels what has not been picked up yet and raises without
    waiting for the units already in flight. Reporting the abort is left to
    the caller.
    """

    def __init__(
        self,
        threads: int,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        poll_interval_seconds: float = WAIT_POLL_INTERVAL_SECONDS,
    ):
        """Initialize the worker pool.

        Args:
            threads: Number of concurrent workers
            timeout_seconds: Ceiling for the whole run
            poll_interval_seconds: How often the driver checks for cancellation while waiting
        """
        if threads <= 0:
            raise ConfigurationError(f"Invalid threads value: {threads}")
        if timeout_seconds <= 0:
            raise ConfigurationError(f"Invalid timeout value: {timeout_seconds}")

        self.threads = threads
        self.timeout_seconds = timeout_seconds
        self.poll_interval_seconds = poll_interval_seconds
        self.stop_event = threading.Event()

        self._started = 0
        self._finished = 0
        self._counter_lock = threading.Lock()

        logger.info(f"Initialized WorkerPool with {threads} workers, timeout={timeout_seconds}s")

    @property
    def finished(self) -> int:
        with self._counter_lock:
            return self._finished

    @property
    def started(self) -> int:
        with self._counter_lock:
            return self._started

    def _run_unit(self, work: Callable[[], None]) -> bool:
        """Worker body: skip if the run was stopped, otherwise do one unit."""
        if self.stop_event.is_set():
            return False
        with self._counter_lock:
            self._started += 1
        work()
        with self._counter_lock:
            self._finished += 1
        return True

    def run(self, total_requests: int, work: Callable[[], None],
            cancel_event: Optional[threading.Event] = None) -> int:
        """Run `work` exactly `total_requests` times.

        Args:
            total_requests: Number of units to execute
            work: Callable performing one unit; per-unit failures must be handled inside it
            cancel_event: Optional external signal that aborts the run

        Returns:
            Number of units that finished

        Raises:
            ConfigurationError: If total_requests is not positive
            RunTimeoutError: If the run did not finish within the timeout ceiling
            RunInterruptedError: If cancel_event was set or KeyboardInterrupt arrived while waiting
        """
        if total_requests <= 0:
            raise ConfigurationError(f"Invalid total requests value: {total_requests}")

        self.stop_event.clear()
        with self._counter_lock:
            self._started = 0
            self._finished = 0
        executor = ThreadPoolExecutor(max_workers=self.threads, thread_name_prefix="bench-worker")
        logger.info(f"Dispatching {total_requests} requests on {self.threads} workers")

        futures: List[Future] = []
        try:
            for _ in range(total_requests):
                futures.append(executor.submit(self._run_unit, work))
            self._wait(futures, total_requests, cancel_event)
        except KeyboardInterrupt:
            self._abort(executor)
            raise RunInterruptedError(
                "Execution interrupted", completed=self.finished, total=total_requests
            )
        except BaseException:
            self._abort(executor)
            raise

        executor.shutdown(wait=True)
        logger.info(f"All {self.finished} requests finished")
        return self.finished

    def _wait(self, futures: List[Future], total_requests: int,
              cancel_event: Optional[threading.Event]) -> None:
        deadline = time.monotonic() + self.timeout_seconds
        pending: Set[Future] = set(futures)

        while pending:
            if cancel_event is not None and cancel_event.is_set():
                raise RunInterruptedError(
                    "Execution interrupted: cancellation requested",
                    completed=self.finished, total=total_requests,
                )

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise RunTimeoutError(
                    f"Execution timed out after {self.timeout_seconds}s "
                    f"({self.finished}/{total_requests} requests finished)",
                    completed=self.finished, total=total_requests,
                )

            done, pending = wait(
                pending,
                timeout=min(remaining, self.poll_interval_seconds),
                return_when=FIRST_EXCEPTION,
            )
            for future in done:
                error = future.exception()
                if error is not None:
                    logger.error(f"Worker failed unexpectedly: {error}")
                    raise error

    def _abort(self, executor: ThreadPoolExecutor) -> None:
        self.stop_event.set()
        executor.shutdown(wait=False, cancel_futures=True)
        logger.debug(
            f"Worker pool shut down: {self.finished} finished, "
            f"{self.started - self.finished} still in flight"
        )

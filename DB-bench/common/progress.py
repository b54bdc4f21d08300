"""
Progress reporting for the benchmark: one announcement per 10% threshold.
"""

import threading
import logging
from typing import Callable, List, Optional

from configuration import PROGRESS_STEP_PERCENT, PROGRESS_MAX_PERCENT

logger = logging.getLogger(__name__)


def _print_progress(percent: int) -> None:
    print(f"Progress: {percent}%", flush=True)


class ProgressReporter:
    """Thread-safe completion counter that announces each crossed threshold exactly once."""

    def __init__(
        self,
        total: int,
        emit: Optional[Callable[[int], None]] = None,
        step: int = PROGRESS_STEP_PERCENT,
        ceiling: int = PROGRESS_MAX_PERCENT,
    ):
        """Initialize the reporter.

        Args:
            total: Number of completions that make up 100%
            emit: Callback receiving each announced percentage (default: prints "Progress: N%")
            step: Distance between thresholds, also the first threshold
            ceiling: Last threshold that can be announced
        """
        self.total = total
        self.step = step
        self.ceiling = ceiling
        self._emit = emit or _print_progress
        self._completed = 0
        self._next_threshold = step
        self._closed = False
        self._lock = threading.Lock()

    @property
    def completed(self) -> int:
        with self._lock:
            return self._completed

    @property
    def next_threshold(self) -> int:
        with self._lock:
            return self._next_threshold

    def on_completion(self) -> List[int]:
        """Record one finished request and announce every threshold it crosses.

        A single completion can cross several thresholds (small totals, or a
        worker that observes a count others have already pushed forward).
        All of them are drained in increasing order. The announcement runs
        under the lock, so lines from different workers cannot interleave
        out of order.

        Returns:
            The thresholds announced by this call, possibly empty
        """
        announced: List[int] = []
        with self._lock:
            self._completed += 1
            if self._closed or self.total <= 0:
                return announced
            percent = (self._completed * 100) // self.total
            while self._next_threshold <= self.ceiling and self._next_threshold <= percent:
                threshold = self._next_threshold
                self._next_threshold += self.step
                announced.append(threshold)
                self._emit(threshold)
        return announced

    def close(self) -> None:
        """Stop announcing. Once this returns no further threshold is emitted."""
        with self._lock:
            self._closed = True

    def __repr__(self) -> str:
        return (
            f"ProgressReporter(completed={self._completed}/{self.total}, "
            f"next_threshold={self._next_threshold})"
        )

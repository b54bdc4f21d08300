"""
Human-readable benchmark report.
"""

import sys
import logging
from typing import Optional, Sequence, TextIO

from configuration import PERCENTILES
from common.metrics_utils import (
    Channel,
    CHANNEL_TITLES,
    LatencyReport,
    aggregate,
    calculate_success_percent,
)

logger = logging.getLogger(__name__)


class ReportPrinter:
    """Writes the success summary and one statistics block per latency channel."""

    def __init__(self, stream: Optional[TextIO] = None, percentiles: Sequence[int] = PERCENTILES):
        self.stream = stream or sys.stdout
        self.percentiles = tuple(percentiles)

    def _line(self, text: str = "") -> None:
        print(text, file=self.stream)

    def print_report(self, samples, total_requests: int, success_count: int, sample_count: int) -> None:
        """Print the full report.

        Args:
            samples: Anything aggregate() accepts (SampleBuffer, DataFrame, Sample iterable)
            total_requests: Planned request count, the success percentage denominator
            success_count: Number of successful samples
            sample_count: Number of samples actually written
        """
        self.print_success_summary(success_count, total_requests)
        for channel in Channel.ALL:
            self.print_channel(channel, samples, sample_count)

    def print_success_summary(self, success_count: int, total_requests: int) -> None:
        percent = calculate_success_percent(success_count, total_requests)
        self._line()
        self._line(f"Successful requests: {success_count}/{total_requests} ({percent:.2f}%)")

    def print_channel(self, channel: str, samples, sample_count: int) -> None:
        title = CHANNEL_TITLES[channel]
        if sample_count == 0:
            self._line(f"{title}: no samples collected.")
            return

        report = aggregate(samples, channel, self.percentiles)
        if not isinstance(report, LatencyReport):
            self._line(f"{title}: no successful samples to report.")
            return

        self._line()
        self._line(f"{title}:")
        self._line(f"  min: {report.min_ms:.3f} ms")
        self._line(f"  max: {report.max_ms:.3f} ms")
        self._line(f"  avg: {report.mean_ms:.3f} ms")
        for rank in self.percentiles:
            value = report.percentiles.get(rank)
            if value is not None:
                self._line(f"  p{rank}: {value:.3f} ms")

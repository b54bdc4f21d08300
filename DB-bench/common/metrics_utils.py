"""
Shared utilities for benchmark latency statistics: channel selection, unit conversion and percentiles.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Sequence, Union

import numpy as np
import pandas as pd

from configuration import NANOS_PER_MILLI, PERCENTILES
from persistence.record import Sample
from persistence.sample_buffer import SampleBuffer

logger = logging.getLogger(__name__)


class Channel:
    """The three measured phases of a request cycle."""

    CONNECTION = "connection"
    QUERY = "query"
    TOTAL = "total"

    ALL = (CONNECTION, QUERY, TOTAL)


CHANNEL_COLUMNS: Dict[str, str] = {
    Channel.CONNECTION: "connection_time_ns",
    Channel.QUERY: "query_time_ns",
    Channel.TOTAL: "total_time_ns",
}

CHANNEL_TITLES: Dict[str, str] = {
    Channel.CONNECTION: "Connection acquisition",
    Channel.QUERY: "Query execution",
    Channel.TOTAL: "Total time",
}


class _NoSuccessfulSamples:
    """Result of aggregating a channel that has no successful samples.

    Kept distinct from a report full of zeros, which would read as an
    instantaneous operation.
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NO_SUCCESSFUL_SAMPLES"


NO_SUCCESSFUL_SAMPLES = _NoSuccessfulSamples()


@dataclass(frozen=True)
class LatencyReport:
    """Latency statistics of one channel, in milliseconds."""

    channel: str
    count: int
    min_ms: float
    max_ms: float
    mean_ms: float
    percentiles: Dict[int, float] = field(default_factory=dict)


SampleSource = Union[SampleBuffer, pd.DataFrame, Iterable[Sample]]


def ns_to_ms(values_ns) -> np.ndarray:
    """Convert nanoseconds to milliseconds without rounding."""
    return np.asarray(values_ns, dtype=np.float64) / NANOS_PER_MILLI


def compute_percentiles(values_ms: Sequence[float], percentiles: Sequence[int] = PERCENTILES) -> Dict[int, float]:
    """
    Compute percentiles with linear interpolation between order statistics.

    For n sorted values and rank p, the position is p/100 * (n - 1); the
    result interpolates linearly between the values at floor and ceil of that
    position. This is numpy's "linear" method, the same rule pandas uses for
    Series.quantile.

    Args:
        values_ms: Sample values, in any order
        percentiles: Percentile ranks in [0, 100]

    Returns:
        Mapping from rank to value, in the order of `percentiles`, or an empty
        mapping when there are no values
    """
    if len(values_ms) == 0:
        return {}
    ordered = np.sort(np.asarray(values_ms, dtype=np.float64))
    values = np.percentile(ordered, list(percentiles), method="linear")
    return {int(rank): float(value) for rank, value in zip(percentiles, values)}


def successful_channel_ns(samples: SampleSource, channel: str) -> np.ndarray:
    """Nanosecond values of one channel over the successful samples of any supported source."""
    if channel not in CHANNEL_COLUMNS:
        raise ValueError(f"Unknown channel: {channel}. Must be one of {Channel.ALL}")
    column = CHANNEL_COLUMNS[channel]

    if isinstance(samples, SampleBuffer):
        return samples.channel_ns(column, successful_only=True)

    if isinstance(samples, pd.DataFrame):
        if len(samples) == 0:
            return np.empty(0, dtype=np.int64)
        successful = samples[samples["success"].astype(bool)]
        return successful[column].to_numpy(dtype=np.int64)

    return np.array(
        [getattr(sample, column) for sample in samples if sample.success],
        dtype=np.int64,
    )


def aggregate(samples: SampleSource, channel: str, percentiles: Sequence[int] = PERCENTILES):
    """
    Reduce the successful samples of one channel to min/max/mean and percentiles.

    Args:
        samples: SampleBuffer, sample DataFrame or iterable of Sample
        channel: One of Channel.CONNECTION, Channel.QUERY, Channel.TOTAL
        percentiles: Percentile ranks to compute

    Returns:
        LatencyReport, or NO_SUCCESSFUL_SAMPLES when no sample succeeded
    """
    # Sorted first so every reduction is independent of input order
    values_ms = np.sort(ns_to_ms(successful_channel_ns(samples, channel)))
    if values_ms.size == 0:
        return NO_SUCCESSFUL_SAMPLES

    return LatencyReport(
        channel=channel,
        count=int(values_ms.size),
        min_ms=float(values_ms.min()),
        max_ms=float(values_ms.max()),
        mean_ms=float(values_ms.mean()),
        percentiles=compute_percentiles(values_ms, percentiles),
    )


def calculate_success_percent(success_count: int, total_requests: int) -> float:
    """
    Share of planned requests that succeeded, in percent.

    The denominator is the configured request total, not the number of
    requests that actually finished.

    Args:
        success_count: Number of successful requests
        total_requests: Number of planned requests

    Returns:
        Percentage, 0.0 when nothing was planned
    """
    if total_requests <= 0:
        return 0.0
    return success_count * 100.0 / total_requests

"""
Fixed-capacity sample storage shared by all benchmark workers.
"""

import threading
import logging
from typing import Iterator, List

import numpy as np
import pandas as pd

from persistence.record import Sample

logger = logging.getLogger(__name__)

SAMPLE_COLUMNS = ["request_id", "connection_time_ns", "query_time_ns", "total_time_ns", "success"]


class SampleBuffer:
    """Preallocated per-request sample arrays indexed by slot.

    Slot indices come from claim_slot(), which hands out 0, 1, 2, ... under a
    lock and never reuses a value. Each slot is therefore written by exactly
    one worker, so write() stores into the arrays without locking. The
    written mask is what aggregation trusts: slots that were never written
    (a run cut short by timeout or cancellation) are excluded rather than
    counted as zero-latency failures.
    """

    def __init__(self, capacity: int):
        if capacity < 0:
            raise ValueError(f"Sample buffer capacity must be >= 0, got {capacity}")
        self.capacity = capacity
        self.connection_time_ns = np.zeros(capacity, dtype=np.int64)
        self.query_time_ns = np.zeros(capacity, dtype=np.int64)
        self.total_time_ns = np.zeros(capacity, dtype=np.int64)
        self.success = np.zeros(capacity, dtype=bool)
        self.written = np.zeros(capacity, dtype=bool)

        self._next_slot = 0
        self._slot_lock = threading.Lock()

    def claim_slot(self) -> int:
        """Issue the next unused slot index."""
        with self._slot_lock:
            if self._next_slot >= self.capacity:
                raise IndexError(f"All {self.capacity} sample slots have been claimed")
            index = self._next_slot
            self._next_slot += 1
            return index

    @property
    def claimed_count(self) -> int:
        with self._slot_lock:
            return self._next_slot

    def write(self, index: int, sample: Sample) -> None:
        """Store a sample in its slot. A slot can only be written once."""
        if not 0 <= index < self.capacity:
            raise IndexError(f"Slot {index} out of range [0, {self.capacity})")
        if self.written[index]:
            raise ValueError(f"Slot {index} already holds a sample")
        self.connection_time_ns[index] = sample.connection_time_ns
        self.query_time_ns[index] = sample.query_time_ns
        self.total_time_ns[index] = sample.total_time_ns
        self.success[index] = sample.success
        self.written[index] = True

    def written_count(self) -> int:
        return int(self.written.sum())

    def success_count(self) -> int:
        return int((self.success & self.written).sum())

    def is_complete(self) -> bool:
        return self.written_count() == self.capacity

    def get(self, index: int) -> Sample:
        if not self.written[index]:
            raise KeyError(f"Slot {index} has not been written")
        return Sample(
            request_id=index,
            connection_time_ns=int(self.connection_time_ns[index]),
            query_time_ns=int(self.query_time_ns[index]),
            success=bool(self.success[index]),
        )

    def samples(self) -> List[Sample]:
        """All written samples in slot order."""
        return [self.get(int(index)) for index in np.flatnonzero(self.written)]

    def __iter__(self) -> Iterator[Sample]:
        return iter(self.samples())

    def __len__(self) -> int:
        return self.written_count()

    def channel_ns(self, column: str, successful_only: bool = True) -> np.ndarray:
        """Raw nanosecond values of one channel over the written (and optionally successful) slots."""
        if column not in ("connection_time_ns", "query_time_ns", "total_time_ns"):
            raise ValueError(f"Unknown channel column: {column}")
        mask = self.written & self.success if successful_only else self.written
        return getattr(self, column)[mask]

    def to_dataframe(self) -> pd.DataFrame:
        """Written samples as a DataFrame, one row per slot."""
        mask = self.written
        return pd.DataFrame({
            "request_id": np.flatnonzero(mask).astype(np.int64),
            "connection_time_ns": self.connection_time_ns[mask],
            "query_time_ns": self.query_time_ns[mask],
            "total_time_ns": self.total_time_ns[mask],
            "success": self.success[mask],
        }, columns=SAMPLE_COLUMNS)

    def __repr__(self) -> str:
        return (
            f"SampleBuffer(capacity={self.capacity}, written={self.written_count()}, "
            f"successful={self.success_count()})"
        )

"""
Basic data structures for the DB benchmark.
"""

from dataclasses import dataclass

from configuration import NANOS_PER_MILLI


@dataclass(frozen=True)
class Sample:
    """Outcome of one request cycle: acquisition, query and total latency plus success flag."""

    request_id: int
    connection_time_ns: int
    query_time_ns: int
    success: bool

    @property
    def total_time_ns(self) -> int:
        return self.connection_time_ns + self.query_time_ns

    @property
    def connection_time_ms(self) -> float:
        return self.connection_time_ns / NANOS_PER_MILLI

    @property
    def query_time_ms(self) -> float:
        return self.query_time_ns / NANOS_PER_MILLI

    @property
    def total_time_ms(self) -> float:
        return self.total_time_ns / NANOS_PER_MILLI

    def __repr__(self) -> str:
        return (
            f"Sample(request_id={self.request_id}, connection={self.connection_time_ms:.3f}ms, "
            f"query={self.query_time_ms:.3f}ms, success={self.success})"
        )

"""
Base class for the resource pools the benchmark drives.
"""

import logging
from typing import Any

logger = logging.getLogger(__name__)


class ResourceClient:
    """A pool of resources that can be acquired and used to execute an operation.

    The benchmark engine only observes latency and whether each call raised.
    Subclasses raise any exception to signal a failed acquisition or a failed
    execution.
    """

    def acquire(self) -> Any:
        """Acquire a handle from the pool."""
        raise NotImplementedError

    def execute(self, handle: Any, operation: str) -> None:
        """Execute the operation on the handle, consuming its whole result."""
        raise NotImplementedError

    def release(self, handle: Any) -> None:
        """Return the handle to the pool."""

    def prefill(self, count: int) -> int:
        """Open up to `count` resources ahead of the run. Returns how many were opened."""
        return 0

    def close(self) -> None:
        """Release every resource held by the pool."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

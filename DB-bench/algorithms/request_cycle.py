"""
Single request cycle: acquire a resource, execute the operation, time both.
"""

import time
import logging
from typing import Callable

from persistence.record import Sample
from systems.base import ResourceClient

logger = logging.getLogger(__name__)


class RequestCycle:
    """Runs one timed acquire-and-execute cycle against a resource client."""

    def __init__(self, client: ResourceClient, operation: str, clock: Callable[[], int] = time.perf_counter_ns):
        self.client = client
        self.operation = operation
        self._clock = clock

    def run_one(self, request_id: int) -> Sample:
        """Execute one request and return its sample.

        Failures are recorded in the sample and logged, never raised. The
        connection time is kept whether or not acquisition succeeded, and the
        query time of a failed execution covers the time until the failure.

        Args:
            request_id: Slot index of this request, used in diagnostics

        Returns:
            Sample with connection, query and total time
        """
        connection_start_ns = self._clock()
        try:
            handle = self.client.acquire()
        except Exception as e:
            connection_time_ns = self._clock() - connection_start_ns
            logger.error(f"Request {request_id} failed: {e}")
            logger.debug(f"Request {request_id} acquisition error", exc_info=True)
            return Sample(request_id, connection_time_ns, 0, success=False)
        connection_time_ns = self._clock() - connection_start_ns

        success = False
        query_start_ns = self._clock()
        try:
            self.client.execute(handle, self.operation)
            query_time_ns = self._clock() - query_start_ns
            success = True
        except Exception as e:
            query_time_ns = self._clock() - query_start_ns
            logger.error(f"Request {request_id} failed: {e}")
            logger.debug(f"Request {request_id} execution error", exc_info=True)
        finally:
            try:
                self.client.release(handle)
            except Exception as e:
                logger.warning(f"Request {request_id}: failed to release resource: {e}")

        return Sample(request_id, connection_time_ns, query_time_ns, success=success)

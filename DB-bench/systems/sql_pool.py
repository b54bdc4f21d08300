"""
SQLAlchemy connection pool driven by the benchmark.
"""

import logging
from typing import List

from sqlalchemy.engine import Connection, Engine

from systems.base import ResourceClient
from systems.datasource import DataSourceSettings, build_engine

logger = logging.getLogger(__name__)


class SqlPoolSystem(ResourceClient):
    """Database connection pool: acquire checks out a connection, execute runs a SQL statement."""

    def __init__(self, engine: Engine):
        self.engine = engine
        logger.info("Initialized SQL pool system")

    @classmethod
    def from_settings(cls, settings: DataSourceSettings) -> "SqlPoolSystem":
        return cls(build_engine(settings))

    def acquire(self) -> Connection:
        return self.engine.connect()

    def execute(self, handle: Connection, operation: str) -> None:
        result = handle.exec_driver_sql(operation)
        try:
            if result.returns_rows:
                # Drain the cursor so the timing covers the full result
                for _ in result:
                    pass
        finally:
            result.close()
        handle.commit()

    def release(self, handle: Connection) -> None:
        handle.close()

    def prefill(self, count: int) -> int:
        """Open `count` connections and return them to the pool so the run starts warm."""
        opened: List[Connection] = []
        try:
            for _ in range(count):
                opened.append(self.engine.connect())
        except Exception as e:
            logger.warning(f"Pool prefill stopped after {len(opened)}/{count} connections: {e}")
        finally:
            for connection in opened:
                connection.close()
        logger.info(f"Prefilled pool with {len(opened)} connections")
        return len(opened)

    def close(self) -> None:
        try:
            self.engine.dispose()
        except Exception as e:
            logger.error(f"Failed to close connection pool: {e}")

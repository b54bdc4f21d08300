"""
Configuration constants for the DB connection pool benchmark.

This module contains all configuration parameters including:
- Benchmark parameters (percentiles, progress step, timeout ceiling)
- Datasource property keys
- Output and exporter defaults
- Time conversion factors and process exit codes
"""

import os
from typing import Tuple

# =============================================================================
# BENCHMARK PARAMETERS
# =============================================================================

# Percentile ranks reported for every latency channel
PERCENTILES: Tuple[int, ...] = (50, 75, 90, 95, 99)

# Progress is announced every PROGRESS_STEP_PERCENT, up to PROGRESS_MAX_PERCENT
PROGRESS_STEP_PERCENT: int = 10
PROGRESS_MAX_PERCENT: int = 100

# Ceiling for the whole run; outstanding work is cancelled after this
DEFAULT_TIMEOUT_SECONDS: float = float(os.getenv("DB_BENCH_TIMEOUT_SECONDS", "3600"))

# How often the driver wakes up while waiting to check for cancellation
WAIT_POLL_INTERVAL_SECONDS: float = 0.5

# =============================================================================
# DATASOURCE CONFIGURATION
# =============================================================================

CONNECTION_URL_KEY: str = "connectionUrl"
DRIVER_CLASS_NAME_KEY: str = "driverClassName"
USERNAME_KEY: str = "username"
PASSWORD_KEY: str = "password"
VALIDATION_QUERY_KEY: str = "validationQuery"
MAX_WAIT_MILLIS_KEY: str = "maxWaitMillis"
CONNECTION_PROPERTIES_PREFIX: str = "connectionProperties."

# Pool checkout order: "queue" hands out the oldest idle connection, "lifo" the newest
POOL_TYPES: Tuple[str, ...] = ("queue", "lifo")
DEFAULT_POOL_TYPE: str = "queue"

# =============================================================================
# OUTPUT CONFIGURATION
# =============================================================================

DEFAULT_OUTPUT_DIR: str = os.getenv("DB_BENCH_OUTPUT_DIR", "results")
DEFAULT_SAMPLES_PREFIX: str = "samples"

# Prometheus exporter port (0 = disabled)
DEFAULT_METRICS_PORT: int = int(os.getenv("DB_BENCH_METRICS_PORT", "0"))

DEFAULT_LOG_LEVEL: str = "INFO"
LOG_FORMAT: str = "%(asctime)s - %(levelname)s - %(message)s"

# =============================================================================
# TIME CONSTANTS
# =============================================================================

NANOS_PER_MILLI: int = 1_000_000
NANOS_PER_SECOND: int = 1_000_000_000
MILLIS_PER_SECOND: int = 1000

# =============================================================================
# EXIT CODES
# =============================================================================

EXIT_OK: int = 0
EXIT_SOFTWARE: int = 1
EXIT_USAGE: int = 2

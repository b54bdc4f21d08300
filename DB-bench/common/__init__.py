"""
Common utilities for the DB benchmark.
"""

from .progress import ProgressReporter
from .worker_pool import WorkerPool

__all__ = ['ProgressReporter', 'WorkerPool']

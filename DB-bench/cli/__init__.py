"""
Command line entry points for the DB benchmark.
"""

from .benchmark import BenchmarkCommand, BenchmarkRunner
from .summarize import SummarizeCommand

__all__ = ['BenchmarkCommand', 'BenchmarkRunner', 'SummarizeCommand']

"""
Re-print the report of a saved benchmark run from its Parquet samples.
"""

import sys
import logging
from typing import Optional, TextIO

from configuration import EXIT_OK, EXIT_SOFTWARE, EXIT_USAGE, PERCENTILES
from common.report import ReportPrinter
from persistence.parquet import ParquetPersistence

logger = logging.getLogger(__name__)


class SummarizeCommand:
    """Loads saved samples and prints the same report a live run prints."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream or sys.stdout

    def run(self, args) -> int:
        try:
            samples = ParquetPersistence.load_samples(args.parquet_file)
        except FileNotFoundError as e:
            logger.error(str(e))
            return EXIT_USAGE
        except Exception as e:
            logger.error(f"Failed to load samples: {e}")
            return EXIT_SOFTWARE

        sample_count = len(samples)
        total_requests = args.total_requests if args.total_requests is not None else sample_count
        if total_requests < sample_count:
            logger.error(f"Total requests ({total_requests}) is smaller than the saved sample count ({sample_count})")
            return EXIT_USAGE

        success_count = int(samples["success"].astype(bool).sum()) if sample_count else 0
        ReportPrinter(self.stream, PERCENTILES).print_report(
            samples,
            total_requests=total_requests,
            success_count=success_count,
            sample_count=sample_count,
        )
        return EXIT_OK

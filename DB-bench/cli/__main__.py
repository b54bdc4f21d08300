"""
DB connection pool benchmark CLI.
"""

import os
import sys
import logging
import argparse

# Ensure project root is in path (for running as `python -m cli` from a checkout)
_project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from configuration import DEFAULT_LOG_LEVEL, LOG_FORMAT, EXIT_SOFTWARE, EXIT_USAGE
from cli.benchmark import BenchmarkCommand, add_benchmark_arguments
from cli.summarize import SummarizeCommand

logger = logging.getLogger(__name__)


def configure_logging(level: str = DEFAULT_LOG_LEVEL) -> None:
    """Set up logging (only if not already configured)."""
    if not logging.root.handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT)
    else:
        logging.root.setLevel(level)
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)
    logging.getLogger('sqlalchemy.pool').setLevel(logging.WARNING)


class DBBenchmarkCLI:
    """CLI interface for the DB connection pool benchmark."""

    def __init__(self):
        self.parser = self._create_parser()
        self.abandoned_workers = 0

    def _create_parser(self):
        """Create the main argument parser."""
        parser = argparse.ArgumentParser(
            prog='db-bench',
            description='Benchmarks database connection acquisition and query execution times.',
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  # 10 000 requests on a 16-connection pool with 32 threads
  python -m cli benchmark -p db.properties -q "SELECT 1" -c 16 -t 32 -n 10000

  # 500 requests per thread, keep the raw samples
  python -m cli benchmark -p db.properties -q "SELECT 1" -c 8 -r 500 --save-samples

  # Re-print the report of a saved run
  python -m cli summarize --parquet-file results/samples_20260101_120000.parquet
            """
        )
        parser.add_argument('--log-level', default=DEFAULT_LOG_LEVEL,
                            choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                            help=f'Logging level (default: {DEFAULT_LOG_LEVEL})')

        subparsers = parser.add_subparsers(dest='command', help='Available commands')

        # Benchmark command
        benchmark_parser = subparsers.add_parser('benchmark', help='Run the connection pool benchmark')
        add_benchmark_arguments(benchmark_parser)

        # Summarize command
        summarize_parser = subparsers.add_parser('summarize', help='Report a saved run')
        summarize_parser.add_argument('--parquet-file', type=str, required=True,
                                      help='Path to the Parquet file containing saved samples')
        summarize_parser.add_argument('--total-requests', type=int, default=None,
                                      help='Planned request count (default: number of saved samples)')

        return parser

    def run(self, args=None):
        """Run the CLI with the given arguments."""
        if args is None:
            args = sys.argv[1:]

        try:
            parsed_args = self.parser.parse_args(args)
        except SystemExit as e:
            return EXIT_USAGE if e.code else 0

        if not parsed_args.command:
            self.parser.print_help()
            return EXIT_USAGE

        configure_logging(parsed_args.log_level)

        try:
            if parsed_args.command == 'benchmark':
                command = BenchmarkCommand()
                code = command.run(parsed_args)
                self.abandoned_workers = command.abandoned_workers
                return code
            elif parsed_args.command == 'summarize':
                return SummarizeCommand().run(parsed_args)
            else:
                logger.error(f"Unknown command: {parsed_args.command}")
                return EXIT_USAGE

        except KeyboardInterrupt:
            logger.info("Operation interrupted by user")
            return EXIT_SOFTWARE
        except Exception as e:
            logger.error(f"Unexpected error: {e}")
            return EXIT_SOFTWARE


def main():
    """Main entry point."""
    cli = DBBenchmarkCLI()
    code = cli.run()
    if cli.abandoned_workers:
        # Worker threads blocked in the database cannot be interrupted; do not wait for them
        sys.stdout.flush()
        sys.stderr.flush()
        os._exit(code)
    sys.exit(code)


if __name__ == '__main__':
    main()

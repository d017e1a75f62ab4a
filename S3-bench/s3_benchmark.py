import os
import sys
import logging
import argparse
import asyncio

# Add the current directory to Python path for imports
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from common.errors import BenchmarkError
from cli.benchmark import add_benchmark_arguments, add_file_logging, config_from_args

# Set up logging (only if not already configured)
if not logging.root.handlers:
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


class S3BenchmarkCLI:
    """Command line interface for the S3 throughput benchmark."""

    def __init__(self):
        self.parser = self._create_parser()

    def _create_parser(self):
        """Create the main argument parser."""
        parser = argparse.ArgumentParser(
            description='S3 Benchmark CLI',
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  # PUT, GET and DELETE 1 MB objects with 16 threads for 60 seconds per phase
  python s3_benchmark.py run -u http://localhost:9000 -a KEY -s SECRET -t 16 -z 1M

  # Repeat the whole cycle three times with 30 second phases
  python s3_benchmark.py run -u http://localhost:9000 -a KEY -s SECRET -d 30 -l 3

  # Create the bucket if needed and delete every object in it
  python s3_benchmark.py clean -u http://localhost:9000 -a KEY -s SECRET -b my-bucket
            """
        )

        subparsers = parser.add_subparsers(dest='command', help='Available commands')

        run_parser = subparsers.add_parser('run', help='Run the PUT/GET/DELETE benchmark')
        add_benchmark_arguments(run_parser)

        clean_parser = subparsers.add_parser('clean', help='Empty the benchmark bucket')
        add_benchmark_arguments(clean_parser)

        return parser

    def run_benchmark(self, args):
        """Run the full benchmark."""
        from cli.benchmark import BenchmarkRunner

        config = config_from_args(args)
        add_file_logging(config.log_file)

        logger.info("=== S3 Benchmark ===")
        runner = BenchmarkRunner(config)
        runner.run_benchmark()
        return 0

    def run_clean(self, args):
        """Create the bucket if absent and delete all of its objects."""
        from common.storage_factory import create_storage_system

        config = config_from_args(args)
        storage_system = create_storage_system(config)

        async def clean():
            async with storage_system:
                await storage_system.create_bucket()
                return await storage_system.delete_all_objects()

        deleted = asyncio.run(clean())
        logger.info(f"Bucket {config.bucket} is empty ({deleted} objects deleted)")
        return 0

    def run(self, args=None):
        """Run the CLI with the given arguments."""
        if args is None:
            args = sys.argv[1:]

        parsed_args = self.parser.parse_args(args)

        if not parsed_args.command:
            self.parser.print_help()
            return 1

        try:
            if parsed_args.command == 'run':
                return self.run_benchmark(parsed_args)
            elif parsed_args.command == 'clean':
                return self.run_clean(parsed_args)
            else:
                logger.error(f"Unknown command: {parsed_args.command}")
                return 1

        except KeyboardInterrupt:
            logger.info("Operation interrupted by user")
            return 1
        except BenchmarkError as e:
            logger.error(f"FATAL: {e}")
            return 1


def main():
    """Main entry point."""
    cli = S3BenchmarkCLI()
    sys.exit(cli.run())


if __name__ == '__main__':
    main()

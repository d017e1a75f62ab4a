"""
Upload, download and delete throughput benchmark against an S3-compatible endpoint.
"""

import asyncio
import os
import sys
import logging
import argparse
from typing import List, Optional

# Required: Use uvloop for better performance
import uvloop
asyncio.set_event_loop_policy(uvloop.EventLoopPolicy())

# Ensure project root is in path (for running as script)
# When run as module (python -m cli.benchmark), this is not needed
_project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from configuration import (
    S3_ENDPOINT,
    BUCKET_NAME,
    AWS_ACCESS_KEY_ID,
    AWS_SECRET_ACCESS_KEY,
    AWS_REGION,
    DEFAULT_OBJECT_SIZE,
    DEFAULT_DURATION_SECS,
    DEFAULT_THREADS,
    DEFAULT_LOOPS,
    DEFAULT_LOG_FILE,
    BenchmarkConfig,
    parse_object_size,
)
from common.counters import SharedCounters, UPLOAD, DOWNLOAD, DELETE
from common.errors import BenchmarkError
from common.key_space import ObjectKeySpace
from common.metrics_utils import PhaseResult, format_bytes, summarize_results
from common.phase_manager import PhaseController
from common.signer import RequestSigner
from common.storage_factory import create_storage_system
from common.transport import create_http_pool
from common.worker_pool import WorkerContext

# Set up logging (only if not already configured)
if not logging.root.handlers:
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
    )
logger = logging.getLogger(__name__)

VERSION_BANNER = "S3 benchmark program v2.0"


def add_file_logging(log_file: Optional[str]) -> None:
    """Append benchmark log lines to ``log_file`` as well as the console."""
    if not log_file:
        return
    path = os.path.abspath(log_file)
    for handler in logging.root.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == path:
            return
    handler = logging.FileHandler(path, mode="a")
    handler.setFormatter(logging.Formatter("%(asctime)s: %(message)s"))
    handler.setLevel(logging.INFO)
    logging.root.addHandler(handler)


def add_benchmark_arguments(parser: argparse.ArgumentParser) -> None:
    """Register the run parameters shared by every command."""
    parser.add_argument("-a", "--access-key", default=AWS_ACCESS_KEY_ID,
                        help="Access key (default: $AWS_ACCESS_KEY_ID)")
    parser.add_argument("-s", "--secret-key", default=AWS_SECRET_ACCESS_KEY,
                        help="Secret key (default: $AWS_SECRET_ACCESS_KEY)")
    parser.add_argument("-u", "--url", default=S3_ENDPOINT,
                        help=f"URL for host with method prefix (default: {S3_ENDPOINT})")
    parser.add_argument("-b", "--bucket", default=BUCKET_NAME,
                        help=f"Bucket for testing (default: {BUCKET_NAME})")
    parser.add_argument("-d", "--duration", type=float, default=DEFAULT_DURATION_SECS,
                        help=f"Duration of each test in seconds (default: {DEFAULT_DURATION_SECS})")
    parser.add_argument("-t", "--threads", type=int, default=DEFAULT_THREADS,
                        help=f"Number of threads to run (default: {DEFAULT_THREADS})")
    parser.add_argument("-l", "--loops", type=int, default=DEFAULT_LOOPS,
                        help=f"Number of times to repeat test (default: {DEFAULT_LOOPS})")
    parser.add_argument("-z", "--size", default=DEFAULT_OBJECT_SIZE,
                        help=f"Size of objects in bytes with postfix K, M, and G (default: {DEFAULT_OBJECT_SIZE})")
    parser.add_argument("--region", default=AWS_REGION,
                        help=f"Region used for bucket setup (default: {AWS_REGION})")
    parser.add_argument("--verify-tls", action="store_true",
                        help="Verify TLS certificates (default: ignore TLS errors)")
    parser.add_argument("--log-file", default=DEFAULT_LOG_FILE,
                        help=f"File to append results to (default: {DEFAULT_LOG_FILE})")


def config_from_args(args: argparse.Namespace) -> BenchmarkConfig:
    """Build and validate a BenchmarkConfig from parsed arguments.

    Raises:
        ConfigurationError: If any parameter is missing or invalid
    """
    return BenchmarkConfig(
        endpoint=args.url,
        bucket=args.bucket,
        access_key=args.access_key,
        secret_key=args.secret_key,
        object_size=parse_object_size(args.size),
        duration_secs=args.duration,
        threads=args.threads,
        loops=args.loops,
        region=args.region,
        verify_tls=args.verify_tls,
        log_file=args.log_file,
    ).validate()


class BenchmarkRunner:
    """Sequences upload, download and delete phases for the configured loops."""

    def __init__(self, config: BenchmarkConfig, http=None, storage_system=None,
                 payload: Optional[bytes] = None):
        self.config = config
        self.storage_system = storage_system
        self.results: List[PhaseResult] = []

        if payload is None:
            payload = os.urandom(config.object_size)
        if http is None:
            http = create_http_pool(config.threads, verify_tls=config.verify_tls)

        self.context = WorkerContext(
            config=config,
            payload=payload,
            signer=RequestSigner(config.access_key, config.secret_key),
            key_space=ObjectKeySpace(config.endpoint, config.bucket),
            http=http,
            counters=SharedCounters(),
        )
        self.controller = PhaseController(self.context)

        logger.info(
            f"Initialized benchmark runner: {config.endpoint} bucket={config.bucket} "
            f"with {config.threads} threads"
        )

    async def _prepare_bucket(self) -> int:
        if self.storage_system is None:
            self.storage_system = create_storage_system(self.config)
        async with self.storage_system:
            await self.storage_system.create_bucket()
            return await self.storage_system.delete_all_objects()

    def prepare(self) -> int:
        """Create the bucket if needed and empty it.

        Returns:
            Number of pre-existing objects deleted

        Raises:
            SetupError: If the bucket cannot be prepared
        """
        return asyncio.run(self._prepare_bucket())

    def run(self) -> List[PhaseResult]:
        """Run every loop of upload, download and delete phases.

        Raises:
            BenchmarkAbortedError: If any phase hits a fatal transport error
        """
        for loop in range(1, self.config.loops + 1):
            for kind in (UPLOAD, DOWNLOAD, DELETE):
                result = self.controller.run_phase(kind, loop)
                self.results.append(result)
                logger.info(result.summary_line())
                if result.failures:
                    logger.warning(
                        f"Loop {loop}: {result.label} had {result.failures} non-success responses"
                    )
        return self.results

    def log_summary(self) -> None:
        """Log mean throughput per phase across all loops."""
        summary = summarize_results(self.results)
        if summary.empty:
            return
        logger.info("=== Benchmark Summary ===")
        for line in summary.to_string(float_format=lambda v: f"{v:.1f}").splitlines():
            logger.info(line)

    def run_benchmark(self) -> List[PhaseResult]:
        """Prepare the bucket, run all loops and log the summary."""
        logger.info(VERSION_BANNER)
        logger.info(
            f"Parameters: url={self.config.endpoint}, bucket={self.config.bucket}, "
            f"duration={self.config.duration_secs:g}, threads={self.config.threads}, "
            f"loops={self.config.loops}, size={format_bytes(self.config.object_size)}"
        )
        try:
            self.prepare()
            results = self.run()
            self.log_summary()
        finally:
            self.context.http.clear()
        logger.info("Benchmark completed.")
        return results


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the benchmark runner."""
    parser = argparse.ArgumentParser(description="S3 throughput benchmark")
    add_benchmark_arguments(parser)
    args = parser.parse_args(argv)

    try:
        config = config_from_args(args)
        add_file_logging(config.log_file)
        BenchmarkRunner(config).run_benchmark()
    except KeyboardInterrupt:
        logger.info("Benchmark interrupted by user")
        return 1
    except BenchmarkError as e:
        logger.error(f"FATAL: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

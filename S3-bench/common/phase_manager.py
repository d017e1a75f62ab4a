"""
Phase controller: runs one upload, download or delete phase to completion.
"""

import time
import logging
from typing import List, Optional

from common.counters import SharedCounters, DOWNLOAD, DELETE
from common.errors import BenchmarkAbortedError, BenchmarkError
from common.metrics_utils import PhaseResult, PHASE_LABELS
from common.worker_pool import Worker, WorkerContext, spawn_workers
from configuration import BARRIER_WAIT_INTERVAL_SECONDS

logger = logging.getLogger(__name__)


class PhaseController:
    """Spawns a fresh worker population per phase and waits for all of it to exit."""

    def __init__(self, context: WorkerContext):
        """Initialize the phase controller.

        Args:
            context: Shared worker context; its counters are reset per phase
        """
        self.context = context
        self.counters: SharedCounters = context.counters
        self.phase_start_ts: Optional[float] = None
        self.workers: List[Worker] = []

    def run_phase(self, kind: str, loop: int = 1) -> PhaseResult:
        """Run one phase and return its throughput statistics.

        Args:
            kind: One of upload, download or delete
            loop: Repetition number, carried into the result

        Returns:
            PhaseResult computed after every worker has exited

        Raises:
            BenchmarkError: If a download phase is requested before any upload
            BenchmarkAbortedError: If a worker hit a fatal transport error
        """
        config = self.context.config
        threads = config.threads

        if kind in (DOWNLOAD, DELETE):
            self.context.upload_total = self.counters.upload_count.value
        if kind == DOWNLOAD and self.context.upload_total < 1:
            raise BenchmarkError("Download phase requires at least one uploaded object")

        self.counters.begin_phase(kind, threads)
        self.phase_start_ts = time.time()
        self.context.deadline = self.phase_start_ts + config.duration_secs

        logger.info(f"Loop {loop}: starting {PHASE_LABELS[kind]} phase with {threads} workers")
        self.workers = spawn_workers(kind, threads, self.context)

        # Periodic wake-ups keep the main thread responsive to Ctrl-C
        while not self.counters.wait_for_workers(BARRIER_WAIT_INTERVAL_SECONDS):
            pass
        for worker in self.workers:
            worker.join()

        error = self.counters.fatal_error
        if error is not None:
            raise BenchmarkAbortedError(PHASE_LABELS[kind], error) from error

        return self._build_result(kind, loop)

    def _build_result(self, kind: str, loop: int) -> PhaseResult:
        finish_ts = self.counters.finish_time(kind) or time.time()
        elapsed = finish_ts - self.phase_start_ts

        operations = self.counters.counter(kind).value
        if kind == DELETE:
            # Every delete worker overshoots the counter once before stopping
            operations = min(operations, self.context.upload_total)

        return PhaseResult(
            loop=loop,
            kind=kind,
            operations=operations,
            elapsed_secs=elapsed,
            object_size=self.context.config.object_size,
            failures=self.counters.failures.value,
        )


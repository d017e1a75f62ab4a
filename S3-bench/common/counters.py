"""
Shared state for one benchmark phase: operation counters, the active worker
barrier and the fatal error slot.
"""

import threading
import time
import logging
from typing import Dict, Optional

logger = logging.getLogger(__name__)

UPLOAD = "upload"
DOWNLOAD = "download"
DELETE = "delete"
PHASE_KINDS = (UPLOAD, DOWNLOAD, DELETE)


class AtomicCounter:
    """Integer counter safe to increment from many threads."""

    def __init__(self, value: int = 0):
        self._value = value
        self._lock = threading.Lock()

    def increment(self, delta: int = 1) -> int:
        """Add ``delta`` and return the new value."""
        with self._lock:
            self._value += delta
            return self._value

    def set(self, value: int) -> None:
        with self._lock:
            self._value = value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    def __repr__(self) -> str:
        return f"AtomicCounter({self.value})"


class SharedCounters:
    """Counters shared by every worker of a phase.

    Each operation counter only ever increases within a phase. The active
    worker count is decremented once per worker exit and the controller blocks
    in :meth:`wait_for_workers` until it reaches zero.
    """

    def __init__(self):
        self.upload_count = AtomicCounter()
        self.download_count = AtomicCounter()
        self.delete_count = AtomicCounter()
        self.failures = AtomicCounter()

        self._active_workers = 0
        self._finish: Dict[str, Optional[float]] = {kind: None for kind in PHASE_KINDS}
        self._fatal_error: Optional[BaseException] = None
        self._abort = threading.Event()
        self._condition = threading.Condition(threading.Lock())

    def counter(self, kind: str) -> AtomicCounter:
        """Operation counter for a phase kind."""
        if kind == UPLOAD:
            return self.upload_count
        if kind == DOWNLOAD:
            return self.download_count
        if kind == DELETE:
            return self.delete_count
        raise ValueError(f"Unknown phase kind: {kind}")

    def begin_phase(self, kind: str, workers: int) -> None:
        """Reset the state a phase of ``kind`` starts from.

        An upload phase starts a new repetition, so all operation counters
        are cleared. Download and delete phases keep the upload count they
        depend on.
        """
        with self._condition:
            if self._active_workers:
                raise RuntimeError(
                    f"Cannot begin {kind} phase with {self._active_workers} workers still active"
                )
            if kind == UPLOAD:
                for name in PHASE_KINDS:
                    self.counter(name).set(0)
            else:
                self.counter(kind).set(0)
            self.failures.set(0)
            self._finish[kind] = None
            self._fatal_error = None
            self._abort.clear()
            self._active_workers = workers

    @property
    def active_workers(self) -> int:
        with self._condition:
            return self._active_workers

    def worker_exited(self, kind: str) -> int:
        """Record a worker exit and return the remaining active count."""
        with self._condition:
            self._finish[kind] = time.time()
            self._active_workers -= 1
            remaining = self._active_workers
            if remaining < 0:
                raise RuntimeError(f"More {kind} workers exited than were started")
            if remaining == 0:
                self._condition.notify_all()
            return remaining

    def wait_for_workers(self, timeout: Optional[float] = None) -> bool:
        """Block until every worker of the phase has exited.

        Returns:
            True if all workers exited, False if ``timeout`` expired first
        """
        with self._condition:
            return self._condition.wait_for(lambda: self._active_workers == 0, timeout)

    def finish_time(self, kind: str) -> Optional[float]:
        with self._condition:
            return self._finish[kind]

    def record_fatal(self, error: BaseException) -> None:
        """Keep the first fatal error of the phase and tell all workers to stop."""
        with self._condition:
            if self._fatal_error is None:
                self._fatal_error = error
                logger.debug(f"Recorded fatal error: {error}")
        self._abort.set()

    @property
    def fatal_error(self) -> Optional[BaseException]:
        with self._condition:
            return self._fatal_error

    @property
    def aborted(self) -> bool:
        return self._abort.is_set()

"""
Benchmark worker threads for the upload, download and delete phases.
"""

import threading
import time
import logging
import random
from dataclasses import dataclass
from typing import List, Optional

import urllib3
from urllib3.exceptions import HTTPError

from common.counters import SharedCounters, UPLOAD, DOWNLOAD, DELETE
from common.errors import TransportError
from common.key_space import ObjectKeySpace
from common.signer import RequestSigner, StorageRequest
from common.transport import drain, execute
from configuration import BenchmarkConfig

logger = logging.getLogger(__name__)


@dataclass
class WorkerContext:
    """Everything the workers of one run share."""

    config: BenchmarkConfig
    payload: bytes
    signer: RequestSigner
    key_space: ObjectKeySpace
    http: urllib3.PoolManager
    counters: SharedCounters
    deadline: float = 0.0
    upload_total: int = 0  # Objects written by the preceding upload phase


def _is_success(status: int) -> bool:
    return 200 <= status < 300


class Worker(threading.Thread):
    """One concurrent execution unit repeating a single operation kind."""

    kind: str = ""

    def __init__(self, worker_id: int, context: WorkerContext):
        super().__init__(name=f"{self.kind}-{worker_id}", daemon=True)
        self.worker_id = worker_id
        self.context = context
        self.requests_issued = 0

    def run(self):
        counters = self.context.counters
        try:
            while not counters.aborted:
                if not self._run_once():
                    break
                self.requests_issued += 1
        except Exception as e:
            counters.record_fatal(e)
        finally:
            counters.worker_exited(self.kind)
            logger.debug(f"Worker {self.name} exited after {self.requests_issued} requests")

    def _run_once(self) -> bool:
        """Perform one operation; return False when the stop condition holds."""
        raise NotImplementedError

    def _send(self, request: StorageRequest, preload_content: bool = True):
        self.context.signer.sign(request)
        return execute(self.context.http, request, preload_content=preload_content)

    def _record_failure(self, method: str, url: str, status: int, body: bytes = b"") -> None:
        self.context.counters.failures.increment()
        logger.debug(f"{method} {url} returned {status}: {body[:512]!r}")


class UploadWorker(Worker):
    """PUTs fresh objects until the phase deadline."""

    kind = UPLOAD

    def _run_once(self) -> bool:
        ctx = self.context
        if time.time() >= ctx.deadline:
            return False

        seq = ctx.counters.upload_count.increment()
        url = ctx.key_space.url(seq)
        request = StorageRequest(
            "PUT", url, body=ctx.payload,
            headers={"Content-Length": str(ctx.config.object_size)},
        )
        response = self._send(request)

        if not _is_success(response.status):
            ctx.counters.failures.increment()
            logger.warning(f"Upload status {response.status} {response.reason} for {url}")
            logger.warning(f"Body: {response.data.decode('utf-8', errors='replace')}")
        return True


class DownloadWorker(Worker):
    """GETs uniformly random uploaded objects until the phase deadline."""

    kind = DOWNLOAD

    def __init__(self, worker_id: int, context: WorkerContext, rng: Optional[random.Random] = None):
        super().__init__(worker_id, context)
        self.rng = rng or random.Random()

    def _run_once(self) -> bool:
        ctx = self.context
        if time.time() >= ctx.deadline:
            return False

        ctx.counters.download_count.increment()
        seq = ctx.key_space.random_seq(ctx.upload_total, self.rng)
        url = ctx.key_space.url(seq)
        response = self._send(StorageRequest("GET", url), preload_content=False)

        try:
            drain(response)
        except (HTTPError, OSError) as e:
            raise TransportError("GET", url, e) from e

        if not _is_success(response.status):
            self._record_failure("GET", url, response.status)
        return True


class DeleteWorker(Worker):
    """DELETEs objects in sequence until every uploaded object is claimed."""

    kind = DELETE

    def _run_once(self) -> bool:
        ctx = self.context
        seq = ctx.counters.delete_count.increment()
        if seq > ctx.upload_total:
            return False

        url = ctx.key_space.url(seq)
        response = self._send(StorageRequest("DELETE", url))
        if not _is_success(response.status):
            self._record_failure("DELETE", url, response.status, response.data)
        return True


WORKER_CLASSES = {
    UPLOAD: UploadWorker,
    DOWNLOAD: DownloadWorker,
    DELETE: DeleteWorker,
}


def spawn_workers(kind: str, count: int, context: WorkerContext) -> List[Worker]:
    """Start ``count`` fresh workers of the given kind.

    If a thread cannot be started, the error becomes the phase's fatal
    error and every worker that never ran is released from the barrier.
    Only the started workers are returned.
    """
    worker_class = WORKER_CLASSES[kind]
    counters = context.counters
    workers = [worker_class(n, context) for n in range(1, count + 1)]
    started: List[Worker] = []
    for index, worker in enumerate(workers):
        try:
            worker.start()
        except RuntimeError as e:
            counters.record_fatal(e)
            for _ in workers[index:]:
                counters.worker_exited(kind)
            break
        started.append(worker)
    return started

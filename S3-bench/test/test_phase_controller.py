"""
Tests for the benchmark workers and the phase controller.
"""

import http.server
import sys
import os
import threading
import time
import unittest
from unittest.mock import patch

from urllib3.exceptions import ProtocolError

# Add the parent directory to Python path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from configuration import BenchmarkConfig, BYTES_PER_MB, BYTES_PER_KB
from common import ObjectKeySpace, RequestSigner, SharedCounters
from common.counters import UPLOAD, DOWNLOAD, DELETE
from common.errors import BenchmarkAbortedError, BenchmarkError, TransportError
from common.phase_manager import PhaseController
from common.transport import create_http_pool
from common.worker_pool import UploadWorker, WorkerContext
from fake_http import FakePool

ENDPOINT = "http://storage.test:9000"
BUCKET = "bench"


def make_context(pool, threads=1, duration=0.2, object_size=BYTES_PER_KB, endpoint=ENDPOINT):
    config = BenchmarkConfig(
        endpoint=endpoint,
        bucket=BUCKET,
        access_key="access",
        secret_key="secret",
        object_size=object_size,
        duration_secs=duration,
        threads=threads,
        loops=1,
    )
    return WorkerContext(
        config=config,
        payload=b"x" * object_size,
        signer=RequestSigner(config.access_key, config.secret_key),
        key_space=ObjectKeySpace(config.endpoint, config.bucket),
        http=pool,
        counters=SharedCounters(),
    )


class TestUploadPhase(unittest.TestCase):
    """Upload phase behaviour against a fake endpoint."""

    def test_scenario_a_always_ok(self):
        pool = FakePool()
        context = make_context(pool, threads=1, duration=0.3, object_size=BYTES_PER_MB)
        result = PhaseController(context).run_phase(UPLOAD)

        uploads = context.counters.upload_count.value
        self.assertGreater(uploads, 0)
        self.assertEqual(result.operations, uploads)
        self.assertEqual(pool.count("PUT"), uploads)
        self.assertGreaterEqual(result.elapsed_secs, 0.29)
        self.assertAlmostEqual(
            result.bytes_per_sec, uploads * BYTES_PER_MB / result.elapsed_secs, places=3
        )
        self.assertEqual(result.failures, 0)
        self.assertEqual(context.counters.active_workers, 0)

    def test_sequence_numbers_unique_and_gap_free(self):
        pool = FakePool(latency=0.001)
        context = make_context(pool, threads=4, duration=0.2)
        result = PhaseController(context).run_phase(UPLOAD)

        urls = pool.urls("PUT")
        expected = [f"{ENDPOINT}/{BUCKET}/Object-{n}" for n in range(1, result.operations + 1)]
        self.assertEqual(sorted(urls), sorted(expected))
        self.assertEqual(len(set(urls)), len(urls))

    def test_scenario_b_server_errors_keep_looping(self):
        pool = FakePool(status_for={"PUT": 500}, body_for={"PUT": b"<Error>InternalError</Error>"},
                        latency=0.01)
        context = make_context(pool, threads=1, duration=0.2)

        with self.assertLogs("common.worker_pool", level="WARNING") as logs:
            result = PhaseController(context).run_phase(UPLOAD)

        uploads = context.counters.upload_count.value
        self.assertGreater(uploads, 1)
        self.assertEqual(result.operations, uploads)
        self.assertEqual(result.failures, uploads)
        self.assertGreaterEqual(result.elapsed_secs, 0.19)
        body_lines = [line for line in logs.output if "InternalError" in line]
        self.assertEqual(len(body_lines), uploads)

    def test_scenario_c_transport_error_aborts_run(self):
        pool = FakePool(error_for={"PUT": ConnectionRefusedError("Connection refused")})
        context = make_context(pool, threads=4, duration=30)

        start = time.time()
        with self.assertRaises(BenchmarkAbortedError) as ctx:
            PhaseController(context).run_phase(UPLOAD)

        self.assertLess(time.time() - start, 5)
        self.assertIsInstance(ctx.exception.cause, TransportError)
        self.assertEqual(context.counters.active_workers, 0)

    def test_more_workers_or_time_do_not_reduce_work(self):
        short = make_context(FakePool(latency=0.005), threads=1, duration=0.1)
        long = make_context(FakePool(latency=0.005), threads=1, duration=0.3)
        wide = make_context(FakePool(latency=0.005), threads=4, duration=0.1)

        short_ops = PhaseController(short).run_phase(UPLOAD).operations
        long_ops = PhaseController(long).run_phase(UPLOAD).operations
        wide_ops = PhaseController(wide).run_phase(UPLOAD).operations

        self.assertGreaterEqual(long_ops, short_ops)
        self.assertGreaterEqual(wide_ops, short_ops)


class TestDownloadPhase(unittest.TestCase):
    """Download phase behaviour."""

    def test_download_requires_uploads(self):
        pool = FakePool()
        context = make_context(pool)
        with self.assertRaises(BenchmarkError):
            PhaseController(context).run_phase(DOWNLOAD)
        self.assertEqual(pool.count("GET"), 0)

    def test_downloads_pick_uploaded_objects(self):
        pool = FakePool(latency=0.001, body_for={"GET": b"y" * BYTES_PER_KB})
        context = make_context(pool, threads=2, duration=0.2)
        controller = PhaseController(context)

        uploads = controller.run_phase(UPLOAD).operations
        result = controller.run_phase(DOWNLOAD)

        valid = {f"{ENDPOINT}/{BUCKET}/Object-{n}" for n in range(1, uploads + 1)}
        gets = pool.urls("GET")
        self.assertGreater(len(gets), 0)
        self.assertTrue(set(gets) <= valid)
        self.assertEqual(result.operations, context.counters.download_count.value)
        self.assertEqual(context.counters.upload_count.value, uploads)
        self.assertTrue(all(r.released for r in pool.responses if r.data.startswith(b"y")))

    def test_download_transport_error_aborts(self):
        pool = FakePool(error_for={"GET": ProtocolError("Connection aborted")})
        context = make_context(pool, threads=2, duration=0.1)
        controller = PhaseController(context)
        controller.run_phase(UPLOAD)

        with self.assertRaises(BenchmarkAbortedError):
            controller.run_phase(DOWNLOAD)


class TestDeletePhase(unittest.TestCase):
    """Delete phase behaviour."""

    def test_delete_removes_each_uploaded_object_once(self):
        pool = FakePool(latency=0.001, status_for={"DELETE": 204})
        context = make_context(pool, threads=3, duration=0.2)
        controller = PhaseController(context)

        uploads = controller.run_phase(UPLOAD).operations
        result = controller.run_phase(DELETE)

        deletes = pool.urls("DELETE")
        self.assertEqual(len(deletes), uploads)
        self.assertEqual(len(set(deletes)), uploads)
        self.assertEqual(result.operations, uploads)
        self.assertLessEqual(result.operations, uploads)

    def test_delete_ignores_duration(self):
        pool = FakePool(latency=0.02)
        context = make_context(pool, threads=1, duration=0.05)
        controller = PhaseController(context)
        uploads = controller.run_phase(UPLOAD).operations

        result = controller.run_phase(DELETE)
        self.assertEqual(pool.count("DELETE"), uploads)
        self.assertEqual(result.operations, uploads)

    def test_delete_failures_do_not_stop_phase(self):
        pool = FakePool(status_for={"DELETE": 404})
        context = make_context(pool, threads=2, duration=0.05)
        controller = PhaseController(context)
        uploads = controller.run_phase(UPLOAD).operations

        result = controller.run_phase(DELETE)
        self.assertEqual(pool.count("DELETE"), uploads)
        self.assertEqual(result.failures, uploads)


class TestWorkerStartFailure(unittest.TestCase):
    """A thread that cannot be started aborts the phase cleanly."""

    def test_start_failure_releases_barrier(self):
        thread_start = UploadWorker.start
        calls = []

        def failing_start(worker):
            calls.append(worker.name)
            if len(calls) == 2:
                raise RuntimeError("can't start new thread")
            thread_start(worker)

        pool = FakePool(latency=0.001)
        context = make_context(pool, threads=3, duration=30)
        controller = PhaseController(context)

        start = time.time()
        with patch.object(UploadWorker, "start", failing_start):
            with self.assertRaises(BenchmarkAbortedError) as ctx:
                controller.run_phase(UPLOAD)

        self.assertLess(time.time() - start, 5)
        self.assertIsInstance(ctx.exception, BenchmarkError)
        self.assertIsInstance(ctx.exception.cause, RuntimeError)
        self.assertEqual(len(controller.workers), 1)
        self.assertFalse(any(worker.is_alive() for worker in controller.workers))
        self.assertEqual(context.counters.active_workers, 0)

        context.counters.begin_phase(UPLOAD, 0)
        self.assertIsNone(context.counters.fatal_error)


class _StorageHandler(http.server.BaseHTTPRequestHandler):
    """Loopback endpoint that accepts any signed request."""

    protocol_version = "HTTP/1.1"
    seen_authorization = []

    def _reply(self, status, body=b""):
        self.send_response(status)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if body:
            self.wfile.write(body)

    def do_PUT(self):
        self.seen_authorization.append(self.headers.get("Authorization", ""))
        self.rfile.read(int(self.headers.get("Content-Length", 0)))
        self._reply(200)

    def do_GET(self):
        self._reply(200, b"z" * 2048)

    def do_DELETE(self):
        self._reply(204)

    def log_message(self, format, *args):
        pass


class TestLoopbackEndpoint(unittest.TestCase):
    """Full upload/download/delete cycle over real HTTP on localhost."""

    def setUp(self):
        _StorageHandler.seen_authorization = []
        self.server = http.server.ThreadingHTTPServer(("127.0.0.1", 0), _StorageHandler)
        self.server.daemon_threads = True
        self.thread = threading.Thread(target=self.server.serve_forever, daemon=True)
        self.thread.start()
        self.endpoint = f"http://127.0.0.1:{self.server.server_address[1]}"

    def tearDown(self):
        self.server.shutdown()
        self.server.server_close()

    def test_cycle(self):
        pool = create_http_pool(2)
        context = make_context(pool, threads=2, duration=0.3, endpoint=self.endpoint)
        controller = PhaseController(context)

        upload = controller.run_phase(UPLOAD)
        download = controller.run_phase(DOWNLOAD)
        delete = controller.run_phase(DELETE)

        self.assertGreater(upload.operations, 0)
        self.assertEqual(upload.failures, 0)
        self.assertGreater(download.operations, 0)
        self.assertEqual(delete.operations, upload.operations)
        self.assertTrue(_StorageHandler.seen_authorization)
        self.assertTrue(all(a.startswith("AWS access:") for a in _StorageHandler.seen_authorization))

    def test_connection_refused_is_fatal(self):
        self.server.shutdown()
        self.server.server_close()
        pool = create_http_pool(1)
        context = make_context(pool, threads=2, duration=30, endpoint=self.endpoint)

        with self.assertRaises(BenchmarkAbortedError) as ctx:
            PhaseController(context).run_phase(UPLOAD)
        self.assertIsInstance(ctx.exception.cause, TransportError)


if __name__ == '__main__':
    unittest.main()

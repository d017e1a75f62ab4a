"""
Shared HTTP transport used by all benchmark workers.
"""

import logging
from typing import Optional

import urllib3
from urllib3.exceptions import HTTPError, InsecureRequestWarning

from common.errors import TransportError
from common.signer import StorageRequest
from configuration import CONNECT_TIMEOUT_SECONDS, MIN_POOL_CONNECTIONS

logger = logging.getLogger(__name__)


def create_http_pool(threads: int, verify_tls: bool = False,
                     connect_timeout: float = CONNECT_TIMEOUT_SECONDS) -> urllib3.PoolManager:
    """Create a connection pool able to serve every worker concurrently.

    Args:
        threads: Number of concurrent workers sharing the pool
        verify_tls: Verify server certificates (off by default, like the SDK setup)
        connect_timeout: Connection establishment timeout in seconds

    Returns:
        Thread-safe pool manager with keep-alive connections and no retries
    """
    pool_size = max(threads, MIN_POOL_CONNECTIONS)

    if not verify_tls:
        urllib3.disable_warnings(InsecureRequestWarning)

    pool = urllib3.PoolManager(
        maxsize=pool_size,
        block=False,
        retries=False,
        timeout=urllib3.Timeout(connect=connect_timeout, read=None),
        cert_reqs="CERT_REQUIRED" if verify_tls else "CERT_NONE",
    )

    logger.info(f"Configured HTTP connection pool: {pool_size} connections per host")
    return pool


def execute(pool: urllib3.PoolManager, request: StorageRequest,
            preload_content: bool = True) -> urllib3.BaseHTTPResponse:
    """Send a signed request over the shared pool.

    Raises:
        TransportError: If the request fails below the HTTP layer
    """
    try:
        return pool.request(
            request.method,
            request.url,
            body=request.body,
            headers=request.headers,
            preload_content=preload_content,
            redirect=False,
        )
    except (HTTPError, OSError) as e:
        raise TransportError(request.method, request.url, e) from e


def drain(response: urllib3.BaseHTTPResponse, chunk_size: Optional[int] = 64 * 1024) -> int:
    """Read and discard the body so the connection returns to the pool.

    Returns:
        Number of body bytes read
    """
    total = 0
    try:
        for chunk in response.stream(chunk_size):
            total += len(chunk)
    finally:
        response.release_conn()
    return total

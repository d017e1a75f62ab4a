"""
Configuration constants for the S3 benchmark.

This module contains all configuration parameters including:
- Storage credentials and endpoint defaults
- Test parameters (object size, duration, threads, loops)
- HTTP transport timeouts
- File size constants and conversion factors
"""

import os
import re
from dataclasses import dataclass

from common.errors import ConfigurationError

# =============================================================================
# CLOUD STORAGE CONFIGURATION
# =============================================================================

S3_ENDPOINT: str = os.getenv("S3_ENDPOINT", "http://s3.wasabisys.com")
BUCKET_NAME: str = os.getenv("BUCKET_NAME", "s3-benchmark-bucket")
AWS_ACCESS_KEY_ID: str = os.getenv("AWS_ACCESS_KEY_ID", "")
AWS_SECRET_ACCESS_KEY: str = os.getenv("AWS_SECRET_ACCESS_KEY", "")
AWS_REGION: str = os.getenv("AWS_REGION", "us-east-1")

# =============================================================================
# TEST PARAMETERS
# =============================================================================

DEFAULT_OBJECT_SIZE: str = "1M"
DEFAULT_DURATION_SECS: int = 60
DEFAULT_THREADS: int = 1
DEFAULT_LOOPS: int = 1
DEFAULT_LOG_FILE: str = "benchmark.log"

LIST_PAGE_SIZE: int = 1000  # Max keys per ListObjects / DeleteObjects call

# =============================================================================
# HTTP TRANSPORT
# =============================================================================

CONNECT_TIMEOUT_SECONDS: float = 30.0
SETUP_READ_TIMEOUT_SECONDS: float = 60.0
MIN_POOL_CONNECTIONS: int = 10
BARRIER_WAIT_INTERVAL_SECONDS: float = 0.5

# =============================================================================
# FILE SIZE CONSTANTS
# =============================================================================

BYTES_PER_KB: int = 1024
BYTES_PER_MB: int = 1024 * 1024
BYTES_PER_GB: int = 1024 * 1024 * 1024
BYTES_PER_TB: int = 1024 ** 4
BYTES_PER_PB: int = 1024 ** 5
BYTES_PER_EB: int = 1024 ** 6

SIZE_UNITS = {
    "": 1,
    "B": 1,
    "K": BYTES_PER_KB, "KB": BYTES_PER_KB, "KIB": BYTES_PER_KB,
    "M": BYTES_PER_MB, "MB": BYTES_PER_MB, "MIB": BYTES_PER_MB,
    "G": BYTES_PER_GB, "GB": BYTES_PER_GB, "GIB": BYTES_PER_GB,
    "T": BYTES_PER_TB, "TB": BYTES_PER_TB, "TIB": BYTES_PER_TB,
    "P": BYTES_PER_PB, "PB": BYTES_PER_PB, "PIB": BYTES_PER_PB,
    "E": BYTES_PER_EB, "EB": BYTES_PER_EB, "EIB": BYTES_PER_EB,
}

_SIZE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?|\.\d+)\s*([A-Za-z]*)\s*$")


def parse_object_size(value: str) -> int:
    """Convert a human readable size such as "1M" or "512KiB" to bytes.

    Units are 1024 based and case-insensitive. A bare number is taken as bytes.

    Raises:
        ConfigurationError: If the value cannot be parsed or is not positive
    """
    match = _SIZE_PATTERN.match(value or "")
    if not match:
        raise ConfigurationError(f"Invalid object size: {value!r}")

    number, unit = match.groups()
    multiplier = SIZE_UNITS.get(unit.upper())
    if multiplier is None:
        raise ConfigurationError(f"Unknown size unit {unit!r} in {value!r}")

    size = int(float(number) * multiplier)
    if size <= 0:
        raise ConfigurationError(f"Object size must be positive: {value!r}")
    return size


@dataclass(frozen=True)
class BenchmarkConfig:
    """Validated, read-only parameters of one benchmark run."""

    endpoint: str
    bucket: str
    access_key: str
    secret_key: str
    object_size: int
    duration_secs: float = DEFAULT_DURATION_SECS
    threads: int = DEFAULT_THREADS
    loops: int = DEFAULT_LOOPS
    region: str = AWS_REGION
    verify_tls: bool = False
    log_file: str = DEFAULT_LOG_FILE

    def __post_init__(self):
        # Endpoint is used as a URL prefix for object keys
        object.__setattr__(self, "endpoint", self.endpoint.rstrip("/"))

    def validate(self) -> "BenchmarkConfig":
        """Check the parameters before any network I/O happens.

        Returns:
            The same config, so calls can be chained

        Raises:
            ConfigurationError: On the first invalid parameter
        """
        if not self.access_key:
            raise ConfigurationError("Missing argument -a for access key.")
        if not self.secret_key:
            raise ConfigurationError("Missing argument -s for secret key.")
        if not self.endpoint.startswith(("http://", "https://")):
            raise ConfigurationError(
                f"Endpoint must include the http:// or https:// prefix: {self.endpoint}"
            )
        if not self.bucket:
            raise ConfigurationError("Missing argument -b for bucket.")
        if self.object_size <= 0:
            raise ConfigurationError(f"Object size must be positive: {self.object_size}")
        if self.duration_secs <= 0:
            raise ConfigurationError(f"Duration must be positive: {self.duration_secs}")
        if self.threads <= 0:
            raise ConfigurationError(f"Thread count must be positive: {self.threads}")
        if self.loops <= 0:
            raise ConfigurationError(f"Loop count must be positive: {self.loops}")
        return self

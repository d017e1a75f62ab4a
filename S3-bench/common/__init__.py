"""
Common utilities for the S3 benchmark.
"""

from .counters import SharedCounters, AtomicCounter
from .errors import (
    BenchmarkError,
    ConfigurationError,
    SetupError,
    TransportError,
    BenchmarkAbortedError,
)
from .key_space import ObjectKeySpace
from .signer import RequestSigner, StorageRequest

__all__ = [
    'SharedCounters', 'AtomicCounter', 'ObjectKeySpace', 'RequestSigner', 'StorageRequest',
    'BenchmarkError', 'ConfigurationError', 'SetupError', 'TransportError', 'BenchmarkAbortedError',
]

"""
Exceptions raised by the S3 benchmark.
"""


class BenchmarkError(Exception):
    """Base class for all benchmark failures."""


class ConfigurationError(BenchmarkError):
    """Invalid or missing run parameters, detected before any network I/O."""


class SetupError(BenchmarkError):
    """Bucket preparation failed before the first phase."""


class TransportError(BenchmarkError):
    """A request could not be completed at the connection level."""

    def __init__(self, method: str, url: str, cause: Exception):
        super().__init__(f"Error during {method} {url}: {cause}")
        self.method = method
        self.url = url
        self.cause = cause


class BenchmarkAbortedError(BenchmarkError):
    """A phase ended because a worker hit a fatal transport error."""

    def __init__(self, phase: str, cause: Exception):
        super().__init__(f"{phase} phase aborted: {cause}")
        self.phase = phase
        self.cause = cause

"""
Shared utilities for benchmark metrics: phase results, throughput and byte formatting.
"""

import logging
from dataclasses import dataclass, asdict
from typing import Iterable, List

import pandas as pd

from configuration import (
    BYTES_PER_KB,
    BYTES_PER_MB,
    BYTES_PER_GB,
    BYTES_PER_TB,
    BYTES_PER_PB,
    BYTES_PER_EB,
)

logger = logging.getLogger(__name__)

PHASE_LABELS = {
    "upload": "PUT",
    "download": "GET",
    "delete": "DELETE",
}

_BYTE_UNITS = (
    (BYTES_PER_EB, "E"),
    (BYTES_PER_PB, "P"),
    (BYTES_PER_TB, "T"),
    (BYTES_PER_GB, "G"),
    (BYTES_PER_MB, "M"),
    (BYTES_PER_KB, "K"),
)


def calculate_throughput(amount: float, duration_seconds: float) -> float:
    """
    Rate of ``amount`` per second, or 0.0 for a non-positive duration.

    Args:
        amount: Bytes or operations completed
        duration_seconds: Duration in seconds

    Returns:
        Amount per second
    """
    if duration_seconds <= 0:
        return 0.0
    return amount / duration_seconds


def format_bytes(num_bytes: float) -> str:
    """
    Render a byte count with a 1024-based unit, e.g. ``1.5MB`` or ``512B``.
    """
    num_bytes = int(num_bytes)
    for factor, unit in _BYTE_UNITS:
        if num_bytes >= factor:
            value = f"{num_bytes / factor:.1f}"
            if value.endswith(".0"):
                value = value[:-2]
            return f"{value}{unit}B"
    return f"{num_bytes}B"


@dataclass(frozen=True)
class PhaseResult:
    """Outcome of one completed phase."""

    loop: int
    kind: str
    operations: int
    elapsed_secs: float
    object_size: int
    failures: int = 0

    @property
    def total_bytes(self) -> int:
        return self.operations * self.object_size

    @property
    def bytes_per_sec(self) -> float:
        return calculate_throughput(self.total_bytes, self.elapsed_secs)

    @property
    def ops_per_sec(self) -> float:
        return calculate_throughput(self.operations, self.elapsed_secs)

    @property
    def label(self) -> str:
        return PHASE_LABELS.get(self.kind, self.kind.upper())

    def summary_line(self) -> str:
        """One log line in the classic s3-benchmark format."""
        if self.kind == "delete":
            return (
                f"Loop {self.loop}: {self.label} time {self.elapsed_secs:.1f} secs, "
                f"{self.ops_per_sec:.1f} deletes/sec."
            )
        return (
            f"Loop {self.loop}: {self.label} time {self.elapsed_secs:.1f} secs, "
            f"objects = {self.operations}, speed = {format_bytes(self.bytes_per_sec)}/sec, "
            f"{self.ops_per_sec:.1f} operations/sec."
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        data["bytes_per_sec"] = self.bytes_per_sec
        data["ops_per_sec"] = self.ops_per_sec
        return data


def results_to_dataframe(results: Iterable[PhaseResult]) -> pd.DataFrame:
    """Tabulate phase results, one row per phase per loop."""
    columns = [
        "loop", "kind", "operations", "elapsed_secs", "object_size",
        "failures", "bytes_per_sec", "ops_per_sec",
    ]
    return pd.DataFrame([r.to_dict() for r in results], columns=columns)


def summarize_results(results: List[PhaseResult]) -> pd.DataFrame:
    """
    Mean throughput per phase kind across all loops.

    Returns:
        DataFrame indexed by phase kind (in PUT, GET, DELETE order) with
        loop count, total operations, mean elapsed time and mean throughput
    """
    df = results_to_dataframe(results)
    if df.empty:
        return df

    summary = df.groupby("kind", sort=False).agg(
        loops=("loop", "count"),
        operations=("operations", "sum"),
        failures=("failures", "sum"),
        mean_elapsed_secs=("elapsed_secs", "mean"),
        mean_bytes_per_sec=("bytes_per_sec", "mean"),
        mean_ops_per_sec=("ops_per_sec", "mean"),
    )
    order = [kind for kind in PHASE_LABELS if kind in summary.index]
    return summary.loc[order]

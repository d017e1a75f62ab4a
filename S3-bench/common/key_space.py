"""
Mapping from sequence numbers to benchmark object URLs.
"""

import random
from typing import Optional

OBJECT_KEY_PREFIX = "Object-"


class ObjectKeySpace:
    """Deterministic ``<endpoint>/<bucket>/Object-<n>`` naming."""

    def __init__(self, endpoint: str, bucket: str, prefix: str = OBJECT_KEY_PREFIX):
        self.endpoint = endpoint.rstrip("/")
        self.bucket = bucket
        self.prefix = prefix

    def key(self, seq: int) -> str:
        """Object key inside the bucket."""
        if seq < 1:
            raise ValueError(f"Sequence numbers start at 1, got {seq}")
        return f"{self.prefix}{seq}"

    def url(self, seq: int) -> str:
        """Full path-style URL of the object."""
        return f"{self.endpoint}/{self.bucket}/{self.key(seq)}"

    def random_seq(self, upper: int, rng: Optional[random.Random] = None) -> int:
        """Uniformly pick a sequence number in [1, upper]."""
        if upper < 1:
            raise ValueError("No objects have been uploaded yet")
        return (rng or random).randint(1, upper)

"""Baseline engine — persisted record of tasks already surfaced."""

from projectmonitor.engines.baseline.codec import decode, encode
from projectmonitor.engines.baseline.store import (
    BaselineHandle,
    BaselineStore,
    FileBaselineStore,
    MemoryBaselineStore,
)

__all__ = [
    "BaselineHandle",
    "BaselineStore",
    "FileBaselineStore",
    "MemoryBaselineStore",
    "decode",
    "encode",
]

"""Cycle engine — orchestrates one reconciliation cycle under the baseline lock."""

from projectmonitor.engines.cycle.runner import CycleResult, CycleRunner, Notifier, SnapshotFetcher

__all__ = ["CycleResult", "CycleRunner", "Notifier", "SnapshotFetcher"]

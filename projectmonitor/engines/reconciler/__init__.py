"""Reconciler engine — incremental diff of snapshots against the baseline."""

from projectmonitor.engines.reconciler.reconciler import reconcile

__all__ = ["reconcile"]

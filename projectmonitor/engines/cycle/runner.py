"""CycleRunner — one fetch → reconcile → notify → persist unit of work."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Protocol

import structlog

from projectmonitor.engines.baseline.store import BaselineStore
from projectmonitor.engines.reconciler import reconcile
from projectmonitor.exceptions import FetchError, NotifyError
from projectmonitor.models import Project

log = structlog.get_logger("projectmonitor.engine.cycle")


class SnapshotFetcher(Protocol):
    async def fetch(self) -> list[Project]: ...


class Notifier(Protocol):
    async def notify(self, projects: list[Project]) -> None: ...


@dataclass
class CycleResult:
    """Summary of a single reconciliation cycle."""

    projects: int = 0
    tasks: int = 0
    new_tasks: int = 0
    pruned_tasks: int = 0
    notified: bool = False
    baseline_written: bool = False


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CycleRunner:
    """Run reconciliation cycles against a baseline store.

    A task becomes part of the baseline only after the notification that
    surfaces it was sent, so a failed send is retried on the next cycle.
    """

    def __init__(
        self,
        store: BaselineStore,
        fetcher: SnapshotFetcher,
        notifier: Notifier,
        retention: timedelta,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._fetcher = fetcher
        self._notifier = notifier
        self._retention = retention
        self._clock = clock

    async def run_once(self) -> CycleResult:
        """Run one cycle.

        Raises :class:`LockError` if another cycle holds the baseline,
        :class:`FetchError` if the snapshot could not be fetched and
        :class:`NotifyError` if the notification failed.  In all three cases
        the stored baseline is left exactly as it was.
        """
        result = CycleResult()

        with self._store.acquire() as handle:
            known = self._store.read(handle)

            try:
                fresh = await self._fetcher.fetch()
            except Exception as exc:
                raise FetchError(f"snapshot fetch failed: {exc}") from exc

            result.projects = len(fresh)
            result.tasks = sum(len(p.tasks) for p in fresh)

            outcome = reconcile(known, fresh, self._retention, self._clock())
            result.new_tasks = outcome.new_count
            result.pruned_tasks = outcome.pruned_count

            if outcome.to_notify:
                try:
                    await self._notifier.notify(outcome.to_notify)
                except Exception as exc:
                    log.error(
                        "cycle.notify_failed",
                        new_tasks=result.new_tasks,
                        error=str(exc),
                    )
                    raise NotifyError(f"notification failed: {exc}") from exc
                result.notified = True

            if outcome.new_baseline != known:
                self._store.write(handle, outcome.new_baseline)
                result.baseline_written = True

        log.info(
            "cycle.completed",
            projects=result.projects,
            tasks=result.tasks,
            new_tasks=result.new_tasks,
            pruned_tasks=result.pruned_tasks,
            baseline_written=result.baseline_written,
        )
        return result

"""Scheduler — run reconciliation cycles on a fixed interval until stopped."""

from __future__ import annotations

import asyncio
import signal
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from projectmonitor.exceptions import LockError

logger = structlog.get_logger(__name__)


class PollLoop:
    """Cycle loop that sleeps *interval* seconds between runs.

    ``stop()`` only interrupts the sleep: a cycle that already started always
    runs to completion so the baseline is never left half-written.
    """

    def __init__(
        self,
        run_fn: Callable[[], Awaitable[Any]],
        interval: float,
        name: str = "reconcile",
    ) -> None:
        self.name = name
        self.run_fn = run_fn
        self.interval = interval
        self.cycles = 0
        self.failures = 0
        self._stop = asyncio.Event()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def stop(self) -> None:
        self._stop.set()

    async def run_cycle(self) -> bool:
        """Run one cycle, logging instead of raising.  Returns True on success."""
        self.cycles += 1
        try:
            await self.run_fn()
        except LockError as exc:
            self.failures += 1
            logger.warning("scheduler.cycle_skipped", loop=self.name, reason=str(exc))
            return False
        except Exception:
            self.failures += 1
            logger.exception("scheduler.cycle_failed", loop=self.name)
            return False
        return True

    async def loop(self) -> None:
        """Run cycles until :meth:`stop` is called."""
        logger.info("scheduler.started", loop=self.name, interval=self.interval)
        while not self._stop.is_set():
            await self.run_cycle()
            if self._stop.is_set():
                break
            logger.info("scheduler.waiting", loop=self.name, seconds=self.interval)
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
        logger.info("scheduler.stopped", loop=self.name, cycles=self.cycles)

    def install_signal_handlers(self) -> None:
        """Stop the loop on SIGINT/SIGTERM once the current cycle finishes."""
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self._on_signal, sig)

    def _on_signal(self, sig: signal.Signals) -> None:
        logger.info("scheduler.stop_requested", loop=self.name, signal=sig.name)
        self.stop()

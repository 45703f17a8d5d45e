"""Baseline storage — one JSON file guarded by an exclusive advisory lock."""

from __future__ import annotations

import fcntl
import os
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from pathlib import Path
from typing import IO

import structlog

from projectmonitor.engines.baseline.codec import decode, encode
from projectmonitor.exceptions import DeserializationError, LockError
from projectmonitor.models import Project

log = structlog.get_logger("projectmonitor.baseline")


class BaselineHandle:
    """Proof that the caller holds the store lock for the current cycle."""

    def __init__(self, store: BaselineStore, stream: IO[str] | None = None) -> None:
        self.store = store
        self.stream = stream
        self.released = False


class BaselineStore(ABC):
    """Owns the persisted baseline and the lock around it."""

    @abstractmethod
    def acquire(self) -> AbstractContextManager[BaselineHandle]:
        """Lock the baseline for one cycle; raise :class:`LockError` if taken."""
        ...

    @abstractmethod
    def _read_text(self, handle: BaselineHandle) -> str: ...

    @abstractmethod
    def _write_text(self, handle: BaselineHandle, text: str) -> None: ...

    def read(self, handle: BaselineHandle) -> list[Project]:
        """Return the stored baseline, or an empty one if it cannot be decoded."""
        self._check(handle)
        try:
            return decode(self._read_text(handle))
        except (DeserializationError, UnicodeDecodeError) as exc:
            log.warning("baseline.corrupt", store=repr(self), error=str(exc))
            return []

    def write(self, handle: BaselineHandle, baseline: list[Project]) -> None:
        """Replace the stored baseline while the lock is held."""
        self._check(handle)
        self._write_text(handle, encode(baseline))
        log.debug(
            "baseline.written",
            store=repr(self),
            projects=len(baseline),
            tasks=sum(len(p.tasks) for p in baseline),
        )

    def _check(self, handle: BaselineHandle) -> None:
        if handle.store is not self or handle.released:
            raise RuntimeError("baseline handle is not held on this store")


class FileBaselineStore(BaselineStore):
    """Baseline persisted as a JSON file, locked with ``flock(LOCK_EX | LOCK_NB)``.

    The lock is taken on the baseline file itself and held for the whole
    cycle, so a second process never observes a half-written file.
    """

    def __init__(self, path: str | Path = "persistence.json") -> None:
        self.path = Path(path)

    def __repr__(self) -> str:
        return f"FileBaselineStore({str(self.path)!r})"

    @contextmanager
    def acquire(self) -> Iterator[BaselineHandle]:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o644)
        stream = os.fdopen(fd, "r+", encoding="utf-8")
        try:
            try:
                fcntl.flock(stream.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
            except BlockingIOError as exc:
                raise LockError(f"baseline {self.path} is locked by another process") from exc

            handle = BaselineHandle(self, stream)
            try:
                yield handle
            finally:
                handle.released = True
                fcntl.flock(stream.fileno(), fcntl.LOCK_UN)
        finally:
            stream.close()

    def _read_text(self, handle: BaselineHandle) -> str:
        stream = self._stream(handle)
        stream.seek(0)
        return stream.read()

    def _write_text(self, handle: BaselineHandle, text: str) -> None:
        stream = self._stream(handle)
        stream.seek(0)
        stream.truncate()
        stream.write(text)
        stream.flush()
        os.fsync(stream.fileno())

    @staticmethod
    def _stream(handle: BaselineHandle) -> IO[str]:
        if handle.stream is None:
            raise RuntimeError("baseline handle has no open file")
        return handle.stream


class MemoryBaselineStore(BaselineStore):
    """In-process store with the same locking contract, for tests and dry runs."""

    def __init__(self, text: str = "") -> None:
        self.text = text
        self.writes = 0
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return "MemoryBaselineStore()"

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def acquire(self) -> Iterator[BaselineHandle]:
        if not self._lock.acquire(blocking=False):
            raise LockError("in-memory baseline is already locked")
        handle = BaselineHandle(self)
        try:
            yield handle
        finally:
            handle.released = True
            self._lock.release()

    def _read_text(self, handle: BaselineHandle) -> str:
        return self.text

    def _write_text(self, handle: BaselineHandle, text: str) -> None:
        self.text = text
        self.writes += 1

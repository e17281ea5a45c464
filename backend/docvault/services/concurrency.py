# Overview: Per-resource mutual exclusion for read-modify-write cycles on JSON files.

from __future__ import annotations

import fcntl
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

_LOCK_SUFFIX = ".lock"


class _ResourceLock:
    """
    Re-entrant lock for one named resource.

    The thread lock serializes callers inside this process. When the
    resource has a backing file, the outermost acquisition also takes an
    exclusive flock on a `.lock` sidecar, which serializes other worker
    processes on the same node. The sidecar is separate from the data file
    so the data file can still be replaced with os.replace while held.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._depth = 0
        self._handle = None

    def acquire(self, path: Optional[Path]) -> None:
        self._lock.acquire()
        if self._depth == 0 and path is not None:
            lock_path = path.with_name(path.name + _LOCK_SUFFIX)
            handle = None
            try:
                lock_path.parent.mkdir(parents=True, exist_ok=True)
                handle = lock_path.open("a+", encoding="utf-8")
                fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
            except BaseException:
                if handle is not None:
                    handle.close()
                self._lock.release()
                raise
            self._handle = handle
        self._depth += 1

    def release(self) -> None:
        self._depth -= 1
        if self._depth == 0 and self._handle is not None:
            handle, self._handle = self._handle, None
            try:
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
            finally:
                handle.close()
        self._lock.release()


_registry_guard = threading.Lock()
_locks: dict[str, _ResourceLock] = {}


def _lock_for(name: str) -> _ResourceLock:
    with _registry_guard:
        lock = _locks.get(name)
        if lock is None:
            lock = _locks[name] = _ResourceLock()
        return lock


@contextmanager
def resource_lock(name: str, path: Optional[Path] = None) -> Iterator[None]:
    """
    Hold the lock for `name` (and its file sidecar, if `path` is given).

    Lock order when several are needed: collection before counter.
    """
    lock = _lock_for(name)
    lock.acquire(path)
    try:
        yield
    finally:
        lock.release()

"""Advisory locking for stores shared between threads and processes.

Check-then-write sequences (a type check followed by a write) must run under
this lock so that two writers can never create a scalar and a hash with the
same name. The lock file lives next to the store root, not inside it, so that
FLUSHDB can remove the whole root while the lock is held.
"""
from __future__ import annotations
import logging
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from jkv_lib.exceptions import StorageIOError

try:
    import fcntl
except ImportError:  # pragma: no cover - non-POSIX platforms
    fcntl = None

logger = logging.getLogger(__name__)


class StoreLock:
    """Reentrant in-process lock combined with an exclusive `flock`."""

    def __init__(self, lock_path: str | Path) -> None:
        self.lock_path = Path(lock_path)
        self._mutex = threading.RLock()
        self._depth = 0
        self._fh = None

    @contextmanager
    def hold(self) -> Iterator[None]:
        with self._mutex:
            if self._depth == 0:
                self._acquire_file()
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
                if self._depth == 0:
                    self._release_file()

    def _acquire_file(self) -> None:
        try:
            os.makedirs(self.lock_path.parent, exist_ok=True)
            fh = open(self.lock_path, "a+")
        except OSError as exc:
            raise StorageIOError("lock", str(exc)) from exc
        if fcntl is not None:
            try:
                fcntl.flock(fh, fcntl.LOCK_EX)
            except OSError as exc:
                fh.close()
                raise StorageIOError("lock", str(exc)) from exc
        else:
            logger.debug("flock unavailable; %s only guards this process", self.lock_path)
        self._fh = fh

    def _release_file(self) -> None:
        fh, self._fh = self._fh, None
        if fh is None:
            return
        try:
            if fcntl is not None:
                fcntl.flock(fh, fcntl.LOCK_UN)
        finally:
            fh.close()

"""A readers-writer lock."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator, Optional


class RWLock:
    """Many concurrent readers or one writer; not reentrant."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer: Optional[int] = None

    def acquire_read(self, blocking: bool = True) -> bool:
        """Take a shared lock; without blocking, return False if a writer holds it."""
        with self._cond:
            if self._writer == threading.get_ident():
                raise RuntimeError("write lock already held by this thread")
            if not blocking and self._writer is not None:
                return False
            self._cond.wait_for(lambda: self._writer is None)
            self._readers += 1
            return True

    def acquire_write(self, blocking: bool = True) -> bool:
        """Take the exclusive lock; without blocking, return False if it is busy."""
        with self._cond:
            if self._writer == threading.get_ident():
                raise RuntimeError("write lock already held by this thread")

            def free() -> bool:
                return self._writer is None and self._readers == 0

            if not blocking and not free():
                return False
            self._cond.wait_for(free)
            self._writer = threading.get_ident()
            return True

    def release(self) -> None:
        """Release the write lock held by this thread, or one read lock."""
        with self._cond:
            if self._writer is not None:
                if self._writer != threading.get_ident():
                    raise RuntimeError("write lock held by another thread")
                self._writer = None
            elif self._readers > 0:
                self._readers -= 1
            else:
                raise RuntimeError("release of an unlocked RWLock")
            self._cond.notify_all()

    @contextmanager
    def read_locked(self) -> Iterator["RWLock"]:
        self.acquire_read()
        try:
            yield self
        finally:
            self.release()

    @contextmanager
    def write_locked(self) -> Iterator["RWLock"]:
        self.acquire_write()
        try:
            yield self
        finally:
            self.release()
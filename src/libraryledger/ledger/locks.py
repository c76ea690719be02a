"""Per-book mutual exclusion for ledger writes."""

import threading
import weakref
from contextlib import contextmanager
from typing import Generator

from .errors import StorageFailure


class BookLockRegistry:
    """Hands out one re-entrant lock per book id.

    Writes to different books proceed independently; writes to the same
    book are serialized. Locks are re-entrant so a lending operation can
    hold the book's lock across several store calls that also take it.

    A lock lives only while some caller holds a reference to it, so the
    registry does not grow with every book id ever requested. With
    ``single=True`` every book shares one lock; an in-memory database
    shares one connection between threads and needs writes serialized
    across books too.
    """

    def __init__(self, timeout: float = 10.0, single: bool = False):
        """Initialize the registry.

        Args:
            timeout: Seconds to wait for a book lock before giving up
            single: Use one lock for every book
        """
        self.timeout = timeout
        self.single = single
        self._guard = threading.Lock()
        self._shared = threading.RLock() if single else None
        self._locks: weakref.WeakValueDictionary = weakref.WeakValueDictionary()

    def lock_for(self, book_id: int):
        """Get (or create) the lock for a book."""
        if self._shared is not None:
            return self._shared
        with self._guard:
            lock = self._locks.get(book_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[book_id] = lock
            return lock

    @contextmanager
    def hold(self, book_id: int) -> Generator[None, None, None]:
        """Hold the book's lock for the duration of the block.

        Raises:
            StorageFailure: If the lock is not acquired within the timeout
        """
        lock = self.lock_for(book_id)
        if not lock.acquire(timeout=self.timeout):
            raise StorageFailure(f"Timed out waiting for lock on book {book_id}")
        try:
            yield
        finally:
            lock.release()

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

# Overview: Locking helpers shared by the ledger store.

from __future__ import annotations

import threading
from contextlib import contextmanager

from ..errors import TransactionFailed


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    The process-wide WriterLock covers SQLite.
    """
    return query.with_for_update()


class WriterLock:
    """
    Process-wide mutex serialising ledger writers with a bounded wait.

    Not re-entrant: a thread that already holds the lock and asks again waits
    out the timeout and gets TransactionFailed instead of nesting transactions.
    """

    def __init__(self, timeout: float = 5.0):
        self.timeout = timeout
        self._lock = threading.Lock()

    def acquire(self) -> None:
        if not self._lock.acquire(timeout=self.timeout):
            raise TransactionFailed(
                "Timed out waiting for the stock ledger",
                details={"timeout_seconds": self.timeout},
            )

    def release(self) -> None:
        self._lock.release()

    def locked(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def held(self):
        self.acquire()
        try:
            yield
        finally:
            self.release()

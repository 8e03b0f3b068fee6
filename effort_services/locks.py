"""
effort_services.locks -- In-process exclusion per person-month.

Responsibility:
    Hand out one lock per PersonMonth so at most one overload resolution
    runs for a given (person, year, month) inside this process at a time.

Architecture position:
    Services -- stateful orchestration.  Cross-process exclusion is the SQL
    ledger's job (FOR UPDATE on the effort rows); this registry only covers
    threads sharing one process.

Invariants enforced:
    - An entry lives only while some caller holds or waits for its key, so
      a long-running process does not accumulate one lock per month seen.

Failure modes:
    - ResolutionInProgressError when ``hold(key, blocking=False)`` finds the
      key already held, or a blocking hold times out.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from effort_kernel.domain.values import PersonMonth
from effort_kernel.exceptions import ResolutionInProgressError
from effort_kernel.logging_config import get_logger

logger = get_logger("services.locks")


class _KeyLock:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class PersonMonthLocks:
    """
    Registry of per-PersonMonth locks.

    Contract:
        ``hold(key)`` is a context manager.  Callers that hold or wait for
        the same key share one lock; the entry is dropped once the last of
        them leaves.  Whether to wait is the caller's decision, passed per
        call.
    """

    def __init__(self, timeout: float | None = None):
        self.timeout = timeout
        self._guard = threading.Lock()
        self._entries: dict[PersonMonth, _KeyLock] = {}

    def is_held(self, key: PersonMonth) -> bool:
        with self._guard:
            entry = self._entries.get(key)
        return entry is not None and entry.lock.locked()

    def active_keys(self) -> int:
        """Number of keys currently held or waited for."""
        with self._guard:
            return len(self._entries)

    @contextmanager
    def hold(self, key: PersonMonth, blocking: bool = True) -> Iterator[None]:
        """Hold the lock of ``key`` for the body of the ``with`` block.

        Raises:
            ResolutionInProgressError: If the lock cannot be acquired
                without blocking, or within ``timeout``.
        """
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = _KeyLock()
                self._entries[key] = entry
            entry.users += 1

        try:
            if not blocking:
                acquired = entry.lock.acquire(blocking=False)
            elif self.timeout is not None:
                acquired = entry.lock.acquire(timeout=self.timeout)
            else:
                acquired = entry.lock.acquire()

            if not acquired:
                logger.warning("resolution_in_progress", extra={
                    "person_id": str(key.person_id),
                    "period": key.label,
                })
                raise ResolutionInProgressError(str(key.person_id), key.label)

            try:
                yield
            finally:
                entry.lock.release()
        finally:
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._entries[key]

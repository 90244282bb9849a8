from __future__ import annotations

from contextlib import contextmanager
import logging
import threading
from typing import Iterator, Optional
import weakref

logger = logging.getLogger(__name__)


class TutorLockRegistry:
    """
    One mutex per tutor, so a tutor's check-then-insert runs one at a time
    inside this process. Cross-process exclusion comes from the database
    (tutor row lock on PostgreSQL, the write lock on SQLite, plus the
    exclusion constraint on PostgreSQL).

    Locks are held weakly: once no caller holds or waits on a tutor's lock
    it is dropped, so the registry only tracks tutors with bookings in flight.
    """

    def __init__(self, timeout_s: Optional[float] = 30.0) -> None:
        self._locks: "weakref.WeakValueDictionary[int, threading.Lock]" = weakref.WeakValueDictionary()
        self._guard = threading.Lock()
        self.timeout_s = timeout_s

    def _lock_for(self, tutor_id: int) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(tutor_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[tutor_id] = lock
            return lock

    def __len__(self) -> int:
        return len(self._locks)

    @contextmanager
    def hold(self, tutor_id: int) -> Iterator[None]:
        # The local reference keeps the lock alive while held or waited on.
        lock = self._lock_for(tutor_id)
        timeout = -1 if self.timeout_s is None else self.timeout_s
        if not lock.acquire(timeout=timeout):
            logger.warning("tutor_booking_lock_timeout tutor_id=%s", tutor_id)
            raise TimeoutError(f"Timed out waiting for booking lock of tutor {tutor_id}")
        try:
            yield
        finally:
            lock.release()


# Shared by every request handler in the process.
tutor_locks = TutorLockRegistry()

"""Named write locks around a caller-supplied critical section.

Two lock namespaces are used by the egress store core:

- ``egress-store-record-{storeId}`` serialises mutation of one store record;
- ``bucket-policy-{bucket}`` serialises read-modify-write of a shared
  bucket policy document.

A caller never holds both at once.

Example
-------
>>> coordinator = InProcessLockCoordinator(timeout_seconds=5)
>>> coordinator.with_lock(record_lock_id("ws-1"), lambda: "done")
'done'
"""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, Protocol, TypeVar

from aumos_egress_store.errors import LockAcquisitionError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def record_lock_id(store_id: str) -> str:
    """Lock name guarding the record of one egress store."""
    return f"egress-store-record-{store_id}"


def policy_lock_id(bucket: str) -> str:
    """Lock name guarding the policy document of a shared bucket."""
    return f"bucket-policy-{bucket}"


class LockCoordinator(Protocol):
    """Runs a critical section while holding a named write lock."""

    def with_lock(self, lock_id: str, critical_section: Callable[[], T]) -> T:
        ...


class InProcessLockCoordinator:
    """Thread-safe named lock coordinator for a single process.

    Each lock name maps to a lazily created :class:`threading.RLock`, so a
    thread that already holds a lock may re-enter it.  Acquisition waits at
    most ``timeout_seconds``; a timeout raises
    :class:`~aumos_egress_store.errors.LockAcquisitionError` and is never
    retried.

    Parameters
    ----------
    timeout_seconds:
        Maximum time to wait for a lock.  ``None`` waits forever.
    """

    def __init__(self, timeout_seconds: float | None = 30.0) -> None:
        self._timeout = timeout_seconds
        self._locks: dict[str, threading.RLock] = {}
        self._registry_lock = threading.Lock()

    def with_lock(self, lock_id: str, critical_section: Callable[[], T]) -> T:
        """Run ``critical_section`` while holding ``lock_id``.

        Returns
        -------
        T
            Whatever ``critical_section`` returns.

        Raises
        ------
        LockAcquisitionError
            When the lock is not acquired within the timeout.
        """
        with self.hold(lock_id):
            return critical_section()

    @contextmanager
    def hold(self, lock_id: str) -> Iterator[None]:
        """Context manager form of :meth:`with_lock`."""
        lock = self._lock_for(lock_id)
        timeout = -1 if self._timeout is None else self._timeout
        if not lock.acquire(timeout=timeout):
            logger.warning("Timed out acquiring lock %s after %ss", lock_id, self._timeout)
            raise LockAcquisitionError(lock_id)
        try:
            yield
        finally:
            lock.release()

    def known_locks(self) -> list[str]:
        """Return the names of all locks created so far."""
        with self._registry_lock:
            return sorted(self._locks)

    def _lock_for(self, lock_id: str) -> threading.RLock:
        with self._registry_lock:
            lock = self._locks.get(lock_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[lock_id] = lock
            return lock

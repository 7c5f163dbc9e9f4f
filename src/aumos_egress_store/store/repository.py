"""Egress store records over a keyed record store.

Writes are conditional (create-if-absent, update-if-exists) and each one
runs under the record's named lock.  Callers that read a record, check it
and write it back wrap the whole cycle in :meth:`EgressStoreRepository.locked`;
the lock is re-entrant, so the inner write re-acquires it.  Plain reads
never lock.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, TypeVar

from aumos_egress_store.errors import (
    EgressStoreError,
    InternalInvariantViolationError,
    NotFoundError,
    StorageIOError,
)
from aumos_egress_store.locking.coordinator import LockCoordinator, record_lock_id
from aumos_egress_store.store.records import EgressStoreRecord

T = TypeVar("T")

if TYPE_CHECKING:
    from aumos_egress_store.backends.protocols import RecordStore

logger = logging.getLogger(__name__)


class EgressStoreRepository:
    """Conditional, lock-guarded persistence of :class:`EgressStoreRecord`.

    Parameters
    ----------
    record_store:
        The durable key-value store.
    lock_coordinator:
        Provides the per-record write lock.
    """

    def __init__(self, record_store: "RecordStore", lock_coordinator: LockCoordinator) -> None:
        self._records = record_store
        self._locks = lock_coordinator

    # ------------------------------------------------------------------
    # Write API
    # ------------------------------------------------------------------

    def locked(self, store_id: str, critical_section: Callable[[], T]) -> T:
        """Run ``critical_section`` while holding the record lock of ``store_id``."""
        return self._locks.with_lock(record_lock_id(store_id), critical_section)

    def create(self, record: EgressStoreRecord) -> None:
        """Persist a new record.

        Raises
        ------
        AlreadyExistsError
            When a record with the same id exists.
        """
        def write() -> None:
            try:
                self._records.create_if_absent(record.id, record.to_item())
            except EgressStoreError:
                raise
            except Exception as exc:
                raise StorageIOError(f"Egress Store with id \"{record.id}\" got creation error") from exc

        self._locks.with_lock(record_lock_id(record.id), write)
        logger.info("Created egress store record %s", record.id)

    def update(self, record: EgressStoreRecord) -> None:
        """Replace an existing record.

        Raises
        ------
        NotFoundError
            When no record with that id exists.
        """
        def write() -> None:
            try:
                self._records.update_if_exists(record.id, record.to_item())
            except EgressStoreError:
                raise
            except Exception as exc:
                raise StorageIOError(f"Egress Store with id \"{record.id}\" got updating error") from exc

        self._locks.with_lock(record_lock_id(record.id), write)
        logger.info("Updated egress store record %s (status=%s, ver=%d)", record.id, record.status.value, record.ver)

    # ------------------------------------------------------------------
    # Read API
    # ------------------------------------------------------------------

    def find_by_workspace(self, workspace_id: str) -> EgressStoreRecord | None:
        """Return the workspace's record, or ``None``.

        Raises
        ------
        NotFoundError
            When the record store cannot be scanned.
        InternalInvariantViolationError
            When more than one record belongs to the workspace.
        """
        matches = [record for record in self.list_all() if record.workspace_id == workspace_id]
        if not matches:
            return None
        if len(matches) > 1:
            raise InternalInvariantViolationError(
                f"Error in getting egress store info: {len(matches)} records found for workspace {workspace_id}"
            )
        return matches[0]

    def list_all(self) -> list[EgressStoreRecord]:
        try:
            items = list(self._records.scan_all())
            return [EgressStoreRecord.from_item(item) for item in items]
        except (KeyError, ValueError) as exc:
            raise InternalInvariantViolationError(f"Malformed egress store record: {exc}") from exc
        except Exception as exc:
            raise NotFoundError(f"Error in fetching egress store info: {exc}") from exc

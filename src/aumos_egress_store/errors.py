"""Error taxonomy for egress store operations.

Every failure surfaced to a caller is an :class:`EgressStoreError` carrying a
stable :class:`ErrorKind` and a human-readable message.  Collaborator
exceptions are wrapped at the seam that calls them and chained with
``raise ... from exc``.

Example
-------
>>> try:
...     raise ConflictError("Egress store ws-1 is still processing.")
... except EgressStoreError as exc:
...     exc.kind
<ErrorKind.CONFLICT: 'conflict'>
"""
from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Stable identifiers for each failure class."""

    FEATURE_DISABLED = "feature_disabled"
    FORBIDDEN = "forbidden"
    ALREADY_EXISTS = "already_exists"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INVALID_STATE = "invalid_state"
    VALIDATION_FAILED = "validation_failed"
    STORAGE_IO_FAILED = "storage_io_failed"
    POLICY_UPDATE_FAILED = "policy_update_failed"
    SNAPSHOT_FAILED = "snapshot_failed"
    PUBLISH_FAILED = "publish_failed"
    LOCK_ACQUISITION_FAILED = "lock_acquisition_failed"
    INTERNAL_INVARIANT_VIOLATION = "internal_invariant_violation"


class EgressStoreError(Exception):
    """Base class for all egress store failures.

    Attributes
    ----------
    kind:
        Stable error identifier, suitable for mapping to transport status
        codes.
    message:
        Human-readable explanation.
    """

    kind: ErrorKind = ErrorKind.INTERNAL_INVARIANT_VIOLATION

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, str]:
        """Return a serialisable ``{"kind", "message"}`` mapping."""
        return {"kind": self.kind.value, "message": self.message}


class FeatureDisabledError(EgressStoreError):
    kind = ErrorKind.FEATURE_DISABLED


class ForbiddenError(EgressStoreError):
    kind = ErrorKind.FORBIDDEN


class AlreadyExistsError(EgressStoreError):
    kind = ErrorKind.ALREADY_EXISTS


class NotFoundError(EgressStoreError):
    kind = ErrorKind.NOT_FOUND


class ConflictError(EgressStoreError):
    """Raised for a lifecycle transition the current status does not allow."""

    kind = ErrorKind.CONFLICT


class InvalidStateError(EgressStoreError):
    """Raised when a store is not eligible for an egress request."""

    kind = ErrorKind.INVALID_STATE


class ValidationFailedError(EgressStoreError):
    """Raised when caller input fails schema validation.

    Attributes
    ----------
    errors:
        Per-field error descriptions from the validator.
    """

    kind = ErrorKind.VALIDATION_FAILED

    def __init__(self, message: str, errors: list[dict[str, object]] | None = None) -> None:
        self.errors: list[dict[str, object]] = errors or []
        super().__init__(message)


class StorageIOError(EgressStoreError):
    kind = ErrorKind.STORAGE_IO_FAILED


class PolicyUpdateFailedError(EgressStoreError):
    kind = ErrorKind.POLICY_UPDATE_FAILED


class SnapshotFailedError(EgressStoreError):
    kind = ErrorKind.SNAPSHOT_FAILED


class PublishFailedError(EgressStoreError):
    kind = ErrorKind.PUBLISH_FAILED


class LockAcquisitionError(EgressStoreError):
    """Raised when a named lock cannot be acquired within its timeout.

    Attributes
    ----------
    lock_id:
        The name of the lock that could not be acquired.
    """

    kind = ErrorKind.LOCK_ACQUISITION_FAILED

    def __init__(self, lock_id: str, message: str | None = None) -> None:
        self.lock_id = lock_id
        super().__init__(message or f"Unable to acquire lock '{lock_id}'.")


class InternalInvariantViolationError(EgressStoreError):
    kind = ErrorKind.INTERNAL_INVARIANT_VIOLATION

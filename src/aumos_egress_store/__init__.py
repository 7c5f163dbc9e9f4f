"""aumos-egress-store — Egress store lifecycle and shared bucket policy reconciliation.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import aumos_egress_store as egress
>>> egress.__version__
'0.1.0'
>>> config = egress.ConfigLoader().load_string(
...     "enabled: true\\nstore_bucket_name: store\\nnotification_bucket_name: notify"
... )
>>> components = egress.build_lifecycle(config)
>>> components.lifecycle.get_store_info("ws-1") is None
True
"""
from __future__ import annotations

__version__: str = "0.1.0"

from aumos_egress_store.context import RequestContext
from aumos_egress_store.convenience import (
    LifecycleComponents,
    build_aws_lifecycle,
    build_lifecycle,
)

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------
from aumos_egress_store.errors import (
    AlreadyExistsError,
    ConflictError,
    EgressStoreError,
    ErrorKind,
    FeatureDisabledError,
    ForbiddenError,
    InternalInvariantViolationError,
    InvalidStateError,
    LockAcquisitionError,
    NotFoundError,
    PolicyUpdateFailedError,
    PublishFailedError,
    SnapshotFailedError,
    StorageIOError,
    ValidationFailedError,
)

# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------
from aumos_egress_store.store.lifecycle import EgressStoreLifecycle
from aumos_egress_store.store.records import (
    EgressStoreDescriptor,
    EgressStoreRecord,
    EgressStoreStatus,
    ObjectEntry,
    ObjectListing,
    StorageLocation,
    format_size,
)
from aumos_egress_store.store.repository import EgressStoreRepository

# ---------------------------------------------------------------------------
# Policies
# ---------------------------------------------------------------------------
from aumos_egress_store.policies.reconciler import PolicyReconciler
from aumos_egress_store.policies.statements import (
    PermissionKind,
    PolicyDocument,
    PolicyStatement,
    StatementTarget,
)

# ---------------------------------------------------------------------------
# Locking, notification, audit, config
# ---------------------------------------------------------------------------
from aumos_egress_store.locking.coordinator import InProcessLockCoordinator, LockCoordinator
from aumos_egress_store.notification.snapshot import ManifestRef, SnapshotNotifier
from aumos_egress_store.audit.logger import AuditLogger
from aumos_egress_store.audit.writer import AuditWriter
from aumos_egress_store.config.loader import ConfigLoader, EgressStoreConfig
from aumos_egress_store.validation.workspace import WorkspaceInput, WorkspaceValidator

__all__ = [
    "__version__",
    "LifecycleComponents",
    "RequestContext",
    "build_aws_lifecycle",
    "build_lifecycle",
    # Errors
    "AlreadyExistsError",
    "ConflictError",
    "EgressStoreError",
    "ErrorKind",
    "FeatureDisabledError",
    "ForbiddenError",
    "InternalInvariantViolationError",
    "InvalidStateError",
    "LockAcquisitionError",
    "NotFoundError",
    "PolicyUpdateFailedError",
    "PublishFailedError",
    "SnapshotFailedError",
    "StorageIOError",
    "ValidationFailedError",
    # Lifecycle
    "EgressStoreDescriptor",
    "EgressStoreLifecycle",
    "EgressStoreRecord",
    "EgressStoreRepository",
    "EgressStoreStatus",
    "ObjectEntry",
    "ObjectListing",
    "StorageLocation",
    "format_size",
    # Policies
    "PermissionKind",
    "PolicyDocument",
    "PolicyReconciler",
    "PolicyStatement",
    "StatementTarget",
    # Locking, notification, audit, config
    "AuditLogger",
    "AuditWriter",
    "ConfigLoader",
    "EgressStoreConfig",
    "InProcessLockCoordinator",
    "LockCoordinator",
    "ManifestRef",
    "SnapshotNotifier",
    "WorkspaceInput",
    "WorkspaceValidator",
]

"""Egress store lifecycle.

An egress store moves through::

    CREATED -> PENDING -> PROCESSING -> PROCESSED -> TERMINATED
       |                                                ^
       +---------------- (never touched) ---------------+

- ``create`` writes a CREATED record and grants the workspace's member
  account access to the store prefix.
- ``enable_submission`` opens a store for an egress request.
- ``submit`` snapshots the store's objects, marks the store PENDING and
  publishes an egress request event.
- PROCESSING and PROCESSED are set by the downstream export process.
- ``terminate`` clears and closes a store that is untouched or processed,
  and revokes the member account's access.

Each transition reads, checks and writes its record under the record lock;
policy writes take the bucket policy lock inside
:class:`~aumos_egress_store.policies.reconciler.PolicyReconciler`.
The record lock is always released before the policy lock is requested.
Nothing is rolled back when a later step fails.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable

from aumos_egress_store.errors import (
    AlreadyExistsError,
    ConflictError,
    FeatureDisabledError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    StorageIOError,
)
from aumos_egress_store.store.records import (
    EgressStoreDescriptor,
    EgressStoreRecord,
    EgressStoreStatus,
    ObjectEntry,
    ObjectListing,
    StorageLocation,
    format_size,
)
from aumos_egress_store.validation.workspace import SchemaValidator, WorkspaceValidator

if TYPE_CHECKING:
    from aumos_egress_store.backends.protocols import (
        AccountResolver,
        Auditor,
        KeyManagement,
        ObjectStorage,
    )
    from aumos_egress_store.config.loader import EgressStoreConfig
    from aumos_egress_store.context import RequestContext
    from aumos_egress_store.notification.snapshot import ManifestRef, SnapshotNotifier
    from aumos_egress_store.policies.reconciler import PolicyReconciler
    from aumos_egress_store.store.repository import EgressStoreRepository

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


class EgressStoreLifecycle:
    """Caller-facing egress store operations.

    Parameters
    ----------
    config:
        Feature flag, bucket names, key alias and topic.
    repository:
        Lock-guarded record persistence.
    object_storage:
        Holds the store prefixes.
    reconciler:
        Grants and revokes member account access in the bucket policy.
    snapshotter:
        Builds manifests and publishes egress request events.
    key_management:
        Resolves the configured key alias to a key ARN.
    account_resolver:
        Finds the member account linked to a workspace.
    auditor:
        Fire-and-forget audit sink.
    validator:
        Validates create input; defaults to :class:`WorkspaceValidator`.
    clock:
        Returns the current UTC time; injectable for tests.
    """

    def __init__(
        self,
        config: "EgressStoreConfig",
        repository: "EgressStoreRepository",
        object_storage: "ObjectStorage",
        reconciler: "PolicyReconciler",
        snapshotter: "SnapshotNotifier",
        key_management: "KeyManagement",
        account_resolver: "AccountResolver",
        auditor: "Auditor",
        validator: SchemaValidator | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._config = config
        self._repository = repository
        self._storage = object_storage
        self._reconciler = reconciler
        self._snapshotter = snapshotter
        self._keys = key_management
        self._accounts = account_resolver
        self._auditor = auditor
        self._validator = validator or WorkspaceValidator()
        self._clock = clock or _utc_now

    # ------------------------------------------------------------------
    # Read API
    # ------------------------------------------------------------------

    def get_store_info(self, workspace_id: str) -> EgressStoreRecord | None:
        """Return the workspace's egress store record, or ``None``."""
        return self._repository.find_by_workspace(workspace_id)

    def list_objects(self, request_context: "RequestContext", workspace_id: str) -> ObjectListing:
        """List the oldest objects in a workspace's egress store.

        Objects are sorted by last-modified time, ascending, and capped at
        ``config.listing_limit``.  Keys are shown relative to the store
        prefix and sizes in human-readable units.

        Raises
        ------
        FeatureDisabledError, NotFoundError, ForbiddenError, StorageIOError
        """
        self._require_enabled("list objects in egress store")
        record = self._require_record(workspace_id)
        self._require_manager(
            request_context,
            record,
            "You are not authorized to perform egress store list. "
            "Please contact your administrator for more information.",
        )

        location = record.storage_location
        try:
            stored = self._storage.list_all(location.bucket, location.prefix)
        except Exception as exc:
            raise StorageIOError(f"Error in listing egress store: {location.arn}") from exc

        entries: list[ObjectEntry] = []
        for obj in sorted(stored, key=lambda o: o.last_modified):
            parts = obj.key.split("/")
            # The prefix placeholder itself has nothing after the first "/".
            if len(parts) < 2 or not parts[1]:
                continue
            entries.append(
                ObjectEntry(
                    key=parts[1],
                    size=format_size(obj.size),
                    last_modified=obj.last_modified,
                    project_id=record.project_id,
                    workspace_id=record.workspace_id,
                )
            )
        return ObjectListing(
            objects=entries[: self._config.listing_limit],
            is_able_to_submit_egress_request=record.is_able_to_submit_egress_request,
        )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def create(self, request_context: "RequestContext", workspace: object) -> EgressStoreDescriptor:
        """Create the egress store of a workspace and grant its member account.

        The existence check, the prefix placeholder and the record write run
        under the record lock, so a duplicate create fails before it touches
        the existing store's prefix.

        Parameters
        ----------
        request_context:
            The caller.
        workspace:
            Mapping or :class:`~aumos_egress_store.validation.workspace.WorkspaceInput`
            with ``id``, ``name``, ``projectId`` and ``createdBy``.

        Returns
        -------
        EgressStoreDescriptor
            The reachable store.

        Raises
        ------
        FeatureDisabledError, ValidationFailedError, StorageIOError,
        AlreadyExistsError, PolicyUpdateFailedError, LockAcquisitionError
        """
        self._require_enabled("create egress store")
        validated = self._validator.ensure_valid(workspace)

        bucket = str(self._config.store_bucket_name)
        prefix = f"{validated.id}/"

        def critical_section() -> EgressStoreRecord:
            if self.get_store_info(validated.id) is not None:
                raise AlreadyExistsError(f"Egress Store with id \"{validated.id}\" already exists")
            try:
                self._storage.create_prefix(bucket, prefix)
            except Exception as exc:
                raise StorageIOError(f"Error in creating egress store: {prefix} in bucket: {bucket}") from exc

            now = self._timestamp()
            record = EgressStoreRecord(
                id=validated.id,
                egress_store_name=f"{validated.name}-egress-store",
                created_at=now,
                created_by=validated.created_by,
                updated_at=now,
                updated_by=request_context.uid,
                workspace_id=validated.id,
                project_id=validated.project_id,
                storage_location=StorageLocation(bucket=bucket, prefix=prefix),
            )
            self._repository.create(record)
            return record

        record = self._repository.locked(validated.id, critical_section)

        descriptor = EgressStoreDescriptor.for_record(record, kms_arn=self._resolve_kms_arn())
        account_id = self._accounts.member_account_id(request_context, validated.id)
        self._reconciler.grant(descriptor, account_id, request_context)
        logger.info("Egress store %s created for workspace %s", descriptor.id, validated.id)
        return descriptor

    def terminate(self, request_context: "RequestContext", workspace_id: str) -> EgressStoreRecord | None:
        """Terminate a workspace's egress store.

        Untouched (CREATED and never opened) and PROCESSED stores are
        cleared, marked TERMINATED and lose their bucket policy grant.  A
        PROCESSING store is rejected.  Stores in any other status are
        returned unchanged.

        Returns
        -------
        EgressStoreRecord | None
            The (possibly updated) record; ``None`` when the workspace has
            no egress store.

        Raises
        ------
        FeatureDisabledError, ForbiddenError, ConflictError, StorageIOError,
        NotFoundError, PolicyUpdateFailedError, LockAcquisitionError
        """
        self._require_enabled("terminate egress store")

        def critical_section() -> tuple[EgressStoreRecord | None, bool]:
            record = self.get_store_info(workspace_id)
            if record is None:
                return None, False
            self._require_manager(
                request_context,
                record,
                "You are not authorized to terminate the egress store. Please contact your administrator.",
            )

            if record.status == EgressStoreStatus.PROCESSING:
                raise ConflictError(
                    f"Egress store: {record.id} is still in processing. The egress store is not terminated "
                    "and the workspace can not be terminated before egress request is processed."
                )
            if record.status != EgressStoreStatus.PROCESSED and not record.is_untouched:
                logger.info(
                    "Egress store %s left unchanged by terminate (status=%s, submittable=%s)",
                    record.id,
                    record.status.value,
                    record.is_able_to_submit_egress_request,
                )
                return record, False

            location = record.storage_location
            try:
                self._storage.clear_prefix(location.bucket, location.prefix)
            except Exception as exc:
                raise StorageIOError(
                    f"Error in deleting egress store: {location.prefix} in bucket: {location.bucket}"
                ) from exc

            record.status = EgressStoreStatus.TERMINATED
            record.updated_by = request_context.uid
            record.updated_at = self._timestamp()
            record.is_able_to_submit_egress_request = False
            self._repository.update(record)
            return record, True

        record, terminated = self._repository.locked(workspace_id, critical_section)
        if record is None:
            self._audit(
                request_context,
                {"action": "terminated-egress-store", "body": "No egress store found to be terminated"},
            )
            return None
        if not terminated:
            return record

        descriptor = EgressStoreDescriptor.for_record(record)
        account_id = self._accounts.member_account_id(request_context, workspace_id)
        self._reconciler.revoke(descriptor, account_id, request_context)
        self._audit(request_context, {"action": "terminated-egress-store", "body": descriptor.to_dict()})
        return record

    def submit(self, request_context: "RequestContext", workspace_id: str) -> dict[str, object]:
        """Submit the store's current contents as an egress request.

        The eligibility check, the manifest and the record update run under
        the record lock, so of two concurrent submits only one sees the store
        open.  The event is published after the lock is released.

        Returns
        -------
        dict[str, object]
            The published event payload.

        Raises
        ------
        FeatureDisabledError, NotFoundError, InvalidStateError,
        ForbiddenError, SnapshotFailedError, PublishFailedError,
        LockAcquisitionError
        """
        self._require_enabled("submit egress request")

        def critical_section() -> tuple[EgressStoreRecord, "ManifestRef"]:
            record = self._require_record(workspace_id)
            if record.status == EgressStoreStatus.TERMINATED:
                raise InvalidStateError(f"Egress Store: {record.id} is terminated and can not be submitted.")
            if not record.is_able_to_submit_egress_request:
                raise InvalidStateError(
                    f"Egress Store: {record.id} is not ready for egress. "
                    "Please contact your administrator for more information."
                )
            self._require_manager(
                request_context,
                record,
                "You are not authorized to submit egress request. "
                "Please contact your administrator for more information.",
            )

            manifest = self._snapshotter.build_manifest(record)

            if record.status != EgressStoreStatus.PENDING:
                record.status = EgressStoreStatus.PENDING
            record.updated_by = request_context.uid
            record.updated_at = self._timestamp()
            record.is_able_to_submit_egress_request = False
            record.object_manifest_location = manifest.arn
            record.ver += 1
            self._repository.update(record)
            return record, manifest

        record, manifest = self._repository.locked(workspace_id, critical_section)

        payload = self._snapshotter.publish(record, manifest)
        self._audit(request_context, {"action": "trigger-egress-notification-process", "body": payload})
        return payload

    def enable_submission(self, record: EgressStoreRecord) -> EgressStoreRecord:
        """Open the store of ``record`` for a new egress request and persist it.

        The stored record is re-read under the record lock; only the flag
        changes.

        Raises
        ------
        NotFoundError
            When the store no longer exists.
        ConflictError
            When the store is TERMINATED.
        """
        def critical_section() -> EgressStoreRecord:
            current = self._require_record(record.workspace_id)
            if current.status == EgressStoreStatus.TERMINATED:
                raise ConflictError(f"Egress Store: {current.id} is terminated and can not be reopened.")
            current.is_able_to_submit_egress_request = True
            self._repository.update(current)
            return current

        return self._repository.locked(record.workspace_id, critical_section)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_enabled(self, operation: str) -> None:
        if not self._config.enabled:
            raise FeatureDisabledError(f"Unable to {operation} since this feature is disabled")

    def _require_record(self, workspace_id: str) -> EgressStoreRecord:
        record = self.get_store_info(workspace_id)
        if record is None:
            raise NotFoundError(f"No egress store found for workspace {workspace_id}")
        return record

    def _require_manager(
        self,
        request_context: "RequestContext",
        record: EgressStoreRecord,
        message: str,
    ) -> None:
        if not request_context.can_manage(record.created_by):
            raise ForbiddenError(message)

    def _resolve_kms_arn(self) -> str | None:
        alias = self._config.kms_key_alias_arn
        if not alias:
            return None
        try:
            return self._keys.resolve_key_arn(alias)
        except Exception as exc:
            raise StorageIOError(f"Unable to resolve key ARN for {alias}") from exc

    def _timestamp(self) -> str:
        return self._clock().isoformat()

    def _audit(self, request_context: "RequestContext", event: dict[str, object]) -> None:
        try:
            self._auditor.record_async(request_context, event)
        except Exception:
            logger.warning("Audit of %s failed", event.get("action"), exc_info=True)

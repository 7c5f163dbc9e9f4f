"""Wiring helpers that assemble the egress store core from a configuration.

Example
-------
::

    from aumos_egress_store import ConfigLoader, build_lifecycle
    config = ConfigLoader().load(Path("egress.yaml"))
    components = build_lifecycle(config)
    components.lifecycle.get_store_info("ws-1")

"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable

from aumos_egress_store.audit.logger import AuditLogger
from aumos_egress_store.audit.writer import AuditWriter
from aumos_egress_store.backends.memory import (
    InMemoryEventPublisher,
    InMemoryObjectStorage,
    InMemoryPolicyStore,
    InMemoryRecordStore,
    StaticAccountResolver,
    StaticKeyManagement,
)
from aumos_egress_store.locking.coordinator import InProcessLockCoordinator
from aumos_egress_store.notification.snapshot import SnapshotNotifier
from aumos_egress_store.policies.reconciler import PolicyReconciler
from aumos_egress_store.store.lifecycle import EgressStoreLifecycle
from aumos_egress_store.store.repository import EgressStoreRepository

if TYPE_CHECKING:
    from aumos_egress_store.backends.protocols import (
        AccountResolver,
        Auditor,
        EventPublisher,
        KeyManagement,
        ObjectStorage,
        PolicyStore,
        RecordStore,
    )
    from aumos_egress_store.config.loader import EgressStoreConfig
    from aumos_egress_store.locking.coordinator import LockCoordinator


@dataclass
class LifecycleComponents:
    """The assembled core and the collaborators it was built from."""

    lifecycle: EgressStoreLifecycle
    reconciler: PolicyReconciler
    repository: EgressStoreRepository
    snapshotter: SnapshotNotifier
    records: Any
    objects: Any
    policies: Any
    events: Any
    locks: Any
    auditor: Any


def build_lifecycle(
    config: "EgressStoreConfig",
    records: "RecordStore | None" = None,
    objects: "ObjectStorage | None" = None,
    policies: "PolicyStore | None" = None,
    keys: "KeyManagement | None" = None,
    events: "EventPublisher | None" = None,
    accounts: "AccountResolver | None" = None,
    auditor: "Auditor | None" = None,
    locks: "LockCoordinator | None" = None,
    clock: Callable[[], datetime] | None = None,
) -> LifecycleComponents:
    """Assemble an :class:`EgressStoreLifecycle`.

    Any collaborator left as ``None`` falls back to its in-memory
    implementation; the account resolver falls back to
    ``config.member_accounts`` and the auditor to a JSONL
    :class:`AuditWriter` at ``config.audit.log_path``.
    """
    records = records if records is not None else InMemoryRecordStore()
    objects = objects if objects is not None else InMemoryObjectStorage()
    policies = policies if policies is not None else InMemoryPolicyStore()
    keys = keys if keys is not None else StaticKeyManagement()
    events = events if events is not None else InMemoryEventPublisher()
    accounts = accounts if accounts is not None else StaticAccountResolver(config.member_accounts)
    if auditor is None:
        auditor = AuditWriter(AuditLogger(config.audit.log_path, session_id=config.audit.session_id))
    locks = locks if locks is not None else InProcessLockCoordinator(config.lock_timeout_seconds)

    repository = EgressStoreRepository(records, locks)
    reconciler = PolicyReconciler(policies, locks, auditor)
    snapshotter = SnapshotNotifier(
        objects,
        events,
        notification_bucket=str(config.notification_bucket_name),
        topic=str(config.notification_topic_arn),
        max_workers=config.manifest_workers,
    )
    lifecycle = EgressStoreLifecycle(
        config=config,
        repository=repository,
        object_storage=objects,
        reconciler=reconciler,
        snapshotter=snapshotter,
        key_management=keys,
        account_resolver=accounts,
        auditor=auditor,
        clock=clock,
    )
    return LifecycleComponents(
        lifecycle=lifecycle,
        reconciler=reconciler,
        repository=repository,
        snapshotter=snapshotter,
        records=records,
        objects=objects,
        policies=policies,
        events=events,
        locks=locks,
        auditor=auditor,
    )


def build_aws_lifecycle(config: "EgressStoreConfig", session: Any | None = None) -> LifecycleComponents:
    """Assemble the lifecycle over boto3 backends built from ``config``."""
    from aumos_egress_store.backends.aws import build_aws_backends

    backends = build_aws_backends(config, session=session)
    return build_lifecycle(
        config,
        records=backends.records,
        objects=backends.objects,
        policies=backends.policies,
        keys=backends.keys,
        events=backends.events,
    )

"""Collaborator interfaces and their in-memory implementations.

The boto3 adapters live in :mod:`aumos_egress_store.backends.aws` and are
imported explicitly by callers that need them.
"""
from __future__ import annotations

from aumos_egress_store.backends.memory import (
    InMemoryEventPublisher,
    InMemoryObjectStorage,
    InMemoryPolicyStore,
    InMemoryRecordStore,
    StaticAccountResolver,
    StaticKeyManagement,
)
from aumos_egress_store.backends.protocols import (
    AccountResolver,
    Auditor,
    EventPublisher,
    KeyManagement,
    ObjectStorage,
    ObjectVersion,
    PolicyStore,
    RecordStore,
    StoredObject,
)

__all__ = [
    "AccountResolver",
    "Auditor",
    "EventPublisher",
    "InMemoryEventPublisher",
    "InMemoryObjectStorage",
    "InMemoryPolicyStore",
    "InMemoryRecordStore",
    "KeyManagement",
    "ObjectStorage",
    "ObjectVersion",
    "PolicyStore",
    "RecordStore",
    "StaticAccountResolver",
    "StaticKeyManagement",
    "StoredObject",
]

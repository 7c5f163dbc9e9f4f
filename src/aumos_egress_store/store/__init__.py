"""Egress store records, persistence and lifecycle."""
from __future__ import annotations

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

__all__ = [
    "EgressStoreDescriptor",
    "EgressStoreLifecycle",
    "EgressStoreRecord",
    "EgressStoreRepository",
    "EgressStoreStatus",
    "ObjectEntry",
    "ObjectListing",
    "StorageLocation",
    "format_size",
]

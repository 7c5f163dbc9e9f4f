"""Manifest snapshots and egress request events."""
from __future__ import annotations

from aumos_egress_store.notification.snapshot import ManifestRef, SnapshotNotifier, manifest_key

__all__ = ["ManifestRef", "SnapshotNotifier", "manifest_key"]

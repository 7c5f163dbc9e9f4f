"""Named lock coordination for record and policy mutation."""
from __future__ import annotations

from aumos_egress_store.locking.coordinator import (
    InProcessLockCoordinator,
    LockCoordinator,
    policy_lock_id,
    record_lock_id,
)

__all__ = [
    "InProcessLockCoordinator",
    "LockCoordinator",
    "policy_lock_id",
    "record_lock_id",
]

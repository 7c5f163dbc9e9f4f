"""Shared bucket policy model and reconciliation."""
from __future__ import annotations

from aumos_egress_store.policies.reconciler import PolicyReconciler
from aumos_egress_store.policies.statements import (
    ALL_KINDS,
    PermissionKind,
    PolicyDocument,
    PolicyStatement,
    StatementTarget,
    account_root_arn,
    grant_account,
    kinds_for_permission,
    revoke_account,
)

__all__ = [
    "ALL_KINDS",
    "PermissionKind",
    "PolicyDocument",
    "PolicyReconciler",
    "PolicyStatement",
    "StatementTarget",
    "account_root_arn",
    "grant_account",
    "kinds_for_permission",
    "revoke_account",
]

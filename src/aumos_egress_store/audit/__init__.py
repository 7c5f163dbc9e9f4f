"""Audit trail package for aumos-egress-store.

Provides the append-only JSONL logger and the fire-and-forget writer used
by lifecycle operations.
"""
from __future__ import annotations

from aumos_egress_store.audit.logger import AuditLogger
from aumos_egress_store.audit.writer import AuditWriter

__all__ = ["AuditLogger", "AuditWriter"]

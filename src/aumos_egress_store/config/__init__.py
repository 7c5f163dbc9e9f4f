"""Configuration loading for aumos-egress-store."""
from __future__ import annotations

from aumos_egress_store.config.loader import (
    AuditConfig,
    AwsConfig,
    ConfigLoader,
    EgressStoreConfig,
)

__all__ = ["AuditConfig", "AwsConfig", "ConfigLoader", "EgressStoreConfig"]

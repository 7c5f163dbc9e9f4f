"""Input validation for egress store operations."""
from __future__ import annotations

from aumos_egress_store.validation.workspace import (
    SchemaValidator,
    WorkspaceInput,
    WorkspaceValidator,
)

__all__ = ["SchemaValidator", "WorkspaceInput", "WorkspaceValidator"]

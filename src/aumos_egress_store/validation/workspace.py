"""Input schema for creating an egress store.

The caller passes the workspace the store belongs to, either as a mapping
(camelCase or snake_case keys) or as a :class:`WorkspaceInput`.

Example
-------
>>> validator = WorkspaceValidator()
>>> workspace = validator.ensure_valid(
...     {"id": "ws-1", "name": "genomics", "projectId": "p-1", "createdBy": "u-1"}
... )
>>> workspace.project_id
'p-1'
"""
from __future__ import annotations

from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from aumos_egress_store.errors import ValidationFailedError


class WorkspaceInput(BaseModel):
    """The workspace an egress store is created for."""

    model_config = ConfigDict(extra="allow", populate_by_name=True, str_strip_whitespace=True)

    id: str = Field(min_length=1, max_length=100, pattern=r"^[A-Za-z0-9_-]+$")
    name: str = Field(min_length=1, max_length=300)
    project_id: str = Field(alias="projectId", min_length=1, max_length=100)
    created_by: str = Field(alias="createdBy", min_length=1)


class SchemaValidator(Protocol):
    def ensure_valid(self, payload: object) -> WorkspaceInput:
        ...


class WorkspaceValidator:
    """Validates create-store input against :class:`WorkspaceInput`."""

    def ensure_valid(self, payload: object) -> WorkspaceInput:
        """Return the validated workspace.

        Raises
        ------
        ValidationFailedError
            When ``payload`` does not satisfy the schema.
        """
        if isinstance(payload, WorkspaceInput):
            return payload
        try:
            return WorkspaceInput.model_validate(payload)
        except ValidationError as exc:
            errors = [
                {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                for err in exc.errors()
            ]
            raise ValidationFailedError(
                f"Input has validation errors: {len(errors)} problem(s)", errors=errors
            ) from exc

"""Tests for WorkspaceValidator."""
from __future__ import annotations

import pytest

from aumos_egress_store.errors import ErrorKind, ValidationFailedError
from aumos_egress_store.validation.workspace import WorkspaceInput, WorkspaceValidator


@pytest.fixture()
def validator() -> WorkspaceValidator:
    return WorkspaceValidator()


class TestWorkspaceValidator:
    def test_camel_case_payload(self, validator: WorkspaceValidator) -> None:
        workspace = validator.ensure_valid(
            {"id": "ws-1", "name": "genomics", "projectId": "p-1", "createdBy": "u-1"}
        )
        assert workspace.id == "ws-1"
        assert workspace.project_id == "p-1"
        assert workspace.created_by == "u-1"

    def test_snake_case_payload(self, validator: WorkspaceValidator) -> None:
        workspace = validator.ensure_valid(
            {"id": "ws_2", "name": "genomics", "project_id": "p-1", "created_by": "u-1"}
        )
        assert workspace.id == "ws_2"

    def test_whitespace_is_stripped(self, validator: WorkspaceValidator) -> None:
        workspace = validator.ensure_valid(
            {"id": " ws-1 ", "name": " genomics ", "projectId": "p-1", "createdBy": "u-1"}
        )
        assert workspace.id == "ws-1"
        assert workspace.name == "genomics"

    def test_extra_fields_allowed(self, validator: WorkspaceValidator) -> None:
        workspace = validator.ensure_valid(
            {"id": "ws-1", "name": "n", "projectId": "p", "createdBy": "u", "envTypeId": "sagemaker"}
        )
        assert workspace.model_extra == {"envTypeId": "sagemaker"}

    def test_model_instance_passes_through(self, validator: WorkspaceValidator) -> None:
        workspace = WorkspaceInput(id="ws-1", name="n", projectId="p", createdBy="u")
        assert validator.ensure_valid(workspace) is workspace

    @pytest.mark.parametrize("workspace_id", ["", "ws/1", "ws 1", "../ws", "x" * 101])
    def test_unsafe_ids_rejected(self, validator: WorkspaceValidator, workspace_id: str) -> None:
        with pytest.raises(ValidationFailedError):
            validator.ensure_valid({"id": workspace_id, "name": "n", "projectId": "p", "createdBy": "u"})

    def test_errors_name_missing_fields(self, validator: WorkspaceValidator) -> None:
        with pytest.raises(ValidationFailedError) as exc_info:
            validator.ensure_valid({"id": "ws-1"})
        error = exc_info.value
        assert error.kind is ErrorKind.VALIDATION_FAILED
        assert {e["field"] for e in error.errors} == {"name", "projectId", "createdBy"}

    def test_non_mapping_rejected(self, validator: WorkspaceValidator) -> None:
        with pytest.raises(ValidationFailedError):
            validator.ensure_valid("ws-1")

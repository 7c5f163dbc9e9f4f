"""Egress store record, descriptor and listing types.

The record is persisted as a flat mapping with camelCase keys so it can be
stored unchanged in a key-value table; :meth:`EgressStoreRecord.to_item` and
:meth:`EgressStoreRecord.from_item` convert between the two shapes.
"""
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

SIZE_UNITS: tuple[str, ...] = ("Bytes", "KB", "MB", "GB", "TB", "PB")


class EgressStoreStatus(str, Enum):
    """Lifecycle status of an egress store.

    CREATED -> PENDING -> PROCESSING -> PROCESSED, and TERMINATED from
    CREATED (untouched) or PROCESSED.  PENDING is set when an egress request
    is submitted; PROCESSING and PROCESSED are set by the downstream export
    process.
    """

    CREATED = "CREATED"
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    PROCESSED = "PROCESSED"
    TERMINATED = "TERMINATED"

    @classmethod
    def parse(cls, value: object) -> "EgressStoreStatus":
        """Parse a stored status case-insensitively."""
        return cls(str(value).upper())


@dataclass(frozen=True)
class StorageLocation:
    """Bucket and prefix that hold an egress store's objects."""

    bucket: str
    prefix: str

    @property
    def arn(self) -> str:
        return f"arn:aws:s3:::{self.bucket}/{self.prefix}"


@dataclass
class EgressStoreRecord:
    """Durable record of one workspace's egress store.

    Attributes
    ----------
    id:
        Record key; equal to the workspace id.
    egress_store_name:
        Display name, ``"{workspace name}-egress-store"``.
    storage_location:
        Where the store's objects live.
    status:
        Current lifecycle status.
    is_able_to_submit_egress_request:
        ``True`` only while a new egress request may be submitted.
    object_manifest_location:
        ARN of the last published object manifest, if any.
    ver:
        Submission counter; incremented on every egress request.
    """

    id: str
    egress_store_name: str
    created_at: str
    created_by: str | None
    updated_at: str
    updated_by: str | None
    workspace_id: str
    project_id: str | None
    storage_location: StorageLocation
    status: EgressStoreStatus = EgressStoreStatus.CREATED
    is_able_to_submit_egress_request: bool = False
    object_manifest_location: str | None = None
    ver: int = 0

    def to_item(self) -> dict[str, object]:
        """Serialise to the stored item shape."""
        return {
            "id": self.id,
            "egressStoreName": self.egress_store_name,
            "createdAt": self.created_at,
            "createdBy": self.created_by,
            "updatedAt": self.updated_at,
            "updatedBy": self.updated_by,
            "workspaceId": self.workspace_id,
            "projectId": self.project_id,
            "storageLocation": {
                "bucket": self.storage_location.bucket,
                "prefix": self.storage_location.prefix,
            },
            "status": self.status.value,
            "isAbleToSubmitEgressRequest": self.is_able_to_submit_egress_request,
            "objectManifestLocation": self.object_manifest_location,
            "ver": self.ver,
        }

    @classmethod
    def from_item(cls, item: dict[str, object]) -> "EgressStoreRecord":
        """Parse a stored item.

        Raises
        ------
        KeyError
            When a required key is missing.
        ValueError
            When the status or version is malformed.
        """
        location = item["storageLocation"]
        if not isinstance(location, dict):
            raise ValueError(f"Malformed storageLocation for egress store {item.get('id')}")
        return cls(
            id=str(item["id"]),
            egress_store_name=str(item["egressStoreName"]),
            created_at=str(item.get("createdAt", "")),
            created_by=_optional_str(item.get("createdBy")),
            updated_at=str(item.get("updatedAt", "")),
            updated_by=_optional_str(item.get("updatedBy")),
            workspace_id=str(item["workspaceId"]),
            project_id=_optional_str(item.get("projectId")),
            storage_location=StorageLocation(str(location["bucket"]), str(location["prefix"])),
            status=EgressStoreStatus.parse(item.get("status", EgressStoreStatus.CREATED.value)),
            is_able_to_submit_egress_request=bool(item.get("isAbleToSubmitEgressRequest", False)),
            object_manifest_location=_optional_str(item.get("objectManifestLocation")),
            # Numeric attributes come back from DynamoDB as Decimal.
            ver=int(item.get("ver", 0)),  # type: ignore[arg-type]
        )

    def copy(self) -> "EgressStoreRecord":
        return copy.deepcopy(self)

    @property
    def is_untouched(self) -> bool:
        """``True`` for a CREATED store that has never been opened for submission."""
        return self.status == EgressStoreStatus.CREATED and not self.is_able_to_submit_egress_request


@dataclass
class EgressStoreDescriptor:
    """Caller-facing description of a reachable egress store.

    Also the input to policy reconciliation: ``id``, ``bucket``, ``prefix``
    and ``env_permission`` determine which statements are granted.
    """

    id: str
    bucket: str
    prefix: str
    workspace_id: str
    project_id: str | None
    created_by: str | None
    kms_arn: str | None = None
    readable: bool = True
    writeable: bool = True
    env_permission: dict[str, bool] = field(default_factory=lambda: {"read": True, "write": True})
    status: str = "reachable"
    resources: list[dict[str, str]] = field(default_factory=list)

    @classmethod
    def for_record(cls, record: EgressStoreRecord, kms_arn: str | None = None) -> "EgressStoreDescriptor":
        """Describe ``record`` with read and write access."""
        location = record.storage_location
        return cls(
            id=f"egress-store-{record.workspace_id}",
            bucket=location.bucket,
            prefix=location.prefix,
            workspace_id=record.workspace_id,
            project_id=record.project_id,
            created_by=record.created_by,
            kms_arn=kms_arn,
            resources=[{"arn": f"arn:aws:s3:::{location.bucket}/{record.workspace_id}/"}],
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "readable": self.readable,
            "writeable": self.writeable,
            "kmsArn": self.kms_arn,
            "bucket": self.bucket,
            "prefix": self.prefix,
            "envPermission": dict(self.env_permission),
            "status": self.status,
            "createdBy": self.created_by,
            "workspaceId": self.workspace_id,
            "projectId": self.project_id,
            "resources": [dict(r) for r in self.resources],
        }


@dataclass(frozen=True)
class ObjectEntry:
    """One object in an egress store listing."""

    key: str
    size: str
    last_modified: datetime
    project_id: str | None
    workspace_id: str

    def to_dict(self) -> dict[str, object]:
        return {
            "Key": self.key,
            "Size": self.size,
            "LastModified": self.last_modified.isoformat(),
            "projectId": self.project_id,
            "workspaceId": self.workspace_id,
        }


@dataclass(frozen=True)
class ObjectListing:
    """Result of listing an egress store."""

    objects: list[ObjectEntry]
    is_able_to_submit_egress_request: bool


def format_size(num_bytes: int) -> str:
    """Render a byte count with a 1024-based unit, capped at PB.

    Example
    -------
    >>> format_size(0)
    '0 Byte'
    >>> format_size(1536)
    '2 KB'
    """
    if num_bytes == 0:
        return "0 Byte"
    index = 0
    while index < len(SIZE_UNITS) - 1 and num_bytes >= 1024 ** (index + 1):
        index += 1
    scaled = num_bytes / 1024**index
    return f"{int(scaled + 0.5)} {SIZE_UNITS[index]}"


def _optional_str(value: object) -> str | None:
    return None if value is None else str(value)

"""Interfaces of the collaborators the egress store core depends on.

Implementations live in :mod:`aumos_egress_store.backends.memory` (in-process,
used by tests and local tooling) and :mod:`aumos_egress_store.backends.aws`
(boto3).
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Iterable, Protocol

if TYPE_CHECKING:
    from aumos_egress_store.context import RequestContext


@dataclass(frozen=True)
class StoredObject:
    """Summary of one object returned by a prefix listing."""

    key: str
    size: int
    last_modified: datetime


@dataclass(frozen=True)
class ObjectVersion:
    """Latest version marker and owner of an object."""

    version_id: str | None
    owner: dict[str, object] | None


class RecordStore(Protocol):
    """Keyed record store with conditional writes.

    ``create_if_absent`` raises ``AlreadyExistsError`` and
    ``update_if_exists`` raises ``NotFoundError`` when their condition fails.
    """

    def create_if_absent(self, key: str, item: dict[str, object]) -> None:
        ...

    def update_if_exists(self, key: str, item: dict[str, object]) -> None:
        ...

    def scan_all(self) -> Iterable[dict[str, object]]:
        ...


class ObjectStorage(Protocol):
    def create_prefix(self, container: str, prefix: str) -> None:
        ...

    def clear_prefix(self, container: str, prefix: str) -> None:
        ...

    def list_all(self, container: str, prefix: str) -> list[StoredObject]:
        ...

    def get_latest_version(self, container: str, key: str) -> ObjectVersion:
        ...

    def put_object(self, container: str, key: str, body: bytes, content_type: str) -> None:
        ...


class PolicyStore(Protocol):
    """Access to the raw JSON policy document of a container.

    ``get_policy`` returns ``None`` when the container has no policy.
    """

    def get_policy(self, container: str) -> str | None:
        ...

    def set_policy(self, container: str, document: str) -> None:
        ...

    def delete_policy(self, container: str) -> None:
        ...


class KeyManagement(Protocol):
    def resolve_key_arn(self, alias: str) -> str:
        ...


class EventPublisher(Protocol):
    def publish(self, topic: str, message: str) -> None:
        ...


class AccountResolver(Protocol):
    def member_account_id(self, request_context: "RequestContext", workspace_id: str) -> str:
        ...


class Auditor(Protocol):
    """Fire-and-forget audit sink; must never raise into the caller."""

    def record_async(self, request_context: "RequestContext", event: dict[str, object]) -> None:
        ...

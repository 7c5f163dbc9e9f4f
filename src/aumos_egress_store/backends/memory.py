"""In-process implementations of the collaborator interfaces.

Every class here is thread-safe and keeps its state in plain dicts, which
makes them suitable for tests and for exercising the lifecycle locally.

Example
-------
>>> storage = InMemoryObjectStorage()
>>> storage.put_object("bucket", "ws-1/report.csv", b"a,b", "text/csv")
>>> [obj.key for obj in storage.list_all("bucket", "ws-1/")]
['ws-1/report.csv']
"""
from __future__ import annotations

import copy
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable

from aumos_egress_store.backends.protocols import ObjectVersion, StoredObject
from aumos_egress_store.errors import AlreadyExistsError, NotFoundError

if TYPE_CHECKING:
    from aumos_egress_store.context import RequestContext


class InMemoryRecordStore:
    """Dict-backed record store with create-if-absent / update-if-exists."""

    def __init__(self) -> None:
        self._items: dict[str, dict[str, object]] = {}
        self._lock = threading.Lock()

    def create_if_absent(self, key: str, item: dict[str, object]) -> None:
        with self._lock:
            if key in self._items:
                raise AlreadyExistsError(f"Egress Store with id \"{key}\" already exists")
            self._items[key] = copy.deepcopy(item)

    def update_if_exists(self, key: str, item: dict[str, object]) -> None:
        with self._lock:
            if key not in self._items:
                raise NotFoundError(f"Egress Store with id \"{key}\" does not exist")
            self._items[key] = copy.deepcopy(item)

    def scan_all(self) -> list[dict[str, object]]:
        with self._lock:
            return [copy.deepcopy(item) for item in self._items.values()]

    def get(self, key: str) -> dict[str, object] | None:
        with self._lock:
            item = self._items.get(key)
            return copy.deepcopy(item) if item is not None else None


@dataclass
class _ObjectState:
    body: bytes
    content_type: str
    last_modified: datetime
    versions: list[str] = field(default_factory=list)


class InMemoryObjectStorage:
    """Versioned in-memory object storage keyed by container then key.

    Parameters
    ----------
    owner:
        Owner mapping reported for every object version.
    clock:
        Callable returning the current UTC datetime; injectable for tests.
    """

    def __init__(
        self,
        owner: dict[str, object] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._containers: dict[str, dict[str, _ObjectState]] = {}
        self._owner = owner or {"ID": "in-memory-owner"}
        self._clock = clock or (lambda: datetime.now(tz=timezone.utc))
        self._lock = threading.Lock()

    def create_prefix(self, container: str, prefix: str) -> None:
        self.put_object(container, prefix, b"", "application/x-directory")

    def clear_prefix(self, container: str, prefix: str) -> None:
        with self._lock:
            objects = self._containers.get(container, {})
            for key in [k for k in objects if k.startswith(prefix)]:
                del objects[key]

    def list_all(self, container: str, prefix: str) -> list[StoredObject]:
        with self._lock:
            objects = self._containers.get(container, {})
            return [
                StoredObject(key=key, size=len(state.body), last_modified=state.last_modified)
                for key, state in sorted(objects.items())
                if key.startswith(prefix)
            ]

    def get_latest_version(self, container: str, key: str) -> ObjectVersion:
        with self._lock:
            state = self._containers.get(container, {}).get(key)
            if state is None:
                raise KeyError(f"No object {key} in {container}")
            return ObjectVersion(version_id=state.versions[-1], owner=dict(self._owner))

    def put_object(self, container: str, key: str, body: bytes, content_type: str) -> None:
        with self._lock:
            objects = self._containers.setdefault(container, {})
            state = objects.get(key)
            version_id = uuid.uuid4().hex
            if state is None:
                objects[key] = _ObjectState(body, content_type, self._clock(), [version_id])
            else:
                state.body = body
                state.content_type = content_type
                state.last_modified = self._clock()
                state.versions.append(version_id)

    def set_last_modified(self, container: str, key: str, when: datetime) -> None:
        """Override an object's modification time."""
        with self._lock:
            self._containers[container][key].last_modified = when

    def get_object(self, container: str, key: str) -> bytes:
        with self._lock:
            return self._containers[container][key].body

    def keys(self, container: str) -> list[str]:
        with self._lock:
            return sorted(self._containers.get(container, {}))


class InMemoryPolicyStore:
    """Holds one raw JSON policy document per container."""

    def __init__(self, policies: dict[str, str] | None = None) -> None:
        self._policies: dict[str, str] = dict(policies or {})
        self._lock = threading.Lock()
        self.writes: int = 0

    def get_policy(self, container: str) -> str | None:
        with self._lock:
            return self._policies.get(container)

    def set_policy(self, container: str, document: str) -> None:
        with self._lock:
            self._policies[container] = document
            self.writes += 1

    def delete_policy(self, container: str) -> None:
        with self._lock:
            self._policies.pop(container, None)
            self.writes += 1


class StaticKeyManagement:
    """Resolves key aliases from a fixed mapping.

    Unknown aliases resolve to themselves, which matches how a key ARN
    passed in place of an alias behaves.
    """

    def __init__(self, aliases: dict[str, str] | None = None) -> None:
        self._aliases = dict(aliases or {})

    def resolve_key_arn(self, alias: str) -> str:
        return self._aliases.get(alias, alias)


class InMemoryEventPublisher:
    """Records published messages as ``(topic, message)`` tuples."""

    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    def publish(self, topic: str, message: str) -> None:
        with self._lock:
            self.messages.append((topic, message))


class StaticAccountResolver:
    """Maps workspace ids to member account ids from a fixed table."""

    def __init__(self, accounts: dict[str, str] | None = None) -> None:
        self._accounts = dict(accounts or {})

    def member_account_id(self, request_context: "RequestContext", workspace_id: str) -> str:
        try:
            return self._accounts[workspace_id]
        except KeyError:
            raise NotFoundError(f"No member account is linked to workspace {workspace_id}") from None

    def link(self, workspace_id: str, account_id: str) -> None:
        self._accounts[workspace_id] = account_id

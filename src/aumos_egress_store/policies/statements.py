"""Bucket policy statement model and principal add/remove algorithms.

An egress store is granted access to its prefix through up to three
``Allow`` statements in the shared bucket policy, one per permission kind:

- ``Get:{storeId}``  — ``s3:GetObject`` on ``{bucket}/{prefix}*``
- ``Put:{storeId}``  — object write actions on ``{bucket}/{prefix}*``
- ``List:{storeId}`` — ``s3:ListBucket`` on the bucket, limited by a
  ``s3:prefix`` condition

Statements whose ``Sid`` does not belong to the store being reconciled are
never parsed or rewritten: they keep their position and their original
mapping.  Nothing in this module performs I/O.

Example
-------
>>> document = PolicyDocument.from_json(None)
>>> target = StatementTarget("egress-store-ws-1", "bucket", "ws-1/")
>>> document.apply(target, [PermissionKind.GET], lambda s: s.add_principal("111111111111"))
>>> document.find("Get:egress-store-ws-1").principals
['arn:aws:iam::111111111111:root']
"""
from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

DEFAULT_POLICY_VERSION = "2012-10-17"

_GET_ACTIONS: list[str] = ["s3:GetObject"]
_PUT_ACTIONS: list[str] = [
    "s3:AbortMultipartUpload",
    "s3:ListMultipartUploadParts",
    "s3:PutObject",
    "s3:PutObjectAcl",
    "s3:DeleteObject",
]
_LIST_ACTIONS: list[str] = ["s3:ListBucket"]


class PermissionKind(str, Enum):
    """The three permission statements managed for every egress store."""

    GET = "Get"
    PUT = "Put"
    LIST = "List"


ALL_KINDS: tuple[PermissionKind, ...] = (
    PermissionKind.GET,
    PermissionKind.PUT,
    PermissionKind.LIST,
)


def account_root_arn(account_id: str) -> str:
    """Return the IAM root principal ARN for an account id."""
    return f"arn:aws:iam::{account_id}:root"


def kinds_for_permission(read: bool, write: bool) -> list[PermissionKind]:
    """Map an env permission to the statement kinds it needs.

    Read needs GET, write needs PUT, and either needs LIST exactly once.
    """
    kinds: list[PermissionKind] = []
    if read:
        kinds.append(PermissionKind.GET)
    if write:
        kinds.append(PermissionKind.PUT)
    if read or write:
        kinds.append(PermissionKind.LIST)
    return kinds


@dataclass(frozen=True)
class StatementTarget:
    """The store-scoped coordinates every managed statement is derived from."""

    store_id: str
    bucket: str
    prefix: str

    def statement_id(self, kind: PermissionKind) -> str:
        return f"{kind.value}:{self.store_id}"

    def statement_ids(self) -> list[str]:
        return [self.statement_id(kind) for kind in ALL_KINDS]


@dataclass
class PolicyStatement:
    """One ``Allow`` statement managed on behalf of an egress store.

    Attributes
    ----------
    sid:
        Deterministic statement id, ``"{kind}:{storeId}"``.
    actions:
        S3 actions granted.
    resource:
        ARN (or ARN pattern) the actions apply to.
    principals:
        Principal ARNs in insertion order, without duplicates.
    condition:
        Optional IAM condition block.
    effect:
        Always ``"Allow"`` for statements synthesised here.
    """

    sid: str
    actions: list[str]
    resource: str | list[str]
    principals: list[str] = field(default_factory=list)
    condition: dict[str, object] | None = None
    effect: str = "Allow"
    extra: dict[str, object] = field(default_factory=dict)

    @classmethod
    def synthesize(cls, target: StatementTarget, kind: PermissionKind) -> "PolicyStatement":
        """Build an empty statement for ``kind`` scoped to ``target``."""
        object_arn = f"arn:aws:s3:::{target.bucket}/{target.prefix}*"
        match kind:
            case PermissionKind.GET:
                return cls(target.statement_id(kind), list(_GET_ACTIONS), object_arn)
            case PermissionKind.PUT:
                return cls(target.statement_id(kind), list(_PUT_ACTIONS), object_arn)
            case PermissionKind.LIST:
                return cls(
                    target.statement_id(kind),
                    list(_LIST_ACTIONS),
                    f"arn:aws:s3:::{target.bucket}",
                    condition={"StringLike": {"s3:prefix": [f"{target.prefix}*"]}},
                )
        raise ValueError(f"Unknown permission kind: {kind!r}")

    @classmethod
    def from_dict(cls, raw: dict[str, object]) -> "PolicyStatement":
        """Parse a statement mapping from a policy document.

        Raises
        ------
        ValueError
            When the mapping has no ``Sid`` or a malformed principal block.
        """
        sid = raw.get("Sid")
        if not isinstance(sid, str) or not sid:
            raise ValueError("Policy statement has no Sid.")

        principal = raw.get("Principal", {})
        if not isinstance(principal, dict):
            raise ValueError(f"Statement {sid} has an unsupported Principal block.")
        aws_principal = principal.get("AWS", [])
        if isinstance(aws_principal, str):
            principals = [aws_principal]
        elif isinstance(aws_principal, list):
            principals = [str(p) for p in aws_principal]
        else:
            raise ValueError(f"Statement {sid} has an unsupported AWS principal.")

        actions = raw.get("Action", [])
        known = {"Sid", "Effect", "Principal", "Action", "Resource", "Condition"}
        return cls(
            sid=sid,
            actions=[actions] if isinstance(actions, str) else list(actions),  # type: ignore[arg-type]
            resource=raw.get("Resource", ""),  # type: ignore[arg-type]
            principals=list(dict.fromkeys(principals)),
            condition=raw.get("Condition"),  # type: ignore[arg-type]
            effect=str(raw.get("Effect", "Allow")),
            extra={k: v for k, v in raw.items() if k not in known},
        )

    def to_dict(self) -> dict[str, object]:
        """Serialise to the IAM policy statement shape."""
        result: dict[str, object] = {
            "Sid": self.sid,
            "Effect": self.effect,
            "Principal": {"AWS": list(self.principals)},
            "Action": list(self.actions),
            "Resource": self.resource,
        }
        if self.condition is not None:
            result["Condition"] = self.condition
        result.update(self.extra)
        return result

    # ------------------------------------------------------------------
    # Principal updates
    # ------------------------------------------------------------------

    def add_principal(self, account_id: str) -> "PolicyStatement":
        """Return a copy with the account's root ARN appended if absent."""
        arn = account_root_arn(account_id)
        if arn in self.principals:
            return self
        updated = copy.deepcopy(self)
        updated.principals.append(arn)
        return updated

    def remove_principal(self, account_id: str) -> "PolicyStatement":
        """Return a copy without the account's root ARN."""
        arn = account_root_arn(account_id)
        if arn not in self.principals:
            return self
        updated = copy.deepcopy(self)
        updated.principals = [p for p in updated.principals if p != arn]
        return updated

    @property
    def is_empty(self) -> bool:
        return not self.principals


StatementUpdate = Callable[[PolicyStatement], PolicyStatement]


class PolicyDocument:
    """Ordered bucket policy document.

    Statements are kept as the raw mappings they were parsed from; only the
    statements a reconciliation touches are converted to
    :class:`PolicyStatement` and written back.

    Parameters
    ----------
    statements:
        Raw statement mappings in document order.
    version:
        The policy language version.
    extra:
        Any other top-level keys (e.g. ``Id``), preserved verbatim.
    """

    def __init__(
        self,
        statements: list[dict[str, object]] | None = None,
        version: str = DEFAULT_POLICY_VERSION,
        extra: dict[str, object] | None = None,
    ) -> None:
        self._statements: list[dict[str, object]] = list(statements or [])
        self._version = version
        self._extra: dict[str, object] = dict(extra or {})

    # ------------------------------------------------------------------
    # Parsing and serialisation
    # ------------------------------------------------------------------

    @classmethod
    def from_json(cls, text: str | None) -> "PolicyDocument":
        """Parse a policy document; ``None`` or blank text is an empty policy.

        Raises
        ------
        ValueError
            When the text is not a JSON object or ``Statement`` is not a list.
        """
        if text is None or not text.strip():
            return cls()
        raw = json.loads(text)
        if not isinstance(raw, dict):
            raise ValueError("Bucket policy is not a JSON object.")
        statements = raw.get("Statement") or []
        if isinstance(statements, dict):
            statements = [statements]
        if not isinstance(statements, list) or not all(isinstance(s, dict) for s in statements):
            raise ValueError("Bucket policy Statement must be a list of objects.")
        version = str(raw.get("Version", DEFAULT_POLICY_VERSION))
        extra = {k: v for k, v in raw.items() if k not in ("Version", "Statement")}
        return cls(statements, version=version, extra=extra)

    def to_dict(self) -> dict[str, object]:
        result: dict[str, object] = {"Version": self._version}
        result.update(self._extra)
        result["Statement"] = copy.deepcopy(self._statements)
        return result

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def statements(self) -> list[dict[str, object]]:
        return copy.deepcopy(self._statements)

    def is_empty(self) -> bool:
        return not self._statements

    def find(self, sid: str) -> PolicyStatement | None:
        """Return the parsed statement with ``sid``, or ``None``."""
        for raw in self._statements:
            if raw.get("Sid") == sid:
                return PolicyStatement.from_dict(raw)
        return None

    def managed_statements(self, sid_prefixes: tuple[str, ...] = ("Get:", "Put:", "List:")) -> list[PolicyStatement]:
        """Return every statement whose ``Sid`` looks like a store grant."""
        return [
            PolicyStatement.from_dict(raw)
            for raw in self._statements
            if isinstance(raw.get("Sid"), str) and str(raw["Sid"]).startswith(sid_prefixes)
        ]

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def apply(
        self,
        target: StatementTarget,
        kinds: list[PermissionKind],
        update: StatementUpdate,
    ) -> None:
        """Apply ``update`` to the statement of every kind in ``kinds``.

        Missing statements are synthesised empty before the update.  Updated
        statements replace the originals in place; new ones are appended.
        Statements left without principals are removed.
        """
        for kind in kinds:
            sid = target.statement_id(kind)
            index = self._index_of(sid)
            current = (
                PolicyStatement.from_dict(self._statements[index])
                if index is not None
                else PolicyStatement.synthesize(target, kind)
            )
            revised = update(current)
            if index is None:
                if not revised.is_empty:
                    self._statements.append(revised.to_dict())
            elif revised.is_empty:
                del self._statements[index]
            elif revised is not current:
                self._statements[index] = revised.to_dict()

    def _index_of(self, sid: str) -> int | None:
        matches = [i for i, raw in enumerate(self._statements) if raw.get("Sid") == sid]
        if len(matches) > 1:
            raise ValueError(f"Bucket policy contains {len(matches)} statements with Sid {sid}.")
        return matches[0] if matches else None


def grant_account(
    document: PolicyDocument,
    target: StatementTarget,
    account_id: str,
    read: bool = True,
    write: bool = True,
) -> None:
    """Add ``account_id`` to the statements the permission requires."""
    document.apply(
        target,
        kinds_for_permission(read, write),
        lambda statement: statement.add_principal(account_id),
    )


def revoke_account(document: PolicyDocument, target: StatementTarget, account_id: str) -> None:
    """Remove ``account_id`` from all three of the store's statements."""
    document.apply(
        target,
        list(ALL_KINDS),
        lambda statement: statement.remove_principal(account_id),
    )

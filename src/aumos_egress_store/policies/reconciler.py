"""Grant and revoke egress store access in the shared bucket policy.

Every egress store shares one bucket, and therefore one bucket policy.  A
reconciliation fetches that document, rewrites only the statements of the
store being reconciled and replaces the whole document in a single write.
The read-modify-write cycle runs under a lock named after the bucket so
concurrent reconciliations for different stores cannot lose each other's
grants.

Example
-------
>>> reconciler = PolicyReconciler(InMemoryPolicyStore(), InProcessLockCoordinator())
>>> reconciler.grant(descriptor, "111111111111")
>>> reconciler.revoke(descriptor, "111111111111")
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from aumos_egress_store.errors import PolicyUpdateFailedError
from aumos_egress_store.locking.coordinator import LockCoordinator, policy_lock_id
from aumos_egress_store.policies.statements import (
    PolicyDocument,
    PolicyStatement,
    StatementTarget,
    grant_account,
    revoke_account,
)

if TYPE_CHECKING:
    from aumos_egress_store.backends.protocols import Auditor, PolicyStore
    from aumos_egress_store.context import RequestContext
    from aumos_egress_store.store.records import EgressStoreDescriptor

logger = logging.getLogger(__name__)


class PolicyReconciler:
    """Adds or removes one account's principal from a store's statements.

    Parameters
    ----------
    policy_store:
        Reads and writes the raw bucket policy.
    lock_coordinator:
        Serialises read-modify-write cycles per bucket.
    auditor:
        Optional fire-and-forget audit sink.
    """

    def __init__(
        self,
        policy_store: "PolicyStore",
        lock_coordinator: LockCoordinator,
        auditor: "Auditor | None" = None,
    ) -> None:
        self._policy_store = policy_store
        self._locks = lock_coordinator
        self._auditor = auditor

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def grant(
        self,
        store: "EgressStoreDescriptor",
        account_id: str,
        request_context: "RequestContext | None" = None,
    ) -> dict[str, object]:
        """Grant ``account_id`` the store's env permissions on its prefix.

        Returns
        -------
        dict[str, object]
            The policy document as written.

        Raises
        ------
        PolicyUpdateFailedError
            When the policy cannot be read, parsed or written.
        LockAcquisitionError
            When the bucket policy lock cannot be acquired.
        """
        read = bool(store.env_permission.get("read"))
        write = bool(store.env_permission.get("write"))
        document = self._reconcile(
            store,
            lambda doc, target: grant_account(doc, target, account_id, read=read, write=write),
        )
        logger.info("Granted account %s access to egress store %s", account_id, store.id)
        self._audit(request_context, "add-egress-store-to-bucket-policy", document)
        return document

    def revoke(
        self,
        store: "EgressStoreDescriptor",
        account_id: str,
        request_context: "RequestContext | None" = None,
    ) -> dict[str, object]:
        """Remove ``account_id`` from all of the store's statements.

        Statements left without principals are dropped from the document.
        """
        document = self._reconcile(
            store,
            lambda doc, target: revoke_account(doc, target, account_id),
        )
        logger.info("Revoked account %s access to egress store %s", account_id, store.id)
        self._audit(request_context, "remove-egress-store-from-bucket-policy", document)
        return document

    def describe(self, bucket: str) -> list[PolicyStatement]:
        """Return the store-managed statements currently in the bucket policy."""
        return self._load(bucket).managed_statements()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _reconcile(
        self,
        store: "EgressStoreDescriptor",
        mutate: Callable[[PolicyDocument, StatementTarget], None],
    ) -> dict[str, object]:
        target = StatementTarget(store_id=store.id, bucket=store.bucket, prefix=store.prefix)

        def critical_section() -> dict[str, object]:
            document = self._load(store.bucket)
            try:
                mutate(document, target)
            except ValueError as exc:
                raise PolicyUpdateFailedError(
                    f"Unable to revise bucket policy of {store.bucket} for {store.id}: {exc}"
                ) from exc
            self._store(store.bucket, document)
            return document.to_dict()

        return self._locks.with_lock(policy_lock_id(store.bucket), critical_section)

    def _load(self, bucket: str) -> PolicyDocument:
        try:
            raw = self._policy_store.get_policy(bucket)
        except Exception as exc:
            raise PolicyUpdateFailedError(f"Unable to read bucket policy of {bucket}") from exc
        try:
            return PolicyDocument.from_json(raw)
        except ValueError as exc:
            raise PolicyUpdateFailedError(f"Bucket policy of {bucket} is malformed: {exc}") from exc

    def _store(self, bucket: str, document: PolicyDocument) -> None:
        try:
            if document.is_empty():
                self._policy_store.delete_policy(bucket)
            else:
                self._policy_store.set_policy(bucket, document.to_json())
        except Exception as exc:
            raise PolicyUpdateFailedError(f"Unable to write bucket policy of {bucket}") from exc

    def _audit(
        self,
        request_context: "RequestContext | None",
        action: str,
        document: dict[str, object],
    ) -> None:
        if self._auditor is None or request_context is None:
            return
        self._auditor.record_async(request_context, {"action": action, "body": document})

"""Object manifest snapshots and egress request events.

When an egress request is submitted, the store's current object listing is
frozen into a manifest in the notification bucket, keyed
``{storeId}/{storeName}-ver{N}.json`` where ``N`` is the store's next
version.  The lifecycle event published afterwards references that
manifest, so downstream reviewers see exactly the objects (and object
versions) that were submitted.
"""
from __future__ import annotations

import json
import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING

from aumos_egress_store.errors import PublishFailedError, SnapshotFailedError

if TYPE_CHECKING:
    from aumos_egress_store.backends.protocols import EventPublisher, ObjectStorage, StoredObject
    from aumos_egress_store.store.records import EgressStoreRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ManifestRef:
    """Location of a published manifest."""

    bucket: str
    key: str

    @property
    def arn(self) -> str:
        return f"arn:aws:s3:::{self.bucket}/{self.key}"


def manifest_key(record: "EgressStoreRecord") -> str:
    """Key of the manifest the next submission of ``record`` will write."""
    return f"{record.id}/{record.egress_store_name}-ver{record.ver + 1}.json"


class SnapshotNotifier:
    """Builds object manifests and publishes egress request events.

    Parameters
    ----------
    object_storage:
        Lists store objects and writes the manifest.
    publisher:
        Event transport.
    notification_bucket:
        Bucket that receives manifests.
    topic:
        Topic egress request events are published to.
    max_workers:
        Threads used to resolve object versions concurrently.
    """

    def __init__(
        self,
        object_storage: "ObjectStorage",
        publisher: "EventPublisher",
        notification_bucket: str,
        topic: str,
        max_workers: int = 8,
    ) -> None:
        self._storage = object_storage
        self._publisher = publisher
        self._bucket = notification_bucket
        self._topic = topic
        self._max_workers = max_workers

    def build_manifest(self, record: "EgressStoreRecord") -> ManifestRef:
        """Snapshot the store's objects with their latest versions.

        Raises
        ------
        SnapshotFailedError
            When listing, version lookup or the manifest write fails.
        """
        key = manifest_key(record)
        location = record.storage_location
        try:
            objects = self._storage.list_all(location.bucket, location.prefix)
            with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
                entries = list(pool.map(lambda obj: self._describe(location.bucket, obj), objects))
            body = json.dumps({"objects": entries}, default=str).encode("utf-8")
            self._storage.put_object(self._bucket, key, body, "application/json")
        except Exception as exc:
            raise SnapshotFailedError(
                f"Error in preparing egress store snapshot, bucket: {self._bucket}, key: {key}"
            ) from exc
        logger.info("Wrote manifest of %d objects to s3://%s/%s", len(entries), self._bucket, key)
        return ManifestRef(bucket=self._bucket, key=key)

    def build_payload(self, record: "EgressStoreRecord", manifest: ManifestRef) -> dict[str, object]:
        """Flat event payload describing the submitted store."""
        return {
            "egressStoreObjectListLocation": manifest.arn,
            "id": str(uuid.uuid4()),
            "egress_store_id": record.id,
            "egress_store_name": record.egress_store_name,
            "created_at": record.created_at,
            "created_by": record.created_by,
            "workspace_id": record.workspace_id,
            "project_id": record.project_id,
            "s3_bucketname": record.storage_location.bucket,
            "s3_bucketpath": record.storage_location.prefix,
            "status": record.status.value,
            "updated_by": record.updated_by,
            "updated_at": record.updated_at,
            "ver": record.ver,
        }

    def publish(self, record: "EgressStoreRecord", manifest: ManifestRef) -> dict[str, object]:
        """Publish the event for ``record`` and return its payload.

        Raises
        ------
        PublishFailedError
            When the transport rejects the message.
        """
        payload = self.build_payload(record, manifest)
        try:
            self._publisher.publish(self._topic, json.dumps(payload))
        except Exception as exc:
            raise PublishFailedError(f"Unable to publish message for egress store: {record.id}") from exc
        logger.info("Published egress request %s for store %s", payload["id"], record.id)
        return payload

    def _describe(self, bucket: str, obj: "StoredObject") -> dict[str, object]:
        version = self._storage.get_latest_version(bucket, obj.key)
        return {
            "Key": obj.key,
            "Size": obj.size,
            "LastModified": obj.last_modified.isoformat(),
            "VersionId": version.version_id,
            "Owner": version.owner,
        }

"""Tests for SnapshotNotifier — object manifests and egress request events."""
from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from aumos_egress_store.backends.memory import InMemoryEventPublisher, InMemoryObjectStorage
from aumos_egress_store.backends.protocols import ObjectVersion
from aumos_egress_store.errors import PublishFailedError, SnapshotFailedError
from aumos_egress_store.notification.snapshot import ManifestRef, SnapshotNotifier, manifest_key
from aumos_egress_store.store.records import EgressStoreRecord, EgressStoreStatus, StorageLocation

TOPIC = "arn:aws:sns:us-east-1:000000000000:egress"


class VersionlessStorage(InMemoryObjectStorage):
    def get_latest_version(self, container: str, key: str) -> ObjectVersion:
        raise PermissionError("versions not readable")


class FailingPublisher(InMemoryEventPublisher):
    def publish(self, topic: str, message: str) -> None:
        raise ConnectionError("topic unavailable")


@pytest.fixture()
def record() -> EgressStoreRecord:
    return EgressStoreRecord(
        id="ws-1",
        egress_store_name="genomics-egress-store",
        created_at="2024-01-01T00:00:00+00:00",
        created_by="u-1",
        updated_at="2024-01-02T00:00:00+00:00",
        updated_by="u-1",
        workspace_id="ws-1",
        project_id="p-1",
        storage_location=StorageLocation(bucket="egress-bucket", prefix="ws-1/"),
        status=EgressStoreStatus.PENDING,
        ver=2,
    )


@pytest.fixture()
def storage() -> InMemoryObjectStorage:
    storage = InMemoryObjectStorage(
        owner={"DisplayName": "egress", "ID": "abc"},
        clock=lambda: datetime(2024, 1, 3, tzinfo=timezone.utc),
    )
    storage.put_object("egress-bucket", "ws-1/a.csv", b"12345", "text/csv")
    storage.put_object("egress-bucket", "ws-1/b.csv", b"1", "text/csv")
    storage.put_object("egress-bucket", "ws-2/other.csv", b"1", "text/csv")
    return storage


@pytest.fixture()
def publisher() -> InMemoryEventPublisher:
    return InMemoryEventPublisher()


@pytest.fixture()
def notifier(storage: InMemoryObjectStorage, publisher: InMemoryEventPublisher) -> SnapshotNotifier:
    return SnapshotNotifier(storage, publisher, notification_bucket="egress-notify", topic=TOPIC, max_workers=2)


class TestManifestKey:
    def test_uses_next_version(self, record: EgressStoreRecord) -> None:
        assert manifest_key(record) == "ws-1/genomics-egress-store-ver3.json"

    def test_manifest_arn(self) -> None:
        assert ManifestRef("egress-notify", "ws-1/x.json").arn == "arn:aws:s3:::egress-notify/ws-1/x.json"


class TestBuildManifest:
    def test_writes_manifest_of_store_objects(
        self, notifier: SnapshotNotifier, storage: InMemoryObjectStorage, record: EgressStoreRecord
    ) -> None:
        manifest = notifier.build_manifest(record)
        assert manifest == ManifestRef("egress-notify", "ws-1/genomics-egress-store-ver3.json")

        body = json.loads(storage.get_object("egress-notify", manifest.key))
        assert [entry["Key"] for entry in body["objects"]] == ["ws-1/a.csv", "ws-1/b.csv"]
        first = body["objects"][0]
        assert first["Size"] == 5
        assert first["LastModified"] == "2024-01-03T00:00:00+00:00"
        assert first["Owner"] == {"DisplayName": "egress", "ID": "abc"}
        assert first["VersionId"]

    def test_version_lookup_failure_raises_snapshot_failed(self, record: EgressStoreRecord) -> None:
        storage = VersionlessStorage()
        storage.put_object("egress-bucket", "ws-1/a.csv", b"1", "text/csv")
        notifier = SnapshotNotifier(storage, InMemoryEventPublisher(), "egress-notify", TOPIC)
        with pytest.raises(SnapshotFailedError):
            notifier.build_manifest(record)
        assert storage.keys("egress-notify") == []

    def test_empty_store_writes_empty_manifest(self, record: EgressStoreRecord) -> None:
        storage = InMemoryObjectStorage()
        notifier = SnapshotNotifier(storage, InMemoryEventPublisher(), "egress-notify", TOPIC)
        manifest = notifier.build_manifest(record)
        assert json.loads(storage.get_object("egress-notify", manifest.key)) == {"objects": []}


class TestPublish:
    def test_payload_fields(self, notifier: SnapshotNotifier, record: EgressStoreRecord) -> None:
        manifest = ManifestRef("egress-notify", "ws-1/genomics-egress-store-ver2.json")
        payload = notifier.build_payload(record, manifest)
        assert set(payload) == {
            "egressStoreObjectListLocation",
            "id",
            "egress_store_id",
            "egress_store_name",
            "created_at",
            "created_by",
            "workspace_id",
            "project_id",
            "s3_bucketname",
            "s3_bucketpath",
            "status",
            "updated_by",
            "updated_at",
            "ver",
        }
        assert payload["egressStoreObjectListLocation"] == manifest.arn
        assert payload["status"] == "PENDING"
        assert payload["ver"] == 2

    def test_each_payload_has_unique_id(self, notifier: SnapshotNotifier, record: EgressStoreRecord) -> None:
        manifest = ManifestRef("egress-notify", "k")
        assert notifier.build_payload(record, manifest)["id"] != notifier.build_payload(record, manifest)["id"]

    def test_publish_sends_json_to_topic(
        self, notifier: SnapshotNotifier, publisher: InMemoryEventPublisher, record: EgressStoreRecord
    ) -> None:
        payload = notifier.publish(record, ManifestRef("egress-notify", "k"))
        assert publisher.messages == [(TOPIC, json.dumps(payload))]

    def test_transport_failure_raises_publish_failed(self, record: EgressStoreRecord) -> None:
        notifier = SnapshotNotifier(InMemoryObjectStorage(), FailingPublisher(), "egress-notify", TOPIC)
        with pytest.raises(PublishFailedError):
            notifier.publish(record, ManifestRef("egress-notify", "k"))

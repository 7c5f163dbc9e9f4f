"""boto3 implementations of the collaborator interfaces.

- :class:`DynamoRecordStore`  — conditional ``put_item`` on a DynamoDB table
- :class:`S3ObjectStorage`    — egress store prefixes in an S3 bucket
- :class:`S3PolicyStore`      — the bucket policy document
- :class:`KmsKeyManagement`   — alias to key ARN resolution
- :class:`SnsEventPublisher`  — lifecycle events to an SNS topic

Clients are injected so callers control sessions, regions and retries.
:func:`build_aws_backends` wires all of them from an
:class:`~aumos_egress_store.config.loader.EgressStoreConfig`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterator

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError

from aumos_egress_store.backends.protocols import ObjectVersion, StoredObject
from aumos_egress_store.errors import AlreadyExistsError, NotFoundError

if TYPE_CHECKING:
    from aumos_egress_store.config.loader import EgressStoreConfig

logger = logging.getLogger(__name__)

_DELETE_BATCH_SIZE = 1000


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


class DynamoRecordStore:
    """Record store over a DynamoDB table keyed by ``id``.

    Parameters
    ----------
    table:
        A ``boto3.resource("dynamodb").Table`` instance.
    """

    def __init__(self, table: Any) -> None:
        self._table = table

    def create_if_absent(self, key: str, item: dict[str, object]) -> None:
        try:
            self._table.put_item(
                Item={**item, "id": key},
                ConditionExpression="attribute_not_exists(id)",
            )
        except ClientError as error:
            if _error_code(error) == "ConditionalCheckFailedException":
                raise AlreadyExistsError(f"Egress Store with id \"{key}\" already exists") from error
            raise

    def update_if_exists(self, key: str, item: dict[str, object]) -> None:
        try:
            self._table.put_item(
                Item={**item, "id": key},
                ConditionExpression="attribute_exists(id)",
            )
        except ClientError as error:
            if _error_code(error) == "ConditionalCheckFailedException":
                raise NotFoundError(f"Egress Store with id \"{key}\" does not exist") from error
            raise

    def scan_all(self) -> Iterator[dict[str, object]]:
        kwargs: dict[str, object] = {}
        while True:
            response = self._table.scan(**kwargs)
            yield from response.get("Items", [])
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return
            kwargs["ExclusiveStartKey"] = last_key


class S3ObjectStorage:
    """Object storage over an S3 client."""

    def __init__(self, client: Any) -> None:
        self._s3 = client

    def create_prefix(self, container: str, prefix: str) -> None:
        self._s3.put_object(Bucket=container, Key=prefix, Body=b"")

    def clear_prefix(self, container: str, prefix: str) -> None:
        """Delete every version and delete marker under ``prefix``."""
        paginator = self._s3.get_paginator("list_object_versions")
        pending: list[dict[str, str]] = []
        for page in paginator.paginate(Bucket=container, Prefix=prefix):
            for entry in page.get("Versions", []) + page.get("DeleteMarkers", []):
                pending.append({"Key": entry["Key"], "VersionId": entry["VersionId"]})
        for start in range(0, len(pending), _DELETE_BATCH_SIZE):
            batch = pending[start : start + _DELETE_BATCH_SIZE]
            self._s3.delete_objects(Bucket=container, Delete={"Objects": batch, "Quiet": True})
        logger.info("Cleared %d object versions under s3://%s/%s", len(pending), container, prefix)

    def list_all(self, container: str, prefix: str) -> list[StoredObject]:
        paginator = self._s3.get_paginator("list_objects_v2")
        objects: list[StoredObject] = []
        for page in paginator.paginate(Bucket=container, Prefix=prefix):
            for entry in page.get("Contents", []):
                objects.append(
                    StoredObject(
                        key=entry["Key"],
                        size=int(entry["Size"]),
                        last_modified=entry["LastModified"],
                    )
                )
        return objects

    def get_latest_version(self, container: str, key: str) -> ObjectVersion:
        paginator = self._s3.get_paginator("list_object_versions")
        for page in paginator.paginate(Bucket=container, Prefix=key):
            for entry in page.get("Versions", []):
                if entry.get("Key") == key and entry.get("IsLatest"):
                    return ObjectVersion(version_id=entry.get("VersionId"), owner=entry.get("Owner"))
        return ObjectVersion(version_id=None, owner=None)

    def put_object(self, container: str, key: str, body: bytes, content_type: str) -> None:
        self._s3.put_object(Bucket=container, Key=key, Body=body, ContentType=content_type)


class S3PolicyStore:
    """Bucket policy access over an S3 client."""

    def __init__(self, client: Any) -> None:
        self._s3 = client

    def get_policy(self, container: str) -> str | None:
        try:
            return str(self._s3.get_bucket_policy(Bucket=container)["Policy"])
        except ClientError as error:
            if _error_code(error) == "NoSuchBucketPolicy":
                return None
            raise

    def set_policy(self, container: str, document: str) -> None:
        self._s3.put_bucket_policy(Bucket=container, Policy=document)

    def delete_policy(self, container: str) -> None:
        self._s3.delete_bucket_policy(Bucket=container)


class KmsKeyManagement:
    """Resolves a KMS alias ARN to the key ARN that grants must reference."""

    def __init__(self, client: Any) -> None:
        self._kms = client

    def resolve_key_arn(self, alias: str) -> str:
        return str(self._kms.describe_key(KeyId=alias)["KeyMetadata"]["Arn"])


class SnsEventPublisher:
    def __init__(self, client: Any) -> None:
        self._sns = client

    def publish(self, topic: str, message: str) -> None:
        self._sns.publish(TopicArn=topic, Message=message)


@dataclass
class AwsBackends:
    """All boto3-backed collaborators for one configuration."""

    records: DynamoRecordStore
    objects: S3ObjectStorage
    policies: S3PolicyStore
    keys: KmsKeyManagement
    events: SnsEventPublisher


def build_aws_backends(config: "EgressStoreConfig", session: Any | None = None) -> AwsBackends:
    """Create boto3 clients from ``config`` and wrap them.

    Parameters
    ----------
    config:
        Loaded egress store configuration.
    session:
        Optional ``boto3.session.Session``; a new one is created for
        ``config.aws.region_name`` when omitted.
    """
    session = session or boto3.session.Session(region_name=config.aws.region_name)
    client_config = BotoConfig(retries={"max_attempts": config.aws.max_attempts, "mode": "standard"})
    # Conditional writes are not retried: a retried put that had succeeded
    # would come back as a failed condition.
    record_config = BotoConfig(retries={"max_attempts": 1, "mode": "standard"})
    endpoint = config.aws.endpoint_url
    table = session.resource("dynamodb", endpoint_url=endpoint, config=record_config).Table(
        config.record_table_name
    )
    s3 = session.client("s3", endpoint_url=endpoint, config=client_config)
    return AwsBackends(
        records=DynamoRecordStore(table),
        objects=S3ObjectStorage(s3),
        policies=S3PolicyStore(s3),
        keys=KmsKeyManagement(session.client("kms", endpoint_url=endpoint, config=client_config)),
        events=SnsEventPublisher(session.client("sns", endpoint_url=endpoint, config=client_config)),
    )

#!/usr/bin/env python3
"""Example: Quickstart — aumos-egress-store

Create a workspace's egress store, drop a file into it, submit an egress
request and terminate the store once the request has been processed.
Everything runs against the in-memory backends.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install aumos-egress-store
"""
from __future__ import annotations

import aumos_egress_store as egress

CONFIG = """
enabled: true
store_bucket_name: egress-bucket
notification_bucket_name: egress-notify
notification_topic_arn: arn:aws:sns:us-east-1:000000000000:egress
member_accounts:
  ws-1: "111111111111"
audit:
  log_path: ./egress_audit.jsonl
"""


def main() -> None:
    print(f"aumos-egress-store version: {egress.__version__}")

    # Step 1: Wire the lifecycle over in-memory backends
    components = egress.build_lifecycle(egress.ConfigLoader().load_string(CONFIG))
    lifecycle = components.lifecycle
    researcher = egress.RequestContext(uid="u-1")

    # Step 2: Create the store; the member account is granted in the bucket policy
    descriptor = lifecycle.create(
        researcher,
        {"id": "ws-1", "name": "genomics", "projectId": "p-1", "createdBy": "u-1"},
    )
    print(f"Created {descriptor.id} at s3://{descriptor.bucket}/{descriptor.prefix}")
    for statement in components.reconciler.describe(descriptor.bucket):
        print(f"  {statement.sid}: {', '.join(statement.principals)}")

    # Step 3: Add data and list it
    components.objects.put_object("egress-bucket", "ws-1/results.csv", b"gene,count\nBRCA1,12\n", "text/csv")
    listing = lifecycle.list_objects(researcher, "ws-1")
    for entry in listing.objects:
        print(f"  {entry.key}  {entry.size}")

    # Step 4: Open the store and submit an egress request
    record = lifecycle.get_store_info("ws-1")
    assert record is not None
    lifecycle.enable_submission(record)
    payload = lifecycle.submit(researcher, "ws-1")
    print(f"\nSubmitted egress request {payload['id']} (ver {payload['ver']})")
    print(f"  manifest: {payload['egressStoreObjectListLocation']}")

    # Step 5: The export process marks the request processed; terminate the store
    record = lifecycle.get_store_info("ws-1")
    assert record is not None
    record.status = egress.EgressStoreStatus.PROCESSED
    components.repository.update(record)
    terminated = lifecycle.terminate(researcher, "ws-1")
    print(f"\nStore status: {terminated.status.value if terminated else 'none'}")
    print(f"Bucket policy statements left: {len(components.reconciler.describe(descriptor.bucket))}")

    components.auditor.close()


if __name__ == "__main__":
    main()

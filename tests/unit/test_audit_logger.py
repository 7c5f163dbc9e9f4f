"""Tests for AuditLogger."""
from __future__ import annotations

import json
import threading
from datetime import datetime, timezone
from pathlib import Path

import pytest

from aumos_egress_store.audit.logger import AuditLogger


@pytest.fixture()
def log_path(tmp_path: Path) -> Path:
    return tmp_path / "egress_audit.jsonl"


@pytest.fixture()
def audit(log_path: Path) -> AuditLogger:
    return AuditLogger(log_path, session_id="session-42")


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestConstruction:
    def test_custom_session_id(self, audit: AuditLogger) -> None:
        assert audit.session_id == "session-42"

    def test_generated_session_ids_differ(self, log_path: Path) -> None:
        assert AuditLogger(log_path).session_id != AuditLogger(log_path).session_id

    def test_log_path_property(self, audit: AuditLogger, log_path: Path) -> None:
        assert audit.log_path == log_path


# ---------------------------------------------------------------------------
# log
# ---------------------------------------------------------------------------


class TestLog:
    def test_writes_one_json_line(self, audit: AuditLogger, log_path: Path) -> None:
        audit.log({"action": "terminated-egress-store", "body": "No egress store found to be terminated"})
        lines = log_path.read_text(encoding="utf-8").strip().splitlines()
        assert len(lines) == 1
        record = json.loads(lines[0])
        assert record["action"] == "terminated-egress-store"
        assert record["session_id"] == "session-42"
        assert "timestamp" in record

    def test_caller_cannot_override_stamps(self, audit: AuditLogger) -> None:
        audit.log({"action": "x", "timestamp": "forged", "session_id": "forged"})
        record = audit.read_all()[0]
        assert record["timestamp"] != "forged"
        assert record["session_id"] == "session-42"

    def test_nested_body_preserved(self, audit: AuditLogger) -> None:
        body = {"Version": "2012-10-17", "Statement": [{"Sid": "Get:egress-store-ws-1"}]}
        audit.log({"action": "add-egress-store-to-bucket-policy", "body": body})
        assert audit.read_all()[0]["body"] == body

    def test_non_json_values_are_stringified(self, audit: AuditLogger) -> None:
        when = datetime(2024, 1, 1, tzinfo=timezone.utc)
        audit.log({"action": "x", "when": when})
        assert audit.read_all()[0]["when"] == str(when)

    def test_creates_parent_dirs(self, tmp_path: Path) -> None:
        nested = tmp_path / "var" / "log" / "egress.jsonl"
        AuditLogger(nested).log({"action": "x"})
        assert nested.exists()

    def test_concurrent_writers_do_not_interleave(self, audit: AuditLogger) -> None:
        def write(worker: int) -> None:
            for index in range(25):
                audit.log({"action": "x", "worker": worker, "index": index})

        threads = [threading.Thread(target=write, args=(w,)) for w in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert audit.count() == 100


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------


class TestRead:
    def test_read_all_empty_without_file(self, audit: AuditLogger) -> None:
        assert audit.read_all() == []

    def test_malformed_and_blank_lines_skipped(self, audit: AuditLogger, log_path: Path) -> None:
        audit.log({"action": "first"})
        with log_path.open("a", encoding="utf-8") as fh:
            fh.write("{truncated\n\n")
        audit.log({"action": "second"})
        assert [r["action"] for r in audit.read_all()] == ["first", "second"]

    def test_query_matches_all_filters(self, audit: AuditLogger) -> None:
        audit.log({"action": "terminated-egress-store", "actor": "u-1"})
        audit.log({"action": "terminated-egress-store", "actor": "u-2"})
        audit.log({"action": "trigger-egress-notification-process", "actor": "u-1"})
        results = audit.query({"action": "terminated-egress-store", "actor": "u-1"})
        assert len(results) == 1

    def test_query_without_filters_returns_everything(self, audit: AuditLogger) -> None:
        audit.log({"action": "a"})
        audit.log({"action": "b"})
        assert len(audit.query({})) == 2

    def test_last_n(self, audit: AuditLogger) -> None:
        for index in range(5):
            audit.log({"action": "x", "index": index})
        assert [r["index"] for r in audit.last_n(2)] == [3, 4]
        assert len(audit.last_n(10)) == 5

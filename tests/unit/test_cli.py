"""Tests for the egress-store CLI."""
from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from aumos_egress_store.audit.logger import AuditLogger
from aumos_egress_store.backends.memory import InMemoryPolicyStore
from aumos_egress_store.cli.main import cli
from aumos_egress_store.locking.coordinator import InProcessLockCoordinator
from aumos_egress_store.policies.reconciler import PolicyReconciler

BUCKET = "egress-bucket"


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def audit_path(tmp_path: Path) -> Path:
    return tmp_path / "audit.jsonl"


@pytest.fixture()
def config_file(tmp_path: Path, audit_path: Path) -> str:
    path = tmp_path / "egress.yaml"
    path.write_text(
        "enabled: true\n"
        f"store_bucket_name: {BUCKET}\n"
        "notification_bucket_name: egress-notify\n"
        "audit:\n"
        f"  log_path: {audit_path}\n",
        encoding="utf-8",
    )
    return str(path)


@pytest.fixture()
def policy_store(monkeypatch: pytest.MonkeyPatch) -> InMemoryPolicyStore:
    store = InMemoryPolicyStore()
    reconciler = PolicyReconciler(store, InProcessLockCoordinator(timeout_seconds=1))
    monkeypatch.setattr("aumos_egress_store.cli.main._build_reconciler", lambda config: reconciler)
    return store


# ---------------------------------------------------------------------------
# version / size
# ---------------------------------------------------------------------------


class TestBasicCommands:
    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_size(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["size", "1536"])
        assert result.exit_code == 0
        assert result.output.strip() == "2 KB"

    def test_size_zero(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["size", "0"])
        assert result.output.strip() == "0 Byte"

    def test_negative_size_rejected(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["size", "--", "-1"])
        assert result.exit_code != 0


# ---------------------------------------------------------------------------
# config check
# ---------------------------------------------------------------------------


class TestConfigCheck:
    def test_valid_config(self, runner: CliRunner, config_file: str) -> None:
        result = runner.invoke(cli, ["config", "check", "-c", config_file])
        assert result.exit_code == 0
        assert BUCKET in result.output

    def test_invalid_config_exits_one(self, runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("enabled: true\n", encoding="utf-8")
        result = runner.invoke(cli, ["config", "check", "-c", str(path)])
        assert result.exit_code == 1

    def test_missing_config_is_usage_error(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["config", "check", "-c", str(tmp_path / "missing.yaml")])
        assert result.exit_code == 2


# ---------------------------------------------------------------------------
# policy
# ---------------------------------------------------------------------------


class TestPolicyCommands:
    def test_grant_writes_statements(
        self, runner: CliRunner, config_file: str, policy_store: InMemoryPolicyStore
    ) -> None:
        result = runner.invoke(cli, ["policy", "grant", "ws-1", "111111111111", "-c", config_file])
        assert result.exit_code == 0
        assert "Granted" in result.output
        policy = json.loads(str(policy_store.get_policy(BUCKET)))
        assert [s["Sid"] for s in policy["Statement"]] == [
            "Get:egress-store-ws-1",
            "Put:egress-store-ws-1",
            "List:egress-store-ws-1",
        ]

    def test_read_only_grant(
        self, runner: CliRunner, config_file: str, policy_store: InMemoryPolicyStore
    ) -> None:
        result = runner.invoke(
            cli, ["policy", "grant", "ws-1", "111111111111", "--no-write", "-c", config_file]
        )
        assert result.exit_code == 0
        policy = json.loads(str(policy_store.get_policy(BUCKET)))
        assert [s["Sid"] for s in policy["Statement"]] == ["Get:egress-store-ws-1", "List:egress-store-ws-1"]

    def test_grant_nothing_is_usage_error(
        self, runner: CliRunner, config_file: str, policy_store: InMemoryPolicyStore
    ) -> None:
        result = runner.invoke(
            cli, ["policy", "grant", "ws-1", "111111111111", "--no-read", "--no-write", "-c", config_file]
        )
        assert result.exit_code == 2
        assert policy_store.writes == 0

    def test_revoke_removes_grant(
        self, runner: CliRunner, config_file: str, policy_store: InMemoryPolicyStore
    ) -> None:
        runner.invoke(cli, ["policy", "grant", "ws-1", "111111111111", "-c", config_file])
        result = runner.invoke(cli, ["policy", "revoke", "ws-1", "111111111111", "-c", config_file])
        assert result.exit_code == 0
        assert "Revoked" in result.output
        assert policy_store.get_policy(BUCKET) is None

    def test_show_lists_statements(
        self, runner: CliRunner, config_file: str, policy_store: InMemoryPolicyStore
    ) -> None:
        runner.invoke(cli, ["policy", "grant", "ws-1", "111111111111", "--no-write", "-c", config_file])
        result = runner.invoke(cli, ["policy", "show", "-c", config_file])
        assert result.exit_code == 0
        assert "Get:egress-store-ws-1" in result.output
        assert "List:egress-store-ws-1" in result.output

    def test_show_empty_policy(
        self, runner: CliRunner, config_file: str, policy_store: InMemoryPolicyStore
    ) -> None:
        result = runner.invoke(cli, ["policy", "show", "-c", config_file])
        assert result.exit_code == 0
        assert "No egress store statements" in result.output

    def test_malformed_policy_exits_one(
        self, runner: CliRunner, config_file: str, policy_store: InMemoryPolicyStore
    ) -> None:
        policy_store.set_policy(BUCKET, "{broken")
        result = runner.invoke(cli, ["policy", "grant", "ws-1", "111111111111", "-c", config_file])
        assert result.exit_code == 1
        assert policy_store.get_policy(BUCKET) == "{broken"

    def test_missing_bucket_exits_two(
        self, runner: CliRunner, tmp_path: Path, policy_store: InMemoryPolicyStore
    ) -> None:
        path = tmp_path / "egress.yaml"
        path.write_text("enabled: false\n", encoding="utf-8")
        result = runner.invoke(cli, ["policy", "show", "-c", str(path)])
        assert result.exit_code == 2


# ---------------------------------------------------------------------------
# audit show
# ---------------------------------------------------------------------------


class TestAuditShow:
    def test_no_entries(self, runner: CliRunner, config_file: str) -> None:
        result = runner.invoke(cli, ["audit", "show", "-c", config_file])
        assert result.exit_code == 0
        assert "No audit entries found" in result.output

    def test_shows_recent_entries(self, runner: CliRunner, config_file: str, audit_path: Path) -> None:
        audit = AuditLogger(audit_path)
        audit.log({"action": "terminated-egress-store", "actor": "u-1"})
        audit.log({"action": "terminated-egress-store", "actor": "u-2"})
        result = runner.invoke(cli, ["audit", "show", "-n", "5", "-c", config_file])
        assert result.exit_code == 0
        assert "terminated-egress-store" in result.output
        assert "Total audit records: 2" in result.output

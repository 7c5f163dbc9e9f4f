"""CLI entry point for aumos-egress-store.

Invoked as::

    egress-store [OPTIONS] COMMAND [ARGS]...

or during development::

    python -m aumos_egress_store.cli.main

Commands
--------
- version        Show version information
- config check   Validate an egress store configuration
- policy show    Show the egress statements in the store bucket policy
- policy grant   Grant a member account access to a workspace's store
- policy revoke  Revoke a member account's access to a workspace's store
- audit show     Display recent audit entries
- size           Render a byte count in human-readable units
"""
from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from aumos_egress_store.config.loader import ConfigLoader, EgressStoreConfig
from aumos_egress_store.errors import EgressStoreError

if TYPE_CHECKING:
    from aumos_egress_store.policies.reconciler import PolicyReconciler

console = Console()
err_console = Console(stderr=True)

_DEFAULT_CONFIG = Path("egress.yaml")


def _load_config(config_path: str) -> EgressStoreConfig:
    loader = ConfigLoader()
    cfg_path = Path(config_path)
    return loader.load(cfg_path) if cfg_path.exists() else loader.defaults()


def _build_reconciler(config: EgressStoreConfig) -> "PolicyReconciler":
    """Build a reconciler over the configured bucket's real policy."""
    import boto3

    from aumos_egress_store.audit.logger import AuditLogger
    from aumos_egress_store.audit.writer import AuditWriter
    from aumos_egress_store.backends.aws import S3PolicyStore
    from aumos_egress_store.locking.coordinator import InProcessLockCoordinator
    from aumos_egress_store.policies.reconciler import PolicyReconciler

    client = boto3.session.Session(region_name=config.aws.region_name).client(
        "s3", endpoint_url=config.aws.endpoint_url
    )
    auditor = AuditWriter(AuditLogger(config.audit.log_path, session_id=config.audit.session_id))
    return PolicyReconciler(
        S3PolicyStore(client),
        InProcessLockCoordinator(config.lock_timeout_seconds),
        auditor,
    )


def _require_bucket(config: EgressStoreConfig) -> str:
    if not config.store_bucket_name:
        err_console.print("[red]store_bucket_name is not configured.[/red]")
        sys.exit(2)
    return config.store_bucket_name


_config_option = click.option(
    "--config",
    "-c",
    "config_path",
    default=str(_DEFAULT_CONFIG),
    show_default=True,
    type=click.Path(),
    help="Path to egress.yaml.",
)


# ---------------------------------------------------------------------------
# Root command group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="aumos-egress-store")
def cli() -> None:
    """Egress Store CLI — bucket policy reconciliation and audit tools."""


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from aumos_egress_store import __version__

    console.print(
        Panel(
            f"[bold]aumos-egress-store[/bold]  v[cyan]{__version__}[/cyan]\n"
            "Egress store lifecycle and shared bucket policy reconciliation.",
            title="Version",
            border_style="blue",
        )
    )


@cli.command(name="size")
@click.argument("num_bytes", type=click.IntRange(min=0))
def size_command(num_bytes: int) -> None:
    """Render NUM_BYTES the way egress store listings do."""
    from aumos_egress_store.store.records import format_size

    console.print(format_size(num_bytes))


# ---------------------------------------------------------------------------
# config group
# ---------------------------------------------------------------------------


@cli.group(name="config")
def config_group() -> None:
    """Configuration commands."""


@config_group.command(name="check")
@click.option(
    "--config",
    "-c",
    "config_path",
    default=str(_DEFAULT_CONFIG),
    show_default=True,
    type=click.Path(exists=True),
    help="Path to egress.yaml.",
)
def config_check_command(config_path: str) -> None:
    """Validate an egress store configuration file."""
    try:
        config = ConfigLoader().load(Path(config_path))
    except ValueError as exc:
        err_console.print(f"[red]Invalid configuration:[/red] {exc}")
        sys.exit(1)

    table = Table(title="Egress Store Configuration", box=box.SIMPLE)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("enabled", "[green]yes[/green]" if config.enabled else "[yellow]no[/yellow]")
    table.add_row("store_bucket_name", str(config.store_bucket_name))
    table.add_row("notification_bucket_name", str(config.notification_bucket_name))
    table.add_row("kms_key_alias_arn", str(config.kms_key_alias_arn))
    table.add_row("notification_topic_arn", str(config.notification_topic_arn))
    table.add_row("record_table_name", config.record_table_name)
    table.add_row("lock_timeout_seconds", str(config.lock_timeout_seconds))
    table.add_row("listing_limit", str(config.listing_limit))
    table.add_row("audit.log_path", str(config.audit.log_path))
    table.add_row("member_accounts", str(len(config.member_accounts)))
    console.print(table)


# ---------------------------------------------------------------------------
# policy group
# ---------------------------------------------------------------------------


@cli.group(name="policy")
def policy_group() -> None:
    """Shared bucket policy commands."""


@policy_group.command(name="show")
@_config_option
def policy_show_command(config_path: str) -> None:
    """Show the egress store statements in the store bucket policy."""
    config = _load_config(config_path)
    bucket = _require_bucket(config)
    reconciler = _build_reconciler(config)
    try:
        statements = reconciler.describe(bucket)
    except EgressStoreError as exc:
        err_console.print(f"[red]{exc.kind.value}:[/red] {exc.message}")
        sys.exit(1)

    if not statements:
        console.print(f"[yellow]No egress store statements in the policy of {bucket}.[/yellow]")
        return

    table = Table(title=f"Egress Store Statements — {bucket}", box=box.SIMPLE)
    table.add_column("Sid", style="cyan")
    table.add_column("Actions", style="magenta")
    table.add_column("Principals")
    for statement in statements:
        table.add_row(statement.sid, ", ".join(statement.actions), "\n".join(statement.principals))
    console.print(table)


@policy_group.command(name="grant")
@click.argument("workspace_id")
@click.argument("account_id")
@click.option("--read/--no-read", default=True, show_default=True, help="Grant object reads.")
@click.option("--write/--no-write", default=True, show_default=True, help="Grant object writes.")
@_config_option
def policy_grant_command(workspace_id: str, account_id: str, read: bool, write: bool, config_path: str) -> None:
    """Grant ACCOUNT_ID access to the egress store of WORKSPACE_ID."""
    _reconcile(workspace_id, account_id, config_path, grant=True, read=read, write=write)


@policy_group.command(name="revoke")
@click.argument("workspace_id")
@click.argument("account_id")
@_config_option
def policy_revoke_command(workspace_id: str, account_id: str, config_path: str) -> None:
    """Revoke ACCOUNT_ID's access to the egress store of WORKSPACE_ID."""
    _reconcile(workspace_id, account_id, config_path, grant=False)


def _reconcile(
    workspace_id: str,
    account_id: str,
    config_path: str,
    grant: bool,
    read: bool = True,
    write: bool = True,
) -> None:
    from aumos_egress_store.context import RequestContext
    from aumos_egress_store.store.records import EgressStoreDescriptor

    if not (read or write) and grant:
        err_console.print("[red]Nothing to grant: pass --read and/or --write.[/red]")
        sys.exit(2)

    config = _load_config(config_path)
    bucket = _require_bucket(config)
    descriptor = EgressStoreDescriptor(
        id=f"egress-store-{workspace_id}",
        bucket=bucket,
        prefix=f"{workspace_id}/",
        workspace_id=workspace_id,
        project_id=None,
        created_by=None,
        env_permission={"read": read, "write": write},
    )
    reconciler = _build_reconciler(config)
    operator = RequestContext(uid="egress-store-cli", is_admin=True)
    try:
        if grant:
            reconciler.grant(descriptor, account_id, operator)
        else:
            reconciler.revoke(descriptor, account_id, operator)
    except EgressStoreError as exc:
        err_console.print(f"[red]{exc.kind.value}:[/red] {exc.message}")
        sys.exit(1)

    verb = "Granted" if grant else "Revoked"
    console.print(f"[green]{verb}[/green] account [bold]{account_id}[/bold] on [cyan]{descriptor.id}[/cyan]")


# ---------------------------------------------------------------------------
# audit group
# ---------------------------------------------------------------------------


@cli.group(name="audit")
def audit_group() -> None:
    """Audit trail commands."""


@audit_group.command(name="show")
@click.option("--last", "-n", default=20, show_default=True, type=int, help="Number of recent entries to show.")
@_config_option
def audit_show_command(last: int, config_path: str) -> None:
    """Show recent audit log entries."""
    from aumos_egress_store.audit.logger import AuditLogger

    config = _load_config(config_path)
    audit = AuditLogger(log_path=config.audit.log_path)
    records = audit.last_n(last)

    if not records:
        console.print("[yellow]No audit entries found.[/yellow]")
        return

    table = Table(title=f"Last {last} Audit Events", box=box.SIMPLE)
    table.add_column("Timestamp", style="dim", no_wrap=True)
    table.add_column("Action", style="cyan")
    table.add_column("Actor", style="magenta")

    for record in records:
        ts = str(record.get("timestamp", ""))[:19].replace("T", " ")
        table.add_row(ts, str(record.get("action", "")), str(record.get("actor", "")))

    console.print(table)
    console.print(f"  Total audit records: [cyan]{audit.count()}[/cyan]")


if __name__ == "__main__":
    cli()

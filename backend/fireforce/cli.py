# Overview: Flask CLI command groups for bootstrap, inspection, and backups.

# backend/fireforce/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init
#   Create tables and seed the default tax rate (idempotent).
# - python -m flask system status
#   Show the active store, record counts and whether the service fell back to local data.
#
# Backups:
# - python -m flask backup create [--out backups] [--include-passwords]
#   Write a full backup file.
# - python -m flask backup validate FILE
#   Print the validation report for a backup file.
# - python -m flask backup restore FILE [--yes]
#   DESTRUCTIVE: replace customers, salesmen and invoices with the backup contents.
# - python -m flask backup status
#   Show history, last backup and reminder state.
# - python -m flask backup enable | disable
#   Toggle automatic backups.
# - python -m flask backup check
#   Run one scheduler tick now.
# - python -m flask backup dismiss-reminder
#   Silence backup reminders until tomorrow.

import json
from pathlib import Path

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db, services
from .services.backup_validator import BackupParseError, generate_report, parse_snapshot, validate_snapshot
from .services.data_service import PersistenceError
from .store import SETTINGS, StoreError


@click.group('system')
def system_group():
    """System bootstrap and inspection commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create all tables and seed the default tax rate if none is stored."""
    click.echo("BUILD  Creating tables...")
    db.create_all()

    store = services().data.primary_store
    try:
        existing = store.load_all(SETTINGS)
        if not any(row.get("key") == "taxRate" for row in existing):
            rate = current_app.config["DEFAULT_TAX_RATE"]
            store.upsert(SETTINGS, {"key": "taxRate", "value": str(rate)}, key="key")
            click.echo(f"PASS Seeded tax rate {rate}%")
        else:
            click.echo("PASS Tax rate already configured")
    except StoreError as exc:
        raise click.ClickException(f"Could not seed settings: {exc}")

    for account in services().fixed_accounts:
        state = "login enabled" if account.password_hash else "NO PASSWORD CONFIGURED"
        click.echo(f"PASS Fixed account {account.username} ({account.id}): {state}")
    click.echo("DONE System initialized")


@system_group.command('status')
@with_appcontext
def system_status():
    """Show store state and record counts."""
    data = services().data
    try:
        data.load_all_data()
    except PersistenceError as exc:
        raise click.ClickException(str(exc))
    status = data.status()
    click.echo(f"Store:      {status['backend']} (configured: {status['configuredBackend']})")
    click.echo(f"Degraded:   {'yes' if status['degraded'] else 'no'}")
    for kind, count in status["counts"].items():
        click.echo(f"{kind:<11} {count}")


@click.group('backup')
def backup_group():
    """Backup, validation and restore commands."""


def _read_snapshot(path: str) -> dict:
    try:
        return parse_snapshot(Path(path).read_bytes())
    except OSError as exc:
        raise click.ClickException(f"Cannot read {path}: {exc}")
    except BackupParseError as exc:
        raise click.ClickException(str(exc))


def _report(snapshot: dict) -> dict:
    bundle = services()
    result = validate_snapshot(
        snapshot,
        now=bundle.scheduler.clock(),
        system_name=current_app.config["SYSTEM_NAME"],
        office_info=bundle.data.get_office_info(),
    )
    return generate_report(result)


def _echo_report(report: dict) -> None:
    click.echo(report["summary"])
    for error in report["details"]["errors"]:
        click.echo(f"  ERROR {error}")
    for warning in report["details"]["warnings"]:
        click.echo(f"  WARN  {warning}")


@backup_group.command('create')
@click.option('--out', 'out_dir', default=None, help='Directory for the backup file (default BACKUP_DIR)')
@click.option('--include-passwords', is_flag=True, help='Export stored password hashes')
@with_appcontext
def create_backup(out_dir, include_passwords):
    """Write a full backup file."""
    bundle = services()
    try:
        bundle.data.load_all_data()
    except PersistenceError as exc:
        raise click.ClickException(str(exc))
    artifact = bundle.exporter.create_backup(
        bundle.data.collections(),
        include_passwords=include_passwords,
        created_by="Command Line",
    )
    path = bundle.exporter.write_backup(artifact, out_dir or current_app.config["BACKUP_DIR"])
    click.echo(f"PASS Wrote {path} ({artifact.size} bytes, {artifact.entry['recordCount']} records)")


@backup_group.command('validate')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@with_appcontext
def validate_backup(path):
    """Print the validation report for a backup file."""
    report = _report(_read_snapshot(path))
    _echo_report(report)
    if not report["isValid"]:
        raise SystemExit(1)


@backup_group.command('restore')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def restore_backup(path, yes):
    """
    DANGER: Replace customers, salesmen and invoices with the backup contents.

    Office accounts and office information are kept.
    """
    snapshot = _read_snapshot(path)
    report = _report(snapshot)
    _echo_report(report)
    if not report["isValid"]:
        raise click.ClickException("Backup cannot be restored")

    meta = report["metadata"] or {}
    counts = meta.get("recordCounts", {})
    click.echo(f"Backup date: {meta.get('timestamp')}")
    click.echo(f"Invoices: {counts.get('invoices')}  Customers: {counts.get('customers')}  Users: {counts.get('users')}")
    if not yes:
        click.confirm(
            "WARN This will replace all current data except office information. Continue?",
            abort=True,
        )

    bundle = services()
    try:
        bundle.data.ensure_loaded()
    except PersistenceError as exc:
        raise click.ClickException(str(exc))
    final = None
    for state in bundle.restorer.restore(snapshot):
        click.echo(f"[{state.progress:>3}%] {state.message}")
        final = state
    if final is None or final.status != "completed":
        raise click.ClickException(final.error if final else "Restore did not run")


@backup_group.command('status')
@with_appcontext
def backup_status():
    """Show backup history and reminder state."""
    scheduler = services().scheduler
    click.echo(json.dumps(scheduler.get_backup_stats(), indent=2))
    for entry in scheduler.history():
        click.echo(f"  {entry['timestamp']}  {entry['type']:<17} {entry['recordCount']:>6} records  {entry['byteSize']:>9} bytes")


@backup_group.command('enable')
@with_appcontext
def enable_auto_backup():
    services().scheduler.set_enabled(True)
    click.echo("PASS Automatic backup enabled")


@backup_group.command('disable')
@with_appcontext
def disable_auto_backup():
    services().scheduler.set_enabled(False)
    click.echo("PASS Automatic backup disabled")


@backup_group.command('check')
@with_appcontext
def check_backups():
    """Run one scheduler tick now."""
    result = services().scheduler.check()
    click.echo(json.dumps(result))


@backup_group.command('dismiss-reminder')
@with_appcontext
def dismiss_reminder():
    services().scheduler.dismiss_reminder()
    click.echo("PASS Backup reminders dismissed for today")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(backup_group)

"""CLI commands for operating the vault.

Usage:
    flask --app domainvault check-backend   # Verify the backend answers
    flask --app domainvault list-devices    # Print the device registry
"""

from __future__ import annotations

import click
from flask import current_app
from flask.cli import with_appcontext

from domainvault.core.errors import BackendUnavailable


@click.command("check-backend")
@with_appcontext
def check_backend_command():
    """Run a trivial query against the configured backend."""
    from domainvault.core.utils.backend import ping
    from domainvault.extensions import db

    if current_app.config.get("STORAGE_BACKEND") == "memory":
        click.echo("Storage backend is in-memory; nothing to check.")
        return
    try:
        ping(db.session)
    except BackendUnavailable as e:
        click.echo(f"  ✗ Backend unreachable: {e}", err=True)
        raise SystemExit(1)
    click.echo("  ✓ Backend reachable")


@click.command("list-devices")
@with_appcontext
def list_devices_command():
    """Print every known device with its observed addresses."""
    resolver = current_app.extensions["request_resolver"]
    devices = resolver.list_devices()
    if not devices:
        click.echo("No devices recorded.")
        return
    for device in devices:
        click.echo(f"{device.device_id}: {', '.join(sorted(device.ip_addrs))}")


def register_commands(app):
    """Register CLI commands with the app."""
    app.cli.add_command(check_backend_command)
    app.cli.add_command(list_devices_command)

"""
Custom Flask CLI commands.

These commands are registered with the app via ``register_commands()``
in the application factory. Run them with ``flask <command_name>``.

Usage::

    flask db-check      # Verify database connectivity and tables
    flask init-db       # Create all tables without migrations
    flask audit-check   # Report assets whose state diverges from history
"""

import click
from flask import current_app
from flask.cli import with_appcontext
from sqlalchemy import inspect

from asset_tracker.extensions import db
from asset_tracker.services import query_service

# Tables the application cannot run without.
_EXPECTED_TABLES = ("users", "assets", "asset_history")


@click.command("db-check")
@with_appcontext
def db_check_command():
    """
    Verify database connectivity and confirm the expected tables exist.

    Useful for confirming DATABASE_URL is correct and that migrations
    (or ``flask init-db``) have been run.
    """
    click.echo("=" * 60)
    click.echo("  Asset Tracker — Database Connectivity Check")
    click.echo("=" * 60)

    db_uri = db.engine.url.render_as_string(hide_password=True)
    click.echo(f"\n  Connection string: {db_uri}\n")

    # -- Step 1: Basic connectivity ----------------------------------------
    click.echo("[1/2] Testing connection...")
    try:
        row = db.session.execute(db.text("SELECT 1 AS connected")).fetchone()
    except Exception as exc:  # pylint: disable=broad-exception-caught
        click.secho(f"      ✗ Connection failed: {exc}", fg="red")
        click.echo("\n  Troubleshooting tips:")
        click.echo("    - Does DATABASE_URL point at the right database?")
        click.echo("    - For SQLite, is the directory writable?")
        raise SystemExit(1) from exc

    if not row or row[0] != 1:
        click.secho("      ✗ Unexpected result from test query.", fg="red")
        raise SystemExit(1)
    click.secho(
        f"      ✓ Connected ({db.engine.dialect.name}).", fg="green"
    )

    # -- Step 2: Table presence --------------------------------------------
    click.echo("[2/2] Checking tables...\n")
    existing = set(inspect(db.engine).get_table_names())
    missing = [name for name in _EXPECTED_TABLES if name not in existing]
    for name in _EXPECTED_TABLES:
        marker = "✗ missing" if name in missing else "✓"
        click.echo(f"      {name:>14}  {marker}")

    if missing:
        click.secho(
            "\n      Run `flask db upgrade` or `flask init-db` first.", fg="red"
        )
        raise SystemExit(1)

    click.echo("\n" + "=" * 60)
    click.secho("  All checks passed. Database is ready.", fg="green", bold=True)
    click.echo("=" * 60)


@click.command("init-db")
@with_appcontext
def init_db_command():
    """Create all tables directly from the models (no Alembic)."""
    # Imported so every model is registered on the metadata.
    from asset_tracker import models  # noqa: F401  pylint: disable=import-outside-toplevel,unused-import

    db.create_all()
    current_app.logger.info("Created tables via create_all()")
    click.secho("Database tables created.", fg="green")


@click.command("audit-check")
@with_appcontext
def audit_check_command():
    """
    Compare each asset's current state with its latest history entry.

    Assets edited through a plain update after their last transition
    show up here.  Exits non-zero when any asset diverges.
    """
    inconsistent = query_service.find_inconsistent_assets()
    if not inconsistent:
        click.secho("All assets match their history.", fg="green")
        return

    click.secho(
        f"{len(inconsistent)} asset(s) diverge from their latest history entry:",
        fg="yellow",
    )
    for asset in inconsistent:
        click.echo(
            f"  #{asset.id} {asset.serial_number}: status={asset.status} "
            f"owner={asset.allocated_to_user_id}"
        )
    raise SystemExit(1)


def register_commands(app):
    """Register all custom CLI commands with the Flask application."""
    app.cli.add_command(db_check_command)
    app.cli.add_command(init_db_command)
    app.cli.add_command(audit_check_command)

"""
Seed script — create a development admin user for local testing.

Registers a ``flask seed-dev-admin`` CLI command that creates (or
promotes) a local admin user.  Sign in as this user with
``POST /auth/login`` while ``DEV_LOGIN_ENABLED`` is on.

Usage::

    flask seed-dev-admin                      # Create with defaults
    flask seed-dev-admin --email me@corp.com  # Custom email
    flask seed-dev-admin --name "Dev Admin"   # Custom display name

Prerequisites:
    The tables must exist (``flask db upgrade`` or ``flask init-db``).
"""

import click
from flask.cli import with_appcontext

from asset_tracker.models.base import utcnow
from asset_tracker.models.user import ROLE_ADMIN
from asset_tracker.services import user_service
from asset_tracker.services.unit_of_work import unit_of_work


# -- Default values for the dev admin user ---------------------------------
_DEFAULT_EMAIL = "dev.admin@example.com"
_DEFAULT_NAME = "Dev Admin"


@click.command("seed-dev-admin")
@click.option(
    "--email",
    default=_DEFAULT_EMAIL,
    show_default=True,
    help="Email address for the dev admin user.",
)
@click.option(
    "--name",
    default=_DEFAULT_NAME,
    show_default=True,
    help="Display name for the dev admin user.",
)
@with_appcontext
def seed_dev_admin_command(email: str, name: str):
    """
    Create a development admin user for local testing.

    If a user with the given email already exists, the script makes
    sure they have the admin role and exits without creating a
    duplicate.
    """
    click.echo("=" * 60)
    click.echo("  Asset Tracker — Seed Dev Admin User")
    click.echo("=" * 60)

    user = user_service.get_user_by_email(email)

    if user is not None:
        click.echo(f"\n  User '{email}' already exists (id={user.id}).")
        if user.role != ROLE_ADMIN:
            with unit_of_work():
                user.role = ROLE_ADMIN
                user.updated_at = utcnow()
            click.secho("  ✓ Promoted to admin.", fg="green")
        else:
            click.secho("  ✓ User is already an admin.", fg="green")
    else:
        user = user_service.create_user(email=email, name=name, role=ROLE_ADMIN)
        click.secho(
            f"\n  ✓ Created user: {user.name} <{user.email}> (id={user.id})",
            fg="green",
        )

    # -- Summary -----------------------------------------------------------
    click.echo("\n" + "=" * 60)
    click.secho("  Dev admin user is ready.", fg="green", bold=True)
    click.echo(f"  Email:  {user.email}")
    click.echo(f"  Name:   {user.name}")
    click.echo(f"  Role:   {user.role}")
    click.echo("=" * 60)
    click.echo("\n  → Start the app with FLASK_ENV=development, then")
    click.echo(f'    POST /auth/login {{"email": "{user.email}"}}\n')


def register_seed_commands(app):
    """Register seed-related CLI commands with the Flask application."""
    app.cli.add_command(seed_dev_admin_command)

"""
Custom Flask CLI commands.

These commands are registered with the app via ``register_commands()``
in the application factory.  Run them with ``flask <command_name>``.

Usage::

    flask init-db                                   # Create all tables
    flask db-check                                  # Verify connectivity
    flask seed-statuses --workflow sales --workspace-id 1
    flask seed-dev-user                             # Dev login user
"""

import click
from flask import current_app
from flask.cli import with_appcontext
from sqlalchemy import inspect

from assettrack.exceptions import AssetTrackError
from assettrack.extensions import db
from assettrack.models.user import User
from assettrack.services import taxonomy_service

# -- Default values for the dev user ---------------------------------------
_DEFAULT_EMAIL = "dev.admin@localhost"
_DEFAULT_FIRST_NAME = "Dev"
_DEFAULT_LAST_NAME = "Admin"


@click.command("init-db")
@with_appcontext
def init_db_command():
    """Create every table that does not exist yet."""
    db.create_all()
    click.secho("Database tables created.", fg="green")


@click.command("db-check")
@with_appcontext
def db_check_command():
    """
    Verify database connectivity and list the tables found.

    Useful for confirming that DATABASE_URL is correct and that
    ``flask init-db`` (or ``flask db upgrade``) has been run.
    """
    click.echo("=" * 60)
    click.echo("  Asset Tracker — Database Connectivity Check")
    click.echo("=" * 60)

    db_uri = current_app.config["SQLALCHEMY_DATABASE_URI"]
    click.echo(f"\n  Connection string: {db_uri}\n")

    # -- Step 1: Basic connectivity ----------------------------------------
    click.echo("[1/2] Testing connection...")
    try:
        row = db.session.execute(db.text("SELECT 1 AS connected")).fetchone()
    except Exception as exc:  # pylint: disable=broad-exception-caught
        click.secho(f"      ✗ Connection failed: {exc}", fg="red")
        click.echo("\n  Troubleshooting tips:")
        click.echo("    - Does DATABASE_URL point at a reachable database?")
        click.echo("    - Is the driver for that dialect installed?")
        return
    if not row or row[0] != 1:
        click.secho("      ✗ Unexpected result from test query.", fg="red")
        return
    click.secho("      ✓ Connected successfully.", fg="green")

    # -- Step 2: List tables -----------------------------------------------
    click.echo("[2/2] Checking tables...\n")
    found = set(inspect(db.engine).get_table_names())
    expected = set(db.metadata.tables)
    for name in sorted(expected):
        marker = "✓" if name in found else "✗"
        click.echo(f"      {marker} {name}")

    missing = expected - found
    click.echo("\n" + "=" * 60)
    if missing:
        click.secho(
            f"  {len(missing)} table(s) missing. Run: flask init-db",
            fg="yellow",
            bold=True,
        )
    else:
        click.secho("  All checks passed. Database is ready.", fg="green", bold=True)
    click.echo("=" * 60)


@click.command("seed-statuses")
@click.option(
    "--workflow",
    type=click.Choice(sorted(taxonomy_service.WORKFLOW_TEMPLATES)),
    required=True,
    help="Workflow template to create.",
)
@click.option("--workspace-id", type=int, required=True, help="Target workspace.")
@click.option(
    "--asset-type-id",
    type=int,
    default=None,
    help="Limit the statuses to one asset type.",
)
@with_appcontext
def seed_statuses_command(workflow: str, workspace_id: int, asset_type_id: int | None):
    """Create a workflow's predefined statuses in a workspace."""
    try:
        created = taxonomy_service.seed_workflow_statuses(
            workflow, workspace_id, asset_type_id
        )
    except AssetTrackError as exc:
        raise click.ClickException(exc.message) from exc

    if not created:
        click.echo("All statuses of this workflow already exist.")
        return
    for status in created:
        click.secho(f"  ✓ {status.name}", fg="green")
    click.echo(f"Created {len(created)} status(es).")


@click.command("seed-dev-user")
@click.option("--email", default=_DEFAULT_EMAIL, show_default=True)
@click.option("--first", "first_name", default=_DEFAULT_FIRST_NAME, show_default=True)
@click.option("--last", "last_name", default=_DEFAULT_LAST_NAME, show_default=True)
@click.option("--workspace-id", type=int, default=None, help="Home workspace.")
@with_appcontext
def seed_dev_user_command(
    email: str, first_name: str, last_name: str, workspace_id: int | None
):
    """
    Create (or reactivate) an admin user for ``/auth/dev-login``.

    An existing user with the same email is reactivated and promoted
    instead of duplicated.
    """
    user = User.query.filter_by(email=email).first()
    if user is not None:
        user.is_active = True
        user.role = "admin"
        if workspace_id is not None:
            user.workspace_id = workspace_id
        db.session.commit()
        click.secho(f"Dev user {email} already exists (ID {user.id}); reactivated.", fg="yellow")
        return

    user = User(
        email=email,
        first_name=first_name,
        last_name=last_name,
        role="admin",
        workspace_id=workspace_id,
    )
    db.session.add(user)
    db.session.commit()
    click.secho(f"Created dev user {email} (ID {user.id}).", fg="green")


def register_commands(app):
    """Register all custom CLI commands with the Flask application."""
    app.cli.add_command(init_db_command)
    app.cli.add_command(db_check_command)
    app.cli.add_command(seed_statuses_command)
    app.cli.add_command(seed_dev_user_command)

"""Management helpers for the LexBridge admin backend.

Wraps Flask-Migrate so the schema can be managed without invoking the Flask
CLI directly, and provides a command to grant roles to provisioned users
(the first admin has to be created this way).
"""

from __future__ import annotations

from pathlib import Path

import click
import structlog
from flask_migrate import migrate as flask_migrate_migrate  # type: ignore[import]
from flask_migrate import upgrade as flask_migrate_upgrade  # type: ignore[import]

# Ensure models are imported so Flask-Migrate sees them
import models  # noqa: F401
from app import app
from models import UserRole
from repositories import users_repo

logger = structlog.get_logger("lexbridge.manage")
MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"


@click.group()
def cli():
    """Manage the database schema and user roles."""


@cli.command("migrate")
@click.option("--message", "-m", default="auto", help="Migration message")
def migrate_command(message: str):
    """Generate a new migration based on current models."""

    if not MIGRATIONS_DIR.exists():
        raise click.ClickException("Migrations directory missing.")

    with app.app_context():
        flask_migrate_migrate(directory=str(MIGRATIONS_DIR), message=message or "auto")
    click.echo("Migration script generated in migrations/versions.")


@cli.command("upgrade")
@click.option("--revision", default="head", help="Target revision (default: head)")
def upgrade_command(revision: str):
    """Apply migrations up to the selected revision."""

    if not MIGRATIONS_DIR.exists():
        raise click.ClickException("Migrations directory missing.")

    with app.app_context():
        flask_migrate_upgrade(directory=str(MIGRATIONS_DIR), revision=revision)
    click.echo(f"Database upgraded to revision {revision}.")


@cli.command("set-role")
@click.option("--subject", required=True, help="Identity-provider subject id of the user.")
@click.option(
    "--role",
    type=click.Choice([role.value for role in UserRole], case_sensitive=False),
    default=UserRole.ADMIN.value,
    show_default=True,
)
def set_role_command(subject: str, role: str) -> None:
    """Assign a role to an existing user."""

    role = role.upper()
    with app.app_context():
        updated = users_repo.set_role_by_subject(subject, role)
    if updated == 0:
        raise click.ClickException(f"User with subject '{subject}' not found.")
    logger.info("user.role_assigned", subject=subject, role=role)
    click.echo(f"Assigned role {role} to {subject}.")


if __name__ == "__main__":
    cli()

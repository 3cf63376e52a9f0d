# Overview: Flask CLI command groups for bootstrap, principal provisioning, and inspection.

# backend/tindahan/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed-categories
#   Insert the default product categories (idempotent).
#
# Principal provisioning (profiles handed over by the identity provider):
# - python -m flask principals register --subject "auth0|abc" --name "Aling Nena" --pin 1234
#   Create the local profile, then assign its role (first principal becomes admin).
# - python -m flask principals issue-token --subject "auth0|abc"
#   Print a bearer token for API calls.
# - python -m flask principals list
#   List principals with their roles.

import click
from flask.cli import with_appcontext

from .errors import PosError
from .extensions import db
from .models import Principal
from .services import catalog_service, principal_service, role_service, session_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables (use migrations for schema changes)."""
    db.create_all()
    click.echo("PASS Tables created.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system seed-categories' next.")


@system_group.command('seed-categories')
@with_appcontext
def seed_categories():
    """Insert the default categories that are missing."""
    created = catalog_service.seed_default_categories()
    click.echo(f"PASS Created {created} categories")


@click.group('principals')
def principals_group():
    """Principal provisioning and inspection commands."""


@principals_group.command('register')
@click.option('--subject', required=True, help='Subject id issued by the identity provider')
@click.option('--name', 'display_name', default=None, help='Display name')
@click.option('--pin', default=None, help='4-digit product PIN')
@with_appcontext
def register_principal(subject, display_name, pin):
    """Create a principal profile and bootstrap its role."""
    try:
        principal = principal_service.register_principal(subject, display_name=display_name, pin=pin)
        role = role_service.ensure_role(principal.id)
    except PosError as e:
        raise click.ClickException(e.message)

    click.echo(f"PASS Registered {principal.subject} (ID: {principal.id}) with role '{role}'")


@principals_group.command('issue-token')
@click.option('--subject', required=True, help='Subject of an existing principal')
@with_appcontext
def issue_token(subject):
    """Create a session and print its bearer token (shown once)."""
    principal = principal_service.get_principal_by_subject(subject)
    if principal is None:
        raise click.ClickException(f"No principal with subject '{subject}'")

    session, token = session_service.create_session(principal.id)
    click.echo(token)
    click.echo(f"Expires: {session.expires_at.isoformat()}Z", err=True)


@principals_group.command('list')
@with_appcontext
def list_principals():
    """List all principals with their roles."""
    principals = db.session.query(Principal).order_by(Principal.id.asc()).all()

    if not principals:
        click.echo("No principals found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Subject':<30} {'Name':<25} {'PIN':<5} {'Role'}")
    click.echo("="*80)

    for principal in principals:
        role = role_service.get_role(principal.id) or "none"
        pin_str = "Yes" if principal.product_pin_hash else "No"
        click.echo(f"{principal.id:<5} {principal.subject:<30} {principal.display_name:<25} {pin_str:<5} {role}")

    click.echo("="*80 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(principals_group)

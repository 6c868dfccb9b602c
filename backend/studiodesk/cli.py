# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/studiodesk/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and the default super_admin.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role and status.
# - python -m flask users create --username jane@studio.com --full-name "Jane Doe" --password "..." --role staff
#   Create a user (prompts if options are omitted).
# - python -m flask users disable 7
#   Disable a staff account and revoke its sessions.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .models.auth import VALID_ROLES
from .services import auth_service, user_service
from .validation import LedgerError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the studio backend: schema plus the default super_admin.

    Safe to re-run; an existing admin is left untouched.

    SECURITY: Change the default admin password immediately in production!
    """
    click.echo("START Initializing studio backend...")

    db.create_all()
    click.echo("PASS Tables ready")

    result = auth_service.create_default_admin()
    username = current_app.config["DEFAULT_ADMIN_USERNAME"]
    if result["success"]:
        click.echo(f"PASS Created default admin: {username} (ID: {result['adminId']})")
        click.echo("SECURITY Default admin password is set from DEFAULT_ADMIN_PASSWORD; change it now")
    else:
        click.echo(f"PASS Admin already exists: {username}")

    click.echo("DONE System initialized")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username (usually an email address)')
@click.option('--full-name', prompt=True, help='Full name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(VALID_ROLES)), default='staff', show_default=True, help='Role')
@with_appcontext
def create_user_cli(username, full_name, password, role):
    """Create a new user."""
    try:
        user = user_service.create_user(
            username=username,
            password=password,
            full_name=full_name,
            role=role,
        )
        click.echo(f"PASS Created user: {user.username} (ID: {user.id}) with role '{user.role}'")
        click.echo("SECURITY Password securely hashed with bcrypt")
    except LedgerError as e:
        click.echo(f"FAIL Failed to create user: {e}")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their role and status."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Username':<32} {'Full name':<25} {'Role':<12} {'Status'}")
    click.echo("="*90)

    for user in users:
        click.echo(
            f"{user.id:<5} {user.username:<32} {(user.full_name or ''):<25} {user.role:<12} {user.status}"
        )

    click.echo("="*90 + "\n")


@users_group.command('disable')
@click.argument('user_id', type=int)
@with_appcontext
def disable_user_cli(user_id):
    """Disable a user and revoke all of their sessions."""
    try:
        user = user_service.disable_user(user_id)
        click.echo(f"PASS Disabled user: {user.username} (ID: {user.id})")
    except LedgerError as e:
        click.echo(f"FAIL Failed to disable user: {e}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)

# Overview: Flask CLI command groups for bootstrap and user management.

# backend/smart_inventory/cli.py
# Commands Legend (run from the repository root):
# - flask --app smart_inventory system init
#   Create tables and the default admin / manager / employee users (idempotent).
# - flask --app smart_inventory system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - flask --app smart_inventory users list
#   List all users with role and active status.
# - flask --app smart_inventory users create --username alice --email alice@example.com --password "Password123!" --role manager
#   Create a user (prompts if options are omitted).
# Schema migrations: flask --app smart_inventory db init|migrate|upgrade (Flask-Migrate).

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .roles import Role
from .services.auth_service import register_user, PasswordValidationError
from .validation import ValidationError


DEFAULT_PASSWORD = "Password123!"

DEFAULT_USERS = [
    ("admin", "admin@smart-inventory.local", Role.ADMIN),
    ("manager", "manager@smart-inventory.local", Role.MANAGER),
    ("employee", "employee@smart-inventory.local", Role.EMPLOYEE),
]

ROLE_CHOICES = [r.value for r in Role]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Create all tables and seed one user per role.

    All default passwords are "Password123!". Change them in production.
    """
    click.echo("START Initializing Smart Inventory...")
    db.create_all()
    click.echo("PASS Tables created")

    for username, email, role in DEFAULT_USERS:
        if db.session.query(User).filter_by(username=username).first():
            click.echo(f"WARN  User '{username}' already exists, skipping...")
            continue
        try:
            register_user(username, email, DEFAULT_PASSWORD, DEFAULT_PASSWORD, role.value)
            click.echo(f"PASS Created user: {username} ({email}) with role '{role.value}'")
        except ValidationError as e:
            click.echo(f"FAIL Failed to create user '{username}': {str(e)}")

    click.echo("\nDefault Credentials (CHANGE IN PRODUCTION!):")
    for username, email, _ in DEFAULT_USERS:
        click.echo(f"   {username:<9} -> {email} / {DEFAULT_PASSWORD}")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        click.echo("FAIL Refusing to reset without --yes")
        raise SystemExit(1)
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users."""
    users = db.session.query(User).order_by(User.id.asc()).all()
    if not users:
        click.echo("No users found. Run: flask system init")
        return
    for user in users:
        status = "active" if user.is_active else "inactive"
        click.echo(f"{user.id:>4}  {user.username:<20} {user.email:<35} {user.role.value:<9} {status}")


@users_group.command('create')
@click.option('--username', prompt=True)
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--role', type=click.Choice(ROLE_CHOICES), default=Role.EMPLOYEE.value, show_default=True)
@with_appcontext
def create_user_command(username, email, password, role):
    """Create a user account."""
    try:
        user = register_user(username, email, password, password, role)
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        raise SystemExit(1)
    except ValidationError as e:
        click.echo(f"FAIL {str(e)}")
        raise SystemExit(1)
    click.echo(f"PASS Created user: {user.username} ({user.email}) with role '{user.role.value}'")


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)

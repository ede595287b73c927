# Overview: Flask CLI command groups for bootstrap, user seeding, and maintenance.

# backend/mua_admin/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py and export SESSION_SECRET (see `flask system generate-secret`).
# - Use: python -m flask <group> <command> [options]
#
# System:
# - python -m flask system generate-secret
#   Print a fresh random value suitable for SESSION_SECRET.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users (administrative seeding; there is no self-registration):
# - python -m flask users create --username admin --email admin@mua.local --password "Password123" --name "Admin" --role admin
#   Create a user (prompts if options are omitted).
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users deactivate admin
#   Block a user from logging in. Tokens already issued stay valid until they expire.
#
# Maintenance:
# - python -m flask maintenance cleanup-security-events --retention-days 90
#   Delete security events older than the retention window.

import secrets

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .services.auth_service import create_user, normalize_identifier, PasswordValidationError
from .services import throttle_service

USER_ROLES = ["admin", "staff"]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('generate-secret')
def generate_secret():
    """Print a random 48-byte URL-safe secret for SESSION_SECRET."""
    click.echo(secrets.token_urlsafe(48))


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

    click.echo("PASS Database reset complete. Run 'python -m flask users create' to add an admin.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--name', prompt=True, help='Display name')
@click.option('--role', type=click.Choice(USER_ROLES), default='admin', show_default=True, help='Role')
@with_appcontext
def create_user_cli(username, email, password, name, role):
    """
    Create a new user.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    """
    try:
        user = create_user(
            username=username,
            email=email,
            password=password,
            name=name,
            role=role,
        )
        click.echo(f"PASS Created user: {user.username} ({user.email}) with role '{user.role}'")
        click.echo("SECURITY Password securely hashed with bcrypt")

    except PasswordValidationError as e:
        db.session.rollback()
        raise click.ClickException(f"Password validation failed: {e}")
    except ValueError as e:
        db.session.rollback()
        raise click.ClickException(f"Failed to create user: {e}")


@users_group.command('list')
@with_appcontext
def list_users_cli():
    """List all users."""
    users = db.session.query(User).order_by(User.id.asc()).all()
    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 80)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Role':<8} {'Active'}")
    click.echo("=" * 80)
    for user in users:
        active_str = "YES" if user.is_active else "NO"
        click.echo(f"{user.id:<5} {user.username:<20} {user.email:<30} {user.role:<8} {active_str}")
    click.echo("")


@users_group.command('deactivate')
@click.argument('username')
@with_appcontext
def deactivate_user_cli(username):
    """Deactivate a user so future logins fail."""
    user = db.session.query(User).filter_by(username=normalize_identifier(username)).first()
    if not user:
        raise click.ClickException(f"User '{username}' not found")

    user.is_active = False
    db.session.commit()
    click.echo(f"PASS Deactivated user: {user.username}")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-security-events')
@click.option('--retention-days', type=int, default=90, show_default=True)
@with_appcontext
def cleanup_security_events_cli(retention_days):
    """
    Cleanup old security events.

    Default retention: 90 days.
    """
    deleted = throttle_service.cleanup_security_events(retention_days=retention_days)
    click.echo(f"Deleted {deleted} security events older than {retention_days} days.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(maintenance_group)

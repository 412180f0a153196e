# Overview: Flask CLI command groups for bootstrap and user maintenance.

# backend/hortifruti/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet (use `flask db upgrade` for migrations).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users seed-admin
#   Create the first admin from ADMIN_EMAIL / ADMIN_PASSWORD / ADMIN_NAME if missing.
# - python -m flask users create --name "Maria" --email maria@example.com --password "..." --role USER
# - python -m flask users list

import click
from flask import current_app
from flask.cli import with_appcontext

from .errors import DomainError
from .extensions import db
from .models import User
from .services import auth_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables."""
    db.create_all()
    click.echo("PASS Database tables created")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """Drop and recreate all tables. Deletes all data."""
    if not yes:
        click.confirm("This will DELETE ALL DATA. Continue?", abort=True)
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@users_group.command('seed-admin')
@with_appcontext
def seed_admin():
    """Create the configured admin user if it does not exist."""
    cfg = current_app.config
    user = auth_service.seed_admin(cfg["ADMIN_EMAIL"], cfg["ADMIN_PASSWORD"], cfg["ADMIN_NAME"])
    if user is None:
        click.echo(f"SKIP Admin already exists: {cfg['ADMIN_EMAIL']}")
    else:
        click.echo(f"PASS Admin created: {user.email} (ID: {user.id})")


@users_group.command('create')
@click.option('--name', prompt=True, help='Full name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(['ADMIN', 'USER']), default='USER', help='Role')
@with_appcontext
def create_user_cmd(name, email, password, role):
    """Create a user."""
    try:
        user = auth_service.create_user(name=name, email=email, password=password, role=role)
    except DomainError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created user {user.email} (ID: {user.id}, role: {user.role})")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with role and active status."""
    users = db.session.query(User).order_by(User.id.asc()).all()
    if not users:
        click.echo("No users found")
        return
    for u in users:
        status = "active" if u.is_active else "inactive"
        click.echo(f"{u.id:>4}  {u.email:<40} {u.role:<8} {status}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)

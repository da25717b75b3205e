# Overview: Flask CLI command groups for bootstrap and inspection.

# backend/counterpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables that do not exist yet (use `flask db upgrade` for migrations).
# - python -m flask system cleanup-sessions
#   Delete expired or revoked sessions older than 30 days.
#
# Accounts:
# - python -m flask users create-admin --email admin@counterpos.local --username admin --password "secret1"
#   Create an admin account (prompts if options are omitted).
# - python -m flask users list [--role cashier]
#   List accounts with their roles.
#
# Catalog:
# - python -m flask items seed
#   Load a small demo catalog into an empty items table.

from decimal import Decimal

import click
from flask.cli import with_appcontext

from .errors import PosError
from .extensions import db
from .models import Item, ROLE_ADMIN, VALID_ROLES
from .money import to_cents
from .services import auth_service, session_service
from .services.catalog_service import get_catalog
from .validation import ValidationError


DEMO_ITEMS = [
    ("Bottled Water 500ml", "Beverages", "15.00", 48),
    ("Iced Coffee", "Beverages", "45.00", 24),
    ("Pandesal (10 pcs)", "Bakery", "30.00", 20),
    ("Ensaymada", "Bakery", "25.50", 12),
    ("Instant Noodles", "Grocery", "14.75", 60),
    ("Canned Sardines", "Grocery", "22.00", 8),
    ("Potato Chips", "Snacks", "35.00", 30),
    ("Chocolate Bar", "Snacks", "40.00", 5),
]


@click.group('system')
def system_group():
    """System bootstrap and maintenance commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    click.echo("START Creating tables...")
    db.create_all()
    click.echo("PASS Schema ready")


@system_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions():
    """Delete expired or revoked sessions older than 30 days."""
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"PASS Deleted {deleted} stale session(s)")


@click.group('users')
def users_group():
    """Account inspection and bootstrap commands."""


@users_group.command('create-admin')
@click.option('--email', prompt=True, help='Email address')
@click.option('--username', prompt=True, help='Username')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_admin(email, username, password):
    """
    Create an admin account.

    Admins are never provisioned over HTTP; this command (or a direct
    database insert) is the only way to create one.
    """
    try:
        account = auth_service.provision_account(
            email=email, password=password, username=username, role=ROLE_ADMIN
        )
    except (ValidationError, PosError) as e:
        raise click.ClickException(str(e))

    click.echo(f"PASS Created admin {account.username} (ID: {account.id})")


@users_group.command('list')
@click.option('--role', type=click.Choice(list(VALID_ROLES)), help='Filter by role')
@with_appcontext
def list_users(role):
    """List all accounts with their roles."""
    accounts = auth_service.list_accounts(role=role)

    if not accounts:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<35} {'Role'}")
    click.echo("="*80)

    for account in accounts:
        click.echo(f"{account.id:<5} {account.username:<20} {account.email:<35} {account.role}")

    click.echo("="*80 + "\n")


@click.group('items')
def items_group():
    """Catalog bootstrap commands."""


@items_group.command('seed')
@with_appcontext
def seed_items():
    """Load the demo catalog. Skipped when any item already exists."""
    existing = db.session.query(Item).count()
    if existing:
        click.echo(f"SKIP Catalog already has {existing} item(s)")
        return

    for name, category, price, stock in DEMO_ITEMS:
        db.session.add(Item(name=name, category=category, price_cents=to_cents(Decimal(price)), stock=stock))
    db.session.commit()
    get_catalog().invalidate()
    click.echo(f"PASS Seeded {len(DEMO_ITEMS)} items")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(items_group)

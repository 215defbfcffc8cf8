# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/shopstock/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Create tables and the SHOP location when missing (idempotent).
# - python -m flask system seed
#   Demo data: admin user, SHOP plus two jobs, eight materials with opening stock.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users (identity is external; these rows only carry name and role):
# - python -m flask users create --email admin@cabinetshop.com --name "Shop Administrator" --role Admin
# - python -m flask users list
# - python -m flask users token --email admin@cabinetshop.com
#   Issue a bearer token for API access (printed once, stored hashed).
#
# Inventory maintenance:
# - python -m flask inventory check-totals
#   List materials whose running total differs from the balances (read-only).
# - python -m flask inventory rebuild-totals --actor-email admin@cabinetshop.com
#   Recompute all running totals and append the audit record.

import click
from flask.cli import with_appcontext

from .errors import InventoryError
from .extensions import db
from .models import Location, Material, User
from .models.auth import ROLES, ROLE_ADMIN
from .models.reference import LOCATION_TYPE_JOB, LOCATION_TYPE_SHOP
from .permissions import can_perform
from .services import movement_service, reconciliation_service, reference_service, session_service


DEFAULT_SHOP_NAME = "SHOP"

SEED_ADMIN = ("admin@cabinetshop.com", "Shop Administrator")
SEED_JOBS = ("6-2523", "6-2524")
SEED_MATERIALS = (
    ('Oak Plywood 3/4"', "WoodSheets", 20),
    ('Maple Plywood 1/2"', "WoodSheets", 15),
    ("Cabinet Handles - Brushed Nickel", "Hardware", 50),
    ("Drawer Pulls - Black", "Hardware", 40),
    ("Soft-Close Hinges", "Hinges", 100),
    ("Full Extension Drawer Slides", "Slides", 60),
    ("Wood Glue", "Other", 10),
    ('Cabinet Screws 1.25"', "Hardware", 500),
)
SEED_OPENING_MARGIN = 25


def _ensure_shop() -> Location:
    shop = db.session.query(Location).filter_by(type=LOCATION_TYPE_SHOP).first()
    if shop:
        click.echo(f"PASS Using existing SHOP location: {shop.name} (ID: {shop.id})")
        return shop
    shop = reference_service.create_location(name=DEFAULT_SHOP_NAME, type=LOCATION_TYPE_SHOP)
    click.echo(f"PASS Created SHOP location: {shop.name} (ID: {shop.id})")
    return shop


def _get_user_by_email(email: str) -> User | None:
    return db.session.query(User).filter_by(email=email.strip().lower()).first()


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Create missing tables and the SHOP location.

    Safe to run repeatedly; existing rows are left alone.
    """
    click.echo("START Initializing shopstock...")
    db.create_all()
    _ensure_shop()
    click.echo("DONE shopstock initialized")


@system_group.command('seed')
@with_appcontext
def seed_system():
    """
    Load demo data: an Admin user, SHOP and two jobs, eight materials.

    Each new material gets opening stock through a RECEIVE so running totals
    and history start consistent.
    """
    db.create_all()
    shop = _ensure_shop()

    admin = _get_user_by_email(SEED_ADMIN[0])
    if admin is None:
        admin = User(email=SEED_ADMIN[0], name=SEED_ADMIN[1], role=ROLE_ADMIN, is_active=True)
        db.session.add(admin)
        db.session.commit()
        click.echo(f"PASS Created user: {admin.email} with role '{admin.role}'")

    for job_name in SEED_JOBS:
        if db.session.query(Location).filter_by(name=job_name).first():
            click.echo(f"WARN  Location '{job_name}' already exists, skipping...")
            continue
        reference_service.create_location(name=job_name, type=LOCATION_TYPE_JOB)
        click.echo(f"PASS Created JOB location: {job_name}")

    for name, category, min_stock in SEED_MATERIALS:
        if db.session.query(Material).filter_by(name=name).first():
            click.echo(f"WARN  Material '{name}' already exists, skipping...")
            continue
        material = reference_service.create_material(
            name=name,
            category=category,
            min_stock_level=min_stock,
        )
        movement_service.receive_material(
            material_id=material.id,
            quantity=min_stock + SEED_OPENING_MARGIN,
            actor_user_id=admin.id,
            notes="Opening stock",
        )
        click.echo(f"PASS Created material: {name} ({min_stock + SEED_OPENING_MARGIN} in {shop.name})")

    click.echo("DONE Seed complete")


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
@click.option('--email', prompt=True, help='Email address')
@click.option('--name', default=None, help='Display name')
@click.option('--role', type=click.Choice(list(ROLES)), prompt=True, help='Role')
@with_appcontext
def create_user_cli(email, name, role):
    """Create a user that the identity provider will authenticate."""
    email = email.strip().lower()
    if _get_user_by_email(email):
        raise click.ClickException(f"User '{email}' already exists")

    user = User(email=email, name=name, role=role, is_active=True)
    db.session.add(user)
    db.session.commit()
    click.echo(f"PASS Created user: {email} with role '{role}' (ID: {user.id})")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Email':<32} {'Name':<24} {'Role':<8} {'Active'}")
    click.echo("="*80)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.email:<32} {(user.name or '-'):<24} {user.role:<8} {active_str}")

    click.echo("="*80 + "\n")


@users_group.command('token')
@click.option('--email', required=True, help='Email of the user to issue a token for')
@with_appcontext
def issue_token_cli(email):
    """Issue a bearer token. The plaintext is shown once and never stored."""
    user = _get_user_by_email(email)
    if user is None:
        raise click.ClickException(f"User '{email}' not found")

    try:
        session, token = session_service.create_session(user.id)
    except InventoryError as e:
        raise click.ClickException(e.message)

    click.echo(f"PASS Session {session.id} for {user.email}, expires {session.expires_at.isoformat()}Z")
    click.echo(token)


@click.group('inventory')
def inventory_group():
    """Running-total inspection and repair."""


@inventory_group.command('check-totals')
@with_appcontext
def check_totals_cli():
    """List materials whose running total differs from the sum of balances."""
    discrepancies = reconciliation_service.find_total_discrepancies()
    if not discrepancies:
        click.echo("PASS All running totals match the balances")
        return

    for row in discrepancies:
        click.echo(
            f"DRIFT {row['material_id']:<5} {row['name']:<40} "
            f"cached={row['cached_total']} ledger={row['ledger_total']}"
        )
    click.echo(f"FAIL {len(discrepancies)} material(s) out of step; run 'flask inventory rebuild-totals'")


@inventory_group.command('rebuild-totals')
@click.option('--actor-email', required=True, help='Admin user recorded on the audit transaction')
@with_appcontext
def rebuild_totals_cli(actor_email):
    """Recompute every running total from the balances."""
    actor = _get_user_by_email(actor_email)
    if actor is None:
        raise click.ClickException(f"User '{actor_email}' not found")
    if not can_perform(actor.role, "REBUILD_TOTALS"):
        raise click.ClickException("Only Admin users may rebuild totals")

    summary = reconciliation_service.rebuild_totals(actor.id)
    for row in summary["results"]:
        if row["changed"]:
            click.echo(f"FIXED {row['name']}: {row['previous_total']} -> {row['new_total']}")
    click.echo(f"PASS {summary['message']} (audit transaction {summary['audit_transaction_id']})")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(inventory_group)

# Overview: Flask CLI command groups for bootstrap, seeding, and inventory inspection.

# backend/pharmapos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables, the senior/PWD discount row and an admin user.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users create --username cashier1 --first-name Ana --last-name Cruz --role Cashier --auth-user-id <id>
#   Create a staff user (prompts if options are omitted).
#
# Discounts:
# - python -m flask discounts seed [--percent 20]
#   Create or update the configured senior/PWD discount row.
#
# Inventory:
# - python -m flask inventory alerts [--threshold 10] [--days 30]
#   Print low-stock and near-expiry alerts.

from decimal import Decimal

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import Discount, User
from .services import inventory_service


def _seed_discount(percent: Decimal) -> Discount:
    name = current_app.config["SENIOR_DISCOUNT_NAME"]
    discount = db.session.query(Discount).filter_by(name=name).first()
    if discount is None:
        discount = Discount(name=name, percent=percent, is_vat_exempt=True)
        db.session.add(discount)
    else:
        discount.percent = percent
    db.session.commit()
    return discount


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the database for first use.

    Creates:
    - All tables (no-op for tables that exist)
    - The senior/PWD discount row (SENIOR_DISCOUNT_NAME, DEFAULT_DISCOUNT_PERCENT)
    - An "admin" user if no user exists yet
    """
    click.echo("START Initializing PharmaPOS...")

    db.create_all()
    click.echo("PASS Tables ready")

    percent = Decimal(str(current_app.config["DEFAULT_DISCOUNT_PERCENT"] or "20"))
    discount = _seed_discount(percent)
    click.echo(f"PASS Discount '{discount.name}' at {discount.percent}%")

    if db.session.query(User).count() == 0:
        admin = User(username="admin", first_name="System", last_name="Admin", role="Admin")
        db.session.add(admin)
        db.session.commit()
        click.echo(f"PASS Created user 'admin' (ID: {admin.id})")
    else:
        click.echo("PASS Users already present")

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
    """Staff user commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--first-name', prompt=True, help='First name')
@click.option('--last-name', prompt=True, help='Last name')
@click.option('--email', default=None, help='Email address')
@click.option('--role', type=click.Choice(['Admin', 'Pharmacist', 'Cashier']), prompt=True, help='Role')
@click.option('--auth-user-id', default=None, help='Identity issued by the external auth provider')
@with_appcontext
def create_user(username, first_name, last_name, email, role, auth_user_id):
    """Create a staff user that sales and stock receipts can be attributed to."""
    if db.session.query(User).filter_by(username=username).first():
        click.echo(f"FAIL User '{username}' already exists")
        return
    if auth_user_id and db.session.query(User).filter_by(auth_user_id=auth_user_id).first():
        click.echo(f"FAIL AuthUserID '{auth_user_id}' is already mapped")
        return

    user = User(
        username=username,
        first_name=first_name,
        last_name=last_name,
        email=email,
        role=role,
        auth_user_id=auth_user_id,
    )
    db.session.add(user)
    db.session.commit()
    click.echo(f"PASS Created user: {user.username} (ID: {user.id}, Role: {user.role})")


@click.group('discounts')
def discounts_group():
    """Discount configuration commands."""


@discounts_group.command('seed')
@click.option('--percent', type=click.FloatRange(0, 100), default=None,
              help='Discount percent (defaults to DEFAULT_DISCOUNT_PERCENT)')
@with_appcontext
def seed_discounts(percent):
    """Create or update the senior/PWD discount row."""
    if percent is None:
        percent = current_app.config["DEFAULT_DISCOUNT_PERCENT"] or "20"
    discount = _seed_discount(Decimal(str(percent)))
    click.echo(f"PASS Discount '{discount.name}' (ID: {discount.id}) at {discount.percent}%")


@click.group('inventory')
def inventory_group():
    """Inventory inspection commands."""


@inventory_group.command('alerts')
@click.option('--threshold', type=int, default=None, help='Low-stock threshold (inclusive)')
@click.option('--days', type=int, default=None, help='Expiry look-ahead in days')
@with_appcontext
def inventory_alerts(threshold, days):
    """Print low-stock products and batches nearing expiry."""
    if threshold is None:
        threshold = current_app.config["LOW_STOCK_THRESHOLD"]
    if days is None:
        days = current_app.config["EXPIRY_ALERT_DAYS"]

    alerts = inventory_service.stock_alerts(low_stock_threshold=threshold, expiry_days=days)

    click.echo(f"Low stock (<= {threshold}):")
    for a in alerts["lowStock"]:
        click.echo(f"  [{a['productId']}] {a['productName']}: {a['totalStock']}")
    if not alerts["lowStock"]:
        click.echo("  none")

    click.echo(f"Expiring within {days} days:")
    for a in alerts["expiring"]:
        status = "EXPIRED" if a["expired"] else f"{a['daysLeft']}d"
        click.echo(
            f"  [{a['productId']}] {a['productName']} batch {a['batchNumber'] or a['productItemId']}: "
            f"{a['stock']} units, expires {a['expiryDate']} ({status})"
        )
    if not alerts["expiring"]:
        click.echo("  none")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(discounts_group)
    app.cli.add_command(inventory_group)

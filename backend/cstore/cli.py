# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/cstore/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed
#   Load a small demo catalog (skips products that already exist).
#
# Promotional sales:
# - python -m flask promotions list [--active-only]
#   List sales with their code, target and window.
# - python -m flask promotions sweep
#   Delete every sale whose end time has passed.
#
# Inventory:
# - python -m flask inventory low-stock [--threshold 5]
#   Products at or below the threshold.
# - python -m flask inventory expiring [--days 3] [--remove]
#   Perishables expiring within the window (optionally pull them from stock).
# - python -m flask inventory export inventory.json
# - python -m flask inventory import inventory.json
#   Snapshot the catalog to/from JSON (upsert by product code).
#
# Customers:
# - python -m flask customers export customers.json
# - python -m flask customers import customers.json
#   Snapshot customers and membership cards to/from JSON.
# - python -m flask customers sales-log
#   Print the append-only sales log.

import json
from datetime import timedelta

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Product
from .pricing import format_money
from .services import persistence_service, promotions_service, stock_service
from .services.products_service import create_product
from .time_utils import today


# =============================================================================
# SYSTEM
# =============================================================================

@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables."""
    db.create_all()
    click.echo("PASS Database tables created.")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system seed' to load demo data.")


SEED_PRODUCTS = [
    {"product_code": "F-001", "name": "Chicken Sandwich", "price_cents": 8500, "quantity": 20, "days_to_expiry": 2},
    {"product_code": "F-002", "name": "Tuna Onigiri", "price_cents": 6000, "quantity": 15, "days_to_expiry": 3},
    {"product_code": "B-001", "name": "Bottled Water", "brand": "Summit", "variant": "500ml", "price_cents": 2500, "quantity": 48},
    {"product_code": "B-002", "name": "Iced Coffee", "brand": "Kopiko", "variant": "240ml", "price_cents": 4500, "quantity": 24},
    {"product_code": "T-001", "name": "Toothpaste", "brand": "Colgate", "variant": "150g", "price_cents": 12000, "quantity": 10},
    {"product_code": "H-001", "name": "Dishwashing Liquid", "brand": "Joy", "variant": "250ml", "price_cents": 6500, "quantity": 8},
    {"product_code": "P-001", "name": "Paracetamol", "brand": "Biogesic", "variant": "500mg", "price_cents": 550, "quantity": 100},
    {"product_code": "G-001", "name": "Instant Noodles", "brand": "Lucky Me", "variant": "Beef", "price_cents": 1800, "quantity": 4},
]


@system_group.command('seed')
@with_appcontext
def seed():
    """Load a demo catalog."""
    created = 0
    for row in SEED_PRODUCTS:
        if db.session.query(Product).filter_by(product_code=row["product_code"]).first():
            continue
        expiration_date = None
        if "days_to_expiry" in row:
            expiration_date = today() + timedelta(days=row["days_to_expiry"])
        create_product(
            name=row["name"],
            price_cents=row["price_cents"],
            product_code=row["product_code"],
            brand=row.get("brand"),
            variant=row.get("variant"),
            quantity=row["quantity"],
            expiration_date=expiration_date,
        )
        created += 1
    click.echo(f"PASS Seeded {created} product(s).")


# =============================================================================
# PROMOTIONS
# =============================================================================

@click.group('promotions')
def promotions_group():
    """Promotional sale maintenance."""


@promotions_group.command('list')
@click.option('--active-only', is_flag=True, help='Only sales applicable right now')
@with_appcontext
def list_sales(active_only):
    sales = promotions_service.list_sales(active_only=active_only)
    if not sales:
        click.echo("No promotional sales.")
        return
    for sale in sales:
        status = "active" if sale.is_active else "ended"
        click.echo(
            f"{sale.sale_code}  {sale.target:<8} {sale.discount_kind:<10} {sale.discount_value:>7}  "
            f"{sale.start_at.isoformat()} -> {sale.end_at.isoformat()}  [{status}]"
        )


@promotions_group.command('sweep')
@with_appcontext
def sweep():
    """Delete expired sales."""
    removed = promotions_service.sweep_expired()
    click.echo(f"PASS Removed {removed} expired sale(s).")


# =============================================================================
# INVENTORY
# =============================================================================

@click.group('inventory')
def inventory_group():
    """Inventory inspection and snapshots."""


def _echo_products(products, empty_message):
    if not products:
        click.echo(empty_message)
        return
    for p in products:
        expiry = p.expiration_date.isoformat() if p.expiration_date else "-"
        click.echo(f"{p.product_code:<8} {p.name:<28} qty={p.quantity_on_hand:<5} {format_money(p.price_cents):>12}  exp={expiry}")


@inventory_group.command('low-stock')
@click.option('--threshold', type=int, default=None, help='Defaults to LOW_STOCK_THRESHOLD')
@with_appcontext
def low_stock(threshold):
    _echo_products(stock_service.list_low_stock(threshold), "No low-stock products.")


@inventory_group.command('expiring')
@click.option('--days', type=int, default=None, help='Defaults to EXPIRY_WARNING_DAYS')
@click.option('--remove', is_flag=True, help='Zero the stock of expiring products')
@with_appcontext
def expiring(days, remove):
    if remove:
        pulled = stock_service.remove_expiring(days=days)
        click.echo(f"PASS Removed {len(pulled)} expiring product(s) from stock.")
        return
    _echo_products(stock_service.list_expiring_soon(days=days), "No products expiring soon.")


@inventory_group.command('export')
@click.argument('path', type=click.Path(dir_okay=False, writable=True))
@with_appcontext
def export_inventory(path):
    rows = persistence_service.load_inventory()
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(rows, fh, indent=2)
    click.echo(f"PASS Exported {len(rows)} product(s) to {path}")


@inventory_group.command('import')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@with_appcontext
def import_inventory(path):
    with open(path, encoding="utf-8") as fh:
        rows = json.load(fh)
    result = persistence_service.save_inventory(rows)
    click.echo(f"PASS Imported inventory: {result['created']} created, {result['updated']} updated")


# =============================================================================
# CUSTOMERS
# =============================================================================

@click.group('customers')
def customers_group():
    """Customer snapshots and the sales log."""


@customers_group.command('export')
@click.argument('path', type=click.Path(dir_okay=False, writable=True))
@with_appcontext
def export_customers(path):
    rows = persistence_service.load_customers()
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(rows, fh, indent=2)
    click.echo(f"PASS Exported {len(rows)} customer(s) to {path}")


@customers_group.command('import')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@with_appcontext
def import_customers(path):
    with open(path, encoding="utf-8") as fh:
        rows = json.load(fh)
    result = persistence_service.save_customers(rows)
    click.echo(f"PASS Imported customers: {result['created']} created, {result['updated']} updated")


@customers_group.command('sales-log')
@with_appcontext
def sales_log():
    for line in persistence_service.load_sales_log():
        click.echo(line)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(promotions_group)
    app.cli.add_command(inventory_group)
    app.cli.add_command(customers_group)

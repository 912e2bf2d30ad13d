# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/tillbook/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to tillbook (PowerShell: $env:FLASK_APP="tillbook").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Catalog inspection/bootstrap:
# - python -m flask catalog add-product --name "Club Sandwich" --price 12.50 --track-stock --stock 40 --threshold 10
#   Create a product (opening stock is logged as a set adjustment).
# - python -m flask catalog low-stock
#   List tracked products at or below their reorder threshold.
# - python -m flask catalog verify-stock [--product-id 1]
#   Compare stock_quantity against the adjustment ledger fold.
#
# Shift inspection:
# - python -m flask shifts current
#   Show the open shift, if any.

import click
from flask.cli import with_appcontext

from .errors import TillbookError
from .extensions import db
from .models import Product
from .money import cents_to_amount, to_cents
from .services import catalog_service, shift_service, stock_service

CLI_ACTOR = "cli"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables (existing tables are left untouched)."""
    db.create_all()
    click.echo("OK Database tables created")


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

    click.echo("OK Database reset complete")


@click.group('catalog')
def catalog_group():
    """Catalog and stock commands."""


@catalog_group.command('add-product')
@click.option('--name', required=True)
@click.option('--price', required=True, help='Unit price, e.g. 12.50')
@click.option('--category', default=None)
@click.option('--sku', default=None)
@click.option('--track-stock', is_flag=True, help='Track stock for this product')
@click.option('--stock', 'stock_quantity', default=0, type=int, help='Opening stock')
@click.option('--threshold', 'low_stock_threshold', default=0, type=int, help='Low-stock threshold')
@with_appcontext
def add_product(name, price, category, sku, track_stock, stock_quantity, low_stock_threshold):
    """Create a product."""
    try:
        product = catalog_service.create_product(
            name=name,
            price_cents=to_cents(price, "price"),
            category=category,
            sku=sku,
            track_stock=track_stock,
            stock_quantity=stock_quantity,
            low_stock_threshold=low_stock_threshold,
            actor=CLI_ACTOR,
        )
    except TillbookError as e:
        raise click.ClickException(e.message)

    click.echo(f"OK Created product {product.id}: {product.name} @ {cents_to_amount(product.price_cents):.2f}")


@catalog_group.command('low-stock')
@with_appcontext
def low_stock():
    """List low-stock products."""
    items = catalog_service.list_low_stock()
    if not items:
        click.echo("No products at or below their threshold.")
        return

    click.echo(f"{'ID':<6} {'Level':<9} {'Qty':>6} {'Min':>6}  Name")
    click.echo("-" * 60)
    for item in items:
        click.echo(
            f"{item['product_id']:<6} {item['level']:<9} {item['stock_quantity']:>6} "
            f"{item['low_stock_threshold']:>6}  {item['name']}"
        )


@catalog_group.command('verify-stock')
@click.option('--product-id', type=int, default=None, help='Check a single product')
@with_appcontext
def verify_stock(product_id):
    """Check stock_quantity == SUM(adjustment deltas) for every product."""
    if product_id is not None:
        product_ids = [product_id]
    else:
        product_ids = [pid for (pid,) in db.session.query(Product.id).order_by(Product.id).all()]

    mismatches = 0
    for pid in product_ids:
        try:
            report = stock_service.verify_stock_fold(pid)
        except TillbookError as e:
            raise click.ClickException(e.message)
        if not report["consistent"]:
            mismatches += 1
            click.echo(
                f"MISMATCH product {pid}: stock_quantity={report['stock_quantity']} "
                f"ledger={report['ledger_quantity']}"
            )

    if mismatches:
        raise click.ClickException(f"{mismatches} product(s) out of sync with the stock ledger")
    click.echo(f"OK {len(product_ids)} product(s) consistent")


@click.group('shifts')
def shifts_group():
    """Shift inspection commands."""


@shifts_group.command('current')
@with_appcontext
def current_shift():
    """Show the open shift."""
    shift = shift_service.get_current_shift()
    if shift is None:
        click.echo("No open shift.")
        return

    click.echo(
        f"Shift {shift.id} opened by {shift.opened_by or '-'} at {shift.opened_at:%Y-%m-%d %H:%M} "
        f"(start cash {cents_to_amount(shift.start_cash_cents):.2f})"
    )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(shifts_group)

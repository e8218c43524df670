# Overview: Flask CLI command groups for bootstrap, inspection, and stock operations.

# backend/stockledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Suppliers:
# - python -m flask suppliers create --name "Acme Wholesale" --code ACME
# - python -m flask suppliers list [--all]
#
# Items and stock:
# - python -m flask items register --name "Widget" --price-cents 1000 --quantity 12 --supplier-id 1
#   Register an item; code and internal code are generated when omitted.
# - python -m flask items show <code>
# - python -m flask items low-stock
# - python -m flask items depleted
# - python -m flask items history <code> --limit 20
# - python -m flask items receive <code> <quantity> --reason "Found in back room"
# - python -m flask items adjust <code> <quantity> [--decrease] --reason "Cycle count"
#
# Movements:
# - python -m flask movements recent --limit 20
#
# Purchase orders:
# - python -m flask orders suggest <supplier_id> [--create]
#   Show a replenishment draft; --create turns it into a PENDING purchase order.

import functools

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .errors import InventoryError
from .services import inventory_service, item_service, purchase_order_service, replenishment_service
from .services import supplier_service


def _format_cents(cents: int) -> str:
    return f"{cents / 100:.2f}"


def service_command(func):
    """Render service errors as CLI errors; log anything unexpected."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except InventoryError as exc:
            raise click.ClickException(exc.message) from exc
        except click.ClickException:
            raise
        except Exception:
            current_app.logger.exception("Command %s failed", func.__name__)
            raise
    return wrapper


# =============================================================================
# SYSTEM COMMANDS
# =============================================================================

@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA, including the movement history!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


# =============================================================================
# SUPPLIER COMMANDS
# =============================================================================

@click.group('suppliers')
def suppliers_group():
    """Supplier master data."""


@suppliers_group.command('create')
@click.option('--name', required=True, help='Supplier name')
@click.option('--code', help='Short code (unique)')
@click.option('--contact-name', help='Primary contact')
@click.option('--contact-email', help='Contact email')
@click.option('--contact-phone', help='Contact phone')
@with_appcontext
@service_command
def create_supplier_cli(name, code, contact_name, contact_email, contact_phone):
    """Create a supplier."""
    supplier = supplier_service.create_supplier(
        name=name,
        code=code,
        contact_name=contact_name,
        contact_email=contact_email,
        contact_phone=contact_phone,
    )
    click.echo(f"PASS Created supplier: {supplier.name} (ID: {supplier.id}, Code: {supplier.code or '-'})")


@suppliers_group.command('list')
@click.option('--all', 'include_inactive', is_flag=True, help='Include inactive suppliers')
@with_appcontext
def list_suppliers_cli(include_inactive):
    """List suppliers."""
    suppliers = supplier_service.list_suppliers(include_inactive=include_inactive)

    if not suppliers:
        click.echo("No suppliers found.")
        return

    click.echo(f"{'ID':<5} {'Name':<30} {'Code':<12} {'Active'}")
    for supplier in suppliers:
        active_str = "Yes" if supplier.is_active else "No"
        click.echo(f"{supplier.id:<5} {supplier.name:<30} {supplier.code or '-':<12} {active_str}")


# =============================================================================
# ITEM COMMANDS
# =============================================================================

@click.group('items')
def items_group():
    """Item registration and stock operations."""


def _echo_items(items):
    if not items:
        click.echo("No items found.")
        return
    click.echo(f"{'Code':<15} {'Name':<30} {'On hand':>8} {'Threshold':>10}")
    for item in items:
        click.echo(f"{item.code:<15} {item.name:<30} {item.quantity_on_hand:>8} {item.reorder_threshold:>10}")


@items_group.command('register')
@click.option('--name', required=True, help='Item name')
@click.option('--price-cents', type=int, required=True, help='Sale price in cents')
@click.option('--code', help='Existing barcode (generated when omitted)')
@click.option('--internal-code', help='Store code (generated when omitted)')
@click.option('--quantity', type=int, default=0, show_default=True, help='Opening stock')
@click.option('--threshold', type=int, default=None, help='Reorder threshold')
@click.option('--supplier-id', type=int, default=None, help='Supplier ID')
@with_appcontext
@service_command
def register_item_cli(name, price_cents, code, internal_code, quantity, threshold, supplier_id):
    """Register a new item."""
    item = item_service.register_item(
        name=name,
        price_cents=price_cents,
        code=code,
        internal_code=internal_code,
        initial_quantity=quantity,
        reorder_threshold=threshold,
        supplier_id=supplier_id,
    )
    click.echo(
        f"PASS Registered item: {item.name} (Code: {item.code}, Internal: {item.internal_code}, "
        f"On hand: {item.quantity_on_hand})"
    )


@items_group.command('show')
@click.argument('code')
@with_appcontext
@service_command
def show_item_cli(code):
    """Show one item and its stock position."""
    item = item_service.get_item(code)
    click.echo(f"Code:       {item.code}")
    click.echo(f"Internal:   {item.internal_code or '-'}")
    click.echo(f"Name:       {item.name}")
    click.echo(f"Price:      {_format_cents(item.price_cents)}")
    click.echo(f"On hand:    {item.quantity_on_hand}")
    click.echo(f"Threshold:  {item.reorder_threshold}")
    click.echo(f"Supplier:   {item.supplier.name if item.supplier else '-'}")
    click.echo(f"Active:     {'Yes' if item.is_active else 'No'}")
    if item.is_depleted:
        click.echo("WARN  Item is out of stock")
    elif item.is_low_stock:
        click.echo("WARN  Item is at or below its reorder threshold")


@items_group.command('low-stock')
@with_appcontext
def low_stock_cli():
    """List active items at or below their reorder threshold."""
    _echo_items(inventory_service.list_low_stock_items())


@items_group.command('depleted')
@with_appcontext
def depleted_cli():
    """List active items with nothing on hand."""
    _echo_items(inventory_service.list_depleted_items())


def _echo_movements(movements):
    if not movements:
        click.echo("No movements found.")
        return
    click.echo(f"{'When':<21} {'Item':<15} {'Kind':<20} {'Qty':>5} {'Before':>7} {'After':>7}  Reference")
    for movement in movements:
        when = movement.occurred_at.strftime("%Y-%m-%d %H:%M:%S")
        click.echo(
            f"{when:<21} {movement.item_code:<15} {movement.kind:<20} {movement.quantity:>5} "
            f"{movement.quantity_before:>7} {movement.quantity_after:>7}  {movement.reference or '-'}"
        )


@items_group.command('history')
@click.argument('code')
@click.option('--limit', type=int, default=20, show_default=True)
@with_appcontext
@service_command
def item_history_cli(code, limit):
    """Movement history of one item, newest first."""
    _echo_movements(inventory_service.list_item_movements(code, limit=limit))


@items_group.command('receive')
@click.argument('code')
@click.argument('quantity', type=int)
@click.option('--reason', default=None, help='Why the stock came in')
@with_appcontext
@service_command
def receive_cli(code, quantity, reason):
    """Book a manual stock-in."""
    movement = inventory_service.receive_stock(code, quantity, reason)
    click.echo(f"PASS {code}: {movement.quantity_before} -> {movement.quantity_after}")


@items_group.command('adjust')
@click.argument('code')
@click.argument('quantity', type=int)
@click.option('--decrease', is_flag=True, help='Remove stock instead of adding it')
@click.option('--reason', default=None, help='Why the count changed')
@with_appcontext
@service_command
def adjust_cli(code, quantity, decrease, reason):
    """Manual stock correction."""
    movement = inventory_service.adjust_stock(code, quantity, reason, positive=not decrease)
    click.echo(f"PASS {code}: {movement.quantity_before} -> {movement.quantity_after}")
    if movement.quantity != movement.requested_quantity:
        click.echo(f"WARN  Requested {movement.requested_quantity}, only {movement.quantity} was on hand")


# =============================================================================
# MOVEMENT COMMANDS
# =============================================================================

@click.group('movements')
def movements_group():
    """Stock movement inspection."""


@movements_group.command('recent')
@click.option('--limit', type=int, default=20, show_default=True)
@with_appcontext
def recent_movements_cli(limit):
    """Most recent movements across all items."""
    _echo_movements(inventory_service.list_recent_movements(limit))


# =============================================================================
# PURCHASE ORDER COMMANDS
# =============================================================================

@click.group('orders')
def orders_group():
    """Purchase order helpers."""


@orders_group.command('suggest')
@click.argument('supplier_id', type=int)
@click.option('--create', 'create_order', is_flag=True, help='Create a PENDING order from the draft')
@with_appcontext
@service_command
def suggest_order_cli(supplier_id, create_order):
    """Propose a restocking order for one supplier."""
    draft = replenishment_service.suggest_order(supplier_id)

    click.echo(f"Supplier: {draft['supplier_name']} (ID: {draft['supplier_id']})")
    click.echo(f"{'Code':<15} {'Name':<30} {'On hand':>8} {'Order':>6} {'Unit cost':>10}")
    for line in draft["lines"]:
        click.echo(
            f"{line['item_code']:<15} {line['item_name']:<30} {line['quantity_on_hand']:>8} "
            f"{line['quantity']:>6} {_format_cents(line['unit_cost_cents']):>10}"
        )
    click.echo(f"Total: {_format_cents(draft['total_cents'])}")

    if create_order:
        order = purchase_order_service.create_order(supplier_id, draft["lines"])
        click.echo(f"PASS Created purchase order {order.reference} ({order.status})")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(suppliers_group)
    app.cli.add_command(items_group)
    app.cli.add_command(movements_group)
    app.cli.add_command(orders_group)

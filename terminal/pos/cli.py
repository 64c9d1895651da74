# terminal/pos/cli.py
# Commands Legend (run from the terminal directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask terminal <command> [options]
#
# Settings:
# - python -m flask terminal show-settings
#   Print the backend base URL in use and the configured default.
# - python -m flask terminal set-api-url http://festival.local:8080/api/v1
#   Validate and persist a new backend base URL.
#
# Backend inspection:
# - python -m flask terminal slots
#   List sales slots; the active one is marked with "*".
# - python -m flask terminal inventory <slot-id>
#   Print availability per product for one sales slot.
# - python -m flask terminal order <ticket-number>
#   Look up an order by the customer's ticket number.

import click
from flask import current_app
from flask.cli import with_appcontext

from .services import settings_service
from .services.api_client import ApiError
from .services.inventory_service import (
    InventoryDataError,
    InventoryIndex,
    merge_products,
    normalize_inventory,
    products_from_inventory,
)
from .services.terminal_service import get_terminal
from .validation import ValidationError


@click.group('terminal')
def terminal_group():
    """POS terminal settings and backend inspection."""


@terminal_group.command('show-settings')
@with_appcontext
def show_settings():
    settings = settings_service.load_settings(current_app.config.get("POS_API_BASE_URL"))
    click.echo(f"API base URL:  {settings.api_base_url}")
    click.echo(f"Default:       {current_app.config.get('POS_API_BASE_URL')}")
    click.echo(f"HTTP timeout:  {current_app.config.get('POS_HTTP_TIMEOUT')}s")


@terminal_group.command('set-api-url')
@click.argument('url')
@with_appcontext
def set_api_url(url):
    """Persist a new backend base URL."""
    try:
        settings = get_terminal().save_settings({"apiBaseUrl": url})
    except ValidationError as e:
        raise click.ClickException(str(e))

    click.echo(f"✓ API base URL set to {settings.api_base_url}")


@terminal_group.command('slots')
@with_appcontext
def list_slots():
    try:
        slots = get_terminal().client.list_sales_slots()
    except ApiError as e:
        raise click.ClickException(f"Failed to load sales slots: {e}")

    if not slots:
        click.echo("No sales slots found.")
        return

    click.echo(f"\n{'':<2} {'ID':<38} {'Time':<25}")
    click.echo("-" * 66)
    for slot in slots:
        marker = "*" if slot.is_active else ""
        click.echo(f"{marker:<2} {slot.id:<38} {slot.label:<25}")
    click.echo(f"\nTotal: {len(slots)} slots")


@terminal_group.command('inventory')
@click.argument('slot_id')
@with_appcontext
def show_inventory(slot_id):
    """Availability per product for SLOT_ID."""
    try:
        records = normalize_inventory(get_terminal().client.list_slot_inventory(slot_id))
    except (ApiError, InventoryDataError) as e:
        raise click.ClickException(f"Failed to load inventory: {e}")

    availability = merge_products(
        products_from_inventory(records),
        InventoryIndex(records),
        low_stock_threshold=current_app.config.get("POS_LOW_STOCK_THRESHOLD", 5),
    )

    click.echo(f"\n{'Product':<30} {'Price':>7} {'Left':>6}  Status")
    click.echo("-" * 60)
    for item in availability:
        click.echo(
            f"{item.product.name:<30} {item.product.price:>7} {item.available_quantity:>6}  {item.status}"
        )
    click.echo(f"\nTotal: {len(availability)} products")


@terminal_group.command('order')
@click.argument('ticket_number')
@with_appcontext
def show_order(ticket_number):
    try:
        order = get_terminal().client.get_order_by_ticket(ticket_number)
    except ApiError as e:
        raise click.ClickException(f"Failed to load order: {e}")

    click.echo(f"Order:     {order.id}")
    click.echo(f"Ticket:    {order.ticket_number}")
    click.echo(f"Status:    {order.status}")
    click.echo(f"Paid:      {'yes' if order.is_paid else 'no'}")
    click.echo(f"Delivered: {'yes' if order.is_delivered else 'no'}")
    click.echo(f"Total:     {order.total_amount}")
    for line in order.items:
        click.echo(f"  - {line.product_id} x{line.quantity} @ {line.price}")


def register_commands(app):
    """Register all CLI command groups with the Flask app."""
    app.cli.add_command(terminal_group)

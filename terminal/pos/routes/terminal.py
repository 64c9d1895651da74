# Overview: Flask API routes for the POS screen; parses input and returns JSON responses.

# terminal/pos/routes/terminal.py
"""
POS screen routes.

Every mutating route answers with the fresh screen snapshot so the front end
can re-render from a single response. Rejected actions answer 400 (or 502
when the backend failed) and leave a notification in the queue.
"""

from flask import Blueprint, request, jsonify

from ..decorators import json_errors
from ..services.terminal_service import get_terminal
from ..services.types import PaymentMethod
from ..validation import ValidationError, require_string, optional_string


terminal_bp = Blueprint("terminal", __name__, url_prefix="/api/terminal")


def _snapshot(status: int = 200):
    return jsonify(get_terminal().snapshot()), status


@terminal_bp.get("")
def get_state():
    """Current screen state: slots, products with availability, cart, checkout."""
    return _snapshot()


@terminal_bp.get("/notifications")
def drain_notifications():
    """Pending toasts; each is returned once."""
    items = [n.to_dict() for n in get_terminal().drain_notifications()]
    return jsonify({"items": items, "count": len(items)}), 200


# =============================================================================
# SALES SLOTS & INVENTORY
# =============================================================================

@terminal_bp.post("/slots/refresh")
@json_errors
def refresh_slots():
    get_terminal().load_sales_slots()
    return _snapshot()


@terminal_bp.put("/slot")
@json_errors
def select_slot():
    data = request.get_json(silent=True) or {}
    get_terminal().select_slot(require_string(data, "slot_id"))
    return _snapshot()


@terminal_bp.post("/inventory/refresh")
@json_errors
def refresh_inventory():
    terminal = get_terminal()
    if not terminal.selected_slot_id:
        raise ValidationError("Select a time slot")
    terminal.load_inventory()
    return _snapshot()


# =============================================================================
# CART
# =============================================================================

@terminal_bp.post("/cart/items")
@json_errors
def add_cart_item():
    """Add one unit of product_id, gated by the slot inventory."""
    data = request.get_json(silent=True) or {}
    get_terminal().add_to_cart(require_string(data, "product_id"))
    return _snapshot()


@terminal_bp.delete("/cart/items/<product_id>")
@json_errors
def remove_cart_item(product_id: str):
    """Remove one unit of product_id; unknown products are ignored."""
    get_terminal().remove_from_cart(product_id)
    return _snapshot()


@terminal_bp.delete("/cart")
@json_errors
def clear_cart():
    """Empty the cart and the ticket number."""
    get_terminal().clear_cart()
    return _snapshot()


@terminal_bp.put("/ticket")
@json_errors
def set_ticket():
    data = request.get_json(silent=True) or {}
    get_terminal().set_ticket_number(data.get("ticket_number"))
    return _snapshot()


# =============================================================================
# CHECKOUT
# =============================================================================

@terminal_bp.post("/checkout")
@json_errors
def begin_checkout():
    """Validate cart, ticket number and slot; open the payment dialog."""
    get_terminal().begin_checkout()
    return _snapshot()


@terminal_bp.post("/checkout/payment-method")
@json_errors
def select_payment_method():
    data = request.get_json(silent=True) or {}
    if data.get("payment_method") is None:
        raise ValidationError("payment_method required")
    method = PaymentMethod.parse(data.get("payment_method"))
    get_terminal().select_payment_method(method, optional_string(data, "transaction_id"))
    return _snapshot()


@terminal_bp.post("/checkout/transaction")
@json_errors
def report_transaction():
    """Card sub-flow result: the processor's transaction id."""
    data = request.get_json(silent=True) or {}
    get_terminal().report_card_transaction(require_string(data, "transaction_id"))
    return _snapshot()


@terminal_bp.post("/checkout/back")
@json_errors
def back_to_selection():
    get_terminal().back_to_payment_selection()
    return _snapshot()


@terminal_bp.post("/checkout/cancel")
@json_errors
def cancel_checkout():
    get_terminal().cancel_checkout()
    return _snapshot()


@terminal_bp.post("/checkout/confirm")
@json_errors
def confirm_checkout():
    """Submit the order; on success the snapshot carries an empty cart."""
    order = get_terminal().confirm_payment()
    body = get_terminal().snapshot()
    body["order"] = order.to_dict()
    return jsonify(body), 201

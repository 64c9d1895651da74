# Overview: Flask API routes for the pickup counter; order lookup and status changes.

# terminal/pos/routes/orders.py
"""
Order desk routes.

Thin passthroughs to the backend for orders that already exist: lookup by
id or ticket number, recording a card transaction, and the confirm / cancel /
delivered status changes. The backend owns every rule here.
"""

from flask import Blueprint, request, jsonify

from ..decorators import json_errors
from ..services.terminal_service import get_terminal
from ..validation import require_string


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _order_response(order, status: int = 200):
    return jsonify({"order": order.to_dict()}), status


@orders_bp.get("/<order_id>")
@json_errors
def get_order(order_id: str):
    return _order_response(get_terminal().client.get_order(order_id))


@orders_bp.get("/number/<ticket_number>")
@json_errors
def get_order_by_ticket(ticket_number: str):
    """Look up the order a customer's ticket number belongs to."""
    return _order_response(get_terminal().client.get_order_by_ticket(ticket_number))


@orders_bp.put("/<order_id>/payment")
@json_errors
def update_payment(order_id: str):
    data = request.get_json(silent=True) or {}
    transaction_id = require_string(data, "transaction_id")
    return _order_response(get_terminal().client.update_payment(order_id, transaction_id))


@orders_bp.put("/<order_id>/confirm")
@json_errors
def confirm_order(order_id: str):
    return _order_response(get_terminal().client.confirm_order(order_id))


@orders_bp.put("/<order_id>/cancel")
@json_errors
def cancel_order(order_id: str):
    return _order_response(get_terminal().client.cancel_order(order_id))


@orders_bp.put("/<order_id>/delivery")
@json_errors
def mark_delivered(order_id: str):
    """Hand-over at the pickup counter."""
    return _order_response(get_terminal().client.mark_delivered(order_id))

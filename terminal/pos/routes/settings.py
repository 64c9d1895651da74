# Overview: Flask API routes for terminal settings; parses input and returns JSON responses.

# terminal/pos/routes/settings.py
from __future__ import annotations

from flask import Blueprint, jsonify, request, current_app

from ..decorators import json_errors
from ..services import settings_service
from ..services.terminal_service import get_terminal


settings_bp = Blueprint("settings", __name__, url_prefix="/api")


@settings_bp.get("/settings")
def get_settings():
    terminal = get_terminal()
    return jsonify({
        "settings": terminal.settings.to_dict(),
        "defaults": settings_service.default_settings(current_app.config.get("POS_API_BASE_URL")).to_dict(),
    })


@settings_bp.put("/settings")
@json_errors
def update_settings():
    """
    Save {"apiBaseUrl": ...}.

    The cart survives; the selected slot's inventory is reloaded from the
    new backend.
    """
    payload = request.get_json(silent=True) or {}
    settings = get_terminal().save_settings(payload)
    return jsonify({"settings": settings.to_dict()}), 200


@settings_bp.delete("/settings")
@json_errors
def reset_settings():
    """Forget the saved settings and fall back to the configured defaults."""
    settings = get_terminal().reset_settings(current_app.config.get("POS_API_BASE_URL"))
    return jsonify({"settings": settings.to_dict()}), 200

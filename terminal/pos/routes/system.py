# Overview: Flask API routes for system health; reports the settings store and backend reachability.

# terminal/pos/routes/system.py
"""
System health endpoint.

Reports the local settings store and, when asked with ?deep=1, whether the
configured backend answers.
"""

import time
from flask import Blueprint, current_app, jsonify, request
from ..extensions import db
from ..models import TerminalSetting
from ..services.api_client import ApiError
from ..services.terminal_service import get_terminal

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        setting_count = db.session.query(TerminalSetting).count()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"settings_rows": setting_count},
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


def check_backend_health() -> dict:
    start_time = time.time()
    terminal = get_terminal()
    try:
        slots = terminal.client.list_sales_slots()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"base_url": terminal.client.base_url, "sales_slots": len(slots)},
        }
    except ApiError as e:
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": str(e),
        }


@system_bp.get("/api/health")
def health():
    checks = {"database": check_database_health()}
    if request.args.get("deep") in ("1", "true"):
        checks["backend"] = check_backend_health()

    healthy = all(c["status"] == "healthy" for c in checks.values())
    return jsonify({"status": "healthy" if healthy else "unhealthy", "checks": checks}), 200 if healthy else 503

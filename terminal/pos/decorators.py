# terminal/pos/decorators.py

from functools import wraps
from flask import request, jsonify, current_app

from .validation import ValidationError
from .services.api_client import ApiError


def json_errors(f):
    """
    Map terminal failures to JSON responses.

    - ValidationError (cart, checkout, settings, bad input) -> 400
    - ApiError (backend unreachable or non-2xx) -> 502 with the backend message
    - anything else -> logged, 500

    The terminal session has already queued the user-visible notification
    for the first two; this only shapes the HTTP answer.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except ValidationError as e:
            return jsonify({"error": str(e), "title": getattr(e, "title", None)}), 400
        except ApiError as e:
            return jsonify({"error": str(e), "backend_status": e.status}), 502
        except Exception:
            current_app.logger.exception("Terminal request failed: %s %s", request.method, request.path)
            return jsonify({"error": "Internal server error"}), 500

    return decorated_function

# terminal/pos/validation.py
from __future__ import annotations

from typing import Any
from urllib.parse import urlparse


# Longest ticket number the pickup counter prints
MAX_TICKET_LENGTH = 32


class ValidationError(ValueError):
    """400-level input problem (client-side precondition not met)."""


def coerce_int(value: Any, field: str) -> int:
    """
    Strict integer coercion for JSON input.

    Rejects bools, floats, scientific notation and decimal strings so that
    "1.5" or true never silently become an enum value or a quantity.
    """
    if value is None:
        raise ValidationError(f"{field} is required")

    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value

    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")

    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")

    raise ValidationError(f"{field} must be an integer")


def require_string(payload: dict | None, field: str) -> str:
    """Return payload[field] stripped, or raise if missing/blank."""
    value = (payload or {}).get(field)
    if value is None:
        raise ValidationError(f"{field} required")
    text = str(value).strip()
    if not text:
        raise ValidationError(f"{field} required")
    return text


def optional_string(payload: dict | None, field: str) -> str | None:
    value = (payload or {}).get(field)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def normalize_ticket_number(value: Any) -> str:
    """
    Normalize operator input for the ticket number field.

    Blank input is allowed here (it just means "not entered yet"); the
    checkout preconditions decide whether a blank ticket blocks payment.
    """
    if value is None:
        return ""
    text = str(value).strip()
    if len(text) > MAX_TICKET_LENGTH:
        raise ValidationError(f"ticket_number must be at most {MAX_TICKET_LENGTH} characters")
    return text


def validate_base_url(value: Any) -> str:
    """Backend base URL: non-empty http(s) URL, stored without trailing slash."""
    if value is None or not str(value).strip():
        raise ValidationError("API base URL is required")
    text = str(value).strip()
    parsed = urlparse(text)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError("API base URL must be an http(s) URL")
    return text.rstrip("/")

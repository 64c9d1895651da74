# Overview: Service-layer operations for terminal settings; load, validate, persist and reset.

from __future__ import annotations

import json
import logging
from dataclasses import dataclass

from ..extensions import db
from ..models import TerminalSetting
from ..validation import ValidationError, validate_base_url


logger = logging.getLogger(__name__)

SETTINGS_KEY = "pos-settings"
DEFAULT_API_BASE_URL = "http://localhost:8080/api/v1"


class SettingsValidationError(ValidationError):
    pass


@dataclass(frozen=True)
class TerminalSettings:
    api_base_url: str

    def to_dict(self) -> dict:
        return {"apiBaseUrl": self.api_base_url}


def default_settings(api_base_url: str | None = None) -> TerminalSettings:
    return TerminalSettings(
        api_base_url=api_base_url or DEFAULT_API_BASE_URL,
    )


def _get_row() -> TerminalSetting | None:
    return db.session.query(TerminalSetting).filter_by(key=SETTINGS_KEY).first()


def load_settings(default_api_base_url: str | None = None) -> TerminalSettings:
    """
    Read the persisted settings.

    Absent row -> defaults. A row that no longer parses is logged and also
    falls back to defaults rather than blocking the terminal.
    """
    defaults = default_settings(default_api_base_url)
    row = _get_row()
    if row is None or not row.value:
        return defaults

    try:
        data = json.loads(row.value)
        return TerminalSettings(api_base_url=validate_base_url(data["apiBaseUrl"]))
    except (ValueError, KeyError, TypeError):
        logger.error("Failed to parse settings stored under %s; using defaults", SETTINGS_KEY)
        return defaults


def validate_settings(payload: dict) -> TerminalSettings:
    """Build TerminalSettings from a {"apiBaseUrl": ...} payload."""
    raw = (payload or {}).get("apiBaseUrl", (payload or {}).get("api_base_url"))
    try:
        return TerminalSettings(api_base_url=validate_base_url(raw))
    except ValidationError as exc:
        raise SettingsValidationError(str(exc))


def save_settings(settings: TerminalSettings) -> TerminalSettings:
    """Validate and upsert the settings row."""
    try:
        cleaned = TerminalSettings(api_base_url=validate_base_url(settings.api_base_url))
    except ValidationError as exc:
        raise SettingsValidationError(str(exc))

    row = _get_row()
    if row is None:
        row = TerminalSetting(key=SETTINGS_KEY)
        db.session.add(row)
    row.value = json.dumps(cleaned.to_dict())
    db.session.commit()
    logger.info("Saved terminal settings: api_base_url=%s", cleaned.api_base_url)
    return cleaned


def reset_settings(default_api_base_url: str | None = None) -> TerminalSettings:
    """Drop the persisted row; the defaults apply again."""
    row = _get_row()
    if row is not None:
        db.session.delete(row)
        db.session.commit()
    return default_settings(default_api_base_url)

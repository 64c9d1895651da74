# terminal/pos/config.py
from __future__ import annotations
import os


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # Local settings store; the terminal keeps no other data
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///pos_terminal.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Festival backend, used until an operator saves another URL
    POS_API_BASE_URL = os.environ.get("POS_API_BASE_URL", "http://localhost:8080/api/v1")
    POS_HTTP_TIMEOUT = _float_env("POS_HTTP_TIMEOUT", 10.0)

    # Products with fewer units left than this are flagged "low"
    POS_LOW_STOCK_THRESHOLD = int(os.environ.get("POS_LOW_STOCK_THRESHOLD", "5"))

    POS_ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "POS_ALLOWED_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if origin.strip()
    ]

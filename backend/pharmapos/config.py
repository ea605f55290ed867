# backend/pharmapos/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_origins(default: list[str]) -> list[str]:
    raw = os.environ.get("ALLOWED_ORIGINS")
    if not raw:
        return default
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored next to the app by default; PostgreSQL in production
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///pharmapos.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    # Internal error detail is only attached to error envelopes when enabled
    EXPOSE_ERROR_DETAILS = _env_bool("EXPOSE_ERROR_DETAILS", False)

    # Sale pricing policy
    VAT_RATE = os.environ.get("VAT_RATE", "0.12")
    SENIOR_DISCOUNT_NAME = os.environ.get("SENIOR_DISCOUNT_NAME", "Senior Citizen Discount")
    DEFAULT_DISCOUNT_PERCENT = os.environ.get("DEFAULT_DISCOUNT_PERCENT", "20")

    # Fall back to the first active user when the cashier cannot be mapped
    ALLOW_USER_FALLBACK = _env_bool("ALLOW_USER_FALLBACK", True)

    # Inventory alert thresholds
    LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "10"))
    EXPIRY_ALERT_DAYS = int(os.environ.get("EXPIRY_ALERT_DAYS", "30"))

    ALLOWED_ORIGINS = _env_origins([
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:5174",
        "http://localhost:4173",
    ])

# backend/tillpoint/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/tillpoint.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///tillpoint.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # IANA zone used to bucket sales by local hour on the dashboard
    STORE_TIMEZONE = os.environ.get("STORE_TIMEZONE", "UTC")

    # Stock decrements only land if the inventory row is unchanged since it was read
    STOCK_CONDITIONAL_WRITES = _env_flag("STOCK_CONDITIONAL_WRITES", True)

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

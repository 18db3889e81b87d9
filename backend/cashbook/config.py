# backend/cashbook/config.py
from __future__ import annotations
import os


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/cashbook.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///cashbook.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Local business timezone: day boundaries for Z-cut fallback and report buckets
    CASHBOOK_TIMEZONE = os.environ.get("CASHBOOK_TIMEZONE", "UTC")

    # Period reports: ranges up to this many days get a gap-free daily series
    CASHBOOK_DENSE_SERIES_DAYS = _env_int("CASHBOOK_DENSE_SERIES_DAYS", 60)
    CASHBOOK_TOP_PRODUCTS = _env_int("CASHBOOK_TOP_PRODUCTS", 5)

    # Printing: "spool" writes HTML tickets to CASHBOOK_PRINT_SPOOL_DIR, "none" disables
    CASHBOOK_PRINT_TARGET = os.environ.get("CASHBOOK_PRINT_TARGET", "spool")
    CASHBOOK_PRINT_SPOOL_DIR = os.environ.get("CASHBOOK_PRINT_SPOOL_DIR", "print-spool")
    CASHBOOK_TICKET_WIDTH_MM = _env_int("CASHBOOK_TICKET_WIDTH_MM", 80)
    CASHBOOK_BUSINESS_NAME = os.environ.get("CASHBOOK_BUSINESS_NAME", "My Store")

    # Budget distribution targets (percent of period income)
    CASHBOOK_BUDGET_EXPENSES_PCT = _env_int("CASHBOOK_BUDGET_EXPENSES_PCT", 50)
    CASHBOOK_BUDGET_PROFIT_PCT = _env_int("CASHBOOK_BUDGET_PROFIT_PCT", 20)
    CASHBOOK_BUDGET_INVESTMENT_PCT = _env_int("CASHBOOK_BUDGET_INVESTMENT_PCT", 30)

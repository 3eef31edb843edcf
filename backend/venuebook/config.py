# backend/venuebook/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/venuebook.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///venuebook.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # How confirmed payments are credited to the players they cover:
    # "full" credits the whole payment amount to every covered player,
    # "proportional" allocates it across covered players by final amount.
    PAYMENT_COVERAGE_MODE = os.environ.get("PAYMENT_COVERAGE_MODE", "full")

    # Ledger transactions retry on lock/version conflicts
    LEDGER_RETRY_ATTEMPTS = int(os.environ.get("LEDGER_RETRY_ATTEMPTS", "3"))
    LEDGER_RETRY_BACKOFF = float(os.environ.get("LEDGER_RETRY_BACKOFF", "0.1"))

    TEMPLATE_EXPIRY_WARNING_DAYS = int(os.environ.get("TEMPLATE_EXPIRY_WARNING_DAYS", "7"))

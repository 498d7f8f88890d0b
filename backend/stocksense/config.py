# backend/stocksense/config.py
from __future__ import annotations
import os
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parent.parent


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/stocksense.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///stocksense.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # SQLite busy timeout; other drivers ignore it
    SQLITE_BUSY_TIMEOUT_SECONDS = float(os.environ.get("SQLITE_BUSY_TIMEOUT_SECONDS", "5"))

    # Upper bound on how long a writer waits for the ledger lock
    LEDGER_LOCK_TIMEOUT_SECONDS = float(os.environ.get("LEDGER_LOCK_TIMEOUT_SECONDS", "5"))

    # Role -> operation table. None means the built-in defaults.
    # ROLE_POLICY_FILE points at a JSON object {"Manager": ["record-sale", ...]}.
    ROLE_PERMISSIONS = None
    ROLE_POLICY_FILE = os.environ.get("STOCKSENSE_ROLE_POLICY")

    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))
    DEFAULT_ADMIN_ID_NUMBER = os.environ.get("DEFAULT_ADMIN_ID_NUMBER", "ADMIN001")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    MIGRATIONS_DIR = str(BACKEND_DIR / "migrations")


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    LEDGER_LOCK_TIMEOUT_SECONDS = 2.0
    BCRYPT_ROUNDS = 4
    LOG_LEVEL = "WARNING"

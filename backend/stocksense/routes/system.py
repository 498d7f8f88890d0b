# backend/stocksense/routes/system.py
"""
System health and version endpoints.

Health checks the database and the ledger writer lock; version reports
non-sensitive deployment information.
"""

import sys
import time

from flask import Blueprint, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..errors import TransactionFailed
from ..extensions import db, get_services
from ..models import Product, Sale, User
from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)

API_VERSION = "1.0.0"


def check_database_health() -> dict:
    """Check database connectivity with a count per core table."""
    start_time = time.time()
    try:
        details = {
            "products": db.session.query(Product).count(),
            "sales": db.session.query(Sale).count(),
            "users": db.session.query(User).count(),
        }
        db.session.rollback()
        return {
            "status": "healthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
            "details": details,
        }
    except SQLAlchemyError:
        current_app.logger.exception("Database health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
            "error": "Database error",
        }


def check_ledger_lock_health() -> dict:
    """The writer lock must be obtainable within its timeout."""
    store = get_services()["store"]
    start_time = time.time()
    try:
        with store.snapshot():
            pass
    except TransactionFailed:
        return {
            "status": "degraded",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
            "warning": "Ledger writer lock is busy",
        }
    return {
        "status": "healthy",
        "latency_ms": round((time.time() - start_time) * 1000, 2),
        "details": {"lock_timeout_seconds": store.lock_timeout},
    }


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: healthy or degraded
    - 503: database unreachable
    """
    start_time = time.time()

    database_health = check_database_health()
    ledger_health = check_ledger_lock_health()

    all_checks = [database_health, ledger_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status, http_status = "unhealthy", 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    return {
        "status": overall_status,
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": {
            "database": database_health,
            "ledger_lock": ledger_health,
        },
    }, http_status


@system_bp.get("/version")
def version():
    """
    Version endpoint for deployment debugging.

    Does NOT expose secret keys, database credentials or internal paths.
    """
    env = "production" if not current_app.debug else "development"

    return {
        "api_version": API_VERSION,
        "environment": env,
        "python_version": sys.version.split()[0],
        "server_time": to_utc_z(utcnow()),
    }

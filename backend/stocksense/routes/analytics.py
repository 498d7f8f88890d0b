# Overview: Flask API routes for analytics; parses input and returns JSON responses.

"""
Analytics Routes

Home dashboard summary, sales trend, category breakdown, top products and
reorder predictions. All reads are ledger snapshots.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import LedgerError
from ..extensions import get_services
from ..permissions import Operation
from ..services.analytics_service import DEFAULT_TOP_LIMIT, DEFAULT_WINDOW_DAYS


analytics_bp = Blueprint("analytics", __name__, url_prefix="/api/analytics")


def _engine():
    return get_services()["analytics"]


@analytics_bp.get("/home")
@require_auth
@require_permission(Operation.VIEW_ANALYTICS_BASIC)
def home_route():
    """Query params: date (optional, YYYY-MM-DD; default today UTC)"""
    try:
        result = _engine().home_summary(actor=g.actor, as_of=request.args.get("date"))
        return jsonify(result)
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to build home summary")
        return jsonify({"error": "Internal server error"}), 500


@analytics_bp.get("/sales-trend")
@require_auth
@require_permission(Operation.VIEW_ANALYTICS_ADVANCED)
def sales_trend_route():
    """
    Query params:
    - days: int (optional, 1-365, default 30)
    - include_empty_days: "true" to emit zero rows for days without sales
    """
    try:
        result = _engine().sales_trend(
            actor=g.actor,
            window_days=request.args.get("days", DEFAULT_WINDOW_DAYS),
            include_empty_days=request.args.get("include_empty_days", "false").lower() == "true",
        )
        return jsonify(result)
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to build sales trend")
        return jsonify({"error": "Internal server error"}), 500


@analytics_bp.get("/category-breakdown")
@require_auth
@require_permission(Operation.VIEW_ANALYTICS_ADVANCED)
def category_breakdown_route():
    try:
        rows = _engine().category_breakdown(actor=g.actor)
        return jsonify({"rows": rows})
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to build category breakdown")
        return jsonify({"error": "Internal server error"}), 500


@analytics_bp.get("/top-products")
@require_auth
@require_permission(Operation.VIEW_ANALYTICS_ADVANCED)
def top_products_route():
    """Query params: limit (optional, 1-100, default 10)"""
    try:
        rows = _engine().top_products(
            actor=g.actor,
            limit=request.args.get("limit", DEFAULT_TOP_LIMIT),
        )
        return jsonify({"rows": rows})
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to build top products")
        return jsonify({"error": "Internal server error"}), 500


@analytics_bp.get("/predictions")
@require_auth
@require_permission(Operation.VIEW_ANALYTICS_ADVANCED)
def predictions_route():
    """Query params: days (optional, 1-365, default 30)"""
    try:
        rows = _engine().predictions(
            actor=g.actor,
            window_days=request.args.get("days", DEFAULT_WINDOW_DAYS),
        )
        return jsonify({"rows": rows})
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to build predictions")
        return jsonify({"error": "Internal server error"}), 500

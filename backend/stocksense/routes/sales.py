# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/stocksense/routes/sales.py
"""Sales API routes with permission enforcement"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import LedgerError
from ..extensions import get_services
from ..permissions import Operation


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_auth
@require_permission(Operation.RECORD_SALE)
def record_sale_route():
    """
    Record a multi-item sale atomically.

    Body: {"items": [{"product_id", "quantity", "unit_price_cents"?}], "sale_date"?}
    Available to: Admin, Manager, Staff
    """
    try:
        data = request.get_json(silent=True) or {}
        manager = get_services()["sales"]

        sale_ids = manager.record_sale(
            data.get("items"),
            actor=g.actor,
            sale_date=data.get("sale_date"),
        )
        return jsonify({"sale_ids": sale_ids, "count": len(sale_ids)}), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to record sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.delete("/<int:sale_id>")
@require_auth
@require_permission(Operation.RECORD_SALE)
def reverse_sale_route(sale_id: int):
    """Delete a sale and restore its quantity to stock."""
    try:
        reversed_sale = get_services()["sales"].reverse_sale(sale_id, actor=g.actor)
        return jsonify({"sale": reversed_sale}), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to reverse sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("")
@require_auth
@require_permission(Operation.VIEW_SALES)
def list_sales_route():
    """
    Sales ledger, newest first.

    Query params:
    - limit: int (optional)
    - product_id: int (optional)
    """
    try:
        result = get_services()["sales"].list_sales(
            actor=g.actor,
            limit=request.args.get("limit"),
            product_id=request.args.get("product_id", type=int),
        )
        return jsonify(result), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_permission(Operation.VIEW_SALES)
def get_sale_route(sale_id: int):
    try:
        sale = get_services()["sales"].get_sale(sale_id, actor=g.actor)
        return jsonify({"sale": sale}), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to get sale")
        return jsonify({"error": "Internal server error"}), 500

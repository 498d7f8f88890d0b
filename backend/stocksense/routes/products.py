# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/stocksense/routes/products.py
"""
Product management routes.

SECURITY: All routes require authentication.
- Read operations are open to every role
- Write operations require manage-catalog
- Stock alerts require manage-low-stock-alerts
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import LedgerError
from ..extensions import get_services
from ..permissions import Operation
from ..services import products_service

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _store_and_policy():
    services = get_services()
    return services["store"], services["policy"]


@products_bp.get("")
@require_auth
def list_products():
    """
    List products ordered by name.

    Query params:
    - category: str (optional)
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    try:
        store, _ = _store_and_policy()
        result = products_service.list_products(
            store,
            category=request.args.get("category"),
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
        return jsonify(result)
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    try:
        store, _ = _store_and_policy()
        return jsonify(products_service.get_product(store, product_id))
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to get product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("")
@require_auth
@require_permission(Operation.MANAGE_CATALOG)
def create_product_route():
    """
    Create a new product.

    Body: sku, name, category, price_cents, reorder_point (required);
    quantity, supplier (optional).
    """
    payload = request.get_json(silent=True) or {}
    try:
        store, policy = _store_and_policy()
        created = products_service.create_product(store, policy, actor=g.actor, patch=payload)
        return jsonify(created), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.put("/<int:product_id>")
@require_auth
@require_permission(Operation.MANAGE_CATALOG)
def update_product_route(product_id: int):
    """Update catalog fields. quantity is not writable here; stock moves through sales."""
    payload = request.get_json(silent=True) or {}
    try:
        store, policy = _store_and_policy()
        updated = products_service.update_product(
            store, policy, actor=g.actor, product_id=product_id, patch=payload
        )
        return jsonify(updated), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<int:product_id>")
@require_auth
@require_permission(Operation.MANAGE_CATALOG)
def delete_product_route(product_id: int):
    try:
        store, policy = _store_and_policy()
        deleted = products_service.delete_product(store, policy, actor=g.actor, product_id=product_id)
        return jsonify({"ok": True, "product": deleted}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/alerts/low-stock")
@require_auth
@require_permission(Operation.MANAGE_LOW_STOCK_ALERTS)
def low_stock_route():
    try:
        store, policy = _store_and_policy()
        items = products_service.list_low_stock(store, policy, actor=g.actor)
        return jsonify({"items": items, "count": len(items)})
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to list low-stock products")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/alerts/out-of-stock")
@require_auth
@require_permission(Operation.MANAGE_LOW_STOCK_ALERTS)
def out_of_stock_route():
    try:
        store, policy = _store_and_policy()
        items = products_service.list_out_of_stock(store, policy, actor=g.actor)
        return jsonify({"items": items, "count": len(items)})
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to list out-of-stock products")
        return jsonify({"error": "Internal server error"}), 500

# Overview: Flask API routes for user administration; parses input and returns JSON responses.

"""
User administration routes (Admin only by default).

The default administrator account cannot be deleted.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import LedgerError
from ..extensions import get_services
from ..permissions import Operation
from ..services import auth_service


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


def _policy():
    return get_services()["policy"]


@users_bp.get("")
@require_auth
@require_permission(Operation.MANAGE_USERS)
def list_users_route():
    try:
        users = auth_service.list_users(_policy(), actor=g.actor)
        return jsonify({"items": users, "count": len(users)}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to list users")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.post("")
@require_auth
@require_permission(Operation.MANAGE_USERS)
def create_user_route():
    """Body: {"id_number", "password", "role", "full_name"}"""
    try:
        payload = request.get_json(silent=True) or {}
        user = auth_service.create_user(_policy(), actor=g.actor, payload=payload)
        return jsonify({"user": user}), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.put("/<int:user_id>/role")
@require_auth
@require_permission(Operation.MANAGE_USERS)
def update_role_route(user_id: int):
    try:
        data = request.get_json(silent=True) or {}
        user = auth_service.update_user_role(_policy(), actor=g.actor, user_id=user_id, role=data.get("role"))
        return jsonify({"user": user}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to update user role")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.put("/<int:user_id>/password")
@require_auth
@require_permission(Operation.MANAGE_USERS)
def update_password_route(user_id: int):
    try:
        data = request.get_json(silent=True) or {}
        user = auth_service.update_user_password(
            _policy(), actor=g.actor, user_id=user_id, password=data.get("password")
        )
        return jsonify({"user": user}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to update user password")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.delete("/<int:user_id>")
@require_auth
@require_permission(Operation.MANAGE_USERS)
def delete_user_route(user_id: int):
    try:
        deleted = auth_service.delete_user(_policy(), actor=g.actor, user_id=user_id)
        return jsonify({"ok": True, "user": deleted}), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to delete user")
        return jsonify({"error": "Internal server error"}), 500

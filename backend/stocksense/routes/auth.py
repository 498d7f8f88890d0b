# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/stocksense/routes/auth.py
"""
Authentication API routes

Login issues an opaque bearer token; logout revokes it. There is no
self-registration: accounts are created by an administrator (see users.py)
or with `flask users create`.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..extensions import get_services
from ..services import auth_service, session_service


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _permissions_for(user) -> list[str]:
    return sorted(get_services()["policy"].operations_for(user.role))


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Body: {"id_number", "password"}
    Token must be included in Authorization header for protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        id_number = data.get("id_number")
        password = data.get("password")

        if not id_number or not password:
            return jsonify({"error": "id_number and password required", "code": "validation_error"}), 400

        user = auth_service.authenticate(id_number, password)
        if not user:
            current_app.logger.info("Failed login for id_number=%s", id_number)
            return jsonify({"error": "Invalid credentials", "code": "unauthorized"}), 401

        session, token = session_service.create_session(user.id)

        return jsonify({
            "user": user.to_dict(),
            "permissions": _permissions_for(user),
            "token": token,
            "session": session.to_dict(),
            "message": "Login successful",
        }), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    try:
        session_service.revoke_session(g.session_token)
        return jsonify({"ok": True}), 200
    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({
        "user": g.current_user.to_dict(),
        "permissions": _permissions_for(g.current_user),
    }), 200

# Overview: Request and permission decorators for API routes.

from functools import wraps

from flask import current_app, g, jsonify, request

from .extensions import get_services
from .permissions import Actor, Role
from .services import session_service


def _is_authenticated() -> bool:
    return hasattr(g, "current_user") and hasattr(g, "actor")


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require a valid bearer token.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.actor: Actor(user_id, role) handed to the core services
    - g.session_token: The plaintext token (used by logout)

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid, expired or revoked token
    - User account deactivated
    - Stored role is not a known Role
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if token is None:
            return jsonify({"error": "Authentication required", "code": "unauthorized"}), 401

        context = session_service.validate_session(token)
        if not context:
            return jsonify({"error": "Invalid or expired token", "code": "unauthorized"}), 401

        try:
            role = Role.parse(context.user.role)
        except ValueError:
            current_app.logger.warning(
                "User %s has unknown role %r", context.user.id_number, context.user.role
            )
            return jsonify({"error": "Invalid session: unknown role", "code": "unauthorized"}), 401

        g.current_user = context.user
        g.actor = Actor(user_id=context.user.id, role=role)
        g.session_token = token

        return f(*args, **kwargs)

    return decorated_function


def require_permission(operation: str):
    """
    Require the caller's role to allow an operation under the app's access policy.

    Must be applied below @require_auth.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required", "code": "unauthorized"}), 401

            policy = get_services()["policy"]
            if not policy.allowed(g.actor.role, operation):
                current_app.logger.info(
                    "Permission denied: user=%s role=%s operation=%s path=%s",
                    g.actor.user_id, g.actor.role.value, operation, request.path,
                )
                return jsonify({
                    "error": "Permission denied",
                    "code": "forbidden",
                    "details": {"required_permission": operation},
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator

# Overview: Service-layer operations for users and passwords; bcrypt hashing and user administration.

"""
Authentication Service

WHY: Every sale is attributed to a user, so every request must resolve to a
real account with a role the access policy understands.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor BCRYPT_ROUNDS, default 12)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
- Session tokens managed separately (see session_service.py)
- The default administrator (DEFAULT_ADMIN_ID_NUMBER) can never be deleted
"""

from __future__ import annotations

import logging
import re

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, Forbidden, NotFound, ValidationError
from ..extensions import db
from ..models import User
from ..permissions import AccessPolicy, Actor, Operation, Role
from .session_service import revoke_all_user_sessions

logger = logging.getLogger(__name__)


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str):
        raise PasswordValidationError("Password is required")

    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str, rounds: int | None = None) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing. rounds defaults to the
    app's BCRYPT_ROUNDS (tests lower it to keep the suite fast).
    """
    validate_password_strength(password)
    if rounds is None:
        rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    WHY timing-safe: bcrypt.checkpw() prevents timing attacks automatically.
    A malformed stored hash counts as a mismatch.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


def _parse_role(role) -> Role:
    try:
        return Role.parse(role)
    except ValueError:
        raise ValidationError(
            f"Unknown role: {role}",
            details={"allowed_roles": [r.value for r in Role]},
        )


def _require_text(value, field: str, max_length: int) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required", details={"field": field})
    value = value.strip()
    if len(value) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}", details={"field": field})
    return value


def _get_user_or_404(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound(f"User {user_id} not found", details={"user_id": user_id})
    return user


def register_user(*, id_number: str, password: str, role, full_name: str) -> User:
    """
    Insert a user without a policy check (CLI bootstrap and seeding).

    Raises:
        ValidationError / PasswordValidationError: bad input
        ConflictError: id_number already taken
    """
    id_number = _require_text(id_number, "id_number", 64)
    full_name = _require_text(full_name, "full_name", 255)
    role = _parse_role(role)

    if db.session.query(User).filter_by(id_number=id_number).first() is not None:
        raise ConflictError("id_number already exists", details={"id_number": id_number})

    user = User(
        id_number=id_number,
        password_hash=hash_password(password),
        role=role.value,
        full_name=full_name,
        is_active=True,
    )
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError("id_number already exists", details={"id_number": id_number}) from exc
    return user


def authenticate(id_number: str, password: str) -> User | None:
    """
    Authenticate by id_number and password.

    Returns User if credentials valid and the account is active, None otherwise.
    """
    if not id_number or not password:
        return None

    user = db.session.query(User).filter(
        User.id_number == id_number,
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        return user

    return None


def list_users(policy: AccessPolicy, *, actor: Actor) -> list[dict]:
    policy.require(actor, Operation.MANAGE_USERS)
    users = db.session.query(User).order_by(User.id.asc()).all()
    return [u.to_dict() for u in users]


def create_user(policy: AccessPolicy, *, actor: Actor, payload: dict) -> dict:
    """Create a user from {id_number, password, role, full_name}."""
    policy.require(actor, Operation.MANAGE_USERS)
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    user = register_user(
        id_number=payload.get("id_number"),
        password=payload.get("password"),
        role=payload.get("role"),
        full_name=payload.get("full_name"),
    )
    logger.info("User %s created user %s (%s)", actor.user_id, user.id_number, user.role)
    return user.to_dict()


def update_user_role(policy: AccessPolicy, *, actor: Actor, user_id: int, role) -> dict:
    policy.require(actor, Operation.MANAGE_USERS)
    new_role = _parse_role(role)
    user = _get_user_or_404(user_id)

    user.role = new_role.value
    db.session.commit()
    logger.info("User %s set role of %s to %s", actor.user_id, user.id_number, new_role.value)
    return user.to_dict()


def update_user_password(policy: AccessPolicy, *, actor: Actor, user_id: int, password: str) -> dict:
    """
    Replace a user's password and revoke their sessions.

    WHY revoke: a password reset must log the account out everywhere.
    """
    policy.require(actor, Operation.MANAGE_USERS)
    user = _get_user_or_404(user_id)

    user.password_hash = hash_password(password)
    db.session.commit()
    revoked = revoke_all_user_sessions(user.id, reason="Password changed")
    logger.info("Password changed for user %s; %s session(s) revoked", user.id_number, revoked)
    return user.to_dict()


def delete_user(policy: AccessPolicy, *, actor: Actor, user_id: int) -> dict:
    policy.require(actor, Operation.MANAGE_USERS)
    user = _get_user_or_404(user_id)

    if user.id_number == current_app.config.get("DEFAULT_ADMIN_ID_NUMBER", "ADMIN001"):
        raise Forbidden("Cannot delete default admin", details={"user_id": user_id})

    snapshot = user.to_dict()
    db.session.delete(user)
    db.session.commit()
    logger.info("User %s deleted user %s", actor.user_id, snapshot["id_number"])
    return snapshot

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError


# Maximum price: $9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

# Largest value a SQLite or Postgres BIGINT column can hold
MAX_STORED_INT = 2**63 - 1

_INT_PATTERN = re.compile(r"-?[0-9]+")


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: frozenset[str]
    required_on_create: frozenset[str] = frozenset()


PRODUCT_CREATE_POLICY = ModelValidationPolicy(
    writable_fields=frozenset(
        {"sku", "name", "category", "quantity", "price_cents", "reorder_point", "supplier"}
    ),
    required_on_create=frozenset({"sku", "name", "category", "price_cents", "reorder_point"}),
)

# quantity only moves through sales; initial_quantity is frozen at creation
PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"sku", "name", "category", "price_cents", "reorder_point", "supplier"}),
)


def parse_strict_int(value, field: str, index: int | None = None) -> int:
    """
    Integers only: bools, floats, scientific notation and non-ASCII digits are
    rejected, as is anything a BIGINT column cannot store.

    Strings of ASCII digits with an optional leading minus are accepted.
    """
    details = {"field": field}
    if index is not None:
        details["item_index"] = index

    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer", details=details)
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str) and _INT_PATTERN.fullmatch(value.strip()):
        parsed = int(value.strip())
    else:
        raise ValidationError(f"{field} must be an integer", details=details)

    if abs(parsed) > MAX_STORED_INT:
        raise ValidationError(f"{field} is out of range", details=details)
    return parsed


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return parse_strict_int(value, col.key)
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{col.key} must be an integer", details={"field": col.key})
            if "e" in stripped.lower():
                raise ValidationError(
                    f"{col.key} must be a plain integer (scientific notation not allowed)",
                    details={"field": col.key},
                )
            if "." in stripped:
                raise ValidationError(f"{col.key} must be an integer (no decimals)", details={"field": col.key})
            return parse_strict_int(stripped, col.key)
        if isinstance(value, float):
            raise ValidationError(f"{col.key} must be an integer, not a decimal", details={"field": col.key})
        raise ValidationError(f"{col.key} must be an integer", details={"field": col.key})

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be a boolean", details={"field": col.key})

    if isinstance(coltype, (String, Text)):
        if not isinstance(value, (str, int)) or isinstance(value, bool):
            raise ValidationError(f"{col.key} must be a string", details={"field": col.key})
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if f not in payload)
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}",
                details={"missing": missing},
            )

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}", details={"field": k})
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}", details={"field": k})

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null", details={"field": k})
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank", details={"field": k})

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}", details={"field": k})

        patch[k] = val

    return patch


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    if patch.get("price_cents") is not None:
        price = patch["price_cents"]
        if price < 0:
            raise ValidationError("price_cents must be >= 0", details={"field": "price_cents"})
        if price > MAX_PRICE_CENTS:
            raise ValidationError(
                f"price_cents cannot exceed {MAX_PRICE_CENTS} (${MAX_PRICE_CENTS / 100:,.2f})",
                details={"field": "price_cents"},
            )

    for field in ("quantity", "reorder_point"):
        if patch.get(field) is not None and patch[field] < 0:
            raise ValidationError(f"{field} must be >= 0", details={"field": field})

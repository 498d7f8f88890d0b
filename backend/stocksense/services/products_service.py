# Overview: Catalog service; product CRUD and stock alert listings over the ledger store.

"""
Products Service

WHY: Catalog edits share the ledger's writer lock so a price or SKU change can
never interleave with a sale that is reading the same product row.

STOCK RULE: quantity is writable only on create (it becomes initial_quantity).
After that, only the stock transaction manager moves it.
"""
from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from ..errors import ConflictError, NotFound, StoreError, TransactionFailed, ValidationError
from ..models import Product
from ..permissions import AccessPolicy, Actor, Operation
from ..validation import (
    PRODUCT_CREATE_POLICY,
    PRODUCT_UPDATE_POLICY,
    enforce_rules_product,
    validate_payload,
)
from .ledger_store import LedgerStore

logger = logging.getLogger(__name__)

PRODUCT_MUTABLE_FIELDS = {"sku", "name", "category", "price_cents", "reorder_point", "supplier"}

DEFAULT_PER_PAGE = 20
MAX_PER_PAGE = 100


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _catalog_write(store: LedgerStore, work, *, action: str):
    try:
        with store.transaction() as tx:
            return work(tx)
    except (StoreError, SQLAlchemyError) as exc:
        logger.error("Catalog %s failed and was rolled back: %s", action, exc)
        raise TransactionFailed("Transaction failed; no changes were applied") from exc


def list_products(
    store: LedgerStore,
    *,
    category: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Product listing ordered by name, with optional pagination.

    Args:
        category: Only products in this category
        page: Page number (1-indexed). If None, returns all items.
        per_page: Items per page (default 20, max 100)

    Returns:
        Dict with 'items', 'count', and pagination metadata if paginated.
    """
    with store.snapshot() as session:
        base_query = session.query(Product)
        if category:
            base_query = base_query.filter(Product.category == category)
        base_query = base_query.order_by(Product.name.asc(), Product.id.asc())

        if page is None:
            products = base_query.all()
            return {
                "items": [p.to_dict() for p in products],
                "count": len(products),
            }

        per_page = min(per_page or DEFAULT_PER_PAGE, MAX_PER_PAGE)
        if per_page < 1:
            raise ValidationError("per_page must be >= 1")
        page = max(page, 1)

        total = base_query.count()
        total_pages = (total + per_page - 1) // per_page if total > 0 else 1
        products = base_query.offset((page - 1) * per_page).limit(per_page).all()

        return {
            "items": [p.to_dict() for p in products],
            "count": len(products),
            "pagination": {
                "page": page,
                "per_page": per_page,
                "total": total,
                "total_pages": total_pages,
                "has_next": page < total_pages,
                "has_prev": page > 1,
            },
        }


def get_product(store: LedgerStore, product_id: int) -> dict:
    with store.snapshot():
        p = store.get_product(None, product_id)
        if p is None:
            raise NotFound(f"Product {product_id} not found", details={"product_id": product_id})
        return p.to_dict()


def create_product(store: LedgerStore, policy: AccessPolicy, *, actor: Actor, patch: dict) -> dict:
    """
    Create a product from a raw payload.

    Raises:
        Forbidden: actor may not manage the catalog
        ValidationError: payload fails column or business rules
        ConflictError: SKU already exists
    """
    policy.require(actor, Operation.MANAGE_CATALOG)
    patch = validate_payload(model=Product, payload=patch, policy=PRODUCT_CREATE_POLICY, partial=False)
    enforce_rules_product(patch)

    def _op(tx) -> dict:
        if store.find_product_by_sku(tx, patch["sku"]) is not None:
            raise ConflictError("SKU already exists.", details={"sku": patch["sku"]})

        quantity = patch.get("quantity") or 0
        p = Product(quantity=quantity, initial_quantity=quantity)
        apply_product_patch(p, patch)
        store.add_product(tx, p)
        return p.to_dict()

    created = _catalog_write(store, _op, action="create_product")
    logger.info("Created product %s (sku=%s) by user %s", created["id"], created["sku"], actor.user_id)
    return created


def update_product(
    store: LedgerStore,
    policy: AccessPolicy,
    *,
    actor: Actor,
    product_id: int,
    patch: dict,
) -> dict:
    """Update catalog fields. quantity is rejected: stock moves only through sales."""
    policy.require(actor, Operation.MANAGE_CATALOG)
    patch = validate_payload(model=Product, payload=patch, policy=PRODUCT_UPDATE_POLICY, partial=True)
    if not patch:
        raise ValidationError("No fields to update")
    enforce_rules_product(patch)

    def _op(tx) -> dict:
        p = store.get_product(tx, product_id, lock=True)
        if p is None:
            raise NotFound(f"Product {product_id} not found", details={"product_id": product_id})

        if "sku" in patch and patch["sku"] != p.sku:
            existing = store.find_product_by_sku(tx, patch["sku"])
            if existing is not None and existing.id != p.id:
                raise ConflictError("SKU already exists.", details={"sku": patch["sku"]})

        apply_product_patch(p, patch)
        tx.session.flush()
        return p.to_dict()

    updated = _catalog_write(store, _op, action="update_product")
    logger.info("Updated product %s fields=%s", product_id, ", ".join(sorted(patch)))
    return updated


def delete_product(store: LedgerStore, policy: AccessPolicy, *, actor: Actor, product_id: int) -> dict:
    """
    Hard-delete a product that no sale references.

    Products with sales history stay: deleting them would orphan the sales
    the ledger audit depends on.
    """
    policy.require(actor, Operation.MANAGE_CATALOG)

    def _op(tx) -> dict:
        p = store.get_product(tx, product_id, lock=True)
        if p is None:
            raise NotFound(f"Product {product_id} not found", details={"product_id": product_id})

        sales_count = store.count_sales_for_product(tx, product_id)
        if sales_count:
            raise ConflictError(
                "Product has recorded sales and cannot be deleted",
                details={"product_id": product_id, "sales_count": sales_count},
            )

        snapshot = p.to_dict()
        store.remove_product(tx, product_id)
        return snapshot

    deleted = _catalog_write(store, _op, action="delete_product")
    logger.info("Deleted product %s (sku=%s) by user %s", product_id, deleted["sku"], actor.user_id)
    return deleted


def list_low_stock(store: LedgerStore, policy: AccessPolicy, *, actor: Actor) -> list[dict]:
    """Products below their reorder point, emptiest first."""
    policy.require(actor, Operation.MANAGE_LOW_STOCK_ALERTS)
    with store.snapshot() as session:
        products = (
            session.query(Product)
            .filter(Product.quantity < Product.reorder_point)
            .order_by(Product.quantity.asc(), Product.id.asc())
            .all()
        )
        return [p.to_dict() for p in products]


def list_out_of_stock(store: LedgerStore, policy: AccessPolicy, *, actor: Actor) -> list[dict]:
    policy.require(actor, Operation.MANAGE_LOW_STOCK_ALERTS)
    with store.snapshot() as session:
        products = (
            session.query(Product)
            .filter(Product.quantity == 0)
            .order_by(Product.name.asc(), Product.id.asc())
            .all()
        )
        return [p.to_dict() for p in products]

"""
Stock Transaction Manager - all-or-nothing sales against the ledger store

WHY: A sale is two writes (a Sale row and a quantity decrement) that must
never be observed apart. Every path that touches Product.quantity lives here,
inside one ledger transaction, so quantity never drifts from the sales table.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError

from ..errors import (
    InsufficientStockError,
    NotFound,
    StoreError,
    TransactionFailed,
    ValidationError,
)
from ..models import Product, Sale, User
from ..permissions import AccessPolicy, Actor, Operation
from ..time_utils import normalize_datetime, parse_iso_datetime, to_utc_z, utcnow
from ..validation import MAX_PRICE_CENTS, MAX_STORED_INT, parse_strict_int
from .ledger_store import LedgerStore, LedgerTransaction

logger = logging.getLogger(__name__)

# Sales may be back-dated freely but not stamped in the future (clock skew allowance)
MAX_FUTURE_SKEW = timedelta(minutes=2)


@dataclass(frozen=True)
class SaleItem:
    """One line of a sale request. unit_price_cents=None means catalog price."""
    product_id: int
    quantity: int
    unit_price_cents: int | None = None


def parse_sale_items(raw_items) -> list[SaleItem]:
    """
    Validate and normalise the items of a sale request.

    Accepts SaleItem instances or dicts with product_id, quantity and an
    optional unit_price_cents.
    """
    if not isinstance(raw_items, (list, tuple)) or not raw_items:
        raise ValidationError("items must be a non-empty list")

    items: list[SaleItem] = []
    for index, raw in enumerate(raw_items):
        if isinstance(raw, SaleItem):
            product_id, quantity, unit_price = raw.product_id, raw.quantity, raw.unit_price_cents
        elif isinstance(raw, dict):
            if "product_id" not in raw or "quantity" not in raw:
                raise ValidationError(
                    "Each item requires product_id and quantity",
                    details={"item_index": index},
                )
            product_id = raw["product_id"]
            quantity = raw["quantity"]
            unit_price = raw.get("unit_price_cents")
        else:
            raise ValidationError("Each item must be an object", details={"item_index": index})

        product_id = parse_strict_int(product_id, "product_id", index)
        quantity = parse_strict_int(quantity, "quantity", index)
        if quantity <= 0:
            raise ValidationError(
                "quantity must be > 0",
                details={"item_index": index, "quantity": quantity},
            )
        if unit_price is not None:
            unit_price = parse_strict_int(unit_price, "unit_price_cents", index)
            if unit_price < 0 or unit_price > MAX_PRICE_CENTS:
                raise ValidationError(
                    f"unit_price_cents must be between 0 and {MAX_PRICE_CENTS}",
                    details={"item_index": index},
                )
            _check_line_total(quantity, unit_price, index)

        items.append(SaleItem(product_id=product_id, quantity=quantity, unit_price_cents=unit_price))
    return items


def _check_line_total(quantity: int, unit_price: int, index: int) -> None:
    if quantity * unit_price > MAX_STORED_INT:
        raise ValidationError(
            "Line total is out of range",
            details={"item_index": index, "quantity": quantity, "unit_price_cents": unit_price},
        )


def parse_sale_date(value, *, now: datetime) -> datetime:
    """
    Normalize sale_date to canonical UTC-naive datetime.

    Accepts:
    - None -> now
    - datetime (aware -> converted to UTC; naive -> treated as UTC)
    - ISO-8601 str (Z/offsets accepted)
    """
    if value is None:
        return now

    if isinstance(value, datetime):
        sale_dt = normalize_datetime(value)
    elif isinstance(value, str):
        try:
            sale_dt = parse_iso_datetime(value)
        except ValueError:
            raise ValidationError("sale_date must be an ISO-8601 datetime")
        if sale_dt is None:
            return now
    else:
        raise ValidationError("sale_date must be an ISO-8601 datetime")

    if sale_dt > now + MAX_FUTURE_SKEW:
        raise ValidationError("sale_date cannot be in the future")
    return sale_dt


class StockTransactionManager:
    """
    Orchestrates sale recording and reversal against the ledger store.

    Validation and policy checks happen before a transaction is opened.
    Anything that fails inside the transaction rolls the whole unit back.
    """

    def __init__(self, store: LedgerStore, policy: AccessPolicy, *, clock=utcnow):
        self.store = store
        self.policy = policy
        self._clock = clock

    def _run(self, work, *, action: str):
        tx = self.store.begin()
        try:
            result = work(tx)
            self.store.commit(tx)
            return result
        except (StoreError, SQLAlchemyError, OverflowError) as exc:
            self._rollback_quietly(tx, action)
            logger.error("Ledger %s failed and was rolled back: %s", action, exc)
            raise TransactionFailed("Transaction failed; no changes were applied") from exc
        except BaseException:
            self._rollback_quietly(tx, action)
            raise

    def _rollback_quietly(self, tx: LedgerTransaction, action: str) -> None:
        try:
            self.store.rollback(tx)
        except StoreError:
            logger.exception("Rollback of ledger %s failed", action)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def record_sale(self, items, *, actor: Actor, sale_date=None) -> list[int]:
        """
        Record a multi-item sale atomically.

        Returns the new sale ids in input order. Either every item is
        recorded and every product decremented, or nothing changes.

        Raises:
            Forbidden: actor may not record sales
            ValidationError: empty list, non-positive quantity, bad date
            NotFound: an item references an unknown product
            InsufficientStockError: the batch would drive a product below zero
            TransactionFailed: storage failure or lock timeout
        """
        self.policy.require(actor, Operation.RECORD_SALE)
        parsed = parse_sale_items(items)
        sale_dt = parse_sale_date(sale_date, now=self._clock())

        def _op(tx: LedgerTransaction) -> list[int]:
            products: dict[int, Product] = {}
            for index, item in enumerate(parsed):
                if item.product_id in products:
                    continue
                product = self.store.get_product(tx, item.product_id, lock=True)
                if product is None:
                    raise NotFound(
                        f"Product {item.product_id} not found",
                        details={"item_index": index, "product_id": item.product_id},
                    )
                products[item.product_id] = product

            _validate_on_hand(parsed, products)

            sale_ids = []
            for index, item in enumerate(parsed):
                product = products[item.product_id]
                unit_price = item.unit_price_cents
                if unit_price is None:
                    unit_price = product.price_cents
                    _check_line_total(item.quantity, unit_price, index)

                sale = Sale(
                    product_id=product.id,
                    quantity=item.quantity,
                    unit_price_cents=unit_price,
                    total_price_cents=item.quantity * unit_price,
                    sale_date=sale_dt,
                    user_id=actor.user_id,
                )
                sale_ids.append(self.store.insert_sale(tx, sale))
                self.store.adjust_product_quantity(tx, product.id, -item.quantity)

            return sale_ids

        sale_ids = self._run(_op, action="record_sale")
        logger.info("Recorded sales %s for user %s", sale_ids, actor.user_id)
        return sale_ids

    def reverse_sale(self, sale_id, *, actor: Actor) -> dict:
        """
        Delete a sale and restore its quantity to the product, atomically.

        Returns the reversed sale as it was before deletion.
        """
        self.policy.require(actor, Operation.RECORD_SALE)
        sale_id = parse_strict_int(sale_id, "sale_id")

        def _op(tx: LedgerTransaction) -> dict:
            sale = self.store.get_sale(tx, sale_id)
            if sale is None:
                raise NotFound(f"Sale {sale_id} not found", details={"sale_id": sale_id})

            reversed_sale = sale.to_dict()
            restored = self.store.adjust_product_quantity(tx, sale.product_id, sale.quantity)
            self.store.delete_sale(tx, sale.id)
            reversed_sale["product_quantity_after"] = restored
            return reversed_sale

        reversed_sale = self._run(_op, action="reverse_sale")
        logger.info("Reversed sale %s by user %s", sale_id, actor.user_id)
        return reversed_sale

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_sales(self, *, actor: Actor, limit: int | None = None, product_id: int | None = None) -> dict:
        """Sales newest first, joined with product and user names."""
        self.policy.require(actor, Operation.VIEW_SALES)
        if limit is not None:
            limit = parse_strict_int(limit, "limit")
            if limit <= 0:
                raise ValidationError("limit must be > 0")

        with self.store.snapshot() as session:
            query = _sales_query(session)
            if product_id is not None:
                query = query.filter(Sale.product_id == product_id)
            query = query.order_by(Sale.sale_date.desc(), Sale.id.desc())
            if limit is not None:
                query = query.limit(limit)
            rows = query.all()

        items = [_sale_row_to_dict(row) for row in rows]
        return {"items": items, "count": len(items)}

    def get_sale(self, sale_id, *, actor: Actor) -> dict:
        self.policy.require(actor, Operation.VIEW_SALES)
        sale_id = parse_strict_int(sale_id, "sale_id")

        with self.store.snapshot() as session:
            row = _sales_query(session).filter(Sale.id == sale_id).first()

        if row is None:
            raise NotFound(f"Sale {sale_id} not found", details={"sale_id": sale_id})
        return _sale_row_to_dict(row)


def _validate_on_hand(items: list[SaleItem], products: dict[int, Product]) -> None:
    requested: dict[int, int] = {}
    indexes: dict[int, list[int]] = {}
    for index, item in enumerate(items):
        requested[item.product_id] = requested.get(item.product_id, 0) + item.quantity
        indexes.setdefault(item.product_id, []).append(index)

    insufficient = []
    for product_id, qty in requested.items():
        on_hand = products[product_id].quantity
        if on_hand < qty:
            insufficient.append({
                "product_id": product_id,
                "sku": products[product_id].sku,
                "item_indexes": indexes[product_id],
                "requested_quantity": qty,
                "on_hand": on_hand,
            })

    if insufficient:
        raise InsufficientStockError(
            "Insufficient stock to record sale",
            details={"items": insufficient},
        )


def _sales_query(session):
    return (
        session.query(
            Sale.id,
            Sale.product_id,
            Sale.quantity,
            Sale.unit_price_cents,
            Sale.total_price_cents,
            Sale.sale_date,
            Sale.user_id,
            Product.name.label("product_name"),
            Product.sku.label("sku"),
            User.full_name.label("user_name"),
        )
        .join(Product, Sale.product_id == Product.id)
        .outerjoin(User, Sale.user_id == User.id)
    )


def _sale_row_to_dict(row) -> dict:
    return {
        "id": row.id,
        "product_id": row.product_id,
        "product_name": row.product_name,
        "sku": row.sku,
        "quantity": row.quantity,
        "unit_price_cents": row.unit_price_cents,
        "total_price_cents": row.total_price_cents,
        "sale_date": to_utc_z(row.sale_date),
        "user_id": row.user_id,
        "user_name": row.user_name,
    }

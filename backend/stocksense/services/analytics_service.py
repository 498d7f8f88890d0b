# Overview: Read-side analytics over the stock ledger; aggregates and reorder predictions.

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum

from sqlalchemy import func

from ..errors import ValidationError
from ..models import Product, Sale
from ..permissions import AccessPolicy, Actor, Operation
from ..time_utils import day_bounds, parse_iso_datetime, to_utc_z, utcnow
from ..validation import parse_strict_int
from .ledger_store import LedgerStore
"""
StockSense Analytics Semantics (authoritative)

- Every report runs inside LedgerStore.snapshot(): it sees committed sales and
  quantities only, never a sale without its stock decrement.
- Revenue is SUM(sales.total_price_cents): the price frozen at sale time, not
  the current catalog price.
- Calendar days are UTC days. Time windows are inclusive: now - N days <= sale_date <= now.
- The sales trend is sparse unless include_empty_days=True.

Reorder predictions are a fixed rule table, not a forecast:
    sold_per_day        = units sold in window / window_days
    days_until_stockout = quantity / (sold_per_day or 1)   if quantity > 0 else 0
    recommended_order   = max(0, ceil(2 * reorder_point - quantity))
    priority            = critical if quantity == 0
                          high     if days_until_stockout < 7
                          medium   if quantity < reorder_point
                          low      otherwise
"""

DEFAULT_WINDOW_DAYS = 30
MAX_WINDOW_DAYS = 365
DEFAULT_TOP_LIMIT = 10
MAX_TOP_LIMIT = 100


class Priority(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class StockPrediction:
    sold_per_day: float
    days_until_stockout: int
    recommended_order: int
    priority: Priority
    action: str


def predict_stock(*, quantity: int, reorder_point: int, total_sold: int, window_days: int) -> StockPrediction:
    """Apply the reorder rule table to one product."""
    sold_per_day = total_sold / window_days
    if quantity > 0:
        days_until_stockout = quantity / (sold_per_day or 1)
    else:
        days_until_stockout = 0
    recommended_order = max(0, math.ceil(2 * reorder_point - quantity))

    if quantity == 0:
        priority = Priority.CRITICAL
        action = "Order immediately - Out of stock"
    elif days_until_stockout < 7:
        priority = Priority.HIGH
        action = f"Order soon - {math.floor(days_until_stockout)} days until stockout"
    elif quantity < reorder_point:
        priority = Priority.MEDIUM
        action = "Reorder recommended"
    else:
        priority = Priority.LOW
        action = "Monitor"

    return StockPrediction(
        sold_per_day=round(sold_per_day, 2),
        days_until_stockout=math.floor(days_until_stockout),
        recommended_order=recommended_order,
        priority=priority,
        action=action,
    )


def _validate_window(window_days) -> int:
    window_days = parse_strict_int(window_days, "window_days")
    if window_days < 1 or window_days > MAX_WINDOW_DAYS:
        raise ValidationError(f"window_days must be between 1 and {MAX_WINDOW_DAYS}")
    return window_days


def _resolve_day(as_of, now: datetime) -> date:
    if as_of is None:
        return now.date()
    if isinstance(as_of, datetime):
        return as_of.date()
    if isinstance(as_of, date):
        return as_of
    if isinstance(as_of, str):
        try:
            parsed = parse_iso_datetime(as_of)
        except ValueError:
            raise ValidationError("date must be ISO-8601 (YYYY-MM-DD)")
        if parsed is None:
            return now.date()
        return parsed.date()
    raise ValidationError("date must be ISO-8601 (YYYY-MM-DD)")


def _day_key(value) -> str:
    # SQLite DATE() yields 'YYYY-MM-DD' strings; other dialects return date objects
    if isinstance(value, (date, datetime)):
        return value.isoformat()[:10]
    return str(value)


class AnalyticsEngine:
    """Read-only reports over ledger snapshots."""

    def __init__(self, store: LedgerStore, policy: AccessPolicy, *, clock=utcnow):
        self.store = store
        self.policy = policy
        self._clock = clock

    def home_summary(self, *, actor: Actor, as_of=None) -> dict:
        """Sales on one calendar day plus current inventory totals."""
        self.policy.require(actor, Operation.VIEW_ANALYTICS_BASIC)
        day = _resolve_day(as_of, self._clock())
        start, end = day_bounds(day)

        with self.store.snapshot() as session:
            day_row = session.query(
                func.count(Sale.id).label("count"),
                func.coalesce(func.sum(Sale.total_price_cents), 0).label("revenue"),
            ).filter(
                Sale.sale_date >= start,
                Sale.sale_date < end,
            ).one()

            inventory_row = session.query(
                func.coalesce(func.sum(Product.quantity * Product.price_cents), 0).label("value"),
                func.count(Product.id).label("count"),
            ).one()

            low_stock = session.query(func.count(Product.id)).filter(
                Product.quantity < Product.reorder_point
            ).scalar()
            out_of_stock = session.query(func.count(Product.id)).filter(
                Product.quantity == 0
            ).scalar()

        return {
            "date": day.isoformat(),
            "today_sales": int(day_row.count or 0),
            "today_revenue_cents": int(day_row.revenue or 0),
            "inventory_value_cents": int(inventory_row.value or 0),
            "inventory_count": int(inventory_row.count or 0),
            "low_stock_items": int(low_stock or 0),
            "out_of_stock_items": int(out_of_stock or 0),
        }

    def sales_trend(
        self,
        *,
        actor: Actor,
        window_days: int = DEFAULT_WINDOW_DAYS,
        include_empty_days: bool = False,
    ) -> dict:
        """Per-day sale count and revenue over the trailing window, oldest first."""
        self.policy.require(actor, Operation.VIEW_ANALYTICS_ADVANCED)
        window_days = _validate_window(window_days)
        now = self._clock()
        start = now - timedelta(days=window_days)

        day_expr = func.date(Sale.sale_date)
        with self.store.snapshot() as session:
            rows = session.query(
                day_expr.label("day"),
                func.count(Sale.id).label("sales_count"),
                func.coalesce(func.sum(Sale.total_price_cents), 0).label("revenue"),
            ).filter(
                Sale.sale_date >= start,
                Sale.sale_date <= now,
            ).group_by(day_expr).order_by(day_expr).all()

        by_day = {
            _day_key(row.day): {
                "date": _day_key(row.day),
                "sales_count": int(row.sales_count or 0),
                "revenue_cents": int(row.revenue or 0),
            }
            for row in rows
        }

        if include_empty_days:
            series = []
            cursor = start.date()
            while cursor <= now.date():
                key = cursor.isoformat()
                series.append(by_day.get(key, {"date": key, "sales_count": 0, "revenue_cents": 0}))
                cursor += timedelta(days=1)
        else:
            series = [by_day[key] for key in sorted(by_day)]

        return {
            "window_days": window_days,
            "start": to_utc_z(start),
            "end": to_utc_z(now),
            "sparse": not include_empty_days,
            "rows": series,
        }

    def category_breakdown(self, *, actor: Actor) -> list[dict]:
        """Sale count and revenue per product category, highest revenue first."""
        self.policy.require(actor, Operation.VIEW_ANALYTICS_ADVANCED)
        revenue = func.coalesce(func.sum(Sale.total_price_cents), 0)

        with self.store.snapshot() as session:
            rows = session.query(
                Product.category.label("category"),
                func.count(Sale.id).label("sales_count"),
                revenue.label("revenue"),
            ).join(
                Product, Sale.product_id == Product.id
            ).group_by(Product.category).order_by(
                revenue.desc(), Product.category.asc()
            ).all()

        return [
            {
                "category": row.category,
                "sales_count": int(row.sales_count or 0),
                "revenue_cents": int(row.revenue or 0),
            }
            for row in rows
        ]

    def top_products(self, *, actor: Actor, limit: int = DEFAULT_TOP_LIMIT) -> list[dict]:
        """Best sellers by units sold; ties go to the older product."""
        self.policy.require(actor, Operation.VIEW_ANALYTICS_ADVANCED)
        limit = parse_strict_int(limit, "limit")
        if limit < 1 or limit > MAX_TOP_LIMIT:
            raise ValidationError(f"limit must be between 1 and {MAX_TOP_LIMIT}")

        units = func.coalesce(func.sum(Sale.quantity), 0)
        with self.store.snapshot() as session:
            rows = session.query(
                Product.id.label("product_id"),
                Product.sku.label("sku"),
                Product.name.label("name"),
                Product.category.label("category"),
                units.label("total_sold"),
                func.coalesce(func.sum(Sale.total_price_cents), 0).label("revenue"),
            ).join(
                Product, Sale.product_id == Product.id
            ).group_by(
                Product.id, Product.sku, Product.name, Product.category
            ).order_by(
                units.desc(), Product.id.asc()
            ).limit(limit).all()

        return [
            {
                "product_id": row.product_id,
                "sku": row.sku,
                "name": row.name,
                "category": row.category,
                "total_sold": int(row.total_sold or 0),
                "revenue_cents": int(row.revenue or 0),
            }
            for row in rows
        ]

    def predictions(self, *, actor: Actor, window_days: int = DEFAULT_WINDOW_DAYS) -> list[dict]:
        """Reorder recommendation for every product (see rule table above)."""
        self.policy.require(actor, Operation.VIEW_ANALYTICS_ADVANCED)
        window_days = _validate_window(window_days)
        now = self._clock()
        start = now - timedelta(days=window_days)

        with self.store.snapshot() as session:
            window = session.query(
                Sale.product_id.label("product_id"),
                func.count(Sale.id).label("sales_count"),
                func.sum(Sale.quantity).label("total_sold"),
            ).filter(
                Sale.sale_date >= start,
                Sale.sale_date <= now,
            ).group_by(Sale.product_id).subquery()

            total_sold = func.coalesce(window.c.total_sold, 0)
            rows = session.query(
                Product.id,
                Product.sku,
                Product.name,
                Product.category,
                Product.quantity,
                Product.reorder_point,
                func.coalesce(window.c.sales_count, 0).label("sales_count"),
                total_sold.label("total_sold"),
            ).outerjoin(
                window, window.c.product_id == Product.id
            ).order_by(
                total_sold.desc(), Product.id.asc()
            ).all()

        results = []
        for row in rows:
            sales_count = int(row.sales_count or 0)
            sold = int(row.total_sold or 0)
            prediction = predict_stock(
                quantity=int(row.quantity),
                reorder_point=int(row.reorder_point),
                total_sold=sold,
                window_days=window_days,
            )
            results.append(
                {
                    "product_id": row.id,
                    "sku": row.sku,
                    "name": row.name,
                    "category": row.category,
                    "quantity": int(row.quantity),
                    "reorder_point": int(row.reorder_point),
                    "sales_count": sales_count,
                    "total_sold": sold,
                    "avg_quantity_per_sale": round(sold / sales_count, 2) if sales_count else None,
                    "sold_per_day": prediction.sold_per_day,
                    "days_until_stockout": prediction.days_until_stockout,
                    "recommended_order": prediction.recommended_order,
                    "priority": prediction.priority.value,
                    "action": prediction.action,
                }
            )
        return results

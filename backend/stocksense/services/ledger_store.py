# Overview: Ledger store; durable, transactional storage of products and sales.

from __future__ import annotations

from contextlib import contextmanager

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..errors import NotFound, StoreError
from ..models import Product, Sale
from .concurrency import WriterLock, lock_for_update
"""
StockSense Ledger Store Invariants (authoritative)

Storage:
- Two logical tables: products and sales (sales.product_id -> products.id).
- Sale ids are monotonic (sqlite_autoincrement; never reused after delete).

Transactions:
- begin() takes the process-wide writer lock with a bounded wait; expiry is
  TransactionFailed, never an indefinite block.
- Every write goes through a LedgerTransaction handle. Nothing is visible to
  other sessions until commit(); rollback() discards all of it.
- commit()/rollback() always release the writer lock and are no-ops on a
  closed handle.
- Reads that need a consistent multi-statement view use snapshot(), which is
  serialised against writers: a reader never sees a sale without its stock
  decrement or the other way round.

Policy is not storage:
- adjust_product_quantity() applies any delta. Refusing to go negative is the
  transaction manager's decision (the CHECK constraint is only a backstop).
"""


class LedgerTransaction:
    """Opaque handle for one atomic unit of ledger work."""

    def __init__(self, session):
        self.session = session
        self.active = True

    def __repr__(self) -> str:
        return f"<LedgerTransaction active={self.active}>"


class LedgerStore:
    """
    Transactional primitives over a SQLAlchemy scoped session.

    The session registry is injected (Flask-SQLAlchemy's db.session inside the
    app, any scoped_session elsewhere); its lifecycle belongs to the owner.
    """

    def __init__(self, session, *, lock_timeout: float = 5.0):
        self._session = session
        self._writer = WriterLock(timeout=lock_timeout)

    @property
    def session(self):
        """Session for the current scope (thread / app context)."""
        return self._session()

    @property
    def lock_timeout(self) -> float:
        return self._writer.timeout

    # ------------------------------------------------------------------
    # Transaction lifecycle
    # ------------------------------------------------------------------

    def begin(self) -> LedgerTransaction:
        self._writer.acquire()
        return LedgerTransaction(self._session())

    def commit(self, tx: LedgerTransaction) -> None:
        if not tx.active:
            return
        try:
            tx.session.commit()
        except SQLAlchemyError as exc:
            tx.session.rollback()
            raise StoreError("Commit failed") from exc
        finally:
            tx.active = False
            self._writer.release()

    def rollback(self, tx: LedgerTransaction) -> None:
        if not tx.active:
            return
        try:
            tx.session.rollback()
        except SQLAlchemyError as exc:
            raise StoreError("Rollback failed") from exc
        finally:
            tx.active = False
            self._writer.release()

    @contextmanager
    def transaction(self):
        """
        begin / yield / commit; any exception rolls back and propagates.

        BaseException is caught on purpose: a request torn down mid-unit
        (GeneratorExit, KeyboardInterrupt) must roll back too.
        """
        tx = self.begin()
        try:
            yield tx
        except BaseException:
            self.rollback(tx)
            raise
        self.commit(tx)

    @contextmanager
    def snapshot(self):
        """Read-only view of committed state, serialised against writers."""
        with self._writer.held():
            session = self._session()
            was_open = session.in_transaction()
            try:
                yield session
            finally:
                if not was_open and session.in_transaction():
                    session.rollback()

    def _require_active(self, tx: LedgerTransaction | None) -> None:
        if tx is None or not tx.active:
            raise StoreError("No active ledger transaction")

    def _session_for(self, tx: LedgerTransaction | None):
        if tx is not None:
            self._require_active(tx)
            return tx.session
        return self._session()

    def _flush(self, tx: LedgerTransaction, what: str) -> None:
        try:
            tx.session.flush()
        except IntegrityError as exc:
            raise StoreError(f"{what} violates a storage constraint") from exc

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def get_product(self, tx: LedgerTransaction | None, product_id: int, *, lock: bool = False) -> Product | None:
        session = self._session_for(tx)
        query = session.query(Product).filter(Product.id == product_id)
        if lock:
            self._require_active(tx)
            query = lock_for_update(query)
        return query.populate_existing().first()

    def find_product_by_sku(self, tx: LedgerTransaction | None, sku: str) -> Product | None:
        session = self._session_for(tx)
        return session.query(Product).filter(Product.sku == sku).first()

    def add_product(self, tx: LedgerTransaction, product: Product) -> int:
        self._require_active(tx)
        tx.session.add(product)
        self._flush(tx, "Product")
        return product.id

    def remove_product(self, tx: LedgerTransaction, product_id: int) -> None:
        self._require_active(tx)
        product = tx.session.get(Product, product_id)
        if product is None:
            raise NotFound(f"Product {product_id} not found", details={"product_id": product_id})
        tx.session.delete(product)
        self._flush(tx, "Product removal")

    def adjust_product_quantity(self, tx: LedgerTransaction, product_id: int, delta: int) -> int:
        """quantity += delta; returns the new quantity."""
        self._require_active(tx)
        product = tx.session.get(Product, product_id)
        if product is None:
            raise NotFound(f"Product {product_id} not found", details={"product_id": product_id})
        product.quantity = product.quantity + delta
        self._flush(tx, "Quantity adjustment")
        return product.quantity

    # ------------------------------------------------------------------
    # Sales
    # ------------------------------------------------------------------

    def insert_sale(self, tx: LedgerTransaction, sale: Sale) -> int:
        self._require_active(tx)
        if tx.session.get(Product, sale.product_id) is None:
            raise StoreError(f"Sale references unknown product_id {sale.product_id}")
        tx.session.add(sale)
        self._flush(tx, "Sale")
        return sale.id

    def get_sale(self, tx: LedgerTransaction | None, sale_id: int) -> Sale | None:
        session = self._session_for(tx)
        return session.query(Sale).filter(Sale.id == sale_id).populate_existing().first()

    def delete_sale(self, tx: LedgerTransaction, sale_id: int) -> None:
        self._require_active(tx)
        sale = tx.session.get(Sale, sale_id)
        if sale is None:
            raise NotFound(f"Sale {sale_id} not found", details={"sale_id": sale_id})
        tx.session.delete(sale)
        self._flush(tx, "Sale removal")

    def count_sales_for_product(self, tx: LedgerTransaction | None, product_id: int) -> int:
        session = self._session_for(tx)
        return int(
            session.query(func.count(Sale.id)).filter(Sale.product_id == product_id).scalar() or 0
        )

    # ------------------------------------------------------------------
    # Audit
    # ------------------------------------------------------------------

    def audit_stock(self) -> list[dict]:
        """
        Products whose quantity disagrees with initial_quantity - SUM(sales).

        An empty list means the ledger is consistent.
        """
        with self.snapshot() as session:
            sold = (
                session.query(
                    Sale.product_id.label("product_id"),
                    func.sum(Sale.quantity).label("units"),
                )
                .group_by(Sale.product_id)
                .subquery()
            )
            rows = (
                session.query(
                    Product.id,
                    Product.sku,
                    Product.quantity,
                    Product.initial_quantity,
                    func.coalesce(sold.c.units, 0).label("units_sold"),
                )
                .outerjoin(sold, sold.c.product_id == Product.id)
                .order_by(Product.id.asc())
                .all()
            )

        mismatches = []
        for row in rows:
            expected = int(row.initial_quantity) - int(row.units_sold or 0)
            if expected != int(row.quantity):
                mismatches.append(
                    {
                        "product_id": row.id,
                        "sku": row.sku,
                        "quantity": int(row.quantity),
                        "expected_quantity": expected,
                        "units_sold": int(row.units_sold or 0),
                    }
                )
        return mismatches

    def close(self) -> None:
        """Release the session for the current scope."""
        self._session.remove()

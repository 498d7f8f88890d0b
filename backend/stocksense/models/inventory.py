from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Product(db.Model):
    """
    Product master data.

    STOCK DESIGN DECISION:
    Product.quantity is the authoritative on-hand count and is only changed by
    the stock transaction manager, in the same database transaction that
    inserts or deletes the Sale rows explaining the change.

    initial_quantity is frozen at catalog entry so the ledger can be audited:
        quantity == initial_quantity - SUM(sales.quantity)
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("sku", name="uq_products_sku"),
        db.Index("ix_products_category", "category"),
        db.Index("ix_products_name", "name"),
        db.CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
        db.CheckConstraint("price_cents >= 0", name="ck_products_price_non_negative"),
        db.CheckConstraint("reorder_point >= 0", name="ck_products_reorder_point_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    sku = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(120), nullable=False)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    initial_quantity = db.Column(db.Integer, nullable=False, default=0)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False)
    reorder_point = db.Column(db.Integer, nullable=False, default=0)
    supplier = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r} quantity={self.quantity}>"

    @property
    def is_low_stock(self) -> bool:
        return self.quantity < self.reorder_point

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "category": self.category,
            "quantity": self.quantity,
            "initial_quantity": self.initial_quantity,
            "price_cents": self.price_cents,
            "reorder_point": self.reorder_point,
            "supplier": self.supplier,
            "is_low_stock": self.is_low_stock,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Sale(db.Model):
    """
    One committed sale of a single product.

    WHY total_price_cents is stored: the amount charged is a frozen fact of the
    sale. Later catalog price changes never alter it.

    Rows are append-only. The only removal path is a reversal, which restores
    the product quantity in the same transaction.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_product_date", "product_id", "sale_date"),
        db.CheckConstraint("quantity > 0", name="ck_sales_quantity_positive"),
        db.CheckConstraint("unit_price_cents >= 0", name="ck_sales_unit_price_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_price_cents = db.Column(db.Integer, nullable=False)

    # Business time (caller-supplied or commit time)
    sale_date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    # Acting identity; resolved outside the ledger core
    user_id = db.Column(db.Integer, nullable=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("sales", lazy="dynamic"))

    def __repr__(self) -> str:
        return f"<Sale id={self.id} product_id={self.product_id} quantity={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_price_cents": self.total_price_cents,
            "sale_date": to_utc_z(self.sale_date),
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
        }

from __future__ import annotations

from ..extensions import db
from ..money import cents_to_amount
from tillbook.time_utils import to_utc_z, utcnow


class Product(db.Model):
    """
    Catalog item (menu item, retail product, service).

    STOCK TRACKING:
    - track_stock=True: stock_quantity is a materialized fold of the
      product's StockAdjustment rows and may never go negative.
    - track_stock=False: stock_quantity stays at 0; sales and returns
      never touch it.

    SKU is optional; when present it is unique across the catalog.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("sku", name="uq_products_sku"),
        db.CheckConstraint("stock_quantity >= 0", name="ck_products_stock_non_negative"),
        db.Index("ix_products_category_name", "category", "name"),
        db.Index("ix_products_track_active", "track_stock", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    sku = db.Column(db.String(64), nullable=True)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(64), nullable=True, index=True)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False)
    cost_cents = db.Column(db.Integer, nullable=True)

    track_stock = db.Column(db.Boolean, nullable=False, default=False)
    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    low_stock_threshold = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r} stock={self.stock_quantity}>"

    @property
    def is_low_stock(self) -> bool:
        return bool(self.track_stock and self.stock_quantity <= self.low_stock_threshold)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "category": self.category,
            "price_cents": self.price_cents,
            "price": cents_to_amount(self.price_cents),
            "cost_cents": self.cost_cents,
            "track_stock": self.track_stock,
            "stock_quantity": self.stock_quantity if self.track_stock else None,
            "low_stock_threshold": self.low_stock_threshold,
            "is_low_stock": self.is_low_stock,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockAdjustment(db.Model):
    """
    Append-only stock audit trail.

    MODES:
    - set: replace quantity with `quantity` (delta = quantity - before)
    - add / remove: manual increment / decrement
    - sale: decrement written by sale creation
    - return: increment written by a stock-restoring return

    quantity_delta is always the signed change actually applied, so
    Product.stock_quantity == SUM(quantity_delta) for every product.
    Untracked products still get a row (delta 0) so manual adjustments
    remain auditable.
    """
    __tablename__ = "stock_adjustments"
    __table_args__ = (
        db.Index("ix_stock_adj_product_occurred", "product_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    mode = db.Column(db.String(16), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)  # As requested by the caller
    quantity_delta = db.Column(db.Integer, nullable=False)
    quantity_before = db.Column(db.Integer, nullable=False)
    quantity_after = db.Column(db.Integer, nullable=False)

    reason = db.Column(db.String(255), nullable=True)
    actor = db.Column(db.String(128), nullable=True)

    # Set for sale / return adjustments
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=True, index=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    product = db.relationship("Product", backref=db.backref("stock_adjustments", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "mode": self.mode,
            "quantity": self.quantity,
            "quantity_delta": self.quantity_delta,
            "quantity_before": self.quantity_before,
            "quantity_after": self.quantity_after,
            "reason": self.reason,
            "actor": self.actor,
            "transaction_id": self.transaction_id,
            "occurred_at": to_utc_z(self.occurred_at),
        }

# Overview: Service-layer operations for the stock ledger; encapsulates business logic and database work.

from __future__ import annotations

from sqlalchemy import func

from ..errors import InsufficientStock, InvalidArgument, NotFound
from ..extensions import db
from ..models import Product, StockAdjustment
from tillbook.time_utils import utcnow
from .concurrency import lock_for_update, run_atomic
from .ledger_service import append_ledger_event
"""
Tillbook Stock Invariants (authoritative)

- Product.stock_quantity is a materialized counter; it must always equal
  SUM(StockAdjustment.quantity_delta) for the product.
- Every change to stock_quantity appends exactly one StockAdjustment in the
  same DB transaction; adjustments are never updated or deleted.
- Tracked products: stock_quantity >= 0 after every unit of work.
- Untracked products: stock_quantity stays 0; adjustments are still logged
  with a zero delta.
- Sales and returns never call adjust_stock(); they apply their deltas via
  apply_stock_delta() inside their own unit of work.
"""


# =============================================================================
# ADJUSTMENT MODES (CONSTANTS)
# =============================================================================

MODE_SET = "set"
MODE_ADD = "add"
MODE_REMOVE = "remove"
MODE_SALE = "sale"
MODE_RETURN = "return"
MODE_PURCHASE = "purchase"

MANUAL_MODES = (MODE_SET, MODE_ADD, MODE_REMOVE)


def get_product_for_update(product_id: int) -> Product:
    product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
    if product is None:
        raise NotFound(f"Product {product_id} not found", details={"product_id": product_id})
    return product


def apply_stock_delta(
    product: Product,
    quantity_delta: int,
    *,
    mode: str,
    quantity: int,
    reason: str | None = None,
    actor: str | None = None,
    transaction_id: int | None = None,
) -> StockAdjustment:
    """
    Apply a signed delta to a (locked) product and log it.

    No commit. Raises InsufficientStock if a tracked product would go
    negative; the caller's unit of work then rolls everything back.
    """
    before = product.stock_quantity or 0
    applied = quantity_delta if product.track_stock else 0
    after = before + applied

    if product.track_stock and after < 0:
        raise InsufficientStock(
            f"Insufficient stock for {product.name}",
            details={"items": [{
                "product_id": product.id,
                "name": product.name,
                "requested_quantity": -quantity_delta,
                "stock_quantity": before,
            }]},
        )

    product.stock_quantity = after

    adjustment = StockAdjustment(
        product_id=product.id,
        mode=mode,
        quantity=quantity,
        quantity_delta=applied,
        quantity_before=before,
        quantity_after=after,
        reason=reason,
        actor=actor,
        transaction_id=transaction_id,
        occurred_at=utcnow(),
    )
    db.session.add(adjustment)
    db.session.flush()
    return adjustment


def adjust_stock(
    product_id: int,
    quantity: int,
    mode: str,
    reason: str | None = None,
    actor: str | None = None,
) -> int:
    """
    Manual stock adjustment. Returns the new stock quantity.

    MODES:
    - set: quantity >= 0, replaces stock_quantity
    - add: quantity > 0, increments
    - remove: quantity > 0, decrements; InsufficientStock if it would go negative

    Untracked products: validated and logged, quantity unchanged.
    """
    if mode not in MANUAL_MODES:
        raise InvalidArgument(f"Invalid mode: {mode}. Must be one of {list(MANUAL_MODES)}")
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidArgument("quantity must be an integer")
    if mode == MODE_SET and quantity < 0:
        raise InvalidArgument("quantity must be >= 0 for set")
    if mode in (MODE_ADD, MODE_REMOVE) and quantity <= 0:
        raise InvalidArgument(f"quantity must be > 0 for {mode}")

    def _op():
        product = get_product_for_update(product_id)

        if mode == MODE_SET:
            delta = quantity - (product.stock_quantity or 0)
        elif mode == MODE_ADD:
            delta = quantity
        else:
            delta = -quantity

        adjustment = apply_stock_delta(
            product,
            delta,
            mode=mode,
            quantity=quantity,
            reason=reason,
            actor=actor,
        )

        append_ledger_event(
            event_type="stock.adjusted",
            event_category="stock",
            entity_type="stock_adjustment",
            entity_id=adjustment.id,
            actor=actor,
            occurred_at=adjustment.occurred_at,
            note=reason,
            payload=f"product_id={product.id},mode={mode},quantity={quantity},delta={adjustment.quantity_delta}",
        )
        return adjustment.quantity_after

    return run_atomic(_op)


def record_purchase(
    product_id: int,
    quantity: int,
    *,
    supplier: str | None = None,
    unit_cost_cents: int | None = None,
    actor: str | None = None,
) -> StockAdjustment:
    """
    Receive goods bought from a supplier into stock.

    Logged as a "purchase" adjustment. When a unit cost is given it becomes
    the product's current cost.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidArgument("quantity must be > 0 for purchase")
    if unit_cost_cents is not None and unit_cost_cents < 0:
        raise InvalidArgument("unit_cost must be >= 0")

    def _op():
        product = get_product_for_update(product_id)
        if unit_cost_cents is not None:
            product.cost_cents = unit_cost_cents

        reason = f"purchase from {supplier}" if supplier else "purchase"
        adjustment = apply_stock_delta(
            product,
            quantity,
            mode=MODE_PURCHASE,
            quantity=quantity,
            reason=reason,
            actor=actor,
        )

        append_ledger_event(
            event_type="stock.purchased",
            event_category="stock",
            entity_type="stock_adjustment",
            entity_id=adjustment.id,
            actor=actor,
            occurred_at=adjustment.occurred_at,
            note=reason,
            payload=f"product_id={product.id},quantity={quantity},unit_cost_cents={unit_cost_cents}",
        )
        return adjustment

    return run_atomic(_op)


def list_purchases(product_id: int | None = None, limit: int = 200) -> list[StockAdjustment]:
    query = StockAdjustment.query.filter_by(mode=MODE_PURCHASE)
    if product_id is not None:
        query = query.filter_by(product_id=product_id)
    return query.order_by(StockAdjustment.occurred_at.desc(), StockAdjustment.id.desc()).limit(limit).all()


def get_stock_history(product_id: int, limit: int = 200) -> list[StockAdjustment]:
    """Adjustments for a product, newest first."""
    if db.session.get(Product, product_id) is None:
        raise NotFound(f"Product {product_id} not found", details={"product_id": product_id})

    return (
        StockAdjustment.query.filter_by(product_id=product_id)
        .order_by(StockAdjustment.occurred_at.desc(), StockAdjustment.id.desc())
        .limit(limit)
        .all()
    )


def get_ledger_quantity(product_id: int) -> int:
    """Fold of all adjustments for a product."""
    total = db.session.query(
        func.coalesce(func.sum(StockAdjustment.quantity_delta), 0)
    ).filter(StockAdjustment.product_id == product_id).scalar()
    return int(total or 0)


def verify_stock_fold(product_id: int) -> dict:
    """
    Compare the materialized stock_quantity against the adjustment fold.

    Returns a report; a mismatch means a write bypassed the stock ledger.
    """
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFound(f"Product {product_id} not found", details={"product_id": product_id})

    ledger_quantity = get_ledger_quantity(product_id)
    return {
        "product_id": product.id,
        "stock_quantity": product.stock_quantity,
        "ledger_quantity": ledger_quantity,
        "consistent": product.stock_quantity == ledger_quantity,
    }

# Overview: Service-layer operations for the catalog; encapsulates business logic and database work.

from __future__ import annotations

from ..errors import InvalidArgument, NotFound
from ..extensions import db
from ..models import Product
from .concurrency import run_atomic
from .ledger_service import append_ledger_event
from .stock_service import MODE_SET, apply_stock_delta


LOW_STOCK = "LOW"
CRITICAL_STOCK = "CRITICAL"


def create_product(
    *,
    name: str,
    price_cents: int,
    category: str | None = None,
    cost_cents: int | None = None,
    sku: str | None = None,
    track_stock: bool = False,
    stock_quantity: int = 0,
    low_stock_threshold: int = 0,
    actor: str | None = None,
) -> Product:
    """
    Create a catalog item.

    Opening stock of a tracked product is written as a `set` adjustment so
    the stock fold starts from the ledger, not from a bare column value.
    """
    if not name or not name.strip():
        raise InvalidArgument("name is required")
    if price_cents < 0:
        raise InvalidArgument("price must be >= 0")
    if cost_cents is not None and cost_cents < 0:
        raise InvalidArgument("cost must be >= 0")
    if stock_quantity < 0:
        raise InvalidArgument("stock_quantity must be >= 0")
    if low_stock_threshold < 0:
        raise InvalidArgument("low_stock_threshold must be >= 0")

    sku = sku.strip().upper() if sku and sku.strip() else None

    def _op():
        if sku is not None and db.session.query(Product).filter_by(sku=sku).first():
            raise InvalidArgument(f"SKU '{sku}' already exists", details={"sku": sku})

        product = Product(
            name=name.strip(),
            category=category.strip() if category else None,
            price_cents=price_cents,
            cost_cents=cost_cents,
            sku=sku,
            track_stock=track_stock,
            stock_quantity=0,
            low_stock_threshold=low_stock_threshold if track_stock else 0,
            is_active=True,
        )
        db.session.add(product)
        db.session.flush()

        if track_stock and stock_quantity > 0:
            apply_stock_delta(
                product,
                stock_quantity,
                mode=MODE_SET,
                quantity=stock_quantity,
                reason="opening stock",
                actor=actor,
            )

        append_ledger_event(
            event_type="product.created",
            event_category="catalog",
            entity_type="product",
            entity_id=product.id,
            actor=actor,
            note=product.name,
            payload=f"track_stock={track_stock},stock_quantity={product.stock_quantity}",
        )
        return product

    return run_atomic(_op)


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFound(f"Product {product_id} not found", details={"product_id": product_id})
    return product


def list_products(*, category: str | None = None, include_inactive: bool = False) -> list[Product]:
    q = Product.query
    if category:
        q = q.filter(Product.category == category)
    if not include_inactive:
        q = q.filter(Product.is_active.is_(True))
    return q.order_by(Product.category, Product.name).all()


def stock_level(product: Product) -> str | None:
    """LOW at or below threshold, CRITICAL at or below half of it."""
    if not product.track_stock:
        return None
    if product.stock_quantity <= product.low_stock_threshold / 2:
        return CRITICAL_STOCK
    if product.stock_quantity <= product.low_stock_threshold:
        return LOW_STOCK
    return None


def list_low_stock(limit: int | None = None) -> list[dict]:
    """Tracked, active products at or below their reorder threshold, lowest first."""
    q = Product.query.filter(
        Product.track_stock.is_(True),
        Product.is_active.is_(True),
        Product.stock_quantity <= Product.low_stock_threshold,
    ).order_by(Product.stock_quantity, Product.name)
    if limit:
        q = q.limit(limit)

    return [
        {
            "product_id": p.id,
            "name": p.name,
            "category": p.category,
            "stock_quantity": p.stock_quantity,
            "low_stock_threshold": p.low_stock_threshold,
            "level": stock_level(p),
        }
        for p in q.all()
    ]

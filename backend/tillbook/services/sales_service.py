# Overview: Service-layer operations for sales; encapsulates business logic and database work.

"""
Sale Creation Service

A sale is created in one unit of work:
1. Lock every referenced catalog product (ascending id order)
2. Check aggregated demand against stock for tracked products
3. Freeze line names/prices and compute totals
4. Write the transaction, its lines and the stock decrements
5. Append the audit event

Any failure rolls back the whole sale; no partial write is ever visible.

PRICING:
- line_total = quantity * unit_price
- subtotal = SUM(line_total)
- total = subtotal - discount + tax, must be >= 0
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass

from ..errors import (
    AlreadyCheckedOut,
    EmptyTransaction,
    InsufficientStock,
    InvalidArgument,
    NotFound,
)
from ..extensions import db
from ..money import MAX_AMOUNT_CENTS
from ..models import Guest, Product, Transaction, TransactionLine
from ..schemas import LineItemInput
from tillbook.time_utils import utcnow
from .concurrency import lock_for_update, run_atomic
from .ledger_service import append_ledger_event
from .stock_service import MODE_SALE, apply_stock_delta


KIND_SALE = "sale"
KIND_RETURN = "return"


@dataclass
class _ResolvedLine:
    product: Product | None
    item_name: str
    quantity: int
    unit_price_cents: int

    @property
    def line_total_cents(self) -> int:
        return self.quantity * self.unit_price_cents


def _check_amount(cents: int, field: str) -> int:
    if cents > MAX_AMOUNT_CENTS:
        raise InvalidArgument(
            f"{field} cannot exceed {MAX_AMOUNT_CENTS / 100:,.2f}",
            details={f"{field}_cents": cents},
        )
    return cents


def _coerce_items(items) -> list[LineItemInput]:
    if not items:
        return []
    return [item if isinstance(item, LineItemInput) else LineItemInput.from_json(item) for item in items]


def _lock_products(items: list[LineItemInput]) -> dict[int, Product]:
    """Lock referenced products in ascending id order (deadlock avoidance)."""
    product_ids = sorted({item.product_id for item in items if item.product_id is not None})
    if not product_ids:
        return {}

    products = (
        lock_for_update(db.session.query(Product).filter(Product.id.in_(product_ids)))
        .order_by(Product.id)
        .all()
    )
    by_id = {p.id: p for p in products}

    missing = [pid for pid in product_ids if pid not in by_id]
    if missing:
        raise NotFound(f"Product {missing[0]} not found", details={"product_ids": missing})
    return by_id


def _build_lines(
    items: list[LineItemInput],
    products: dict[int, Product],
    *,
    allow_inactive: bool = False,
) -> list[_ResolvedLine]:
    """Snapshot name and unit price for every requested line."""
    lines = []
    for item in items:
        if item.product_id is None:
            line = _ResolvedLine(None, item.name, item.quantity, item.unit_price_cents)
            _check_amount(line.line_total_cents, "line_total")
            lines.append(line)
            continue

        product = products[item.product_id]
        if not product.is_active and not allow_inactive:
            raise InvalidArgument(f"Product {product.id} is inactive", details={"product_id": product.id})

        unit_price = item.unit_price_cents if item.unit_price_cents is not None else product.price_cents
        line = _ResolvedLine(product, item.name or product.name, item.quantity, unit_price)
        _check_amount(line.line_total_cents, "line_total")
        lines.append(line)
    return lines


def _check_stock(lines: list[_ResolvedLine]) -> None:
    """
    Aggregate demand per tracked product and compare against stock.

    Reports every short product at once, not just the first.
    """
    demand: "OrderedDict[int, int]" = OrderedDict()
    tracked: dict[int, Product] = {}
    for line in lines:
        if line.product is not None and line.product.track_stock:
            demand[line.product.id] = demand.get(line.product.id, 0) + line.quantity
            tracked[line.product.id] = line.product

    shortages = []
    for product_id, requested in demand.items():
        product = tracked[product_id]
        if requested > product.stock_quantity:
            shortages.append({
                "product_id": product.id,
                "name": product.name,
                "requested_quantity": requested,
                "stock_quantity": product.stock_quantity,
            })

    if shortages:
        names = ", ".join(s["name"] for s in shortages)
        raise InsufficientStock(f"Insufficient stock for {names}", details={"items": shortages})


def _write_lines(transaction: Transaction, lines: list[_ResolvedLine]) -> None:
    for position, line in enumerate(lines, start=1):
        db.session.add(TransactionLine(
            transaction_id=transaction.id,
            position=position,
            product_id=line.product.id if line.product is not None else None,
            item_name=line.item_name,
            quantity=line.quantity,
            unit_price_cents=line.unit_price_cents,
            line_total_cents=line.line_total_cents,
        ))


def create_sale(
    items,
    *,
    guest_id: int | None = None,
    customer_name: str | None = None,
    location: str | None = None,
    discount_cents: int = 0,
    tax_cents: int = 0,
    notes: str | None = None,
    actor: str | None = None,
) -> Transaction:
    """
    Record a sale/order and decrement stock for tracked items.

    Args:
        items: LineItemInput list (or dicts in the request shape)
        guest_id: Optional active guest the order is billed to
        discount_cents / tax_cents: Transaction-level adjustments, >= 0

    Returns:
        Transaction (kind="sale", payment_status="unpaid")

    Raises:
        EmptyTransaction: No items
        NotFound: Unknown product or guest
        InsufficientStock: Any tracked product short (nothing is written)
        AlreadyCheckedOut: Guest no longer active
        InvalidArgument: Negative discount/tax or a negative total
    """
    items = _coerce_items(items)
    if not items:
        raise EmptyTransaction("Sale must contain at least one item")
    if discount_cents < 0:
        raise InvalidArgument("discount must be >= 0")
    if tax_cents < 0:
        raise InvalidArgument("tax must be >= 0")

    def _op():
        products = _lock_products(items)
        lines = _build_lines(items, products)
        _check_stock(lines)

        subtotal = _check_amount(sum(line.line_total_cents for line in lines), "subtotal")
        total = _check_amount(subtotal - discount_cents + tax_cents, "total")
        if total < 0:
            raise InvalidArgument(
                "Discount exceeds subtotal plus tax",
                details={"subtotal_cents": subtotal, "discount_cents": discount_cents, "tax_cents": tax_cents},
            )

        if guest_id is not None:
            guest = db.session.get(Guest, guest_id)
            if guest is None:
                raise NotFound(f"Guest {guest_id} not found", details={"guest_id": guest_id})
            if guest.status != "active":
                raise AlreadyCheckedOut(f"Guest {guest_id} has already checked out", details={"guest_id": guest_id})

        now = utcnow()
        transaction = Transaction(
            kind=KIND_SALE,
            guest_id=guest_id,
            customer_name=customer_name,
            location=location,
            subtotal_cents=subtotal,
            discount_cents=discount_cents,
            tax_cents=tax_cents,
            total_cents=total,
            payment_status="unpaid",
            amount_paid_cents=0,
            notes=notes,
            created_by=actor,
            created_at=now,
        )
        db.session.add(transaction)
        db.session.flush()  # Get transaction ID

        _write_lines(transaction, lines)

        for line in lines:
            if line.product is not None and line.product.track_stock:
                apply_stock_delta(
                    line.product,
                    -line.quantity,
                    mode=MODE_SALE,
                    quantity=line.quantity,
                    reason=f"sale #{transaction.id}",
                    actor=actor,
                    transaction_id=transaction.id,
                )

        append_ledger_event(
            event_type="sale.created",
            event_category="sales",
            entity_type="transaction",
            entity_id=transaction.id,
            actor=actor,
            occurred_at=now,
            payload=f"lines={len(lines)},total_cents={total},guest_id={guest_id}",
        )
        return transaction

    return run_atomic(_op)


def get_transaction(transaction_id: int) -> Transaction:
    transaction = db.session.get(Transaction, transaction_id)
    if transaction is None:
        raise NotFound(f"Transaction {transaction_id} not found", details={"transaction_id": transaction_id})
    return transaction


def get_transaction_details(transaction_id: int) -> dict:
    """Transaction with its lines and payments; paid/due come from the payment fold."""
    from .payment_service import get_payment_summary

    transaction = get_transaction(transaction_id)
    data = transaction.to_dict()
    data.update(get_payment_summary(transaction_id))
    data["items"] = [line.to_dict() for line in transaction.lines]
    data["payments"] = [payment.to_dict() for payment in transaction.payments]
    if transaction.kind == KIND_SALE:
        data["return_ids"] = [r.id for r in transaction.returns]
    return data


def list_transactions(
    *,
    kind: str | None = None,
    guest_id: int | None = None,
    payment_status: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[Transaction]:
    """Transactions newest first, optionally filtered."""
    q = Transaction.query
    if kind:
        q = q.filter(Transaction.kind == kind)
    if guest_id is not None:
        q = q.filter(Transaction.guest_id == guest_id)
    if payment_status:
        q = q.filter(Transaction.payment_status == payment_status)
    return (
        q.order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )

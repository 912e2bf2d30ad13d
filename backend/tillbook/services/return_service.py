# Overview: Service-layer operations for returns; restores stock and records refunds.

"""
Return Processing Service

DESIGN PRINCIPLES:
- Returns optionally reference the original sale for traceability; a null
  reference is a standalone credit
- Returned items are independent of the original sale's lines (partial or
  different-item returns are allowed)
- total_cents is the value of the returned goods, priced like a sale
- refund_amount_cents is what was handed back, 0 <= refund <= total
- Inventory restored via `return` stock adjustments only when restore_stock
  is set, in the same unit of work as the return record
"""

from __future__ import annotations

from ..errors import EmptyTransaction, InvalidArgument, NotFound
from ..extensions import db
from ..models import Transaction
from tillbook.time_utils import utcnow
from .concurrency import run_atomic
from .ledger_service import append_ledger_event
from .sales_service import KIND_RETURN, KIND_SALE, _build_lines, _check_amount, _coerce_items, _lock_products, _write_lines
from .stock_service import MODE_RETURN, apply_stock_delta


def create_return(
    items,
    *,
    original_sale_id: int | None = None,
    reason: str | None = None,
    restore_stock: bool = False,
    refund_method: str | None = None,
    refund_amount_cents: int | None = None,
    actor: str | None = None,
) -> Transaction:
    """
    Record a return and, if requested, put the goods back into stock.

    Args:
        items: Returned items, same shape as sale items
        original_sale_id: Sale being returned from (optional)
        restore_stock: Add the quantities back for tracked products
        refund_method: How the refund was paid out (cash, card, ...)
        refund_amount_cents: Defaults to the return total

    Returns:
        Transaction (kind="return")

    Raises:
        EmptyTransaction: No items
        NotFound: Unknown original sale or product
        InvalidArgument: Original is not a sale, or refund out of range
    """
    items = _coerce_items(items)
    if not items:
        raise EmptyTransaction("Return must contain at least one item")

    def _op():
        if original_sale_id is not None:
            original = db.session.get(Transaction, original_sale_id)
            if original is None:
                raise NotFound(f"Sale {original_sale_id} not found", details={"original_sale_id": original_sale_id})
            if original.kind != KIND_SALE:
                raise InvalidArgument("Returns must reference a sale", details={"original_sale_id": original_sale_id})

        products = _lock_products(items)
        lines = _build_lines(items, products, allow_inactive=True)
        total = _check_amount(sum(line.line_total_cents for line in lines), "total")

        refund = total if refund_amount_cents is None else refund_amount_cents
        if refund < 0 or refund > total:
            raise InvalidArgument(
                "refund_amount must be between 0 and the return total",
                details={"refund_amount_cents": refund, "total_cents": total},
            )

        now = utcnow()
        transaction = Transaction(
            kind=KIND_RETURN,
            original_sale_id=original_sale_id,
            subtotal_cents=total,
            discount_cents=0,
            tax_cents=0,
            total_cents=total,
            payment_status="unpaid",
            amount_paid_cents=0,
            restore_stock=restore_stock,
            reason=reason,
            refund_method=refund_method.strip().lower() if refund_method else None,
            refund_amount_cents=refund,
            created_by=actor,
            created_at=now,
        )
        db.session.add(transaction)
        db.session.flush()  # Get return ID

        _write_lines(transaction, lines)

        if restore_stock:
            for line in lines:
                if line.product is not None and line.product.track_stock:
                    apply_stock_delta(
                        line.product,
                        line.quantity,
                        mode=MODE_RETURN,
                        quantity=line.quantity,
                        reason=f"return #{transaction.id}",
                        actor=actor,
                        transaction_id=transaction.id,
                    )

        append_ledger_event(
            event_type="return.created",
            event_category="returns",
            entity_type="transaction",
            entity_id=transaction.id,
            actor=actor,
            occurred_at=now,
            note=reason,
            payload=(
                f"original_sale_id={original_sale_id},total_cents={total},"
                f"refund_cents={refund},restore_stock={restore_stock}"
            ),
        )
        return transaction

    return run_atomic(_op)

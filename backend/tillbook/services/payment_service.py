# Overview: Service-layer operations for payment; encapsulates business logic and database work.

"""
Payment Ledger Service

DESIGN PRINCIPLES:
- Payments are separate from transactions (many-to-one relationship)
- Split and partial payments: one sale can have any number of payments
- Append-only: payments are never edited or deleted
- Derived status: payment_status / amount_paid_cents on the transaction are
  a cache of the payment fold, rewritten only by _update_payment_status()
- Overpayment is recorded as tendered; change handling is the caller's
"""

from __future__ import annotations

from sqlalchemy import func

from ..errors import InvalidArgument, NotFound
from ..extensions import db
from ..models import Payment, Transaction
from ..money import cents_to_amount
from tillbook.time_utils import utcnow
from .concurrency import lock_for_update, run_atomic
from .ledger_service import append_ledger_event


# =============================================================================
# PAYMENT STATUS (CONSTANTS)
# =============================================================================

PAYMENT_STATUS_UNPAID = "unpaid"
PAYMENT_STATUS_PARTIAL = "partial"
PAYMENT_STATUS_PAID = "paid"


def derive_payment_status(total_cents: int, paid_cents: int) -> str:
    """
    Classify a transaction from its payment fold.

    Amounts are integer cents, so the comparisons are exact.
    A zero-total transaction stays unpaid until something is recorded.
    """
    if paid_cents <= 0:
        return PAYMENT_STATUS_UNPAID
    if paid_cents >= total_cents:
        return PAYMENT_STATUS_PAID
    return PAYMENT_STATUS_PARTIAL


def get_amount_paid_cents(transaction_id: int) -> int:
    total = db.session.query(
        func.coalesce(func.sum(Payment.amount_cents), 0)
    ).filter(Payment.transaction_id == transaction_id).scalar()
    return int(total or 0)


def _update_payment_status(transaction: Transaction) -> None:
    """Rewrite the cache columns from the ledger fold. No commit."""
    paid = get_amount_paid_cents(transaction.id)
    transaction.amount_paid_cents = paid
    transaction.payment_status = derive_payment_status(transaction.total_cents, paid)
    db.session.flush()


# =============================================================================
# PAYMENT CREATION
# =============================================================================

def add_payment(
    transaction_id: int,
    amount_cents: int,
    method: str,
    reference: str | None = None,
    actor: str | None = None,
) -> Payment:
    """
    Append a payment to a sale and re-derive its payment status.

    Args:
        transaction_id: Sale being paid
        amount_cents: Amount tendered (> 0); may exceed the amount due
        method: Tender method, normalized to lower case (cash, card, ...)
        reference: Card auth code, transfer reference, etc. (optional)

    Returns:
        Payment record

    Raises:
        InvalidArgument: Non-positive amount, empty method, or a return
        NotFound: Unknown transaction
    """
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int) or amount_cents <= 0:
        raise InvalidArgument("Payment amount must be positive")
    method = (method or "").strip().lower()
    if not method:
        raise InvalidArgument("method is required")

    def _op():
        transaction = lock_for_update(
            db.session.query(Transaction).filter_by(id=transaction_id)
        ).first()
        if transaction is None:
            raise NotFound(f"Transaction {transaction_id} not found", details={"transaction_id": transaction_id})
        if transaction.kind != "sale":
            raise InvalidArgument("Payments can only be applied to sales", details={"transaction_id": transaction_id})

        payment = Payment(
            transaction_id=transaction.id,
            amount_cents=amount_cents,
            method=method,
            reference=reference,
            created_by=actor,
            created_at=utcnow(),
        )
        db.session.add(payment)
        db.session.flush()  # Get payment ID

        _update_payment_status(transaction)

        append_ledger_event(
            event_type="payment.created",
            event_category="payments",
            entity_type="payment",
            entity_id=payment.id,
            actor=actor,
            occurred_at=payment.created_at,
            payload=(
                f"transaction_id={transaction.id},amount_cents={amount_cents},"
                f"method={method},status={transaction.payment_status}"
            ),
        )
        return payment

    return run_atomic(_op)


# =============================================================================
# READS
# =============================================================================

def get_payment_summary(transaction_id: int) -> dict:
    """
    Paid/due/status computed fresh from the payment ledger.

    The cache columns on Transaction are not consulted.
    """
    transaction = db.session.get(Transaction, transaction_id)
    if transaction is None:
        raise NotFound(f"Transaction {transaction_id} not found", details={"transaction_id": transaction_id})

    paid = get_amount_paid_cents(transaction_id)
    due = max(transaction.total_cents - paid, 0)
    return {
        "transaction_id": transaction.id,
        "total_cents": transaction.total_cents,
        "amount_paid_cents": paid,
        "amount_due_cents": due,
        "total": cents_to_amount(transaction.total_cents),
        "amount_paid": cents_to_amount(paid),
        "amount_due": cents_to_amount(due),
        "payment_status": derive_payment_status(transaction.total_cents, paid),
    }


def get_amount_due_cents(transaction: Transaction) -> int:
    return max(transaction.total_cents - get_amount_paid_cents(transaction.id), 0)


def verify_payment_status(transaction_id: int) -> dict:
    """Compare the cached status columns against the fold."""
    transaction = db.session.get(Transaction, transaction_id)
    if transaction is None:
        raise NotFound(f"Transaction {transaction_id} not found", details={"transaction_id": transaction_id})

    paid = get_amount_paid_cents(transaction_id)
    expected_status = derive_payment_status(transaction.total_cents, paid)
    return {
        "transaction_id": transaction.id,
        "cached_status": transaction.payment_status,
        "cached_amount_paid_cents": transaction.amount_paid_cents,
        "ledger_status": expected_status,
        "ledger_amount_paid_cents": paid,
        "consistent": (
            transaction.payment_status == expected_status
            and transaction.amount_paid_cents == paid
        ),
    }

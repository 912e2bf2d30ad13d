# Overview: Service-layer operations for shifts and expenses; encapsulates business logic and database work.

"""
Shift Register Service

LIFECYCLE:
1. open_shift: start_cash counted into the drawer
2. Payments and expenses are recorded while the shift is open
3. close_shift: drawer counted; expected vs actual variance stored

EXPECTED CASH:
    start_cash
  + SUM(payments with method "cash", created_at in [opened_at, closed_at])
  - SUM(expenses with method "cash", created_at in [opened_at, closed_at])

The variance (actual - expected) is reported, never corrected.
At most one shift is open at a time; open_shift checks this inside its
own unit of work and reports the open shift on conflict.
"""

from __future__ import annotations

from datetime import date

from flask import current_app
from sqlalchemy import func

from ..errors import InvalidArgument, NotFound, ShiftAlreadyOpen
from ..extensions import db
from ..models import Expense, Payment, Shift
from tillbook.time_utils import utcnow
from .concurrency import lock_for_update, run_atomic
from .ledger_service import append_ledger_event


SHIFT_OPEN = "open"
SHIFT_CLOSED = "closed"

METHOD_CASH = "cash"


# =============================================================================
# SHIFT LIFECYCLE
# =============================================================================

def open_shift(actor: str | None, start_cash_cents: int = 0) -> Shift:
    """
    Open a cash-drawer shift.

    Raises:
        ShiftAlreadyOpen: Another shift is open (details carry its id)
        InvalidArgument: Negative start cash
    """
    if start_cash_cents < 0:
        raise InvalidArgument("start_cash must be >= 0")

    def _op():
        existing = db.session.query(Shift).filter_by(status=SHIFT_OPEN).first()
        if existing:
            raise ShiftAlreadyOpen(
                f"Shift {existing.id} is already open",
                details={"shift_id": existing.id, "opened_by": existing.opened_by},
            )

        now = utcnow()
        shift = Shift(
            status=SHIFT_OPEN,
            opened_by=actor,
            opened_at=now,
            start_cash_cents=start_cash_cents,
        )
        db.session.add(shift)
        db.session.flush()

        append_ledger_event(
            event_type="shift.opened",
            event_category="shifts",
            entity_type="shift",
            entity_id=shift.id,
            actor=actor,
            occurred_at=now,
            payload=f"start_cash_cents={start_cash_cents}",
        )
        return shift

    return run_atomic(_op)


def _cash_payments_cents(start, end) -> int:
    total = db.session.query(
        func.coalesce(func.sum(Payment.amount_cents), 0)
    ).filter(
        Payment.method == METHOD_CASH,
        Payment.created_at >= start,
        Payment.created_at <= end,
    ).scalar()
    return int(total or 0)


def _cash_expenses_cents(start, end) -> int:
    total = db.session.query(
        func.coalesce(func.sum(Expense.amount_cents), 0)
    ).filter(
        Expense.method == METHOD_CASH,
        Expense.created_at >= start,
        Expense.created_at <= end,
    ).scalar()
    return int(total or 0)


def close_shift(
    shift_id: int,
    actor: str | None,
    end_cash_actual_cents: int,
    notes: str | None = None,
) -> Shift:
    """
    Close a shift and reconcile the drawer.

    Raises:
        NotFound: Unknown shift
        InvalidArgument: Shift already closed, or negative counted cash
    """
    if end_cash_actual_cents < 0:
        raise InvalidArgument("end_cash_actual must be >= 0")

    def _op():
        shift = lock_for_update(db.session.query(Shift).filter_by(id=shift_id)).first()
        if shift is None:
            raise NotFound(f"Shift {shift_id} not found", details={"shift_id": shift_id})
        if shift.status != SHIFT_OPEN:
            raise InvalidArgument(f"Shift {shift_id} is already closed", details={"shift_id": shift_id})

        now = utcnow()
        cash_payments = _cash_payments_cents(shift.opened_at, now)
        cash_expenses = _cash_expenses_cents(shift.opened_at, now)
        expected = shift.start_cash_cents + cash_payments - cash_expenses

        shift.status = SHIFT_CLOSED
        shift.closed_by = actor
        shift.closed_at = now
        shift.cash_payments_cents = cash_payments
        shift.cash_expenses_cents = cash_expenses
        shift.end_cash_expected_cents = expected
        shift.end_cash_actual_cents = end_cash_actual_cents
        shift.difference_cents = end_cash_actual_cents - expected
        shift.notes = notes
        db.session.flush()

        append_ledger_event(
            event_type="shift.closed",
            event_category="shifts",
            entity_type="shift",
            entity_id=shift.id,
            actor=actor,
            occurred_at=now,
            note=notes,
            payload=(
                f"expected_cents={expected},actual_cents={end_cash_actual_cents},"
                f"difference_cents={shift.difference_cents}"
            ),
        )
        return shift

    shift = run_atomic(_op)
    if shift.difference_cents != 0:
        current_app.logger.warning(
            "Shift %s closed with cash variance of %s cents", shift.id, shift.difference_cents
        )
    return shift


def get_current_shift() -> Shift | None:
    return Shift.query.filter_by(status=SHIFT_OPEN).order_by(Shift.opened_at.desc()).first()


def get_shift(shift_id: int) -> Shift:
    shift = db.session.get(Shift, shift_id)
    if shift is None:
        raise NotFound(f"Shift {shift_id} not found", details={"shift_id": shift_id})
    return shift


def get_shift_history(limit: int = 50) -> list[Shift]:
    return Shift.query.order_by(Shift.opened_at.desc(), Shift.id.desc()).limit(limit).all()


# =============================================================================
# EXPENSES
# =============================================================================

def record_expense(
    *,
    expense_date: date,
    category: str,
    amount_cents: int,
    description: str | None = None,
    method: str = METHOD_CASH,
    actor: str | None = None,
) -> Expense:
    if expense_date is None:
        raise InvalidArgument("date is required")
    if not category or not category.strip():
        raise InvalidArgument("category is required")
    if amount_cents <= 0:
        raise InvalidArgument("amount must be > 0")
    method = (method or METHOD_CASH).strip().lower()

    def _op():
        expense = Expense(
            expense_date=expense_date,
            category=category.strip(),
            description=description,
            amount_cents=amount_cents,
            method=method,
            created_by=actor,
            created_at=utcnow(),
        )
        db.session.add(expense)
        db.session.flush()

        append_ledger_event(
            event_type="expense.recorded",
            event_category="expenses",
            entity_type="expense",
            entity_id=expense.id,
            actor=actor,
            occurred_at=expense.created_at,
            note=description,
            payload=f"category={expense.category},amount_cents={amount_cents},method={method}",
        )
        return expense

    return run_atomic(_op)


def list_expenses(
    *,
    date_from: date | None = None,
    date_to: date | None = None,
    category: str | None = None,
) -> list[Expense]:
    q = Expense.query
    if date_from:
        q = q.filter(Expense.expense_date >= date_from)
    if date_to:
        q = q.filter(Expense.expense_date <= date_to)
    if category:
        q = q.filter(Expense.category == category)
    return q.order_by(Expense.expense_date.desc(), Expense.id.desc()).all()

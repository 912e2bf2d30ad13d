from __future__ import annotations

from ..extensions import db
from ..money import cents_to_amount
from tillbook.time_utils import to_iso_date, to_utc_z, utcnow


class Shift(db.Model):
    """
    Cash-drawer accounting period.

    LIFECYCLE:
    - open: drawer in use; at most one open shift at a time
    - closed: cash counted, variance calculated

    end_cash_expected_cents = start_cash_cents + cash_payments_cents - cash_expenses_cents
    difference_cents = end_cash_actual_cents - end_cash_expected_cents

    IMMUTABLE: Once closed, the shift cannot be reopened or modified.
    The variance is reported, never corrected.
    """
    __tablename__ = "shifts"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    status = db.Column(db.String(16), nullable=False, default="open", index=True)  # open, closed

    opened_by = db.Column(db.String(128), nullable=True)
    closed_by = db.Column(db.String(128), nullable=True)
    opened_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Cash tracking (all amounts in cents)
    start_cash_cents = db.Column(db.Integer, nullable=False, default=0)
    cash_payments_cents = db.Column(db.Integer, nullable=True)
    cash_expenses_cents = db.Column(db.Integer, nullable=True)
    end_cash_expected_cents = db.Column(db.Integer, nullable=True)
    end_cash_actual_cents = db.Column(db.Integer, nullable=True)
    difference_cents = db.Column(db.Integer, nullable=True)

    notes = db.Column(db.Text, nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "status": self.status,
            "opened_by": self.opened_by,
            "closed_by": self.closed_by,
            "opened_at": to_utc_z(self.opened_at),
            "closed_at": to_utc_z(self.closed_at) if self.closed_at else None,
            "start_cash_cents": self.start_cash_cents,
            "start_cash": cents_to_amount(self.start_cash_cents),
            "cash_payments_cents": self.cash_payments_cents,
            "cash_expenses_cents": self.cash_expenses_cents,
            "end_cash_expected_cents": self.end_cash_expected_cents,
            "end_cash_expected": cents_to_amount(self.end_cash_expected_cents),
            "end_cash_actual_cents": self.end_cash_actual_cents,
            "end_cash_actual": cents_to_amount(self.end_cash_actual_cents),
            "difference_cents": self.difference_cents,
            "difference": cents_to_amount(self.difference_cents),
            "notes": self.notes,
        }


class Expense(db.Model):
    """Money paid out of the business. Cash expenses reduce expected drawer cash."""
    __tablename__ = "expenses"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_expenses_amount_positive"),
        db.Index("ix_expenses_date_category", "expense_date", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    expense_date = db.Column(db.Date, nullable=False)
    category = db.Column(db.String(64), nullable=False)
    description = db.Column(db.String(255), nullable=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    method = db.Column(db.String(32), nullable=False, default="cash")

    created_by = db.Column(db.String(128), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "expense_date": to_iso_date(self.expense_date),
            "category": self.category,
            "description": self.description,
            "amount_cents": self.amount_cents,
            "amount": cents_to_amount(self.amount_cents),
            "method": self.method,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }

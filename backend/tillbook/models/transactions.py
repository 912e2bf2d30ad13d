from __future__ import annotations

from ..extensions import db
from ..money import cents_to_amount
from tillbook.time_utils import to_utc_z, utcnow


class Transaction(db.Model):
    """
    Sale/order or return document.

    PRICING:
    - total_cents = subtotal_cents - discount_cents + tax_cents
    - Computed once at creation; never edited afterwards.

    PAYMENT STATUS (unpaid, partial, paid):
    - payment_status and amount_paid_cents are a cache of the Payment fold.
    - Written at creation (unpaid, 0) and by the payment ledger
      recomputation only. Reads that matter recompute from payments.

    RETURNS:
    - kind="return", optional original_sale_id, restore_stock flag.
    - total_cents is the value of the returned goods (a credit);
      refund_amount_cents is what was handed back, <= total_cents.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.CheckConstraint("total_cents >= 0", name="ck_transactions_total_non_negative"),
        db.Index("ix_transactions_kind_created", "kind", "created_at"),
        db.Index("ix_transactions_guest_kind", "guest_id", "kind"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    kind = db.Column(db.String(16), nullable=False, default="sale", index=True)  # sale, return

    # Customer / guest reference
    guest_id = db.Column(db.Integer, db.ForeignKey("guests.id"), nullable=True)
    customer_name = db.Column(db.String(255), nullable=True)
    location = db.Column(db.String(64), nullable=True)  # Room or table label

    # Pricing (all amounts in cents)
    subtotal_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)

    # Payment cache (see class docstring)
    payment_status = db.Column(db.String(16), nullable=False, default="unpaid", index=True)
    amount_paid_cents = db.Column(db.Integer, nullable=False, default=0)

    # Returns
    original_sale_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=True, index=True)
    restore_stock = db.Column(db.Boolean, nullable=False, default=False)
    reason = db.Column(db.String(255), nullable=True)
    refund_method = db.Column(db.String(32), nullable=True)
    refund_amount_cents = db.Column(db.Integer, nullable=True)

    notes = db.Column(db.Text, nullable=True)

    created_by = db.Column(db.String(128), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    lines = db.relationship(
        "TransactionLine",
        backref="transaction",
        order_by="TransactionLine.position",
        cascade="all, delete-orphan",
        lazy=True,
    )
    payments = db.relationship(
        "Payment",
        backref="transaction",
        order_by="Payment.id",
        lazy=True,
    )
    original_sale = db.relationship("Transaction", remote_side=[id], backref=db.backref("returns", lazy=True))
    guest = db.relationship("Guest", backref=db.backref("transactions", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "kind": self.kind,
            "guest_id": self.guest_id,
            "customer_name": self.customer_name,
            "location": self.location,
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "total": cents_to_amount(self.total_cents),
            "payment_status": self.payment_status,
            "amount_paid_cents": self.amount_paid_cents,
            "notes": self.notes,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }
        if self.kind == "return":
            data.update({
                "original_sale_id": self.original_sale_id,
                "restore_stock": self.restore_stock,
                "reason": self.reason,
                "refund_method": self.refund_method,
                "refund_amount_cents": self.refund_amount_cents,
                "refund_amount": cents_to_amount(self.refund_amount_cents),
            })
        return data


class TransactionLine(db.Model):
    """
    Line item owned by a transaction.

    name and unit price are frozen at transaction time; later catalog
    edits never change historical totals. product_id is null for ad hoc
    items.
    """
    __tablename__ = "transaction_lines"
    __table_args__ = (
        db.UniqueConstraint("transaction_id", "position", name="uq_transaction_lines_position"),
        db.CheckConstraint("quantity > 0", name="ck_transaction_lines_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True, index=True)
    item_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "position": self.position,
            "product_id": self.product_id,
            "item_name": self.item_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "unit_price": cents_to_amount(self.unit_price_cents),
            "line_total_cents": self.line_total_cents,
            "line_total": cents_to_amount(self.line_total_cents),
        }


class Payment(db.Model):
    """
    Append-only payment applied against a transaction.

    amount_paid(transaction) = SUM(amount_cents) over its payments.
    Overpayment is stored as tendered; change handling belongs to the caller.
    """
    __tablename__ = "payments"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_payments_amount_positive"),
        db.Index("ix_payments_method_created", "method", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)

    amount_cents = db.Column(db.Integer, nullable=False)
    method = db.Column(db.String(32), nullable=False)  # cash, card, transfer, ...
    reference = db.Column(db.String(128), nullable=True)  # Card auth code, transfer ref, etc.

    created_by = db.Column(db.String(128), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "amount_cents": self.amount_cents,
            "amount": cents_to_amount(self.amount_cents),
            "method": self.method,
            "reference": self.reference,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }

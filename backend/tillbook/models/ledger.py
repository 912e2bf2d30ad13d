from __future__ import annotations

from ..extensions import db
from tillbook.time_utils import to_utc_z, utcnow


class LedgerEvent(db.Model):
    """
    Append-only audit log for business events.

    Written in the same DB transaction as the change it records, so an
    aborted unit of work leaves no event behind.
    """
    __tablename__ = "ledger_events"
    __table_args__ = (
        db.Index("ix_ledger_events_occurred", "occurred_at", "id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # What happened
    event_type = db.Column(db.String(64), nullable=False, index=True)  # e.g., sale.created, shift.closed
    event_category = db.Column(db.String(32), nullable=False, index=True)  # stock, sales, payment, returns, guests, shifts, expenses

    # What it refers to (generic pointer)
    entity_type = db.Column(db.String(64), nullable=False, index=True)
    entity_id = db.Column(db.Integer, nullable=False, index=True)

    actor = db.Column(db.String(128), nullable=True)

    # Business vs system time
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    # Optional structured metadata (keep small; do not denormalize domain state)
    note = db.Column(db.String(255), nullable=True)
    payload = db.Column(db.Text, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "event_type": self.event_type,
            "event_category": self.event_category,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "actor": self.actor,
            "occurred_at": to_utc_z(self.occurred_at),
            "created_at": to_utc_z(self.created_at),
            "note": self.note,
            "payload": self.payload,
        }

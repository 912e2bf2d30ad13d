from __future__ import annotations

from ..extensions import db
from ..money import cents_to_amount
from tillbook.time_utils import to_iso_date, to_utc_z, utcnow


class Room(db.Model):
    """Rentable room. status is occupied while an active guest holds it."""
    __tablename__ = "rooms"
    __table_args__ = (
        db.UniqueConstraint("number", name="uq_rooms_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    number = db.Column(db.String(32), nullable=False)
    room_type = db.Column(db.String(64), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="available", index=True)  # available, occupied
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "number": self.number,
            "room_type": self.room_type,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }


class Guest(db.Model):
    """
    Guest occupancy record.

    LIFECYCLE:
    - active: created on check-in
    - checked_out: set by checkout together with the bill snapshot

    IMMUTABLE: Once checked out, the record is never modified again.
    """
    __tablename__ = "guests"
    __table_args__ = (
        db.Index("ix_guests_room_status", "room_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(64), nullable=True)
    room_id = db.Column(db.Integer, db.ForeignKey("rooms.id"), nullable=True)

    check_in = db.Column(db.DateTime(timezone=True), nullable=False)
    check_out = db.Column(db.DateTime(timezone=True), nullable=True)
    daily_rate_cents = db.Column(db.Integer, nullable=False)

    status = db.Column(db.String(16), nullable=False, default="active", index=True)  # active, checked_out

    # Checkout snapshot (null while active)
    nights = db.Column(db.Integer, nullable=True)
    room_charge_cents = db.Column(db.Integer, nullable=True)
    orders_due_cents = db.Column(db.Integer, nullable=True)
    discount_type = db.Column(db.String(16), nullable=True)  # flat, percentage
    discount_value = db.Column(db.Numeric(12, 2), nullable=True)  # As entered
    discount_description = db.Column(db.String(255), nullable=True)
    discount_cents = db.Column(db.Integer, nullable=True)
    final_bill_cents = db.Column(db.Integer, nullable=True)
    checked_out_by = db.Column(db.String(128), nullable=True)

    created_by = db.Column(db.String(128), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    room = db.relationship("Room", backref=db.backref("guests", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "room_id": self.room_id,
            "room_number": self.room.number if self.room else None,
            "check_in": to_iso_date(self.check_in),
            "check_out": to_iso_date(self.check_out),
            "daily_rate_cents": self.daily_rate_cents,
            "daily_rate": cents_to_amount(self.daily_rate_cents),
            "status": self.status,
            "nights": self.nights,
            "room_charge_cents": self.room_charge_cents,
            "orders_due_cents": self.orders_due_cents,
            "discount_type": self.discount_type,
            "discount_value": float(self.discount_value) if self.discount_value is not None else None,
            "discount_description": self.discount_description,
            "discount_cents": self.discount_cents,
            "final_bill_cents": self.final_bill_cents,
            "final_bill": cents_to_amount(self.final_bill_cents),
            "checked_out_by": self.checked_out_by,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }

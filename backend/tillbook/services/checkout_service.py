# Overview: Service-layer operations for rooms, guests and checkout billing.

"""
Checkout / Billing Engine

BILL:
- nights = max(ceil((checkout - check_in) in days), 1); a stay is never
  billed for zero nights
- room_charge = nights * daily_rate
- orders_due = SUM(amount_due) over the guest's sales, from the payment fold
- gross = room_charge + orders_due
- discount: flat amount, or percentage of gross; clamped to [0, gross]
- final_bill = gross - discount (never negative)

Checkout records no payment. Settlement is a separate add_payment call.
"""

from __future__ import annotations

import math
from datetime import datetime
from decimal import Decimal

from ..errors import AlreadyCheckedOut, InvalidArgument, NotFound
from ..extensions import db
from ..models import Guest, Room, Transaction
from ..money import cents_to_amount, percent_of, to_cents, to_decimal
from tillbook.time_utils import as_datetime, to_iso_date, utcnow
from .concurrency import lock_for_update, run_atomic
from .ledger_service import append_ledger_event
from .payment_service import get_amount_due_cents


GUEST_ACTIVE = "active"
GUEST_CHECKED_OUT = "checked_out"

ROOM_AVAILABLE = "available"
ROOM_OCCUPIED = "occupied"

DISCOUNT_FLAT = "flat"
DISCOUNT_PERCENTAGE = "percentage"
VALID_DISCOUNT_TYPES = (DISCOUNT_FLAT, DISCOUNT_PERCENTAGE)

SECONDS_PER_DAY = 86400


# =============================================================================
# ROOMS
# =============================================================================

def create_room(number: str, room_type: str | None = None, actor: str | None = None) -> Room:
    number = (number or "").strip()
    if not number:
        raise InvalidArgument("number is required")

    def _op():
        if db.session.query(Room).filter_by(number=number).first():
            raise InvalidArgument(f"Room {number} already exists", details={"number": number})
        room = Room(number=number, room_type=room_type, status=ROOM_AVAILABLE)
        db.session.add(room)
        db.session.flush()

        append_ledger_event(
            event_type="room.created",
            event_category="guests",
            entity_type="room",
            entity_id=room.id,
            actor=actor,
            note=number,
        )
        return room

    return run_atomic(_op)


def list_rooms(status: str | None = None) -> list[Room]:
    q = Room.query
    if status:
        q = q.filter(Room.status == status)
    return q.order_by(Room.number).all()


# =============================================================================
# CHECK-IN
# =============================================================================

def check_in_guest(
    *,
    name: str,
    check_in,
    daily_rate_cents: int,
    room_id: int | None = None,
    phone: str | None = None,
    actor: str | None = None,
) -> Guest:
    """Create an active occupancy and mark its room occupied."""
    if not name or not name.strip():
        raise InvalidArgument("name is required")
    if daily_rate_cents < 0:
        raise InvalidArgument("daily_rate must be >= 0")
    check_in_at = _coerce_datetime(check_in, "check_in")

    def _op():
        room = None
        if room_id is not None:
            room = lock_for_update(db.session.query(Room).filter_by(id=room_id)).first()
            if room is None:
                raise NotFound(f"Room {room_id} not found", details={"room_id": room_id})
            if room.status == ROOM_OCCUPIED:
                raise InvalidArgument(f"Room {room.number} is occupied", details={"room_id": room_id})
            room.status = ROOM_OCCUPIED

        guest = Guest(
            name=name.strip(),
            phone=phone,
            room_id=room_id,
            check_in=check_in_at,
            daily_rate_cents=daily_rate_cents,
            status=GUEST_ACTIVE,
            created_by=actor,
            created_at=utcnow(),
        )
        db.session.add(guest)
        db.session.flush()

        append_ledger_event(
            event_type="guest.checked_in",
            event_category="guests",
            entity_type="guest",
            entity_id=guest.id,
            actor=actor,
            note=guest.name,
            payload=f"room_id={room_id},check_in={to_iso_date(check_in_at)},daily_rate_cents={daily_rate_cents}",
        )
        return guest

    return run_atomic(_op)


def get_guest(guest_id: int) -> Guest:
    guest = db.session.get(Guest, guest_id)
    if guest is None:
        raise NotFound(f"Guest {guest_id} not found", details={"guest_id": guest_id})
    return guest


def list_guests(status: str | None = None) -> list[Guest]:
    q = Guest.query
    if status:
        q = q.filter(Guest.status == status)
    return q.order_by(Guest.check_in.desc(), Guest.id.desc()).all()


# =============================================================================
# BILLING
# =============================================================================

def _coerce_datetime(value, field: str) -> datetime:
    try:
        result = as_datetime(value)
    except ValueError:
        raise InvalidArgument(f"{field} must be an ISO-8601 date or datetime")
    if result is None:
        raise InvalidArgument(f"{field} is required")
    return result


def count_nights(check_in: datetime, checkout_at: datetime) -> int:
    seconds = (checkout_at - check_in).total_seconds()
    return max(math.ceil(seconds / SECONDS_PER_DAY), 1)


def _discount_cents(gross_cents: int, discount_type: str | None, discount_amount) -> tuple[int, Decimal | None]:
    """Returns (discount in cents clamped to [0, gross], amount as entered)."""
    if discount_type is None:
        if discount_amount is not None:
            raise InvalidArgument("discount_type is required when discount_amount is given")
        return 0, None
    if discount_type not in VALID_DISCOUNT_TYPES:
        raise InvalidArgument(f"Invalid discount_type: {discount_type}. Must be one of {list(VALID_DISCOUNT_TYPES)}")

    value = Decimal(0) if discount_amount is None else to_decimal(discount_amount, "discount_amount")
    if value < 0:
        raise InvalidArgument("discount_amount must be >= 0")

    if discount_type == DISCOUNT_FLAT:
        cents = to_cents(value, "discount_amount")
    else:
        # Percentages above 100 are accepted; the clamp keeps the bill >= 0
        cents = percent_of(gross_cents, value)
    return min(max(cents, 0), gross_cents), value


def _compute_bill(
    guest: Guest,
    checkout_at: datetime,
    discount_type: str | None,
    discount_amount,
) -> dict:
    # Any time on the check-in day bills one night
    if checkout_at.date() < guest.check_in.date():
        raise InvalidArgument(
            "checkout_date is before check-in",
            details={"check_in": to_iso_date(guest.check_in), "checkout_date": to_iso_date(checkout_at)},
        )

    nights = count_nights(guest.check_in, checkout_at)
    room_charge = nights * guest.daily_rate_cents

    sales = Transaction.query.filter_by(guest_id=guest.id, kind="sale").all()
    orders_due = sum(get_amount_due_cents(t) for t in sales)

    gross = room_charge + orders_due
    discount, discount_value = _discount_cents(gross, discount_type, discount_amount)
    final_bill = gross - discount

    return {
        "guest_id": guest.id,
        "check_in": to_iso_date(guest.check_in),
        "checkout_date": to_iso_date(checkout_at),
        "nights": nights,
        "daily_rate_cents": guest.daily_rate_cents,
        "room_charge_cents": room_charge,
        "orders_due_cents": orders_due,
        "gross_cents": gross,
        "discount_type": discount_type,
        "discount_value": float(discount_value) if discount_value is not None else None,
        "discount_cents": discount,
        "final_bill_cents": final_bill,
        "final_bill": cents_to_amount(final_bill),
    }


def _normalize_discount_type(discount_type: str | None) -> str | None:
    if discount_type is None or not discount_type.strip():
        return None
    return discount_type.strip().lower()


def compute_bill(
    guest_id: int,
    checkout_date,
    discount_type: str | None = None,
    discount_amount=None,
) -> dict:
    """Bill preview. No state change."""
    guest = get_guest(guest_id)
    if guest.status != GUEST_ACTIVE:
        raise AlreadyCheckedOut(f"Guest {guest_id} has already checked out", details={"guest_id": guest_id})
    return _compute_bill(
        guest,
        _coerce_datetime(checkout_date, "checkout_date"),
        _normalize_discount_type(discount_type),
        discount_amount,
    )


# =============================================================================
# CHECKOUT
# =============================================================================

def checkout(
    guest_id: int,
    checkout_date,
    discount_type: str | None = None,
    discount_amount=None,
    discount_description: str | None = None,
    actor: str | None = None,
) -> dict:
    """
    Close a guest's stay and freeze the final bill.

    Atomically sets status=checked_out and check_out, stores the bill
    snapshot on the guest and frees the room.

    Raises:
        NotFound: Unknown guest
        AlreadyCheckedOut: Guest not active
        InvalidArgument: Bad discount or checkout before check-in
    """
    checkout_at = _coerce_datetime(checkout_date, "checkout_date")
    discount_type = _normalize_discount_type(discount_type)

    def _op():
        guest = lock_for_update(db.session.query(Guest).filter_by(id=guest_id)).first()
        if guest is None:
            raise NotFound(f"Guest {guest_id} not found", details={"guest_id": guest_id})
        if guest.status != GUEST_ACTIVE:
            raise AlreadyCheckedOut(f"Guest {guest_id} has already checked out", details={"guest_id": guest_id})

        bill = _compute_bill(guest, checkout_at, discount_type, discount_amount)

        guest.status = GUEST_CHECKED_OUT
        guest.check_out = checkout_at
        guest.nights = bill["nights"]
        guest.room_charge_cents = bill["room_charge_cents"]
        guest.orders_due_cents = bill["orders_due_cents"]
        guest.discount_type = discount_type
        guest.discount_value = to_decimal(bill["discount_value"], "discount_amount") if bill["discount_value"] is not None else None
        guest.discount_description = discount_description
        guest.discount_cents = bill["discount_cents"]
        guest.final_bill_cents = bill["final_bill_cents"]
        guest.checked_out_by = actor

        if guest.room_id is not None:
            room = lock_for_update(db.session.query(Room).filter_by(id=guest.room_id)).first()
            if room is not None:
                room.status = ROOM_AVAILABLE

        db.session.flush()

        append_ledger_event(
            event_type="guest.checked_out",
            event_category="guests",
            entity_type="guest",
            entity_id=guest.id,
            actor=actor,
            note=discount_description,
            payload=(
                f"nights={bill['nights']},room_charge_cents={bill['room_charge_cents']},"
                f"orders_due_cents={bill['orders_due_cents']},discount_cents={bill['discount_cents']},"
                f"final_bill_cents={bill['final_bill_cents']}"
            ),
        )
        return bill

    return run_atomic(_op)

# Overview: Request dataclasses that parse and validate JSON bodies at the API boundary.

"""
Request schemas for the command interface.

Every route parses its JSON body into one of these frozen dataclasses
before calling a service. Coercion is strict:
- integers reject floats, decimals and scientific notation
- money is parsed with Decimal and converted to integer cents (half-up)
- dates are ISO-8601 (YYYY-MM-DD for business dates)

Malformed input raises InvalidArgument, so nothing reaches the core
unvalidated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from .errors import InvalidArgument
from .money import to_cents, to_decimal
from .time_utils import parse_business_date, parse_iso_datetime

_MISSING = object()

# SQLite INTEGER is a signed 64-bit value
MAX_INTEGER = 2**63 - 1
MAX_QUANTITY = 1_000_000


def _require_dict(payload: Any) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise InvalidArgument("Invalid JSON payload")
    return payload


def _get(data: dict, key: str, required: bool):
    value = data.get(key, _MISSING)
    if value is _MISSING or value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise InvalidArgument(f"{key} is required")
        return None
    return value


def _get_int(data: dict, key: str, *, required: bool = False, default: int | None = None) -> int | None:
    value = _get(data, key, required)
    if value is None:
        return default

    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        # Reject scientific notation (e.g., "1e15") and decimal points (e.g., "12.5")
        if "e" in stripped.lower() or "." in stripped:
            raise InvalidArgument(f"{key} must be a plain integer")
        try:
            result = int(stripped)
        except ValueError:
            raise InvalidArgument(f"{key} must be an integer")
    else:
        raise InvalidArgument(f"{key} must be an integer")

    if abs(result) > MAX_INTEGER:
        raise InvalidArgument(f"{key} is out of range")
    return result


def _get_text(data: dict, key: str, *, required: bool = False, max_length: int = 255) -> str | None:
    value = _get(data, key, required)
    if value is None:
        return None
    text = str(value).strip()
    if len(text) > max_length:
        raise InvalidArgument(f"{key} exceeds max length {max_length}")
    return text


def _get_bool(data: dict, key: str, *, default: bool = False) -> bool:
    value = data.get(key)
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "1", "yes"):
        return True
    if isinstance(value, str) and value.strip().lower() in ("false", "0", "no"):
        return False
    raise InvalidArgument(f"{key} must be a boolean")


def _get_cents(data: dict, key: str, *, required: bool = False, default: int | None = None) -> int | None:
    value = _get(data, key, required)
    if value is None:
        return default
    return to_cents(value, key)


def _get_datetime(data: dict, key: str, *, required: bool = False) -> datetime | None:
    value = _get(data, key, required)
    if value is None:
        return None
    try:
        return parse_iso_datetime(str(value))
    except ValueError:
        raise InvalidArgument(f"{key} must be an ISO-8601 date or datetime")


def _get_date(data: dict, key: str, *, required: bool = False) -> date | None:
    value = _get(data, key, required)
    if value is None:
        return None
    try:
        return parse_business_date(str(value))
    except ValueError:
        raise InvalidArgument(f"{key} must be a YYYY-MM-DD date")


# =============================================================================
# CATALOG & STOCK
# =============================================================================

@dataclass(frozen=True)
class ProductRequest:
    name: str
    price_cents: int
    category: str | None = None
    cost_cents: int | None = None
    sku: str | None = None
    track_stock: bool = False
    stock_quantity: int = 0
    low_stock_threshold: int = 0

    @classmethod
    def from_json(cls, payload: Any) -> "ProductRequest":
        data = _require_dict(payload)
        return cls(
            name=_get_text(data, "name", required=True),
            price_cents=_get_cents(data, "price", required=True),
            category=_get_text(data, "category", max_length=64),
            cost_cents=_get_cents(data, "cost"),
            sku=_get_text(data, "sku", max_length=64),
            track_stock=_get_bool(data, "track_stock"),
            stock_quantity=_get_int(data, "stock_quantity", default=0),
            low_stock_threshold=_get_int(data, "low_stock_threshold", default=0),
        )


@dataclass(frozen=True)
class StockAdjustRequest:
    quantity: int
    mode: str
    reason: str | None = None

    @classmethod
    def from_json(cls, payload: Any) -> "StockAdjustRequest":
        data = _require_dict(payload)
        req = cls(
            quantity=_get_int(data, "quantity", required=True),
            mode=_get_text(data, "mode", required=True).lower(),
            reason=_get_text(data, "reason"),
        )
        if req.quantity > MAX_QUANTITY:
            raise InvalidArgument(f"quantity cannot exceed {MAX_QUANTITY}")
        return req


@dataclass(frozen=True)
class PurchaseRequest:
    quantity: int
    supplier: str | None = None
    unit_cost_cents: int | None = None

    @classmethod
    def from_json(cls, payload: Any) -> "PurchaseRequest":
        data = _require_dict(payload)
        req = cls(
            quantity=_get_int(data, "quantity", required=True),
            supplier=_get_text(data, "supplier"),
            unit_cost_cents=_get_cents(data, "unit_cost"),
        )
        if req.quantity <= 0:
            raise InvalidArgument("quantity must be > 0")
        if req.quantity > MAX_QUANTITY:
            raise InvalidArgument(f"quantity cannot exceed {MAX_QUANTITY}")
        return req


# =============================================================================
# SALES, PAYMENTS & RETURNS
# =============================================================================

@dataclass(frozen=True)
class LineItemInput:
    """
    One requested line.

    Catalog items need only product_id and quantity (name and price are
    snapshotted from the product unless unit_price overrides it).
    Ad hoc items need name and unit_price.
    """
    quantity: int
    product_id: int | None = None
    name: str | None = None
    unit_price_cents: int | None = None

    @classmethod
    def from_json(cls, payload: Any) -> "LineItemInput":
        data = _require_dict(payload)
        item = cls(
            quantity=_get_int(data, "quantity", required=True),
            product_id=_get_int(data, "product_id"),
            name=_get_text(data, "name"),
            unit_price_cents=_get_cents(data, "unit_price"),
        )
        if item.quantity <= 0:
            raise InvalidArgument("quantity must be > 0")
        if item.quantity > MAX_QUANTITY:
            raise InvalidArgument(f"quantity cannot exceed {MAX_QUANTITY}")
        if item.unit_price_cents is not None and item.unit_price_cents < 0:
            raise InvalidArgument("unit_price must be >= 0")
        if item.product_id is None and (item.name is None or item.unit_price_cents is None):
            raise InvalidArgument("ad hoc items require name and unit_price")
        return item


def _get_items(data: dict) -> list[LineItemInput]:
    raw = data.get("items")
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise InvalidArgument("items must be a list")
    return [LineItemInput.from_json(item) for item in raw]


@dataclass(frozen=True)
class SaleRequest:
    items: list[LineItemInput] = field(default_factory=list)
    guest_id: int | None = None
    customer_name: str | None = None
    location: str | None = None
    discount_cents: int = 0
    tax_cents: int = 0
    notes: str | None = None

    @classmethod
    def from_json(cls, payload: Any) -> "SaleRequest":
        data = _require_dict(payload)
        return cls(
            items=_get_items(data),
            guest_id=_get_int(data, "guest_id"),
            customer_name=_get_text(data, "customer_name"),
            location=_get_text(data, "location", max_length=64),
            discount_cents=_get_cents(data, "discount", default=0),
            tax_cents=_get_cents(data, "tax", default=0),
            notes=_get_text(data, "notes", max_length=2000),
        )


@dataclass(frozen=True)
class PaymentRequest:
    transaction_id: int
    amount_cents: int
    method: str
    reference: str | None = None

    @classmethod
    def from_json(cls, payload: Any) -> "PaymentRequest":
        data = _require_dict(payload)
        return cls(
            transaction_id=_get_int(data, "transaction_id", required=True),
            amount_cents=_get_cents(data, "amount", required=True),
            method=_get_text(data, "method", required=True, max_length=32),
            reference=_get_text(data, "reference", max_length=128),
        )


@dataclass(frozen=True)
class ReturnRequest:
    items: list[LineItemInput] = field(default_factory=list)
    original_sale_id: int | None = None
    reason: str | None = None
    restore_stock: bool = False
    refund_method: str | None = None
    refund_amount_cents: int | None = None

    @classmethod
    def from_json(cls, payload: Any) -> "ReturnRequest":
        data = _require_dict(payload)
        return cls(
            items=_get_items(data),
            original_sale_id=_get_int(data, "original_sale_id"),
            reason=_get_text(data, "reason"),
            restore_stock=_get_bool(data, "restore_stock"),
            refund_method=_get_text(data, "refund_method", max_length=32),
            refund_amount_cents=_get_cents(data, "refund_amount"),
        )


# =============================================================================
# ROOMS, GUESTS & CHECKOUT
# =============================================================================

@dataclass(frozen=True)
class RoomRequest:
    number: str
    room_type: str | None = None

    @classmethod
    def from_json(cls, payload: Any) -> "RoomRequest":
        data = _require_dict(payload)
        return cls(
            number=_get_text(data, "number", required=True, max_length=32),
            room_type=_get_text(data, "room_type", max_length=64),
        )


@dataclass(frozen=True)
class CheckInRequest:
    name: str
    check_in: datetime
    daily_rate_cents: int
    room_id: int | None = None
    phone: str | None = None

    @classmethod
    def from_json(cls, payload: Any) -> "CheckInRequest":
        data = _require_dict(payload)
        return cls(
            name=_get_text(data, "name", required=True),
            check_in=_get_datetime(data, "check_in", required=True),
            daily_rate_cents=_get_cents(data, "daily_rate", required=True),
            room_id=_get_int(data, "room_id"),
            phone=_get_text(data, "phone", max_length=64),
        )


@dataclass(frozen=True)
class CheckoutRequest:
    checkout_date: datetime
    discount_type: str | None = None
    discount_amount: Decimal | None = None
    discount_description: str | None = None

    @classmethod
    def from_json(cls, payload: Any) -> "CheckoutRequest":
        data = _require_dict(payload)
        raw_amount = _get(data, "discount_amount", False)
        discount_type = _get_text(data, "discount_type", max_length=16)
        return cls(
            checkout_date=_get_datetime(data, "checkout_date", required=True),
            discount_type=discount_type.lower() if discount_type else None,
            discount_amount=to_decimal(raw_amount, "discount_amount") if raw_amount is not None else None,
            discount_description=_get_text(data, "discount_description"),
        )


# =============================================================================
# SHIFTS & EXPENSES
# =============================================================================

@dataclass(frozen=True)
class ShiftOpenRequest:
    start_cash_cents: int

    @classmethod
    def from_json(cls, payload: Any) -> "ShiftOpenRequest":
        data = _require_dict(payload)
        return cls(start_cash_cents=_get_cents(data, "start_cash", default=0))


@dataclass(frozen=True)
class ShiftCloseRequest:
    end_cash_actual_cents: int
    notes: str | None = None

    @classmethod
    def from_json(cls, payload: Any) -> "ShiftCloseRequest":
        data = _require_dict(payload)
        return cls(
            end_cash_actual_cents=_get_cents(data, "end_cash_actual", required=True),
            notes=_get_text(data, "notes", max_length=2000),
        )


@dataclass(frozen=True)
class ExpenseRequest:
    expense_date: date
    category: str
    amount_cents: int
    description: str | None = None
    method: str = "cash"

    @classmethod
    def from_json(cls, payload: Any) -> "ExpenseRequest":
        data = _require_dict(payload)
        return cls(
            expense_date=_get_date(data, "date", required=True),
            category=_get_text(data, "category", required=True, max_length=64),
            amount_cents=_get_cents(data, "amount", required=True),
            description=_get_text(data, "description"),
            method=(_get_text(data, "method", max_length=32) or "cash").lower(),
        )

# Overview: Money parsing and formatting; all amounts are stored as integer cents.

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from .errors import InvalidArgument

CENT = Decimal("0.01")

# Maximum amount: 9,999,999.99 (999,999,999 cents)
MAX_AMOUNT_CENTS = 999_999_999


def to_decimal(value: Any, field: str = "amount") -> Decimal:
    """Parse a JSON number or numeric string into a finite Decimal."""
    if value is None or isinstance(value, bool):
        raise InvalidArgument(f"{field} must be a number")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        # str() keeps 0.1 as "0.1" instead of its binary expansion
        result = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            raise InvalidArgument(f"{field} must be a number")
        try:
            result = Decimal(text)
        except InvalidOperation:
            raise InvalidArgument(f"{field} must be a number")
    else:
        raise InvalidArgument(f"{field} must be a number")

    if not result.is_finite():
        raise InvalidArgument(f"{field} must be a finite number")
    return result


def to_cents(value: Any, field: str = "amount") -> int:
    """Convert a decimal amount to integer cents (half-up)."""
    cents = int((to_decimal(value, field) / CENT).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    if abs(cents) > MAX_AMOUNT_CENTS:
        raise InvalidArgument(f"{field} cannot exceed {MAX_AMOUNT_CENTS / 100:,.2f}")
    return cents


def percent_of(cents: int, percent: Decimal) -> int:
    """``cents * percent / 100`` rounded half-up to the cent."""
    return int((Decimal(cents) * percent / Decimal(100)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def cents_to_amount(cents: int | None) -> float | None:
    if cents is None:
        return None
    return float(Decimal(cents) * CENT)

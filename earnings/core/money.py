# earnings/core/money.py
from __future__ import annotations

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_decimal(value: Any) -> Decimal:
    """
    Coerce ints/strings/Decimals (and floats via str) into Decimal.
    Floats are routed through str() so 0.1 stays 0.1.
    """
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        value = str(value)
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"Not a monetary value: {value!r}")


def quantize_money(value: Any) -> Decimal:
    """Round to currency minor units (cents), half-up."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def period_key(when: datetime | None = None) -> str:
    """Sales period key: calendar month as YYYY-MM (UTC)."""
    dt = when or utcnow()
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return f"{dt.year:04d}-{dt.month:02d}"

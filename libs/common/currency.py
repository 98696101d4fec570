"""Currency helpers for INR amounts.

API / storage unit: Rupees as a 2-decimal number (e.g. 899.0 = ₹899).
Arithmetic goes through ``Decimal`` so rounding is half-up on the paisa,
matching what the checkout UI displays.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

# ─── constants ───────────────────────────────────────────────────────────────

CURRENCY: str = "INR"
_TWO_PLACES = Decimal("0.01")


# ─── conversion helpers ───────────────────────────────────────────────────────


def to_decimal(value: Any) -> Decimal:
    """Coerce a stored or user-supplied amount to ``Decimal``.

    Malformed or missing values become 0.
    """
    if value is None or isinstance(value, bool):
        return Decimal(0)
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return Decimal(0)
    if not amount.is_finite():
        return Decimal(0)
    return amount


def round_rupees(value: Any) -> float:
    """Round to 2 decimal places (half-up) and return a float for the API."""
    return float(to_decimal(value).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP))


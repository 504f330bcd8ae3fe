"""
Money helpers.

All amounts are Decimal with two places. Floats only appear at the JSON
boundary (to_number) and are converted back through str() on the way in.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any, Optional

CENT = Decimal("0.01")
ZERO = Decimal("0")

CURRENCY_IQD = "IQD"
CURRENCY_USD = "USD"
CURRENCIES = (CURRENCY_IQD, CURRENCY_USD)


def to_decimal(value: Any) -> Decimal:
    """Coerce int/float/str/Decimal to Decimal without float artifacts."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise InvalidOperation("booleans are not amounts")
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round2(value: Any) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_number(value: Optional[Decimal]) -> Optional[float]:
    """Serialize a Decimal amount for JSON responses."""
    if value is None:
        return None
    return float(value)


def format_amount(value: Any, currency: str) -> str:
    """Human-readable amount used in activity descriptions."""
    amount = round2(value)
    if currency == CURRENCY_USD:
        return f"${amount:,.2f}"
    return f"{amount:,.2f} IQD"

from __future__ import annotations

import math
from decimal import Decimal, InvalidOperation
from typing import Any

from bazar.money_utils import CURRENCIES, round2, to_decimal


# Largest amount accepted on any money field (fits Numeric(12, 2))
MAX_AMOUNT = Decimal("9999999999.99")

SALE_TYPE_ALIASES = {
    "RETAIL": "RETAIL",
    "MUFRAD": "RETAIL",
    "WHOLESALE": "WHOLESALE",
    "JUMLA": "WHOLESALE",
}


class SaleError(Exception):
    """
    Base error for sales and inventory operations.

    status_code is the HTTP status the API layer answers with; details is
    a JSON-safe dict returned next to the message.
    """
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(SaleError):
    """400-level input problem."""
    status_code = 400


class NotFoundError(SaleError):
    """404-level missing draft, customer, product, motorcycle or invoice."""
    status_code = 404


class ConflictError(SaleError):
    """409-level uniqueness conflict (e.g., duplicate invoice number)."""
    status_code = 409


def parse_int(value: Any, field: str, *, minimum: int | None = None) -> int:
    """
    Strict integer parsing: rejects floats, booleans, decimals and
    scientific notation.
    """
    if value is None:
        raise ValidationError(f"{field} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    elif isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    else:
        raise ValidationError(f"{field} must be an integer")

    if minimum is not None and result < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    return result


def parse_optional_int(value: Any, field: str) -> int | None:
    if value is None or value == "":
        return None
    return parse_int(value, field, minimum=1)


def parse_amount(value: Any, field: str, *, default: Decimal | None = None, allow_negative: bool = False) -> Decimal:
    """Parse a money amount to a 2-place Decimal."""
    if value is None or value == "":
        if default is None:
            raise ValidationError(f"{field} is required")
        return default
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValidationError(f"{field} must be a finite number")
    try:
        amount = to_decimal(value.strip() if isinstance(value, str) else value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number")

    amount = round2(amount)
    if not allow_negative and amount < 0:
        raise ValidationError(f"{field} must be >= 0")
    if abs(amount) > MAX_AMOUNT:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT}")
    return amount


def parse_rate(value: Any, field: str) -> Decimal:
    """Tax rate as a fraction between 0 and 1 (0.15 == 15%)."""
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        rate = to_decimal(value.strip() if isinstance(value, str) else value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not rate.is_finite() or rate < 0 or rate > 1:
        raise ValidationError(f"{field} must be between 0 and 1")
    return rate


def parse_optional_str(value: Any, field: str, *, max_length: int = 255) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text


def parse_sale_type(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("type is required (RETAIL or WHOLESALE)")
    sale_type = SALE_TYPE_ALIASES.get(value.strip().upper())
    if sale_type is None:
        raise ValidationError(f"Unknown sale type: {value}")
    return sale_type


def parse_currency(value: Any) -> str | None:
    if value is None or value == "":
        return None
    if not isinstance(value, str) or value.strip().upper() not in CURRENCIES:
        raise ValidationError("currency must be IQD or USD")
    return value.strip().upper()


def require_object(payload: Any) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def parse_finalize_payload(payload: Any) -> dict:
    """
    Finalize request body.

    Keys follow the public contract: paymentMethod, amountPaid,
    invoiceNumber, currency, notes. All optional.
    """
    payload = require_object(payload)
    return {
        "payment_method": parse_optional_str(payload.get("paymentMethod"), "paymentMethod", max_length=32) or "CASH",
        "amount_paid": parse_amount(payload.get("amountPaid"), "amountPaid", default=Decimal("0")),
        "invoice_number": parse_optional_str(payload.get("invoiceNumber"), "invoiceNumber", max_length=128),
        "currency": parse_currency(payload.get("currency")),
        "notes": parse_optional_str(payload.get("notes"), "notes", max_length=2000),
    }


def parse_payment_payload(payload: Any) -> dict:
    payload = require_object(payload)
    return {
        "amount_iqd": parse_amount(payload.get("amountIqd"), "amountIqd", default=Decimal("0")),
        "amount_usd": parse_amount(payload.get("amountUsd"), "amountUsd", default=Decimal("0")),
        "payment_method": parse_optional_str(payload.get("paymentMethod"), "paymentMethod", max_length=32) or "CASH",
        "description": parse_optional_str(payload.get("description"), "description"),
    }


class DraftValidationError(SaleError):
    """Draft fails a finalization precondition; errors lists every problem found."""
    status_code = 400

    def __init__(self, errors: list[str], details: dict | None = None):
        super().__init__(errors[0] if len(errors) == 1 else "; ".join(errors), details)
        self.errors = list(errors)
        self.details.setdefault("errors", self.errors)


class DraftStateError(SaleError):
    """Illegal status transition or edit of a finalized/cancelled draft."""
    status_code = 400


class DraftPermissionError(SaleError):
    """Draft mutation attempted by someone other than its owner."""
    status_code = 403

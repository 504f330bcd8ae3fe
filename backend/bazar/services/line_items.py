"""
Line item classification.

A line is either a catalog PRODUCT line (priced in IQD) or a MOTORCYCLE
line (priced in USD). The kind is decided once, when the line is accepted
into a draft, and stored on every copy of the line. Nothing downstream
re-parses notes.

Older clients mark motorcycle lines with a notes value of
"MOTORCYCLE:<id>" instead of sending motorcycle_id. That marker is
understood here and only here.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable

from bazar.money_utils import CURRENCY_IQD, CURRENCY_USD
from bazar.validation import (
    ValidationError,
    parse_amount,
    parse_int,
    parse_optional_int,
    parse_optional_str,
    parse_rate,
)
from .pricing import line_total

KIND_PRODUCT = "PRODUCT"
KIND_MOTORCYCLE = "MOTORCYCLE"

MOTORCYCLE_MARKER = "MOTORCYCLE:"


@dataclass(frozen=True)
class LineInput:
    kind: str
    entity_id: int
    quantity: int
    unit_price: Decimal
    discount: Decimal
    tax_rate: Decimal
    notes: str | None
    position: int

    @property
    def product_id(self) -> int | None:
        return self.entity_id if self.kind == KIND_PRODUCT else None

    @property
    def motorcycle_id(self) -> int | None:
        return self.entity_id if self.kind == KIND_MOTORCYCLE else None

    @property
    def line_total(self) -> Decimal:
        return line_total(self.quantity, self.unit_price, self.discount, self.tax_rate)


def motorcycle_id_from_marker(notes: str | None) -> int | None:
    """Return the id in a "MOTORCYCLE:<id>" notes marker, or None."""
    if not notes or not notes.startswith(MOTORCYCLE_MARKER):
        return None
    raw = notes[len(MOTORCYCLE_MARKER):].strip()
    return parse_int(raw, "motorcycle marker", minimum=1)


def classify(product_id: int | None, motorcycle_id: int | None, notes: str | None) -> tuple[str, int]:
    """Resolve a line reference to (kind, entity_id)."""
    marker_id = motorcycle_id_from_marker(notes)
    if motorcycle_id is None:
        motorcycle_id = marker_id
    elif marker_id is not None and marker_id != motorcycle_id:
        raise ValidationError("motorcycle_id does not match the MOTORCYCLE marker in notes")

    if motorcycle_id is not None and product_id is not None:
        raise ValidationError("A line references either a product or a motorcycle, not both")
    if motorcycle_id is not None:
        return KIND_MOTORCYCLE, motorcycle_id
    if product_id is not None:
        return KIND_PRODUCT, product_id
    raise ValidationError("Each item needs a product_id or motorcycle_id")


def parse_line(raw: Any, position: int) -> LineInput:
    if not isinstance(raw, dict):
        raise ValidationError(f"Item {position + 1} must be an object")

    notes = parse_optional_str(raw.get("notes"), "notes")
    kind, entity_id = classify(
        parse_optional_int(raw.get("product_id"), "product_id"),
        parse_optional_int(raw.get("motorcycle_id"), "motorcycle_id"),
        notes,
    )
    quantity = parse_int(raw.get("quantity", 1), "quantity", minimum=1)
    unit_price = parse_amount(raw.get("unit_price"), "unit_price", default=Decimal("0"))
    discount = parse_amount(raw.get("discount"), "discount", default=Decimal("0"))
    if discount > unit_price * quantity:
        raise ValidationError(f"Item {position + 1} discount exceeds the line amount")

    return LineInput(
        kind=kind,
        entity_id=entity_id,
        quantity=quantity,
        unit_price=unit_price,
        discount=discount,
        tax_rate=parse_rate(raw.get("tax_rate"), "tax_rate"),
        notes=notes,
        position=position,
    )


def parse_lines(raw_items: Any) -> list[LineInput]:
    if raw_items is None:
        return []
    if not isinstance(raw_items, list):
        raise ValidationError("items must be a list")
    return [parse_line(raw, position) for position, raw in enumerate(raw_items)]


def infer_currency(kinds: Iterable[str]) -> str:
    """USD if any line is a motorcycle line, IQD otherwise."""
    return CURRENCY_USD if any(kind == KIND_MOTORCYCLE for kind in kinds) else CURRENCY_IQD

"""
Columns shared by DraftItem, SaleItem and InvoiceItem.

The three tables hold independent copies of the same line: a draft line is
copied into the sale and again into the invoice when the draft is
finalized, so an invoice can later be edited without touching the sale
history.
"""

from __future__ import annotations

from sqlalchemy.orm import declared_attr

from ..extensions import db
from bazar.money_utils import to_number


class LineColumnsMixin:
    id = db.Column(db.Integer, primary_key=True)

    # PRODUCT or MOTORCYCLE; exactly one of product_id / motorcycle_id is set
    kind = db.Column(db.String(16), nullable=False, default="PRODUCT")

    @declared_attr
    def product_id(cls):
        return db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True, index=True)

    @declared_attr
    def motorcycle_id(cls):
        return db.Column(db.Integer, db.ForeignKey("motorcycles.id"), nullable=True, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    # Absolute amount off the line, before tax
    discount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    # Fraction, 0.15 == 15%
    tax_rate = db.Column(db.Numeric(6, 4), nullable=False, default=0)
    line_total = db.Column(db.Numeric(12, 2), nullable=False)
    notes = db.Column(db.String(255), nullable=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    @property
    def entity_id(self) -> int | None:
        return self.motorcycle_id if self.kind == "MOTORCYCLE" else self.product_id

    def line_fields(self) -> dict:
        """Column values to copy into another line table."""
        return {
            "kind": self.kind,
            "product_id": self.product_id,
            "motorcycle_id": self.motorcycle_id,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "discount": self.discount,
            "tax_rate": self.tax_rate,
            "line_total": self.line_total,
            "notes": self.notes,
            "position": self.position,
        }

    def line_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind,
            "product_id": self.product_id,
            "motorcycle_id": self.motorcycle_id,
            "quantity": self.quantity,
            "unit_price": to_number(self.unit_price),
            "discount": to_number(self.discount),
            "tax_rate": to_number(self.tax_rate),
            "line_total": to_number(self.line_total),
            "notes": self.notes,
            "position": self.position,
        }

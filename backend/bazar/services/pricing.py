"""
Line and document totals.

Pure functions: no database access, no clock. Drafts, sales and invoices
all compute their money fields here so a stored document can be
re-derived from its lines at any time.

    line_total = round2((unit_price * quantity - discount) * (1 + tax_rate))
    subtotal   = sum(unit_price * quantity)
    tax_amount = sum(line_total - (unit_price * quantity - discount))
    total      = sum(line_total) - header_discount
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Protocol

from bazar.money_utils import CENT, ZERO, round2, to_decimal

PAYMENT_STATUS_PAID = "PAID"
PAYMENT_STATUS_PARTIAL = "PARTIALLY_PAID"


class PricedLine(Protocol):
    quantity: int
    unit_price: Decimal
    discount: Decimal
    tax_rate: Decimal


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    tax_amount: Decimal
    discount: Decimal
    total: Decimal


def line_net(quantity: int, unit_price, discount=ZERO) -> Decimal:
    """Line amount after the line discount, before tax."""
    return to_decimal(unit_price) * quantity - to_decimal(discount)


def line_total(quantity: int, unit_price, discount=ZERO, tax_rate=ZERO) -> Decimal:
    return round2(line_net(quantity, unit_price, discount) * (1 + to_decimal(tax_rate)))


def calculate_totals(lines: Iterable[PricedLine], header_discount=ZERO) -> Totals:
    subtotal = ZERO
    tax_amount = ZERO
    lines_sum = ZERO
    for line in lines:
        net = line_net(line.quantity, line.unit_price, line.discount)
        total = line_total(line.quantity, line.unit_price, line.discount, line.tax_rate)
        subtotal += to_decimal(line.unit_price) * line.quantity
        tax_amount += total - net
        lines_sum += total

    header_discount = round2(header_discount)
    return Totals(
        subtotal=round2(subtotal),
        tax_amount=round2(tax_amount),
        discount=header_discount,
        total=round2(lines_sum - header_discount),
    )


def payment_status(amount_paid: Decimal, total: Decimal) -> str:
    """
    PAID when the payment covers the total (within one cent), otherwise
    PARTIALLY_PAID. There is no UNPAID state: a zero payment is
    PARTIALLY_PAID.
    """
    if abs(amount_paid - total) < CENT or amount_paid >= total:
        return PAYMENT_STATUS_PAID
    return PAYMENT_STATUS_PARTIAL

# Overview: Customer debt and balance ledger (sales, invoice corrections and payments).

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from ..extensions import db
from ..models import Customer, CustomerBalance, Invoice, Sale
from ..validation import NotFoundError, ValidationError
from bazar.money_utils import CURRENCY_IQD, CURRENCY_USD, ZERO, format_amount, round2, to_decimal
from bazar.time_utils import utcnow
from .audit_service import append_audit_event
from .concurrency import lock_for_update

"""
Balance invariants:

- IQD moves debt_iqd and current_balance together; USD moves debt_usd.
  Amounts are never converted between currencies.
- Sales are never clamped: an overpaid sale (negative amount_due)
  lowers the debt, possibly below zero, which is store credit.
- Payments cannot exceed what is owed and floor the debts at zero.
- Editing or cancelling an invoice reverses its amount_due exactly and,
  for an edit, posts the new amount_due like a fresh sale.
- Every change appends a CustomerBalance row; rows are never edited.
"""


def load_customer_for_update(customer_id: int) -> Customer:
    customer = lock_for_update(
        db.session.query(Customer).filter(Customer.id == customer_id)
    ).first()
    if not customer:
        raise NotFoundError(f"Customer {customer_id} not found", details={"customer_id": customer_id})
    return customer


def _move_debt(customer: Customer, currency: str, delta: Decimal) -> Decimal:
    """Apply a signed delta to the debt for currency; returns the running figure."""
    if currency == CURRENCY_USD:
        customer.debt_usd = round2(to_decimal(customer.debt_usd) + delta)
        return customer.debt_usd
    customer.debt_iqd = round2(to_decimal(customer.debt_iqd) + delta)
    customer.current_balance = round2(to_decimal(customer.current_balance) + delta)
    return customer.current_balance


def apply_sale(
    customer: Customer,
    *,
    currency: str,
    amount_due: Decimal,
    paid: bool,
    sale: Optional[Sale],
    invoice: Invoice,
    user_id: int,
    description: Optional[str] = None,
) -> CustomerBalance:
    """
    Post a finalized sale's outstanding amount to the customer.

    customer must already be locked by the caller. last_payment_date moves
    only when the sale is fully paid or overpaid.
    """
    amount_due = round2(amount_due)
    running = _move_debt(customer, currency, amount_due)

    if paid or amount_due <= ZERO:
        customer.last_payment_date = utcnow()

    entry = CustomerBalance(
        customer_id=customer.id,
        currency=currency,
        amount=amount_due,
        balance=running,
        description=description or f"Sale {invoice.invoice_number}",
        sale_id=sale.id if sale is not None else None,
        invoice_id=invoice.id,
        created_by_user_id=user_id,
    )
    db.session.add(entry)
    db.session.flush()
    return entry


def reverse_invoice(
    customer: Customer,
    *,
    invoice: Invoice,
    user_id: int,
    description: str,
) -> Optional[CustomerBalance]:
    """
    Take an invoice's current amount_due back off the customer, in the
    invoice's currency. The exact posted amount is reversed, so an
    overpaid invoice (negative amount_due) adds its credit back as debt.

    customer must already be locked by the caller. Returns None when the
    invoice carries nothing to reverse.
    """
    amount = round2(to_decimal(invoice.amount_due))
    if amount == ZERO:
        return None

    running = _move_debt(customer, invoice.currency, -amount)
    entry = CustomerBalance(
        customer_id=customer.id,
        currency=invoice.currency,
        amount=-amount,
        balance=running,
        description=description,
        sale_id=invoice.sale_id,
        invoice_id=invoice.id,
        created_by_user_id=user_id,
    )
    db.session.add(entry)
    db.session.flush()
    return entry


def record_payment(
    *,
    customer_id: int,
    amount_iqd: Decimal,
    amount_usd: Decimal,
    user_id: int,
    payment_method: str = "CASH",
    description: Optional[str] = None,
) -> list[CustomerBalance]:
    """
    Record a customer payment in IQD and/or USD.

    Flushes but does not commit. Returns the history rows written, IQD
    first.
    """
    amount_iqd = round2(amount_iqd)
    amount_usd = round2(amount_usd)
    if amount_iqd <= ZERO and amount_usd <= ZERO:
        raise ValidationError("Payment amount must be greater than 0")

    customer = load_customer_for_update(customer_id)

    current_balance = to_decimal(customer.current_balance)
    debt_iqd = to_decimal(customer.debt_iqd)
    debt_usd = to_decimal(customer.debt_usd)

    if amount_iqd > current_balance:
        raise ValidationError(
            f"Payment amount ({format_amount(amount_iqd, CURRENCY_IQD)}) exceeds customer balance "
            f"({format_amount(current_balance, CURRENCY_IQD)})",
            details={"currency": CURRENCY_IQD, "amount": str(amount_iqd), "owed": str(current_balance)},
        )
    if amount_usd > debt_usd:
        raise ValidationError(
            f"Payment amount ({format_amount(amount_usd, CURRENCY_USD)}) exceeds customer debt "
            f"({format_amount(debt_usd, CURRENCY_USD)})",
            details={"currency": CURRENCY_USD, "amount": str(amount_usd), "owed": str(debt_usd)},
        )

    label = description or f"Payment ({payment_method})"
    entries = []

    if amount_iqd > ZERO:
        customer.debt_iqd = max(ZERO, debt_iqd - amount_iqd)
        customer.current_balance = round2(current_balance - amount_iqd)
        entries.append(CustomerBalance(
            customer_id=customer.id,
            currency=CURRENCY_IQD,
            amount=-amount_iqd,
            balance=customer.current_balance,
            description=f"{label} IQD: {amount_iqd}",
            created_by_user_id=user_id,
        ))

    if amount_usd > ZERO:
        customer.debt_usd = max(ZERO, debt_usd - amount_usd)
        entries.append(CustomerBalance(
            customer_id=customer.id,
            currency=CURRENCY_USD,
            amount=-amount_usd,
            balance=customer.debt_usd,
            description=f"{label} USD: {amount_usd}",
            created_by_user_id=user_id,
        ))

    customer.last_payment_date = utcnow()
    db.session.add_all(entries)
    db.session.flush()

    append_audit_event(
        event_type="customer.payment_recorded",
        entity_type="customer",
        entity_id=customer.id,
        actor_user_id=user_id,
        note=payment_method,
        payload={"amount_iqd": str(amount_iqd), "amount_usd": str(amount_usd)},
    )
    return entries


def balance_history(customer_id: int, *, limit: int = 100) -> list[CustomerBalance]:
    if not db.session.get(Customer, customer_id):
        raise NotFoundError(f"Customer {customer_id} not found", details={"customer_id": customer_id})
    return (
        db.session.query(CustomerBalance)
        .filter_by(customer_id=customer_id)
        .order_by(CustomerBalance.created_at.desc(), CustomerBalance.id.desc())
        .limit(limit)
        .all()
    )


def list_payments(customer_id: int, *, limit: int = 100) -> list[CustomerBalance]:
    """Payment rows only: negative deltas not tied to a sale or invoice, newest first."""
    if not db.session.get(Customer, customer_id):
        raise NotFoundError(f"Customer {customer_id} not found", details={"customer_id": customer_id})
    return (
        db.session.query(CustomerBalance)
        .filter(
            CustomerBalance.customer_id == customer_id,
            CustomerBalance.amount < 0,
            CustomerBalance.sale_id.is_(None),
            CustomerBalance.invoice_id.is_(None),
        )
        .order_by(CustomerBalance.created_at.desc(), CustomerBalance.id.desc())
        .limit(limit)
        .all()
    )

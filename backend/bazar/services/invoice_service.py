# Overview: Invoice corrections, cancellation and listing after a draft is posted.

"""
Invoice edits.

An invoice keeps its own copy of the sold lines, so it can be corrected
after posting without touching the Sale or its SaleItems. Each edit is a
single transaction:

    lock invoice -> return old lines to stock -> reverse old amount_due
    -> rewrite items and totals -> take new lines out of stock
    -> post new amount_due -> audit event -> commit

Cancelling runs the two release steps and marks the invoice CANCELLED.
A cancelled invoice is never changed again.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..extensions import db
from ..models import Customer, Invoice, InvoiceItem
from ..validation import (
    NotFoundError,
    SaleError,
    ValidationError,
    parse_amount,
    parse_optional_int,
    parse_optional_str,
    require_object,
)
from bazar.money_utils import ZERO, round2, to_decimal
from bazar.time_utils import utcnow
from .audit_service import append_audit_event
from .balance_service import apply_sale, load_customer_for_update, reverse_invoice
from .concurrency import lock_for_update, run_with_retry
from .line_items import LineInput, infer_currency, parse_lines
from .pricing import PAYMENT_STATUS_PAID, PAYMENT_STATUS_PARTIAL, calculate_totals, payment_status
from .stock_service import reduce_for_sale, restore_for_invoice

logger = logging.getLogger(__name__)

INVOICE_STATUS_CANCELLED = "CANCELLED"
INVOICE_STATUS_OVERDUE = "OVERDUE"
INVOICE_STATUSES = (
    PAYMENT_STATUS_PAID,
    PAYMENT_STATUS_PARTIAL,
    INVOICE_STATUS_CANCELLED,
    INVOICE_STATUS_OVERDUE,
)


class InvoiceStateError(SaleError):
    """Change attempted on a cancelled invoice."""
    status_code = 400


def parse_invoice_payload(payload: Any) -> dict:
    """
    Validate an invoice edit body.

    Keys: items (required, non-empty), customer_id, discount, amount_paid,
    notes. Keys left out keep the invoice's current value.
    """
    payload = require_object(payload)
    items = parse_lines(payload.get("items"))
    if not items:
        raise ValidationError("Invoice must have at least one item")

    data: dict[str, Any] = {"items": items}
    if "customer_id" in payload:
        data["customer_id"] = parse_optional_int(payload.get("customer_id"), "customer_id")
    if "discount" in payload:
        data["discount"] = parse_amount(payload.get("discount"), "discount", default=ZERO)
    if "amount_paid" in payload:
        data["amount_paid"] = parse_amount(payload.get("amount_paid"), "amount_paid", default=ZERO)
    if "notes" in payload:
        data["notes"] = parse_optional_str(payload.get("notes"), "notes", max_length=2000)
    return data


def _load_for_update(invoice_id: int) -> Invoice:
    invoice = lock_for_update(db.session.query(Invoice).filter(Invoice.id == invoice_id)).first()
    if not invoice:
        raise NotFoundError(f"Invoice {invoice_id} not found", details={"invoice_id": invoice_id})
    if invoice.status == INVOICE_STATUS_CANCELLED:
        raise InvoiceStateError(
            "Cancelled invoices cannot be changed",
            details={"invoice_id": invoice.id, "status": invoice.status},
        )
    return invoice


def _release(invoice: Invoice, *, user_id: int, reason: str) -> None:
    """Return the invoice's lines to stock and take its amount_due off the customer."""
    for item in sorted(invoice.items, key=lambda i: i.position):
        restore_for_invoice(item, invoice=invoice, user_id=user_id, reason=reason)
    if invoice.customer_id:
        customer = load_customer_for_update(invoice.customer_id)
        reverse_invoice(customer, invoice=invoice, user_id=user_id, description=reason)


def _build_items(lines: list[LineInput]) -> list[InvoiceItem]:
    return [
        InvoiceItem(
            kind=line.kind,
            product_id=line.product_id,
            motorcycle_id=line.motorcycle_id,
            quantity=line.quantity,
            unit_price=line.unit_price,
            discount=line.discount,
            tax_rate=line.tax_rate,
            line_total=line.line_total,
            notes=line.notes,
            position=line.position,
        )
        for line in lines
    ]


def _snapshot(invoice: Invoice) -> dict:
    return {
        "customer_id": invoice.customer_id,
        "currency": invoice.currency,
        "items": len(invoice.items),
        "total": str(invoice.total),
        "amount_paid": str(invoice.amount_paid),
        "amount_due": str(invoice.amount_due),
        "status": invoice.status,
    }


def update_invoice(invoice_id: int, payload: Any, *, user_id: int) -> Invoice:
    """
    Rewrite an invoice's lines and amounts.

    Stock and customer debt end up as if the invoice had been posted with
    the new lines in the first place. Currency is re-inferred from the new
    lines and status from the new amounts. The Sale is left untouched.
    """
    data = parse_invoice_payload(payload)

    def _update() -> Invoice:
        invoice = _load_for_update(invoice_id)

        customer_id = data["customer_id"] if "customer_id" in data else invoice.customer_id
        if invoice.sale is not None and invoice.sale.type == "WHOLESALE" and not customer_id:
            raise ValidationError("Customer is required for wholesale sales")
        if customer_id and not db.session.get(Customer, customer_id):
            raise NotFoundError(f"Customer {customer_id} not found", details={"customer_id": customer_id})

        lines = data["items"]
        totals = calculate_totals(lines, data.get("discount", invoice.discount))
        if totals.total <= ZERO:
            raise ValidationError("Invoice total must be greater than 0")
        amount_paid = round2(data.get("amount_paid", to_decimal(invoice.amount_paid)))

        before = _snapshot(invoice)
        reason = f"Invoice {invoice.invoice_number} edited"
        _release(invoice, user_id=user_id, reason=reason)

        now = utcnow()
        status = payment_status(amount_paid, totals.total)
        paid = status == PAYMENT_STATUS_PAID

        invoice.items = _build_items(lines)
        invoice.customer_id = customer_id
        invoice.currency = infer_currency(line.kind for line in lines)
        invoice.subtotal = totals.subtotal
        invoice.tax_amount = totals.tax_amount
        invoice.discount = totals.discount
        invoice.total = totals.total
        invoice.amount_paid = amount_paid
        invoice.amount_due = totals.total - amount_paid
        invoice.status = status
        invoice.paid_at = (invoice.paid_at or now) if paid else None
        if "notes" in data:
            invoice.notes = data["notes"]
        invoice.updated_at = now
        db.session.flush()

        for item in invoice.items:
            reduce_for_sale(item, sale=invoice.sale, invoice=invoice, user_id=user_id)

        if customer_id:
            apply_sale(
                load_customer_for_update(customer_id),
                currency=invoice.currency,
                amount_due=invoice.amount_due,
                paid=paid,
                sale=invoice.sale,
                invoice=invoice,
                user_id=user_id,
                description=reason,
            )

        append_audit_event(
            event_type="invoice.updated",
            entity_type="invoice",
            entity_id=invoice.id,
            actor_user_id=user_id,
            note=invoice.invoice_number,
            payload={"before": before, "after": _snapshot(invoice)},
        )
        db.session.commit()

        logger.info(
            "Invoice %s (%s) edited: total=%s %s status=%s",
            invoice.id, invoice.invoice_number, invoice.total, invoice.currency, invoice.status,
        )
        return invoice

    return run_with_retry(_update)


def cancel_invoice(invoice_id: int, *, user_id: int, reason: Optional[str] = None) -> Invoice:
    """Return the invoice's stock, reverse its debt and mark it CANCELLED."""

    def _cancel() -> Invoice:
        invoice = _load_for_update(invoice_id)

        label = f"Invoice {invoice.invoice_number} cancelled"
        if reason:
            label = f"{label}: {reason}"
        _release(invoice, user_id=user_id, reason=label)

        now = utcnow()
        invoice.status = INVOICE_STATUS_CANCELLED
        invoice.cancelled_at = now
        invoice.updated_at = now

        append_audit_event(
            event_type="invoice.cancelled",
            entity_type="invoice",
            entity_id=invoice.id,
            actor_user_id=user_id,
            note=reason,
            payload={"amount_due": str(invoice.amount_due), "currency": invoice.currency},
        )
        db.session.commit()

        logger.info("Invoice %s (%s) cancelled", invoice.id, invoice.invoice_number)
        return invoice

    return run_with_retry(_cancel)


def get_invoice(invoice_id: int) -> Invoice:
    invoice = db.session.get(Invoice, invoice_id)
    if not invoice:
        raise NotFoundError(f"Invoice {invoice_id} not found", details={"invoice_id": invoice_id})
    return invoice


def list_invoices(
    *,
    status: Optional[str] = None,
    customer_id: Optional[int] = None,
    search: Optional[str] = None,
    limit: int = 100,
) -> list[Invoice]:
    query = db.session.query(Invoice)
    if status:
        status = status.strip().upper()
        if status not in INVOICE_STATUSES:
            raise ValidationError(f"Unknown invoice status: {status}")
        query = query.filter(Invoice.status == status)
    if customer_id is not None:
        query = query.filter(Invoice.customer_id == customer_id)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(Invoice.invoice_number.ilike(pattern) | Invoice.notes.ilike(pattern))
    return query.order_by(Invoice.invoice_date.desc(), Invoice.id.desc()).limit(limit).all()


def list_customer_invoices(customer_id: int, *, limit: int = 100) -> list[Invoice]:
    if not db.session.get(Customer, customer_id):
        raise NotFoundError(f"Customer {customer_id} not found", details={"customer_id": customer_id})
    return list_invoices(customer_id=customer_id, limit=limit)

"""
Draft finalization: turns one draft into a Sale + Invoice.

Everything below happens in a single transaction with a single commit:

    validate draft -> currency -> amounts -> invoice number
    -> Sale (+ item copies) -> Invoice (+ item copies)
    -> customer debt/balance -> stock per item (position order)
    -> draft FINALIZED -> audit event -> commit

Any failure (bad draft, insufficient stock, duplicate invoice number)
rolls the whole unit back: no sale, invoice, stock movement, activity or
customer change survives. Lock and version conflicts are retried by
run_with_retry; business errors are not.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import Optional

from flask import current_app

from ..extensions import db
from ..models import Draft, Invoice, InvoiceItem, Sale, SaleItem
from ..models.drafts import DRAFT_OPEN_STATUSES, DRAFT_STATUS_FINALIZED
from ..validation import DraftStateError, DraftValidationError, NotFoundError
from bazar.money_utils import ZERO, round2
from bazar.time_utils import utcnow
from .audit_service import append_audit_event
from .balance_service import apply_sale, load_customer_for_update
from .concurrency import lock_for_update, run_with_retry
from .invoice_numbers import ensure_invoice_number_available, flush_invoice, generate_invoice_number
from .line_items import infer_currency
from .pricing import PAYMENT_STATUS_PAID, calculate_totals, payment_status
from .stock_service import reduce_for_sale

logger = logging.getLogger(__name__)

SALE_STATUS_COMPLETED = "COMPLETED"


@dataclass(frozen=True)
class FinalizeResult:
    sale_id: int
    invoice_id: int
    invoice_number: str


def check_finalizable(draft: Draft) -> None:
    """Raise unless the draft can be posted. Performs no writes."""
    if draft.status not in DRAFT_OPEN_STATUSES:
        raise DraftStateError(
            f"Draft cannot be finalized from status {draft.status}",
            details={"draft_id": draft.id, "status": draft.status},
        )

    errors = []
    if draft.type == "WHOLESALE" and not draft.customer_id:
        errors.append("Customer is required for wholesale sales")
    if not draft.items:
        errors.append("Draft must have at least one item")
    for item in draft.items:
        if item.quantity is None or item.quantity <= 0:
            errors.append(f"Item {item.position + 1} must have a quantity greater than 0")
        if item.unit_price is None or item.unit_price < 0:
            errors.append(f"Item {item.position + 1} must have a unit price of 0 or more")
    if not errors and calculate_totals(draft.items, draft.discount).total <= ZERO:
        errors.append("Draft total must be greater than 0")

    if errors:
        raise DraftValidationError(errors, details={"draft_id": draft.id})


def finalize_draft(
    draft_id: int,
    *,
    user_id: int,
    payment_method: str = "CASH",
    amount_paid: Decimal = ZERO,
    invoice_number: Optional[str] = None,
    currency: Optional[str] = None,
    notes: Optional[str] = None,
) -> FinalizeResult:
    def _post() -> FinalizeResult:
        return _post_draft(
            draft_id,
            user_id=user_id,
            payment_method=payment_method,
            amount_paid=round2(amount_paid),
            invoice_number=invoice_number,
            currency=currency,
            notes=notes,
        )

    return run_with_retry(_post)


def _post_draft(
    draft_id: int,
    *,
    user_id: int,
    payment_method: str,
    amount_paid: Decimal,
    invoice_number: Optional[str],
    currency: Optional[str],
    notes: Optional[str],
) -> FinalizeResult:
    draft = lock_for_update(db.session.query(Draft).filter(Draft.id == draft_id)).first()
    if not draft:
        raise NotFoundError(f"Draft {draft_id} not found", details={"draft_id": draft_id})

    check_finalizable(draft)

    customer = load_customer_for_update(draft.customer_id) if draft.customer_id else None
    items = sorted(draft.items, key=lambda item: item.position)

    currency = currency or infer_currency(item.kind for item in items)
    totals = calculate_totals(items, draft.discount)
    amount_due = totals.total - amount_paid
    status = payment_status(amount_paid, totals.total)
    paid = status == PAYMENT_STATUS_PAID

    now = utcnow()
    if invoice_number:
        ensure_invoice_number_available(invoice_number)
    else:
        invoice_number = generate_invoice_number(customer.name if customer else None, now)

    sale = Sale(
        type=draft.type,
        status=SALE_STATUS_COMPLETED,
        customer_id=draft.customer_id,
        currency=currency,
        subtotal=totals.subtotal,
        tax_amount=totals.tax_amount,
        discount=totals.discount,
        total=totals.total,
        payment_method=payment_method,
        amount_paid=amount_paid,
        amount_due=amount_due,
        created_by_user_id=user_id,
        created_at=now,
        items=[SaleItem(**item.line_fields()) for item in items],
    )
    db.session.add(sale)
    db.session.flush()

    invoice = Invoice(
        invoice_number=invoice_number,
        status=status,
        sale_id=sale.id,
        customer_id=draft.customer_id,
        draft_id=draft.id,
        currency=currency,
        subtotal=totals.subtotal,
        tax_amount=totals.tax_amount,
        discount=totals.discount,
        total=totals.total,
        amount_paid=amount_paid,
        amount_due=amount_due,
        invoice_date=now,
        due_date=now + timedelta(days=current_app.config.get("INVOICE_DUE_DAYS", 30)),
        paid_at=now if paid else None,
        notes=notes if notes is not None else draft.notes,
        created_by_user_id=user_id,
        created_at=now,
        items=[InvoiceItem(**item.line_fields()) for item in items],
    )
    db.session.add(invoice)
    flush_invoice(invoice)

    if customer is not None:
        apply_sale(
            customer,
            currency=currency,
            amount_due=amount_due,
            paid=paid,
            sale=sale,
            invoice=invoice,
            user_id=user_id,
        )

    for item in items:
        reduce_for_sale(item, sale=sale, invoice=invoice, user_id=user_id)

    draft.status = DRAFT_STATUS_FINALIZED
    draft.sale_id = sale.id
    draft.invoice_id = invoice.id
    draft.payment_method = payment_method
    draft.finalized_at = now

    append_audit_event(
        event_type="sale.created",
        entity_type="sale",
        entity_id=sale.id,
        actor_user_id=user_id,
        note=invoice_number,
        payload={
            "draft_id": draft.id,
            "invoice_id": invoice.id,
            "currency": currency,
            "total": str(totals.total),
            "amount_paid": str(amount_paid),
            "amount_due": str(amount_due),
            "status": status,
        },
    )
    append_audit_event(
        event_type="draft.finalized",
        entity_type="draft",
        entity_id=draft.id,
        actor_user_id=user_id,
        payload={"sale_id": sale.id, "invoice_id": invoice.id},
    )

    result = FinalizeResult(sale_id=sale.id, invoice_id=invoice.id, invoice_number=invoice_number)
    db.session.commit()

    logger.info(
        "Draft %s finalized: sale=%s invoice=%s (%s) total=%s %s status=%s",
        draft_id, result.sale_id, result.invoice_id, invoice_number, totals.total, currency, status,
    )
    return result

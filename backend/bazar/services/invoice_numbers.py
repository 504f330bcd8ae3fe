# Overview: Human-readable invoice numbers.

from __future__ import annotations

import secrets
import string
from datetime import datetime

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Invoice
from ..validation import ConflictError
from bazar.time_utils import date_stamp

_BASE36 = string.digits + string.ascii_uppercase
RANDOM_CODE_LENGTH = 6
FALLBACK_PREFIX = "INVOICE"
# Leaves room for "-YYYY-MM-DD-CODE" inside invoices.invoice_number (128)
MAX_PREFIX_LENGTH = 100


class InvoiceNumberConflict(ConflictError):
    """Raised when an invoice number is already taken."""


def random_code(length: int = RANDOM_CODE_LENGTH) -> str:
    return "".join(secrets.choice(_BASE36) for _ in range(length))


def generate_invoice_number(customer_name: str | None, now: datetime) -> str:
    """
    "<customer name>-<YYYY-MM-DD>-<CODE>" for customer sales,
    "INVOICE-<YYYY-MM-DD>-<CODE>" otherwise. Long names are cut to
    MAX_PREFIX_LENGTH characters.

    The random code is not checked against existing numbers; the unique
    constraint on invoices.invoice_number is the only guard.
    """
    prefix = (customer_name or "").strip()[:MAX_PREFIX_LENGTH].rstrip() or FALLBACK_PREFIX
    return f"{prefix}-{date_stamp(now)}-{random_code()}"


def ensure_invoice_number_available(invoice_number: str) -> None:
    """
    Reject a caller-supplied number that is already in use.

    Runs inside the posting transaction, so the check and the insert are
    covered by the same unique constraint.
    """
    exists = db.session.query(Invoice.id).filter_by(invoice_number=invoice_number).first()
    if exists:
        raise InvoiceNumberConflict(
            f"Invoice number {invoice_number} already exists",
            details={"invoice_number": invoice_number},
        )


def flush_invoice(invoice: Invoice) -> None:
    """Flush a new invoice, reporting a number collision as a conflict."""
    try:
        db.session.flush()
    except IntegrityError as exc:
        if "invoice_number" not in str(exc.orig):
            raise
        raise InvoiceNumberConflict(
            f"Invoice number {invoice.invoice_number} already exists",
            details={"invoice_number": invoice.invoice_number},
        ) from exc

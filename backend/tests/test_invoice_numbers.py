# Overview: Pytest coverage for invoice number generation and uniqueness.

import re
from datetime import datetime
from decimal import Decimal

import pytest

from bazar.models import Invoice
from bazar.services.invoice_numbers import (
    MAX_PREFIX_LENGTH,
    InvoiceNumberConflict,
    ensure_invoice_number_available,
    flush_invoice,
    generate_invoice_number,
    random_code,
)


NOW = datetime(2026, 3, 15, 10, 30)


def _invoice(number, user_id):
    return Invoice(
        invoice_number=number,
        status="PAID",
        currency="IQD",
        subtotal=Decimal("1"),
        tax_amount=Decimal("0"),
        total=Decimal("1"),
        amount_paid=Decimal("1"),
        amount_due=Decimal("0"),
        invoice_date=NOW,
        created_by_user_id=user_id,
    )


class TestGenerate:
    def test_customer_prefix(self):
        number = generate_invoice_number("Ahmed Garage", NOW)
        assert re.fullmatch(r"Ahmed Garage-2026-03-15-[0-9A-Z]{6}", number)

    def test_fallback_prefix(self):
        number = generate_invoice_number(None, NOW)
        assert re.fullmatch(r"INVOICE-2026-03-15-[0-9A-Z]{6}", number)

    def test_blank_customer_name_uses_fallback(self):
        assert generate_invoice_number("   ", NOW).startswith("INVOICE-")

    def test_long_customer_name_fits_column(self):
        number = generate_invoice_number("X" * 255, NOW)
        assert len(number) <= Invoice.__table__.c.invoice_number.type.length
        assert number.startswith("X" * MAX_PREFIX_LENGTH + "-2026-03-15-")

    def test_random_code_alphabet(self):
        assert re.fullmatch(r"[0-9A-Z]{6}", random_code())


class TestUniqueness:
    def test_available_number_passes(self, db_session):
        ensure_invoice_number_available("INV-1")

    def test_taken_number_conflicts(self, db_session, user):
        db_session.add(_invoice("INV-1", user.id))
        db_session.commit()

        with pytest.raises(InvoiceNumberConflict) as exc:
            ensure_invoice_number_available("INV-1")
        assert exc.value.status_code == 409

    def test_flush_reports_unique_violation_as_conflict(self, db_session, user):
        db_session.add(_invoice("INV-2", user.id))
        db_session.commit()

        duplicate = _invoice("INV-2", user.id)
        db_session.add(duplicate)
        with pytest.raises(InvoiceNumberConflict):
            flush_invoice(duplicate)
        db_session.rollback()

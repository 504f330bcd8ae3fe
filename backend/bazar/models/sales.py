from __future__ import annotations

from ..extensions import db
from bazar.money_utils import to_number
from bazar.time_utils import to_utc_z
from .line_columns import LineColumnsMixin


class Sale(db.Model):
    """
    Completed sale, created once from a finalized draft.

    IMMUTABLE: Financial fields and items are frozen at creation. Later
    edits happen on the Invoice, which carries its own item copy.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_customer_created", "customer_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    type = db.Column(db.String(16), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="COMPLETED", index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    currency = db.Column(db.String(3), nullable=False)

    subtotal = db.Column(db.Numeric(12, 2), nullable=False)
    tax_amount = db.Column(db.Numeric(12, 2), nullable=False)
    discount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total = db.Column(db.Numeric(12, 2), nullable=False)

    payment_method = db.Column(db.String(32), nullable=True)
    amount_paid = db.Column(db.Numeric(12, 2), nullable=False)
    # total - amount_paid; negative means the customer overpaid
    amount_due = db.Column(db.Numeric(12, 2), nullable=False)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    items = db.relationship(
        "SaleItem",
        back_populates="sale",
        order_by="SaleItem.position",
        cascade="all, delete-orphan",
        lazy=True,
    )

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "type": self.type,
            "status": self.status,
            "customer_id": self.customer_id,
            "currency": self.currency,
            "subtotal": to_number(self.subtotal),
            "tax_amount": to_number(self.tax_amount),
            "discount": to_number(self.discount),
            "total": to_number(self.total),
            "payment_method": self.payment_method,
            "amount_paid": to_number(self.amount_paid),
            "amount_due": to_number(self.amount_due),
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(LineColumnsMixin, db.Model):
    __tablename__ = "sale_items"
    __table_args__ = {"sqlite_autoincrement": True}

    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)

    sale = db.relationship("Sale", back_populates="items")

    def to_dict(self) -> dict:
        data = self.line_dict()
        data["sale_id"] = self.sale_id
        return data


class Invoice(db.Model):
    """
    Billing document for a sale.

    STATUS: PAID, PARTIALLY_PAID, CANCELLED, OVERDUE. A finalized draft
    produces PAID or PARTIALLY_PAID; zero payment is PARTIALLY_PAID.

    sale_id is nullable so invoices created outside the draft flow do not
    need a sale; when present it is unique (one invoice per sale).

    Unlike the Sale, an invoice's items and amounts may be rewritten later
    (invoice_service.update_invoice) or the invoice cancelled. Stock and
    customer debt follow the invoice, never the sale.
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.Index("ix_invoices_customer_date", "customer_id", "invoice_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    invoice_number = db.Column(db.String(128), nullable=False, unique=True)
    status = db.Column(db.String(16), nullable=False, index=True)

    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, unique=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    draft_id = db.Column(db.Integer, nullable=True, unique=True)
    currency = db.Column(db.String(3), nullable=False)

    subtotal = db.Column(db.Numeric(12, 2), nullable=False)
    tax_amount = db.Column(db.Numeric(12, 2), nullable=False)
    discount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total = db.Column(db.Numeric(12, 2), nullable=False)
    amount_paid = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    amount_due = db.Column(db.Numeric(12, 2), nullable=False)

    invoice_date = db.Column(db.DateTime(timezone=True), nullable=False)
    due_date = db.Column(db.DateTime(timezone=True), nullable=True)
    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    sale = db.relationship("Sale", backref=db.backref("invoice", uselist=False, lazy=True))
    items = db.relationship(
        "InvoiceItem",
        back_populates="invoice",
        order_by="InvoiceItem.position",
        cascade="all, delete-orphan",
        lazy=True,
    )

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "status": self.status,
            "sale_id": self.sale_id,
            "customer_id": self.customer_id,
            "draft_id": self.draft_id,
            "currency": self.currency,
            "subtotal": to_number(self.subtotal),
            "tax_amount": to_number(self.tax_amount),
            "discount": to_number(self.discount),
            "total": to_number(self.total),
            "amount_paid": to_number(self.amount_paid),
            "amount_due": to_number(self.amount_due),
            "invoice_date": to_utc_z(self.invoice_date),
            "due_date": to_utc_z(self.due_date),
            "paid_at": to_utc_z(self.paid_at),
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "cancelled_at": to_utc_z(self.cancelled_at),
            "version_id": self.version_id,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class InvoiceItem(LineColumnsMixin, db.Model):
    __tablename__ = "invoice_items"
    __table_args__ = {"sqlite_autoincrement": True}

    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=False, index=True)

    invoice = db.relationship("Invoice", back_populates="items")

    def to_dict(self) -> dict:
        data = self.line_dict()
        data["invoice_id"] = self.invoice_id
        return data

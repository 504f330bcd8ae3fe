from __future__ import annotations

from ..extensions import db
from bazar.money_utils import to_number
from bazar.time_utils import to_utc_z
from .line_columns import LineColumnsMixin

DRAFT_STATUS_CREATED = "CREATED"
DRAFT_STATUS_READY = "READY"
DRAFT_STATUS_FINALIZED = "FINALIZED"
DRAFT_STATUS_CANCELLED = "CANCELLED"
DRAFT_STATUSES = (DRAFT_STATUS_CREATED, DRAFT_STATUS_READY, DRAFT_STATUS_FINALIZED, DRAFT_STATUS_CANCELLED)
# Statuses a draft can be edited or finalized from
DRAFT_OPEN_STATUSES = (DRAFT_STATUS_CREATED, DRAFT_STATUS_READY)


class Draft(db.Model):
    """
    Mutable sales draft (cart).

    LIFECYCLE: CREATED <-> READY while the owner edits it; FINALIZED once
    posted into a Sale + Invoice; CANCELLED when abandoned. FINALIZED and
    CANCELLED are terminal. Drafts never touch stock or customer balances;
    only finalization does.
    """
    __tablename__ = "drafts"
    __table_args__ = (
        db.Index("ix_drafts_owner_status", "created_by_user_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # RETAIL (mufrad) or WHOLESALE (jumla)
    type = db.Column(db.String(16), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=DRAFT_STATUS_CREATED, index=True)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)

    subtotal = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    tax_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    payment_method = db.Column(db.String(32), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    # Set on finalization
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, unique=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=True, unique=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    finalized_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("Customer")
    items = db.relationship(
        "DraftItem",
        back_populates="draft",
        order_by="DraftItem.position",
        cascade="all, delete-orphan",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "type": self.type,
            "status": self.status,
            "customer_id": self.customer_id,
            "subtotal": to_number(self.subtotal),
            "tax_amount": to_number(self.tax_amount),
            "discount": to_number(self.discount),
            "total": to_number(self.total),
            "payment_method": self.payment_method,
            "notes": self.notes,
            "sale_id": self.sale_id,
            "invoice_id": self.invoice_id,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "finalized_at": to_utc_z(self.finalized_at),
            "cancelled_at": to_utc_z(self.cancelled_at),
            "version_id": self.version_id,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class DraftItem(LineColumnsMixin, db.Model):
    """Line on a draft. Replaced wholesale when the draft is updated."""
    __tablename__ = "draft_items"
    __table_args__ = {"sqlite_autoincrement": True}

    draft_id = db.Column(db.Integer, db.ForeignKey("drafts.id"), nullable=False, index=True)

    draft = db.relationship("Draft", back_populates="items")

    def to_dict(self) -> dict:
        data = self.line_dict()
        data["draft_id"] = self.draft_id
        return data

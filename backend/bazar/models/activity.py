from __future__ import annotations

from ..extensions import db
from bazar.time_utils import to_utc_z


class Activity(db.Model):
    """
    Per-item audit trail for products and motorcycles.

    changes holds a JSON map. Field edits use {field: {"old": .., "new": ..}};
    INVOICED rows carry the invoice number, quantity and prices instead.

    IMMUTABLE: Records are never updated or deleted.
    """
    __tablename__ = "activities"
    __table_args__ = (
        db.Index("ix_activities_entity_created", "entity_type", "entity_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    entity_type = db.Column(db.String(16), nullable=False)
    entity_id = db.Column(db.Integer, nullable=False)
    type = db.Column(db.String(32), nullable=False, index=True)
    description = db.Column(db.Text, nullable=False)
    changes = db.Column(db.JSON, nullable=True)

    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=True, index=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "type": self.type,
            "description": self.description,
            "changes": self.changes,
            "invoice_id": self.invoice_id,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }

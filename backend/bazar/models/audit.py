from __future__ import annotations

from ..extensions import db
from bazar.time_utils import to_utc_z


class AuditEvent(db.Model):
    """
    Operational audit log (sale created, draft finalized/cancelled,
    customer payments).

    Separate from Activity: Activity describes what happened to one stock
    item, AuditEvent records business operations across entities.

    IMMUTABLE: Records are never updated or deleted.
    """
    __tablename__ = "audit_events"
    __table_args__ = (
        db.Index("ix_audit_events_entity", "entity_type", "entity_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # e.g. sale.created, draft.finalized, draft.cancelled
    event_type = db.Column(db.String(64), nullable=False, index=True)
    entity_type = db.Column(db.String(32), nullable=False)
    entity_id = db.Column(db.Integer, nullable=False)

    actor_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    note = db.Column(db.String(255), nullable=True)
    payload = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "event_type": self.event_type,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "actor_user_id": self.actor_user_id,
            "note": self.note,
            "payload": self.payload,
            "created_at": to_utc_z(self.created_at),
        }

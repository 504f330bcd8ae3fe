# Overview: Pytest coverage for the audit log and its bazar.audit log lines.

import logging

from bazar.models import AuditEvent
from bazar.services.audit_service import append_audit_event


def _audit_lines(caplog):
    return [r.getMessage() for r in caplog.records if r.name == "bazar.audit"]


class TestAuditLogLines:
    def test_line_waits_for_commit(self, db_session, user, caplog):
        caplog.set_level(logging.INFO, logger="bazar.audit")

        append_audit_event(event_type="draft.created", entity_type="draft", entity_id=1, actor_user_id=user.id)
        assert _audit_lines(caplog) == []

        db_session.commit()
        lines = _audit_lines(caplog)
        assert len(lines) == 1
        assert lines[0].startswith(f"draft.created draft=1 user={user.id}")

    def test_rollback_drops_line(self, db_session, user, caplog):
        caplog.set_level(logging.INFO, logger="bazar.audit")

        append_audit_event(event_type="sale.created", entity_type="sale", entity_id=7, actor_user_id=user.id)
        db_session.rollback()
        append_audit_event(event_type="draft.cancelled", entity_type="draft", entity_id=2, actor_user_id=user.id)
        db_session.commit()

        lines = _audit_lines(caplog)
        assert len(lines) == 1
        assert lines[0].startswith("draft.cancelled draft=2")
        assert db_session.query(AuditEvent).filter_by(event_type="sale.created").count() == 0

    def test_event_row_is_flushed_with_id(self, db_session, user):
        ev = append_audit_event(
            event_type="customer.payment_recorded",
            entity_type="customer",
            entity_id=3,
            actor_user_id=user.id,
            payload={"amount_iqd": "10.00"},
        )

        assert ev.id is not None
        assert ev.payload == {"amount_iqd": "10.00"}

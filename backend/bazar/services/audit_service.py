# Overview: Operational audit log; append-only, written in the caller's transaction.

from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy import event
from sqlalchemy.orm import Session

from ..extensions import db
from ..models import AuditEvent

audit_logger = logging.getLogger("bazar.audit")

_PENDING_LINES = "bazar.audit.pending"


def append_audit_event(
    *,
    event_type: str,
    entity_type: str,
    entity_id: int,
    actor_user_id: int | None = None,
    note: Optional[str] = None,
    payload: Optional[dict[str, Any]] = None,
) -> AuditEvent:
    """
    Append-only audit event.

    - No domain logic here.
    - No deletes/updates of existing events.
    - The bazar.audit log line is held on the session and written only
      once the surrounding transaction commits; a rollback drops it.
    """
    ev = AuditEvent(
        event_type=event_type,
        entity_type=entity_type,
        entity_id=entity_id,
        actor_user_id=actor_user_id,
        note=note,
        payload=payload,
    )
    db.session.add(ev)
    db.session.flush()  # ensures ev.id is assigned without committing

    db.session.info.setdefault(_PENDING_LINES, []).append(
        (event_type, entity_type, entity_id, actor_user_id, payload or {})
    )
    return ev


@event.listens_for(Session, "after_commit")
def _write_committed_lines(session):
    for line in session.info.pop(_PENDING_LINES, []):
        audit_logger.info("%s %s=%s user=%s %s", *line)


@event.listens_for(Session, "after_rollback")
def _drop_rolled_back_lines(session):
    session.info.pop(_PENDING_LINES, None)

# Overview: Draft (cart) lifecycle: create, edit, status changes, cancel, finalize.

from __future__ import annotations

from typing import Any, Optional

from ..extensions import db
from ..models import Customer, Draft, DraftItem, Motorcycle, Product
from ..models.drafts import (
    DRAFT_OPEN_STATUSES,
    DRAFT_STATUS_CANCELLED,
    DRAFT_STATUS_CREATED,
    DRAFT_STATUS_FINALIZED,
    DRAFT_STATUS_READY,
    DRAFT_STATUSES,
)
from ..validation import (
    DraftPermissionError,
    DraftStateError,
    NotFoundError,
    ValidationError,
    parse_amount,
    parse_optional_int,
    parse_optional_str,
    parse_sale_type,
    require_object,
)
from bazar.money_utils import ZERO
from bazar.time_utils import utcnow
from .audit_service import append_audit_event
from .concurrency import lock_for_update, run_with_retry
from .line_items import KIND_MOTORCYCLE, LineInput, parse_lines
from .pricing import calculate_totals
from .sale_poster import FinalizeResult, finalize_draft

# Manual transitions. FINALIZED is reached only through finalize().
ALLOWED_TRANSITIONS = {
    DRAFT_STATUS_CREATED: (DRAFT_STATUS_READY, DRAFT_STATUS_CANCELLED),
    DRAFT_STATUS_READY: (DRAFT_STATUS_CREATED, DRAFT_STATUS_CANCELLED),
    DRAFT_STATUS_FINALIZED: (),
    DRAFT_STATUS_CANCELLED: (),
}


def parse_draft_payload(payload: Any, *, partial: bool = False) -> dict:
    """
    Validate a create/update body.

    Keys: type, customer_id, discount, notes, payment_method, items. With
    partial=True only the keys present are returned (update semantics).
    """
    payload = require_object(payload)
    data: dict[str, Any] = {}

    if "type" in payload or not partial:
        data["type"] = parse_sale_type(payload.get("type"))
    if "customer_id" in payload or not partial:
        data["customer_id"] = parse_optional_int(payload.get("customer_id"), "customer_id")
    if "discount" in payload or not partial:
        data["discount"] = parse_amount(payload.get("discount"), "discount", default=ZERO)
    if "notes" in payload or not partial:
        data["notes"] = parse_optional_str(payload.get("notes"), "notes", max_length=2000)
    if "payment_method" in payload or not partial:
        data["payment_method"] = parse_optional_str(payload.get("payment_method"), "payment_method", max_length=32)
    if "items" in payload or not partial:
        data["items"] = parse_lines(payload.get("items"))
    return data


def _check_customer(sale_type: str, customer_id: Optional[int]) -> None:
    if sale_type == "WHOLESALE" and not customer_id:
        raise ValidationError("Customer is required for wholesale sales")
    if customer_id and not db.session.get(Customer, customer_id):
        raise NotFoundError(f"Customer {customer_id} not found", details={"customer_id": customer_id})


def _check_references(lines: list[LineInput]) -> None:
    for line in lines:
        model = Motorcycle if line.kind == KIND_MOTORCYCLE else Product
        if not db.session.get(model, line.entity_id):
            raise NotFoundError(
                f"{line.kind.capitalize()} {line.entity_id} not found",
                details={"kind": line.kind, "entity_id": line.entity_id},
            )


def _build_items(lines: list[LineInput]) -> list[DraftItem]:
    return [
        DraftItem(
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


def _apply_totals(draft: Draft) -> None:
    totals = calculate_totals(draft.items, draft.discount)
    if totals.total < ZERO:
        raise ValidationError("discount exceeds the draft amount")
    draft.subtotal = totals.subtotal
    draft.tax_amount = totals.tax_amount
    draft.discount = totals.discount
    draft.total = totals.total


def _load_owned_for_update(draft_id: int, user_id: int) -> Draft:
    draft = lock_for_update(db.session.query(Draft).filter(Draft.id == draft_id)).first()
    if not draft:
        raise NotFoundError(f"Draft {draft_id} not found", details={"draft_id": draft_id})
    if draft.created_by_user_id != user_id:
        raise DraftPermissionError("Only the draft owner can change it", details={"draft_id": draft_id})
    return draft


def create_draft(payload: Any, *, user_id: int) -> Draft:
    data = parse_draft_payload(payload)
    _check_customer(data["type"], data["customer_id"])
    _check_references(data["items"])

    draft = Draft(
        type=data["type"],
        status=DRAFT_STATUS_CREATED,
        customer_id=data["customer_id"],
        discount=data["discount"],
        notes=data["notes"],
        payment_method=data["payment_method"],
        created_by_user_id=user_id,
        items=_build_items(data["items"]),
    )
    _apply_totals(draft)

    db.session.add(draft)
    db.session.flush()
    append_audit_event(
        event_type="draft.created",
        entity_type="draft",
        entity_id=draft.id,
        actor_user_id=user_id,
        payload={"type": draft.type, "items": len(draft.items), "total": str(draft.total)},
    )
    db.session.commit()
    return draft


def update_draft(draft_id: int, payload: Any, *, user_id: int) -> Draft:
    data = parse_draft_payload(payload, partial=True)

    def _update() -> Draft:
        draft = _load_owned_for_update(draft_id, user_id)
        if draft.status not in DRAFT_OPEN_STATUSES:
            raise DraftStateError(
                f"Draft cannot be edited in status {draft.status}",
                details={"draft_id": draft.id, "status": draft.status},
            )

        sale_type = data.get("type", draft.type)
        customer_id = data["customer_id"] if "customer_id" in data else draft.customer_id
        _check_customer(sale_type, customer_id)

        draft.type = sale_type
        draft.customer_id = customer_id
        for field in ("discount", "notes", "payment_method"):
            if field in data:
                setattr(draft, field, data[field])

        if "items" in data:
            _check_references(data["items"])
            draft.items = _build_items(data["items"])

        _apply_totals(draft)
        draft.updated_at = utcnow()
        db.session.commit()
        return draft

    return run_with_retry(_update)


def get_draft(draft_id: int) -> Draft:
    draft = db.session.get(Draft, draft_id)
    if not draft:
        raise NotFoundError(f"Draft {draft_id} not found", details={"draft_id": draft_id})
    return draft


def list_user_drafts(user_id: int, *, status: Optional[str] = None) -> list[Draft]:
    query = db.session.query(Draft).filter(Draft.created_by_user_id == user_id)
    if status:
        status = status.strip().upper()
        if status not in DRAFT_STATUSES:
            raise ValidationError(f"Unknown draft status: {status}")
        query = query.filter(Draft.status == status)
    return query.order_by(Draft.updated_at.desc(), Draft.id.desc()).all()


def update_draft_status(draft_id: int, status: Any, *, user_id: int) -> Draft:
    if not isinstance(status, str) or status.strip().upper() not in DRAFT_STATUSES:
        raise ValidationError("status must be one of " + ", ".join(DRAFT_STATUSES))
    target = status.strip().upper()
    if target == DRAFT_STATUS_FINALIZED:
        raise DraftStateError("Use finalize to post a draft")

    def _update() -> Draft:
        draft = _load_owned_for_update(draft_id, user_id)
        if draft.status == target:
            return draft
        if target not in ALLOWED_TRANSITIONS[draft.status]:
            raise DraftStateError(
                f"Cannot change draft status from {draft.status} to {target}",
                details={"draft_id": draft.id, "from": draft.status, "to": target},
            )
        if target == DRAFT_STATUS_CANCELLED:
            _mark_cancelled(draft, user_id)
        else:
            draft.status = target
            draft.updated_at = utcnow()
        db.session.commit()
        return draft

    return run_with_retry(_update)


def _mark_cancelled(draft: Draft, user_id: int) -> None:
    now = utcnow()
    draft.status = DRAFT_STATUS_CANCELLED
    draft.cancelled_at = now
    draft.updated_at = now
    append_audit_event(
        event_type="draft.cancelled",
        entity_type="draft",
        entity_id=draft.id,
        actor_user_id=user_id,
    )


def cancel_draft(draft_id: int, *, user_id: int) -> Draft:
    """Cancel an open draft. No stock or balance effects."""
    def _cancel() -> Draft:
        draft = _load_owned_for_update(draft_id, user_id)
        if draft.status == DRAFT_STATUS_FINALIZED:
            raise DraftStateError("Cannot cancel finalized draft", details={"draft_id": draft.id})
        if draft.status == DRAFT_STATUS_CANCELLED:
            raise DraftStateError("Draft is already cancelled", details={"draft_id": draft.id})
        _mark_cancelled(draft, user_id)
        db.session.commit()
        return draft

    return run_with_retry(_cancel)


def finalize(draft_id: int, *, user_id: int, **options) -> FinalizeResult:
    """Post the draft; options are finalize_draft's keyword arguments."""
    return finalize_draft(draft_id, user_id=user_id, **options)

# Overview: Pytest coverage for the draft lifecycle.

from decimal import Decimal

import pytest

from bazar.models import AuditEvent, Draft, DraftItem, Product
from bazar.services import draft_service
from bazar.validation import (
    DraftPermissionError,
    DraftStateError,
    NotFoundError,
    ValidationError,
)


class TestCreate:
    def test_create_computes_totals(self, db_session, user, product):
        draft = draft_service.create_draft({
            "type": "RETAIL",
            "discount": "5",
            "items": [
                {"product_id": product.id, "quantity": 2, "unit_price": 50, "discount": 10, "tax_rate": "0.15"},
                {"product_id": product.id, "quantity": 1, "unit_price": 20},
            ],
        }, user_id=user.id)

        assert draft.status == "CREATED"
        assert draft.created_by_user_id == user.id
        assert draft.subtotal == Decimal("120.00")
        assert draft.tax_amount == Decimal("13.50")
        assert draft.total == Decimal("118.50")
        assert [item.line_total for item in draft.items] == [Decimal("103.50"), Decimal("20.00")]
        assert [item.position for item in draft.items] == [0, 1]

    @pytest.mark.parametrize("alias,expected", [("MUFRAD", "RETAIL"), ("jumla", "WHOLESALE")])
    def test_sale_type_aliases(self, db_session, user, customer, alias, expected):
        draft = draft_service.create_draft({"type": alias, "customer_id": customer.id}, user_id=user.id)
        assert draft.type == expected

    def test_wholesale_requires_customer(self, db_session, user):
        with pytest.raises(ValidationError) as exc:
            draft_service.create_draft({"type": "WHOLESALE"}, user_id=user.id)
        assert "Customer is required" in str(exc.value)

    def test_unknown_customer(self, db_session, user):
        with pytest.raises(NotFoundError):
            draft_service.create_draft({"type": "RETAIL", "customer_id": 999}, user_id=user.id)

    def test_unknown_product(self, db_session, user):
        with pytest.raises(NotFoundError):
            draft_service.create_draft(
                {"type": "RETAIL", "items": [{"product_id": 999, "unit_price": 1}]},
                user_id=user.id,
            )

    def test_marker_item_stored_as_motorcycle(self, db_session, user, motorcycle):
        draft = draft_service.create_draft(
            {"type": "RETAIL", "items": [{"notes": f"MOTORCYCLE:{motorcycle.id}", "unit_price": 1450}]},
            user_id=user.id,
        )

        item = draft.items[0]
        assert item.kind == "MOTORCYCLE"
        assert item.motorcycle_id == motorcycle.id
        assert item.product_id is None

    def test_header_discount_cannot_exceed_amount(self, db_session, user, product):
        with pytest.raises(ValidationError):
            draft_service.create_draft(
                {"type": "RETAIL", "discount": 500, "items": [{"product_id": product.id, "unit_price": 10}]},
                user_id=user.id,
            )
        assert db_session.query(Draft).count() == 0

    def test_unknown_type(self, db_session, user):
        with pytest.raises(ValidationError):
            draft_service.create_draft({"type": "CREDIT"}, user_id=user.id)


class TestUpdate:
    def test_replaces_items_and_recomputes(self, db_session, user, product, make_draft):
        draft = make_draft([{"product_id": product.id, "quantity": 1, "unit_price": 100}])

        updated = draft_service.update_draft(
            draft.id,
            {"items": [{"product_id": product.id, "quantity": 4, "unit_price": 25}], "notes": "call first"},
            user_id=user.id,
        )

        assert updated.total == Decimal("100.00")
        assert len(updated.items) == 1
        assert updated.items[0].quantity == 4
        assert updated.notes == "call first"
        assert db_session.query(DraftItem).count() == 1

    def test_keeps_items_when_not_given(self, db_session, user, product, make_draft):
        draft = make_draft([{"product_id": product.id, "quantity": 2, "unit_price": 100}])

        updated = draft_service.update_draft(draft.id, {"discount": 50}, user_id=user.id)

        assert len(updated.items) == 1
        assert updated.total == Decimal("150.00")

    def test_only_owner_can_update(self, db_session, other_user, product, make_draft):
        draft = make_draft([{"product_id": product.id, "unit_price": 100}])

        with pytest.raises(DraftPermissionError) as exc:
            draft_service.update_draft(draft.id, {"notes": "x"}, user_id=other_user.id)
        assert exc.value.status_code == 403

    def test_cannot_edit_cancelled(self, db_session, user, product, make_draft):
        draft = make_draft([{"product_id": product.id, "unit_price": 100}])
        draft_service.cancel_draft(draft.id, user_id=user.id)

        with pytest.raises(DraftStateError):
            draft_service.update_draft(draft.id, {"notes": "x"}, user_id=user.id)

    def test_switch_to_wholesale_needs_customer(self, db_session, user, product, make_draft):
        draft = make_draft([{"product_id": product.id, "unit_price": 100}])

        with pytest.raises(ValidationError):
            draft_service.update_draft(draft.id, {"type": "WHOLESALE"}, user_id=user.id)
        assert db_session.get(Draft, draft.id).type == "RETAIL"


class TestStatus:
    def test_created_to_ready_and_back(self, db_session, user, make_draft):
        draft = make_draft([])

        assert draft_service.update_draft_status(draft.id, "READY", user_id=user.id).status == "READY"
        assert draft_service.update_draft_status(draft.id, "created", user_id=user.id).status == "CREATED"

    def test_finalized_cannot_be_set_manually(self, db_session, user, make_draft):
        draft = make_draft([])

        with pytest.raises(DraftStateError):
            draft_service.update_draft_status(draft.id, "FINALIZED", user_id=user.id)

    def test_cancelled_is_terminal(self, db_session, user, make_draft):
        draft = make_draft([])
        draft_service.update_draft_status(draft.id, "CANCELLED", user_id=user.id)

        with pytest.raises(DraftStateError):
            draft_service.update_draft_status(draft.id, "READY", user_id=user.id)

    def test_unknown_status(self, db_session, user, make_draft):
        draft = make_draft([])

        with pytest.raises(ValidationError):
            draft_service.update_draft_status(draft.id, "ARCHIVED", user_id=user.id)


class TestCancel:
    def test_cancel_has_no_stock_effect(self, db_session, user, product, make_draft):
        draft = make_draft([{"product_id": product.id, "quantity": 3, "unit_price": 100}])

        cancelled = draft_service.cancel_draft(draft.id, user_id=user.id)

        assert cancelled.status == "CANCELLED"
        assert cancelled.cancelled_at is not None
        assert db_session.get(Product, product.id).stock_quantity == 10
        assert db_session.query(AuditEvent).filter_by(event_type="draft.cancelled").count() == 1

    def test_cannot_cancel_finalized(self, db_session, user, product, make_draft):
        draft = make_draft([{"product_id": product.id, "quantity": 1, "unit_price": 100}])
        draft_service.finalize(draft.id, user_id=user.id)

        with pytest.raises(DraftStateError):
            draft_service.cancel_draft(draft.id, user_id=user.id)

    def test_only_owner_can_cancel(self, db_session, other_user, make_draft):
        draft = make_draft([])

        with pytest.raises(DraftPermissionError):
            draft_service.cancel_draft(draft.id, user_id=other_user.id)


class TestQueries:
    def test_list_user_drafts_filters_by_owner_and_status(self, db_session, user, other_user, make_draft):
        mine = make_draft([])
        ready = make_draft([])
        draft_service.update_draft_status(ready.id, "READY", user_id=user.id)
        make_draft([], owner=other_user)

        assert {d.id for d in draft_service.list_user_drafts(user.id)} == {mine.id, ready.id}
        assert [d.id for d in draft_service.list_user_drafts(user.id, status="ready")] == [ready.id]

    def test_get_missing_draft(self, db_session):
        with pytest.raises(NotFoundError):
            draft_service.get_draft(12345)

# Overview: Pytest coverage for activity descriptions, diffs and queries.

import pytest

from bazar.services.activity_service import (
    describe_activity,
    diff_changes,
    list_activities,
    log_activity,
)


class TestDescribe:
    def test_updated_lists_changed_fields(self):
        text = describe_activity("UPDATED", "Engine Oil", {"retail_price": {}, "sku": {}})
        assert text == "Engine Oil was updated: Retail Price, SKU"

    def test_known_types(self):
        assert describe_activity("STOCK_ADDED", "Engine Oil") == "Stock added to Engine Oil"
        assert describe_activity("INVOICED", "Honda CG125") == "Honda CG125 was invoiced"

    def test_unknown_type_falls_back(self):
        assert describe_activity("SOMETHING", "X") == "X was modified"


class TestDiff:
    def test_reports_only_changed_fields(self):
        old = {"name": "A", "stock_quantity": 1, "sku": "S"}
        new = {"name": "B", "stock_quantity": 1, "sku": "S"}
        assert diff_changes(old, new) == {"name": {"old": "A", "new": "B"}}

    def test_no_changes_is_none(self):
        assert diff_changes({"a": 1}, {"a": 1}) is None

    def test_restricts_to_given_fields(self):
        assert diff_changes({"a": 1, "b": 1}, {"a": 2, "b": 2}, fields=["b"]) == {"b": {"old": 1, "new": 2}}


class TestLog:
    def test_log_and_query(self, db_session, user, product):
        log_activity(
            entity_type="PRODUCT",
            entity_id=product.id,
            activity_type="CREATED",
            user_id=user.id,
            description=describe_activity("CREATED", product.name),
        )
        db_session.commit()

        rows = list_activities(entity_type="PRODUCT", entity_id=product.id)
        assert len(rows) == 1
        assert rows[0].description == "Engine Oil was created"

    def test_rejects_unknown_type(self, db_session, user, product):
        with pytest.raises(ValueError):
            log_activity(
                entity_type="PRODUCT",
                entity_id=product.id,
                activity_type="TELEPORTED",
                user_id=user.id,
                description="x",
            )

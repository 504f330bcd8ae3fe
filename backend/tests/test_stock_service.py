# Overview: Pytest coverage for manual stock adjustments.

import pytest

from bazar.models import Activity, Motorcycle, Product, StockMovement
from bazar.services import stock_service
from bazar.services.stock_service import InsufficientStockError
from bazar.validation import NotFoundError, ValidationError


class TestAdjustStock:
    def test_restock_product_records_purchase(self, db_session, user, product):
        new_stock = stock_service.adjust_stock(
            entity_type="PRODUCT",
            entity_id=product.id,
            quantity_delta=5,
            user_id=user.id,
            reason="Supplier delivery",
        )
        db_session.commit()

        assert new_stock == 15
        assert db_session.get(Product, product.id).stock_quantity == 15
        movement = db_session.query(StockMovement).one()
        assert movement.type == "PURCHASE"
        assert movement.quantity == 5
        assert movement.balance_after == 15
        activity = db_session.query(Activity).one()
        assert activity.type == "STOCK_ADDED"
        assert "Supplier delivery" in activity.description

    def test_negative_adjustment(self, db_session, user, product):
        stock_service.adjust_stock(entity_type="PRODUCT", entity_id=product.id, quantity_delta=-4, user_id=user.id)
        db_session.commit()

        movement = db_session.query(StockMovement).one()
        assert movement.type == "ADJUSTMENT"
        assert movement.balance_after == 6
        assert db_session.query(Activity).one().type == "STOCK_ADJUSTED"

    def test_refuses_to_go_below_zero(self, db_session, user, scarce_product):
        with pytest.raises(InsufficientStockError):
            stock_service.adjust_stock(
                entity_type="PRODUCT", entity_id=scarce_product.id, quantity_delta=-3, user_id=user.id,
            )
        db_session.rollback()
        assert db_session.get(Product, scarce_product.id).stock_quantity == 2

    def test_motorcycle_has_no_movement(self, db_session, user, motorcycle):
        stock_service.adjust_stock(entity_type="MOTORCYCLE", entity_id=motorcycle.id, quantity_delta=2, user_id=user.id)
        db_session.commit()

        assert db_session.get(Motorcycle, motorcycle.id).stock_quantity == 5
        assert db_session.query(StockMovement).count() == 0
        assert db_session.query(Activity).filter_by(entity_type="MOTORCYCLE").count() == 1

    def test_zero_delta_rejected(self, db_session, user, product):
        with pytest.raises(ValidationError):
            stock_service.adjust_stock(entity_type="PRODUCT", entity_id=product.id, quantity_delta=0, user_id=user.id)

    def test_unknown_entity(self, db_session, user):
        with pytest.raises(NotFoundError):
            stock_service.adjust_stock(entity_type="PRODUCT", entity_id=999, quantity_delta=1, user_id=user.id)


class TestMovements:
    def test_list_newest_first(self, db_session, user, product):
        for delta in (3, -1):
            stock_service.adjust_stock(entity_type="PRODUCT", entity_id=product.id, quantity_delta=delta, user_id=user.id)
            db_session.commit()

        movements = stock_service.list_stock_movements(product.id)

        assert [m.quantity for m in movements] == [-1, 3]
        assert [m.balance_after for m in movements] == [12, 13]

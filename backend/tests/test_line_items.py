# Overview: Pytest coverage for line classification and currency inference.

from decimal import Decimal

import pytest

from bazar.services.line_items import (
    KIND_MOTORCYCLE,
    KIND_PRODUCT,
    classify,
    infer_currency,
    motorcycle_id_from_marker,
    parse_line,
    parse_lines,
)
from bazar.validation import ValidationError


class TestClassify:
    def test_product_reference(self):
        assert classify(7, None, None) == (KIND_PRODUCT, 7)

    def test_motorcycle_reference(self):
        assert classify(None, 4, None) == (KIND_MOTORCYCLE, 4)

    def test_legacy_notes_marker(self):
        assert classify(None, None, "MOTORCYCLE:12") == (KIND_MOTORCYCLE, 12)

    def test_marker_is_case_sensitive(self):
        assert motorcycle_id_from_marker("motorcycle:12") is None

    def test_marker_must_match_explicit_id(self):
        with pytest.raises(ValidationError):
            classify(None, 4, "MOTORCYCLE:5")

    def test_both_references_rejected(self):
        with pytest.raises(ValidationError):
            classify(1, 2, None)

    def test_no_reference_rejected(self):
        with pytest.raises(ValidationError):
            classify(None, None, "just a note")


class TestParseLine:
    def test_defaults(self):
        line = parse_line({"product_id": 3, "unit_price": "12.5"}, 0)

        assert line.kind == KIND_PRODUCT
        assert line.product_id == 3
        assert line.motorcycle_id is None
        assert line.quantity == 1
        assert line.unit_price == Decimal("12.50")
        assert line.discount == Decimal("0")
        assert line.tax_rate == Decimal("0")
        assert line.line_total == Decimal("12.50")

    def test_marker_line_keeps_notes(self):
        line = parse_line({"notes": "MOTORCYCLE:9", "quantity": 1, "unit_price": 1450}, 2)

        assert line.kind == KIND_MOTORCYCLE
        assert line.motorcycle_id == 9
        assert line.notes == "MOTORCYCLE:9"
        assert line.position == 2

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, "2.0", True])
    def test_bad_quantity(self, quantity):
        with pytest.raises(ValidationError):
            parse_line({"product_id": 1, "quantity": quantity, "unit_price": 1}, 0)

    def test_negative_price_rejected(self):
        with pytest.raises(ValidationError):
            parse_line({"product_id": 1, "unit_price": -1}, 0)

    def test_tax_rate_above_one_rejected(self):
        with pytest.raises(ValidationError):
            parse_line({"product_id": 1, "unit_price": 1, "tax_rate": 15}, 0)

    def test_discount_larger_than_line_rejected(self):
        with pytest.raises(ValidationError):
            parse_line({"product_id": 1, "quantity": 2, "unit_price": 10, "discount": 21}, 0)

    def test_items_must_be_a_list(self):
        with pytest.raises(ValidationError):
            parse_lines({"product_id": 1})


class TestInferCurrency:
    def test_products_only_is_iqd(self):
        assert infer_currency([KIND_PRODUCT, KIND_PRODUCT]) == "IQD"

    def test_any_motorcycle_is_usd(self):
        assert infer_currency([KIND_PRODUCT, KIND_MOTORCYCLE]) == "USD"

    def test_empty_is_iqd(self):
        assert infer_currency([]) == "IQD"

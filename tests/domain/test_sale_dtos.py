"""
Tests for the input DTOs, decimal coercion and order-code transforms.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from recon_kernel.domain.dtos import DiscountField, ProductInfo, SaleLine, StockMovement
from recon_kernel.domain.numbers import first_non_zero, to_decimal
from recon_kernel.domain.order_codes import (
    is_return_order,
    movement_lookup_codes,
    original_order_code,
)
from tests.conftest import make_sale


class TestToDecimal:
    @pytest.mark.parametrize("value, expected", [
        ("12.5", Decimal("12.5")),
        (" 1,000 ", Decimal("1000")),
        (7, Decimal("7")),
        (0.1, Decimal("0.1")),
        (Decimal("3"), Decimal("3")),
    ])
    def test_parses(self, value, expected):
        assert to_decimal(value) == expected

    @pytest.mark.parametrize("value", [None, "", "abc", True, "NaN", Decimal("Infinity"), [1]])
    def test_malformed_is_zero(self, value):
        assert to_decimal(value) == Decimal("0")

    def test_custom_default(self):
        assert to_decimal(None, Decimal("1")) == Decimal("1")


class TestFirstNonZero:
    def test_picks_first(self):
        assert first_non_zero("0", None, "5", "7") == Decimal("5")

    def test_all_zero(self):
        assert first_non_zero(0, "", None) == Decimal("0")


class TestSaleLine:
    def test_malformed_quantity_coerced(self):
        assert make_sale(quantity="ten").quantity == Decimal("0")

    def test_text_fields_stripped(self):
        sale = SaleLine.from_mapping({"id": 1, "order_code": " SO1 ", "item_code": None})
        assert sale.id == "1"
        assert sale.order_code == "SO1"
        assert sale.item_code == ""

    def test_discounts_read_only(self):
        sale = make_sale(discounts={"vip_discount": "5"})
        assert sale.discount(DiscountField.VIP_DISCOUNT) == Decimal("5")
        with pytest.raises(TypeError):
            sale.discounts["vip_discount"] = Decimal("1")

    def test_discount_keys_accept_enum(self):
        sale = make_sale(discounts={DiscountField.COUPON_DISCOUNT: 3})
        assert sale.discount("coupon_discount") == Decimal("3")

    def test_absent_discount_is_zero(self):
        assert make_sale().discount(DiscountField.TRADE_DISCOUNT) == Decimal("0")

    def test_net_amount_fallbacks(self):
        assert make_sale(amount="0", line_total="0", revenue="30").net_amount == Decimal("30")

    @pytest.mark.parametrize("sale_type, expected", [
        ("WHOLESALE", True),
        (" ws ", True),
        ("RETAIL", False),
        ("", False),
    ])
    def test_is_wholesale(self, sale_type, expected):
        assert make_sale(sale_type=sale_type).is_wholesale is expected

    def test_direct_construction_freezes_discounts(self):
        sale = SaleLine(id="1", order_code="SO1", item_code="X", discounts={"vip_discount": "2"})
        assert sale.discount("vip_discount") == Decimal("2")


class TestStockMovement:
    _at = datetime(2024, 6, 1, tzinfo=timezone.utc)

    def test_negative_quantity_is_stock_out(self):
        movement = StockMovement("1", "SO1", "X", Decimal("-2"), self._at, doc_type="TRANSFER")
        assert movement.is_stock_out
        assert movement.out_quantity == Decimal("2")

    def test_stock_out_document(self):
        movement = StockMovement("1", "SO1", "X", Decimal("2"), self._at)
        assert movement.is_stock_out

    def test_inbound_transfer(self):
        movement = StockMovement("1", "SO1", "X", Decimal("2"), self._at, doc_type="TRANSFER")
        assert not movement.is_stock_out


class TestProductInfo:
    def test_ecode(self):
        assert ProductInfo("X", material_type="94").is_ecode
        assert not ProductInfo("X", material_type="10").is_ecode

    def test_gift_product(self):
        assert ProductInfo("X", product_type=" gift ").is_gift_product


class TestOrderCodes:
    def test_return_maps_to_original(self):
        assert original_order_code("RT33.00121928_1") == "SO33.00121928"

    def test_return_without_suffix(self):
        assert original_order_code("RT33.0001") == "SO33.0001"

    def test_sale_order_unchanged(self):
        assert original_order_code("SO33.0001") == "SO33.0001"
        assert not is_return_order("SO33.0001")

    def test_lookup_codes(self):
        assert movement_lookup_codes("RT33.0001_2") == ("RT33.0001_2", "SO33.0001")
        assert movement_lookup_codes("SO33.0001") == ("SO33.0001",)

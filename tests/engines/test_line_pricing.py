"""
Tests for unit price and line amount resolution.

Covers:
- Stored prices are kept
- Gross-up of non-normal orders from stored or derived gross totals
- Point-exchange zeroing
- Allocation-ratio scaling and the normal-order gross amount
"""

from decimal import Decimal

from recon_engines.classifier import classify_order_type
from recon_engines.pricing import is_gift_line, known_discount_total, resolve_prices
from tests.conftest import make_sale

NORMAL = classify_order_type("01. Thường")
SERVICE = classify_order_type("02. Làm dịch vụ")
POINT_EXCHANGE = classify_order_type("03. Đổi điểm")


class TestKnownDiscounts:
    def test_sums_first_non_zero_aliases(self):
        sale = make_sale(discounts={
            "purchase_discount": "1",
            "policy_discount": "2",
            "vip_discount": "10",
            "grade_discount": "20",
            "voucher_discount": "5",
        })
        assert known_discount_total(sale) == Decimal("18")

    def test_no_discounts(self):
        assert known_discount_total(make_sale()) == Decimal("0")


class TestUnitPrice:
    def test_stored_price_kept(self):
        result = resolve_prices(make_sale(unit_price="120"), NORMAL)
        assert result.unit_price == Decimal("120")

    def test_gross_up_from_discounts(self):
        sale = make_sale(
            quantity="2", unit_price="0", amount="180",
            discounts={"purchase_discount": "20"},
        )
        assert resolve_prices(sale, SERVICE).unit_price == Decimal("100")

    def test_gross_up_prefers_stored_gross_total(self):
        sale = make_sale(
            quantity="2", unit_price="0", amount="180", gross_line_total="250",
            discounts={"purchase_discount": "20"},
        )
        assert resolve_prices(sale, SERVICE).unit_price == Decimal("125")

    def test_normal_order_derives_from_net_amount(self):
        sale = make_sale(quantity="5", unit_price="0", amount="500")
        assert resolve_prices(sale, NORMAL).unit_price == Decimal("100")

    def test_zero_amount_stays_zero(self):
        sale = make_sale(unit_price="0", amount="0", line_total="0", revenue="0")
        result = resolve_prices(sale, NORMAL)
        assert result.unit_price == Decimal("0")
        assert result.amount == Decimal("0")

    def test_net_amount_falls_back_to_line_total(self):
        sale = make_sale(quantity="4", unit_price="0", amount="0", line_total="80")
        result = resolve_prices(sale, NORMAL)
        assert result.amount == Decimal("80")
        assert result.unit_price == Decimal("20")


class TestPointExchange:
    def test_always_zero(self):
        sale = make_sale(unit_price="100", amount="1000", gross_line_total="1200")
        result = resolve_prices(sale, POINT_EXCHANGE, Decimal("0.5"))
        assert result.unit_price == Decimal("0")
        assert result.amount == Decimal("0")
        assert result.gross_amount == Decimal("0")


class TestAllocation:
    def test_amount_scaled_once(self):
        result = resolve_prices(make_sale(), NORMAL, Decimal("0.25"))
        assert result.amount == Decimal("250")

    def test_normal_gross_from_confirmed_quantity(self):
        sale = make_sale(amount="900")
        result = resolve_prices(sale, NORMAL, Decimal("0.6"), confirmed_quantity=Decimal("6"))
        assert result.amount == Decimal("540")
        assert result.gross_amount == Decimal("600")

    def test_normal_gross_defaults_to_scaled_quantity(self):
        result = resolve_prices(make_sale(amount="900"), NORMAL, Decimal("0.5"))
        assert result.gross_amount == Decimal("500")

    def test_non_normal_gross_equals_amount(self):
        result = resolve_prices(make_sale(amount="900"), SERVICE, Decimal("0.5"))
        assert result.gross_amount == result.amount == Decimal("450")

    def test_unscaled_gross_equals_amount(self):
        result = resolve_prices(make_sale(amount="900"), NORMAL)
        assert result.gross_amount == Decimal("900")


class TestGiftLine:
    def test_free_goods(self):
        assert is_gift_line(Decimal("0"), Decimal("0"))

    def test_below_epsilon(self):
        assert is_gift_line(Decimal("0.001"), Decimal("-0.009"))

    def test_priced_line(self):
        assert not is_gift_line(Decimal("0"), Decimal("5"))
        assert not is_gift_line(Decimal("1"), Decimal("0"))

"""
Tests for ledger account resolution.

Covers:
- Each rule of ACCOUNT_RULES and their precedence
- Fallback of unset accounts to stored sale-line values
- Wholesale lines resolved from the promotion-account table
"""

import pytest

from recon_engines.accounts import (
    ACCOUNT_RULES,
    DEFAULT_RULE,
    WHOLESALE_RULE,
    AccountAssignment,
    AccountFacts,
    evaluate_account_rules,
    resolve_accounts,
)
from recon_engines.classifier import classify_order_type
from tests.conftest import make_product, make_sale

NORMAL = classify_order_type("01. Thường")
SERVICE = classify_order_type("02. Làm dịch vụ")


@pytest.fixture
def accounts(rule_tables):
    return rule_tables.accounts


def _resolve(accounts, sale, flags=NORMAL, product=None, is_gift=False,
             has_promotion_code=False, has_gift_promotion_code=False):
    return resolve_accounts(
        sale, product, flags, is_gift, has_promotion_code, has_gift_promotion_code, accounts
    )


class TestRewardOrders:
    @pytest.mark.parametrize("label", ["03. Đổi điểm", "Đổi vỏ", "06. Đầu tư"])
    def test_reward_expense(self, accounts, label):
        result = _resolve(accounts, make_sale(), classify_order_type(label))
        assert result.rule == "reward_order"
        assert result.expense_account == "64191"
        assert result.fee_code == "161010"

    def test_birthday_expense(self, accounts):
        result = _resolve(accounts, make_sale(), classify_order_type("05. Tặng sinh nhật"))
        assert result.rule == "birthday_gift"
        assert (result.expense_account, result.fee_code) == ("64192", "162010")

    def test_gift_line_with_gift_code(self, accounts):
        result = _resolve(accounts, make_sale(), is_gift=True, has_gift_promotion_code=True)
        assert result.rule == "gift_line_with_gift_code"
        assert result.expense_account == "64191"

    def test_reward_keeps_stored_discount_account(self, accounts):
        sale = make_sale(discount_account="5218")
        result = _resolve(accounts, sale, classify_order_type("03. Đổi điểm"))
        assert result.discount_account == "5218"


class TestDiscountRules:
    def test_vip_goods(self, accounts):
        result = _resolve(accounts, make_sale(discounts={"vip_discount": "5"}))
        assert (result.rule, result.discount_account) == ("vip_discount_goods", "521113")

    def test_grade_counts_as_vip(self, accounts):
        sale = make_sale(product_type="S", discounts={"grade_discount": "5"})
        result = _resolve(accounts, sale)
        assert (result.rule, result.discount_account) == ("vip_discount_service", "521132")

    def test_voucher_gift_product(self, accounts):
        sale = make_sale(discounts={"voucher_payment": "5"})
        result = _resolve(accounts, sale, product=make_product(product_type="GIFT"))
        assert (result.rule, result.discount_account) == ("voucher_gift_product", "5211631")

    def test_voucher_goods(self, accounts):
        result = _resolve(accounts, make_sale(discounts={"voucher_discount": "5"}))
        assert (result.rule, result.discount_account) == ("voucher_goods", "5211611")

    def test_voucher_service(self, accounts):
        sale = make_sale(product_type="S", discounts={"voucher_payment": "5"})
        result = _resolve(accounts, sale)
        assert (result.rule, result.discount_account) == ("voucher_service", "5211621")

    def test_purchase_discount_service_any_order(self, accounts):
        sale = make_sale(product_type="S", discounts={"purchase_discount": "5"})
        result = _resolve(accounts, sale, SERVICE)
        assert (result.rule, result.discount_account) == ("purchase_discount_service", "521131")

    def test_purchase_discount_goods_normal_only(self, accounts):
        sale = make_sale(discounts={"purchase_discount": "5"})
        assert _resolve(accounts, sale).discount_account == "521111"
        assert _resolve(accounts, sale, SERVICE).rule == DEFAULT_RULE

    def test_vip_before_voucher(self, accounts):
        sale = make_sale(discounts={"vip_discount": "5", "voucher_payment": "5"})
        assert _resolve(accounts, sale).rule == "vip_discount_goods"


class TestPromotionCodeRule:
    @pytest.mark.parametrize("product_type, account", [
        ("I", "521111"),
        ("S", "521131"),
        ("V", "521111"),
    ])
    def test_account_by_type(self, accounts, product_type, account):
        sale = make_sale(product_type=product_type)
        result = _resolve(accounts, sale, has_promotion_code=True)
        assert result.rule == "promotion_code"
        assert result.discount_account == account

    def test_gift_line_excluded(self, accounts):
        result = _resolve(accounts, make_sale(), is_gift=True, has_promotion_code=True)
        assert result.rule == DEFAULT_RULE

    def test_non_normal_excluded(self, accounts):
        result = _resolve(accounts, make_sale(), SERVICE, has_promotion_code=True)
        assert result.rule == DEFAULT_RULE


class TestStoredFallback:
    def test_stored_values_used(self, accounts):
        sale = make_sale(discount_account="999", expense_account="888", fee_code="777")
        result = _resolve(accounts, sale, SERVICE)
        assert result == AccountAssignment("999", "888", "777", DEFAULT_RULE)

    def test_rule_table_ends_with_catch_all(self):
        assert ACCOUNT_RULES[-1].name == DEFAULT_RULE

    def test_evaluate_with_no_matching_rule(self, accounts):
        facts = AccountFacts.collect(make_sale(), None, SERVICE, False, False, False)
        assert evaluate_account_rules(facts, accounts, rules=()).rule == DEFAULT_RULE


class TestWholesaleAccounts:
    def test_from_promotion_account_table(self, rule_tables):
        sale = make_sale(sale_type="WHOLESALE")
        product = make_product(product_type="03TPCN")
        table = {"CKCSBH.TPCN": AccountAssignment(discount_account="5211TP", fee_code="F1")}

        result = resolve_accounts(
            sale, product, NORMAL, False, False, False, rule_tables.accounts,
            promotions=rule_tables.promotions, promotion_accounts=table,
        )

        assert result.rule == WHOLESALE_RULE
        assert result.discount_account == "5211TP"
        assert result.fee_code == "F1"

    def test_miss_falls_back_and_logs(self, rule_tables, captured_logs):
        sale = make_sale(sale_type="WHOLESALE", discount_account="5111")

        result = resolve_accounts(
            sale, None, NORMAL, False, False, False, rule_tables.accounts,
            promotions=rule_tables.promotions, promotion_accounts={},
        )

        assert result.rule == DEFAULT_RULE
        assert result.discount_account == "5111"
        misses = [r for r in captured_logs() if r["message"] == "wholesale_account_miss"]
        assert misses[0]["promotion_code"] == "CKCSBH.MP"

    def test_wholesale_without_promotion_table_uses_rules(self, accounts):
        sale = make_sale(sale_type="WHOLESALE", discounts={"vip_discount": "5"})
        assert _resolve(accounts, sale).rule == "vip_discount_goods"

"""
recon_engines.accounts -- Ledger account resolution.

Responsibility:
    Choose the discount account, expense account and fee code of an
    invoice line.  Retail lines are resolved by ``ACCOUNT_RULES``, an
    ordered list of ``(name, predicate, outcome)`` rules evaluated top-down
    with first-match-wins semantics.  Wholesale lines are resolved from the
    pre-fetched promotion-account table keyed by wholesale policy code.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Account numbers come
    from ``recon_config`` (``AccountTable``).

Invariants enforced:
    - Exactly one rule decides a line; the name of that rule is recorded
      on the result.
    - A rule sets only the accounts it is responsible for.  Every account
      left unset falls back to the value stored on the sale line.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace

from recon_config.schema import AccountTable, PromotionTable
from recon_engines.classifier import OrderCategoryFlags
from recon_engines.promotion import wholesale_policy_code
from recon_kernel.domain.dtos import DiscountField, ProductInfo, SaleLine
from recon_kernel.domain.numbers import ZERO, first_non_zero
from recon_kernel.logging_config import get_logger

logger = get_logger("engines.accounts")

DEFAULT_RULE = "stored_values"
WHOLESALE_RULE = "wholesale_promotion_account"


@dataclass(frozen=True)
class AccountAssignment:
    """Resolved accounts.  Empty strings mean "not set by the rule"."""

    discount_account: str = ""
    expense_account: str = ""
    fee_code: str = ""
    rule: str = ""

    def with_fallback(self, sale: SaleLine) -> AccountAssignment:
        return replace(
            self,
            discount_account=self.discount_account or sale.discount_account,
            expense_account=self.expense_account or sale.expense_account,
            fee_code=self.fee_code or sale.fee_code,
        )


@dataclass(frozen=True)
class AccountFacts:
    """Everything the account rules look at, computed once per line."""

    flags: OrderCategoryFlags
    product_type: str
    is_gift: bool
    has_promotion_code: bool
    has_gift_promotion_code: bool
    has_vip_discount: bool
    has_voucher: bool
    has_purchase_discount: bool
    is_gift_product: bool

    @classmethod
    def collect(
        cls,
        sale: SaleLine,
        product: ProductInfo | None,
        flags: OrderCategoryFlags,
        is_gift: bool,
        has_promotion_code: bool,
        has_gift_promotion_code: bool,
    ) -> AccountFacts:
        vip = first_non_zero(
            sale.discount(DiscountField.VIP_DISCOUNT),
            sale.discount(DiscountField.GRADE_DISCOUNT),
        )
        voucher = first_non_zero(
            sale.discount(DiscountField.VOUCHER_PAYMENT),
            sale.discount(DiscountField.VOUCHER_DISCOUNT),
        )
        return cls(
            flags=flags,
            product_type=sale.product_type_upper,
            is_gift=is_gift,
            has_promotion_code=has_promotion_code,
            has_gift_promotion_code=has_gift_promotion_code,
            has_vip_discount=vip > ZERO,
            has_voucher=voucher > ZERO,
            has_purchase_discount=sale.discount(DiscountField.PURCHASE_DISCOUNT) > ZERO,
            is_gift_product=product is not None and product.is_gift_product,
        )


Predicate = Callable[[AccountFacts], bool]
Outcome = Callable[[AccountFacts, AccountTable], AccountAssignment]


@dataclass(frozen=True)
class AccountRule:
    name: str
    predicate: Predicate
    outcome: Outcome


def _reward_expense(facts: AccountFacts, table: AccountTable) -> AccountAssignment:
    pair = table.reward_expense
    return AccountAssignment(expense_account=pair.expense_account, fee_code=pair.fee_code)


def _birthday_expense(facts: AccountFacts, table: AccountTable) -> AccountAssignment:
    pair = table.birthday_expense
    return AccountAssignment(expense_account=pair.expense_account, fee_code=pair.fee_code)


def _discount_by_type(attribute: str, product_type: str | None = None) -> Outcome:
    def outcome(facts: AccountFacts, table: AccountTable) -> AccountAssignment:
        accounts: Mapping[str, str] = getattr(table, attribute)
        return AccountAssignment(
            discount_account=accounts.get(product_type or facts.product_type, "")
        )

    return outcome


def _voucher_gift_product(facts: AccountFacts, table: AccountTable) -> AccountAssignment:
    return AccountAssignment(discount_account=table.voucher_gift_product)


def _promotion_discount(facts: AccountFacts, table: AccountTable) -> AccountAssignment:
    key = "S" if facts.product_type == "S" else "I"
    return AccountAssignment(discount_account=table.promotion_discount.get(key, ""))


def _stored(facts: AccountFacts, table: AccountTable) -> AccountAssignment:
    return AccountAssignment()


ACCOUNT_RULES: tuple[AccountRule, ...] = (
    AccountRule(
        "reward_order",
        lambda f: f.flags.point_exchange or f.flags.bottle_exchange or f.flags.investment,
        _reward_expense,
    ),
    AccountRule("birthday_gift", lambda f: f.flags.birthday_gift, _birthday_expense),
    AccountRule(
        "gift_line_with_gift_code",
        lambda f: f.is_gift and f.has_gift_promotion_code,
        _reward_expense,
    ),
    AccountRule(
        "vip_discount_goods",
        lambda f: f.has_vip_discount and f.product_type == "I",
        _discount_by_type("vip_discount", "I"),
    ),
    AccountRule(
        "vip_discount_service",
        lambda f: f.has_vip_discount and f.product_type == "S",
        _discount_by_type("vip_discount", "S"),
    ),
    AccountRule(
        "voucher_gift_product",
        lambda f: f.has_voucher and f.is_gift_product,
        _voucher_gift_product,
    ),
    AccountRule(
        "voucher_goods",
        lambda f: f.has_voucher and f.product_type == "I",
        _discount_by_type("voucher_discount", "I"),
    ),
    AccountRule(
        "voucher_service",
        lambda f: f.has_voucher and f.product_type == "S",
        _discount_by_type("voucher_discount", "S"),
    ),
    AccountRule(
        "purchase_discount_service",
        lambda f: f.has_purchase_discount and f.product_type == "S",
        _discount_by_type("purchase_discount", "S"),
    ),
    AccountRule(
        "purchase_discount_goods",
        lambda f: f.has_purchase_discount and f.flags.normal and f.product_type == "I",
        _discount_by_type("purchase_discount", "I"),
    ),
    AccountRule(
        "promotion_code",
        lambda f: f.flags.normal and f.has_promotion_code and not f.is_gift,
        _promotion_discount,
    ),
    AccountRule(DEFAULT_RULE, lambda f: True, _stored),
)


def evaluate_account_rules(
    facts: AccountFacts,
    table: AccountTable,
    rules: tuple[AccountRule, ...] = ACCOUNT_RULES,
) -> AccountAssignment:
    """First matching rule wins; the result is tagged with the rule name."""
    for rule in rules:
        if rule.predicate(facts):
            return replace(rule.outcome(facts, table), rule=rule.name)
    return AccountAssignment(rule=DEFAULT_RULE)


def resolve_wholesale_accounts(
    sale: SaleLine,
    product: ProductInfo | None,
    promotions: PromotionTable,
    promotion_accounts: Mapping[str, AccountAssignment],
) -> AccountAssignment:
    code = wholesale_policy_code(product, promotions)
    found = promotion_accounts.get(code)
    if found is None:
        logger.debug("wholesale_account_miss", extra={
            "order_code": sale.order_code,
            "item_code": sale.item_code,
            "promotion_code": code,
        })
        return AccountAssignment(rule=DEFAULT_RULE).with_fallback(sale)
    return replace(found, rule=WHOLESALE_RULE).with_fallback(sale)


def resolve_accounts(
    sale: SaleLine,
    product: ProductInfo | None,
    flags: OrderCategoryFlags,
    is_gift: bool,
    has_promotion_code: bool,
    has_gift_promotion_code: bool,
    accounts: AccountTable,
    promotions: PromotionTable | None = None,
    promotion_accounts: Mapping[str, AccountAssignment] | None = None,
) -> AccountAssignment:
    """
    Resolve the ledger accounts of one invoice line.

    Wholesale lines use ``promotion_accounts`` when ``promotions`` is given;
    every other line goes through ``ACCOUNT_RULES``.
    """
    if sale.is_wholesale and promotions is not None:
        return resolve_wholesale_accounts(
            sale, product, promotions, promotion_accounts or {}
        )

    facts = AccountFacts.collect(
        sale, product, flags, is_gift, has_promotion_code, has_gift_promotion_code
    )
    return evaluate_account_rules(facts, accounts).with_fallback(sale)

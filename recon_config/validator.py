"""
Rule Table Validator (``recon_config.validator``).

Responsibility
--------------
Checks a parsed ``RuleTables`` for structural problems that the loader's
shape checks cannot see: empty account numbers, unknown product-type keys,
empty fallback codes.

Failure modes
-------------
* Validation errors (``ConfigValidationResult.errors``)  -> the tables MUST
  NOT be used; ``get_active_config`` raises ``RuleTableError``.
* Validation warnings  -> the tables may be used but should be reviewed.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from recon_config.schema import RuleTables

PRODUCT_TYPE_KEYS = frozenset({"I", "S", "V"})


@dataclass
class ConfigValidationResult:
    """
    Result of rule table validation.

    ``is_valid`` returns ``True`` only when ``errors`` is empty.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_rule_tables(tables: RuleTables) -> ConfigValidationResult:
    """Validate a parsed rule configuration."""
    result = ConfigValidationResult()

    _validate_accounts(tables, result)
    _validate_promotions(tables, result)
    _validate_vouchers(tables, result)
    _validate_warehouse(tables, result)

    return result


def _check_type_map(name: str, mapping: dict[str, str], result: ConfigValidationResult) -> None:
    for key, account in mapping.items():
        if key not in PRODUCT_TYPE_KEYS:
            result.add_error(f"{name}: unknown product type key '{key}'")
        if not account.strip():
            result.add_error(f"{name}: empty account for product type '{key}'")


def _validate_accounts(tables: RuleTables, result: ConfigValidationResult) -> None:
    accounts = tables.accounts
    for name, pair in (
        ("accounts.reward_expense", accounts.reward_expense),
        ("accounts.birthday_expense", accounts.birthday_expense),
    ):
        if not pair.expense_account.strip() or not pair.fee_code.strip():
            result.add_error(f"{name}: expense account and fee code are required")

    if not accounts.voucher_gift_product.strip():
        result.add_error("accounts.voucher_gift_product: account is required")

    for name, mapping in (
        ("accounts.vip_discount", accounts.vip_discount),
        ("accounts.voucher_discount", accounts.voucher_discount),
        ("accounts.purchase_discount", accounts.purchase_discount),
        ("accounts.promotion_discount", accounts.promotion_discount),
    ):
        _check_type_map(name, mapping, result)

    # The generic promotion rule falls back to the I account for V lines
    if "I" not in accounts.promotion_discount:
        result.add_error("accounts.promotion_discount: an 'I' account is required")


def _validate_promotions(tables: RuleTables, result: ConfigValidationResult) -> None:
    promotions = tables.promotions
    if not promotions.code_separator:
        result.add_error("promotions.code_separator: must not be empty")
    for suffix in promotions.type_suffixes:
        if suffix not in PRODUCT_TYPE_KEYS:
            result.add_error(f"promotions.type_suffixes: unknown suffix '{suffix}'")
    if not promotions.legacy_prefix or not promotions.canonical_prefix:
        result.add_error("promotions: legacy and canonical prefixes are required")
    if not promotions.point_exchange_default:
        result.add_error("promotions.point_exchange.default: must not be empty")

    for unit, by_type in promotions.employee_discount_codes.items():
        for key in by_type:
            if key != "*" and key not in PRODUCT_TYPE_KEYS:
                result.add_error(
                    f"promotions.employee_discount_codes.{unit}: unknown key '{key}'"
                )

    wholesale = promotions.wholesale
    if not wholesale.categories:
        result.add_warning(
            "promotions.wholesale.categories: every product maps to "
            f"'{wholesale.default_category}'"
        )


def _validate_vouchers(tables: RuleTables, result: ConfigValidationResult) -> None:
    vouchers = tables.promotions.vouchers
    if vouchers.employee_units and not vouchers.employee_code:
        result.add_error("promotions.vouchers.employee_code: required with employee_units")
    if vouchers.ecommerce_channels and not vouchers.ecommerce_default:
        result.add_warning("promotions.vouchers.ecommerce_default: empty fallback code")
    for brand, codes in vouchers.brand_codes.items():
        for key in codes:
            product_type, _, marker = key.partition(":")
            if product_type not in PRODUCT_TYPE_KEYS or marker not in ("", "gift"):
                result.add_error(
                    f"promotions.vouchers.brand_codes.{brand}: unknown key '{key}'"
                )


def _validate_warehouse(tables: RuleTables, result: ConfigValidationResult) -> None:
    if not tables.warehouse.card_separation_prefix.strip():
        result.add_error("warehouse.card_separation_prefix: must not be empty")

"""
Rule table schema.

Frozen dataclasses holding the business tables the reconciliation engines
consult: ledger account numbers, promotion/voucher code tables and warehouse
rules.  YAML is parsed into these types by the loader; engines receive a
``RuleTables`` instance and never read files themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ExpensePair:
    """Expense ledger account with its fee code."""

    expense_account: str
    fee_code: str


@dataclass(frozen=True)
class AccountTable:
    """Ledger account numbers used by the account resolver."""

    reward_expense: ExpensePair
    birthday_expense: ExpensePair
    vip_discount: dict[str, str] = field(default_factory=dict)
    voucher_gift_product: str = ""
    voucher_discount: dict[str, str] = field(default_factory=dict)
    purchase_discount: dict[str, str] = field(default_factory=dict)
    promotion_discount: dict[str, str] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Promotion and voucher codes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WholesaleCategoryRule:
    """Catalog group keyword -> wholesale category."""

    keyword: str
    category: str


@dataclass(frozen=True)
class WholesaleCodes:
    prefix: str
    ecode_marker: str
    default_category: str
    categories: tuple[WholesaleCategoryRule, ...] = ()


@dataclass(frozen=True)
class VoucherTable:
    """Voucher-payment (ck05) code tables."""

    employee_units: tuple[str, ...] = ()
    employee_code: str = ""
    ecommerce_channels: tuple[str, ...] = ()
    ecommerce_default: str = ""
    ecommerce_brand_codes: dict[str, str] = field(default_factory=dict)
    brand_codes: dict[str, dict[str, str]] = field(default_factory=dict)


@dataclass(frozen=True)
class PromotionTable:
    """Promotion code transforms and lookup tables."""

    code_separator: str
    type_suffixes: tuple[str, ...]
    legacy_prefix: str
    canonical_prefix: str
    investment_gift_code: str
    point_exchange_default: str
    point_exchange_codes: dict[str, str] = field(default_factory=dict)
    platform_brand_codes: dict[str, str] = field(default_factory=dict)
    employee_discount_codes: dict[str, dict[str, str]] = field(default_factory=dict)
    vouchers: VoucherTable = field(default_factory=VoucherTable)
    wholesale: WholesaleCodes = field(
        default_factory=lambda: WholesaleCodes(
            prefix="CKCSBH", ecode_marker="E", default_category="MP"
        )
    )

    @property
    def employee_code_values(self) -> frozenset[str]:
        """Every code the employee-discount table can produce."""
        return frozenset(
            code
            for by_type in self.employee_discount_codes.values()
            for code in by_type.values()
        )


# ---------------------------------------------------------------------------
# Warehouse
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WarehouseRules:
    card_separation_prefix: str


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RuleTables:
    """
    The complete, validated rule configuration.

    ``checksum`` is the SHA-256 of the canonical source document and
    identifies the exact table version that governed a reconciliation run.
    """

    config_id: str
    version: int
    accounts: AccountTable
    promotions: PromotionTable
    warehouse: WarehouseRules
    checksum: str = ""

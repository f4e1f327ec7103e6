"""
recon_engines.records -- Explosion inputs and outputs.

``ReconciliationContext`` is built once per order by the service layer and
carries every pre-fetched lookup the resolvers need; per-line computation
never blocks on I/O.  ``InvoiceLine`` is the finished output record.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from types import MappingProxyType

from recon_config.schema import RuleTables
from recon_engines.accounts import AccountAssignment
from recon_engines.amounts import ZERO_VECTOR, DiscountAmountVector
from recon_engines.classifier import OrderCategoryFlags
from recon_kernel.domain.dtos import ProductInfo, SaleLine, StockMovement
from recon_kernel.domain.numbers import ONE, ZERO


class Provenance(str, Enum):
    """Where an invoice line came from."""

    STOCK_MATCHED = "stock_matched"  # sale line x stock movement
    SYNTHETIC = "synthetic"          # stock movement with no sale line
    PASS_THROUGH = "pass_through"    # sale line with no stock movement


def _freeze(mapping: Mapping | None) -> Mapping:
    if isinstance(mapping, MappingProxyType):
        return mapping
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class ReconciliationContext:
    """
    Read-only lookups for one order.

    Attributes:
        rule_tables: Active rule configuration.
        order_code: Order being reconciled.
        products: Item or material code -> catalog entry.
        warehouse_codes: Legacy -> canonical warehouse code (active only).
        employee_partners: ``(partner_code, brand)`` pairs that are employees.
        promotion_accounts: Wholesale policy code -> accounts.
        wallet_receipt_total: ECOIN receipt amount of the order, if any.
        platform_order: Order is known to come from a marketplace even when
            its label does not say so.
    """

    rule_tables: RuleTables
    order_code: str = ""
    products: Mapping[str, ProductInfo] = field(default_factory=dict)
    warehouse_codes: Mapping[str, str] = field(default_factory=dict)
    employee_partners: frozenset[tuple[str, str]] = frozenset()
    promotion_accounts: Mapping[str, AccountAssignment] = field(default_factory=dict)
    wallet_receipt_total: Decimal | None = None
    platform_order: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "products", _freeze(self.products))
        object.__setattr__(self, "warehouse_codes", _freeze(self.warehouse_codes))
        object.__setattr__(self, "promotion_accounts", _freeze(self.promotion_accounts))
        object.__setattr__(self, "employee_partners", frozenset(self.employee_partners))

    def product_for(self, *codes: str | None) -> ProductInfo | None:
        """First catalog entry found among ``codes``."""
        for code in codes:
            if code and code in self.products:
                return self.products[code]
        return None

    def is_employee(self, partner_code: str, brand: str) -> bool:
        return (partner_code.strip(), brand.strip().lower()) in self.employee_partners


@dataclass(frozen=True)
class MatchedPair:
    """
    One planned invoice line.

    ``sale`` is None for synthetic lines; ``movement`` is None for
    pass-through lines.
    """

    sequence: int
    provenance: Provenance
    sale: SaleLine | None = None
    movement: StockMovement | None = None
    allocation_ratio: Decimal = ONE


@dataclass(frozen=True)
class InvoiceLine:
    """One finalized invoice line.  ``lot`` and ``serial`` are never both set."""

    line_id: str
    order_code: str
    item_code: str
    provenance: Provenance
    quantity: Decimal = ZERO
    material_code: str = ""
    item_name: str = ""
    unit_price: Decimal = ZERO
    amount: Decimal = ZERO
    gross_amount: Decimal = ZERO
    warehouse_code: str = ""
    lot: str = ""
    serial: str = ""
    promotion_code: str = ""
    gift_promotion_code: str = ""
    policy_discount_code: str = ""
    voucher_code: str = ""
    discount_account: str = ""
    expense_account: str = ""
    fee_code: str = ""
    account_rule: str = ""
    transaction_type: str = ""
    card_code: str = ""
    is_gift: bool = False
    gift_marker: str = ""
    amounts: DiscountAmountVector = ZERO_VECTOR
    allocation_ratio: Decimal = ONE
    sale_line_id: str | None = None
    stock_movement_id: str | None = None
    stock_doc_code: str = ""
    categories: OrderCategoryFlags = field(default_factory=OrderCategoryFlags)


@dataclass(frozen=True)
class ExplosionResult:
    """Ordered invoice lines of one order."""

    order_code: str
    lines: tuple[InvoiceLine, ...] = ()

    def _count(self, provenance: Provenance) -> int:
        return sum(1 for line in self.lines if line.provenance is provenance)

    @property
    def matched_count(self) -> int:
        return self._count(Provenance.STOCK_MATCHED)

    @property
    def synthetic_count(self) -> int:
        return self._count(Provenance.SYNTHETIC)

    @property
    def pass_through_count(self) -> int:
        return self._count(Provenance.PASS_THROUGH)

    @property
    def total_quantity(self) -> Decimal:
        return sum((line.quantity for line in self.lines), ZERO)

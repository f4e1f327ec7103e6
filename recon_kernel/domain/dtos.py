"""
DTOs -- Immutable input records for the reconciliation engine.

Responsibility:
    Defines the read-only snapshots the engine consumes: ``SaleLine`` (one
    purchased item of an order), ``StockMovement`` (one warehouse ledger
    record) and ``ProductInfo`` (catalog tracking metadata).  Also names the
    discount buckets a sale line may carry (``DiscountField``).

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Selectors convert ORM rows into these
    DTOs at the persistence boundary; engines never see ORM entities.

Invariants enforced:
    - Every numeric field is a ``Decimal``; malformed stored values are
      coerced to zero by ``from_mapping`` (see ``numbers.to_decimal``).
    - Records are frozen.  Explosion never mutates a ``SaleLine``; it
      produces new ``InvoiceLine`` objects instead.
    - ``discounts`` is a read-only mapping.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any

from recon_kernel.domain.numbers import ZERO, to_decimal


class MovementDocType(str, Enum):
    """Stock movement document types."""

    SALE_STOCKOUT = "SALE_STOCKOUT"
    SALE_RETURN = "SALE_RETURN"
    TRANSFER = "TRANSFER"


class DiscountField(str, Enum):
    """Named discount buckets a sale line may carry."""

    PROMOTION_DISCOUNT = "promotion_discount"
    PURCHASE_DISCOUNT = "purchase_discount"
    POLICY_DISCOUNT = "policy_discount"
    WHOLESALE_POLICY_DISCOUNT = "wholesale_policy_discount"
    VIP_DISCOUNT = "vip_discount"
    GRADE_DISCOUNT = "grade_discount"
    COUPON_DISCOUNT = "coupon_discount"
    VOUCHER_PAYMENT = "voucher_payment"
    VOUCHER_DISCOUNT = "voucher_discount"
    WALLET_PAYMENT = "wallet_payment"
    GOODS_DISCOUNT = "goods_discount"
    TRADE_DISCOUNT = "trade_discount"
    RESERVE_1 = "reserve_1"
    RESERVE_2 = "reserve_2"
    RESERVE_3 = "reserve_3"
    EXTRA_1 = "extra_1"
    EXTRA_2 = "extra_2"
    EXTRA_3 = "extra_3"
    BRAND_VOUCHER_1 = "brand_voucher_1"
    BRAND_VOUCHER_2 = "brand_voucher_2"
    BRAND_VOUCHER_3 = "brand_voucher_3"
    BRAND_VOUCHER_4 = "brand_voucher_4"
    BRAND_VOUCHER_5 = "brand_voucher_5"
    BRAND_VOUCHER_6 = "brand_voucher_6"
    BRAND_VOUCHER_7 = "brand_voucher_7"
    BRAND_VOUCHER_8 = "brand_voucher_8"


def numbered_bucket(index: int) -> str:
    """Key of a numbered discount bucket (``bucket_09`` .. ``bucket_22``)."""
    return f"bucket_{index:02d}"


WHOLESALE_SALE_TYPES = frozenset({"WHOLESALE", "WS"})


def _freeze_discounts(raw: Mapping[str, Any] | None) -> Mapping[str, Decimal]:
    if not raw:
        return MappingProxyType({})
    frozen = {
        str(getattr(key, "value", key)): to_decimal(value)
        for key, value in raw.items()
    }
    return MappingProxyType(frozen)


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


@dataclass(frozen=True)
class SaleLine:
    """
    One purchased item within an order.

    Amount fields:
        amount            -- net goods amount after discounts
        line_total        -- stored line total
        revenue           -- recognized revenue
        gross_line_total  -- stored pre-discount line amount (often zero)
    """

    id: str
    order_code: str
    item_code: str
    quantity: Decimal = ZERO
    material_code: str = ""
    item_name: str = ""
    unit_price: Decimal = ZERO
    amount: Decimal = ZERO
    line_total: Decimal = ZERO
    revenue: Decimal = ZERO
    gross_line_total: Decimal = ZERO
    order_type_label: str = ""
    product_type: str = ""
    unit_code: str = ""
    department_code: str = ""
    brand: str = ""
    sale_type: str = ""
    partner_code: str = ""
    promotion_code: str = ""
    gift_promotion_code: str = ""
    policy_discount_code: str = ""
    discount_account: str = ""
    expense_account: str = ""
    fee_code: str = ""
    warehouse_code: str = ""
    lot: str = ""
    serial: str = ""
    card_code: str = ""
    wholesale_discount_reason: str = ""
    ecommerce_channel: str = ""
    tax_amount: Decimal = ZERO
    subsidy_amount: Decimal = ZERO
    discounts: Mapping[str, Decimal] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def __post_init__(self) -> None:
        if not isinstance(self.discounts, MappingProxyType):
            object.__setattr__(self, "discounts", _freeze_discounts(self.discounts))

    def discount(self, name: DiscountField | str) -> Decimal:
        """Amount in a named bucket; absent buckets are zero."""
        key = name.value if isinstance(name, DiscountField) else name
        return self.discounts.get(key, ZERO)

    @property
    def product_type_upper(self) -> str:
        return self.product_type.strip().upper()

    @property
    def is_wholesale(self) -> bool:
        return self.sale_type.strip().upper() in WHOLESALE_SALE_TYPES

    @property
    def net_amount(self) -> Decimal:
        """Net goods amount: stored amount, else line total, else revenue."""
        for candidate in (self.amount, self.line_total, self.revenue):
            if candidate != ZERO:
                return candidate
        return ZERO

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> SaleLine:
        """
        Build a SaleLine from a loosely typed record.

        Numeric fields are coerced with ``to_decimal``; text fields are
        stripped; unknown keys are ignored.
        """
        return cls(
            id=_text(data.get("id")),
            order_code=_text(data.get("order_code")),
            item_code=_text(data.get("item_code")),
            quantity=to_decimal(data.get("quantity")),
            material_code=_text(data.get("material_code")),
            item_name=_text(data.get("item_name")),
            unit_price=to_decimal(data.get("unit_price")),
            amount=to_decimal(data.get("amount")),
            line_total=to_decimal(data.get("line_total")),
            revenue=to_decimal(data.get("revenue")),
            gross_line_total=to_decimal(data.get("gross_line_total")),
            order_type_label=_text(data.get("order_type_label")),
            product_type=_text(data.get("product_type")),
            unit_code=_text(data.get("unit_code")),
            department_code=_text(data.get("department_code")),
            brand=_text(data.get("brand")),
            sale_type=_text(data.get("sale_type")),
            partner_code=_text(data.get("partner_code")),
            promotion_code=_text(data.get("promotion_code")),
            gift_promotion_code=_text(data.get("gift_promotion_code")),
            policy_discount_code=_text(data.get("policy_discount_code")),
            discount_account=_text(data.get("discount_account")),
            expense_account=_text(data.get("expense_account")),
            fee_code=_text(data.get("fee_code")),
            warehouse_code=_text(data.get("warehouse_code")),
            lot=_text(data.get("lot")),
            serial=_text(data.get("serial")),
            card_code=_text(data.get("card_code")),
            wholesale_discount_reason=_text(data.get("wholesale_discount_reason")),
            ecommerce_channel=_text(data.get("ecommerce_channel")),
            tax_amount=to_decimal(data.get("tax_amount")),
            subsidy_amount=to_decimal(data.get("subsidy_amount")),
            discounts=_freeze_discounts(data.get("discounts")),
        )


@dataclass(frozen=True)
class StockMovement:
    """One warehouse movement record.  Read-only once fetched."""

    id: str
    order_code: str
    item_code: str
    quantity: Decimal
    created_at: datetime
    doc_type: str = MovementDocType.SALE_STOCKOUT.value
    doc_code: str = ""
    item_name: str = ""
    material_code: str = ""
    stock_code: str = ""
    tracking_code: str = ""

    @property
    def is_stock_out(self) -> bool:
        """Stock leaving the warehouse: negative quantity or a stock-out document."""
        return (
            self.doc_type == MovementDocType.SALE_STOCKOUT.value
            or self.quantity < ZERO
        )

    @property
    def out_quantity(self) -> Decimal:
        return abs(self.quantity)


@dataclass(frozen=True)
class ProductInfo:
    """
    Catalog tracking metadata for an item or material code.

    ``product_type`` is the catalog group (e.g. ``GIFT``, ``03TPCN``), not
    the sale line's I/S/V tag.
    """

    code: str
    material_code: str = ""
    track_lot: bool = False
    track_serial: bool = False
    product_type: str = ""
    material_type: str = ""

    @property
    def is_ecode(self) -> bool:
        """Electronic-code / voucher-style item (material type 94)."""
        return self.material_type == "94"

    @property
    def is_gift_product(self) -> bool:
        return self.product_type.strip().upper() == "GIFT"

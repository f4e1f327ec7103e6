"""Transaction type and gift marker of an invoice line."""

from __future__ import annotations

from decimal import Decimal

from recon_engines.classifier import OrderCategoryFlags, normalize_product_type
from recon_kernel.domain.dtos import ProductInfo
from recon_kernel.domain.numbers import ZERO

# transaction type codes expected by the accounting system
TX_GOODS = "01"
TX_SERVICE = "02"
TX_PRODUCT = "03"
TX_WHOLESALE_ECODE = "04"
TX_FREE_SERVICE = "06"
TX_EXCHANGE_RETURN = "11"
TX_EXCHANGE_ISSUE = "12"

GIFT_MARKER = "1"


def resolve_transaction_type(
    flags: OrderCategoryFlags,
    product_type: str,
    quantity: Decimal,
    unit_price: Decimal,
    product: ProductInfo | None = None,
    is_wholesale: bool = False,
) -> str:
    product_type = normalize_product_type(product_type)

    if flags.dv_exchange or flags.card_separation:
        return TX_EXCHANGE_RETURN if quantity < ZERO else TX_EXCHANGE_ISSUE

    if is_wholesale and product is not None and product.is_ecode:
        return TX_WHOLESALE_ECODE

    if flags.normal:
        if product_type == "I":
            return TX_GOODS
        if product_type == "S" and quantity > ZERO:
            return TX_SERVICE
        if product_type == "V":
            return TX_PRODUCT

    if flags.service and product_type == "S":
        if quantity > ZERO:
            return TX_GOODS
        if unit_price == ZERO:
            return TX_FREE_SERVICE

    return TX_GOODS


def gift_marker(
    is_gift: bool,
    flags: OrderCategoryFlags,
    gift_promotion_code: str,
    investment_gift_code: str = "TT DAU TU",
) -> str:
    """``"1"`` for gift lines outside service orders, except investment gifts."""
    if is_gift and not flags.service and gift_promotion_code.strip() != investment_gift_code:
        return GIFT_MARKER
    return ""

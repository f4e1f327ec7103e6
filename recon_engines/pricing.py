"""
recon_engines.pricing -- Unit price and line amount resolution.

Responsibility:
    Derive the unit price, net line amount and gross ("original") line
    amount of an invoice line from its sale line, its category flags and
    the allocation ratio assigned by explosion.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Point-exchange lines are always priced at zero, whatever is stored.
    - A non-zero stored unit price is never overwritten.
    - The allocation ratio is applied here exactly once; callers pass the
      unscaled sale line.
    - Decimal-only arithmetic.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from recon_engines.classifier import OrderCategoryFlags
from recon_kernel.domain.dtos import DiscountField, SaleLine
from recon_kernel.domain.numbers import GIFT_EPSILON, ONE, ZERO, first_non_zero


@dataclass(frozen=True)
class PriceResult:
    unit_price: Decimal = ZERO
    amount: Decimal = ZERO
    gross_amount: Decimal = ZERO


def known_discount_total(sale: SaleLine) -> Decimal:
    """Discounts used to gross up a net amount: purchase, policy, VIP, voucher."""
    return (
        sale.discount(DiscountField.PURCHASE_DISCOUNT)
        + sale.discount(DiscountField.POLICY_DISCOUNT)
        + first_non_zero(
            sale.discount(DiscountField.VIP_DISCOUNT),
            sale.discount(DiscountField.GRADE_DISCOUNT),
        )
        + first_non_zero(
            sale.discount(DiscountField.VOUCHER_PAYMENT),
            sale.discount(DiscountField.VOUCHER_DISCOUNT),
        )
    )


def resolve_prices(
    sale: SaleLine,
    flags: OrderCategoryFlags,
    allocation_ratio: Decimal = ONE,
    confirmed_quantity: Decimal | None = None,
) -> PriceResult:
    """
    Resolve price and amounts for one (possibly exploded) sale line.

    Args:
        sale: The unscaled sale line.
        flags: Category flags of the line's own label.
        allocation_ratio: Share of the sale line carried by this invoice line.
        confirmed_quantity: Stock-confirmed quantity of this invoice line.
            Defaults to ``|quantity * ratio|``.
    """
    if flags.point_exchange:
        return PriceResult()

    quantity = sale.quantity
    base_amount = sale.net_amount
    unit_price = sale.unit_price

    if not flags.normal and unit_price == ZERO and quantity > ZERO:
        gross = sale.gross_line_total
        if gross == ZERO:
            gross = base_amount + known_discount_total(sale)
        if gross > ZERO:
            unit_price = gross / quantity

    if unit_price == ZERO and base_amount > ZERO and quantity != ZERO:
        unit_price = base_amount / abs(quantity)

    amount = base_amount * allocation_ratio
    gross_amount = amount
    if flags.normal and allocation_ratio != ONE:
        qty = confirmed_quantity
        if qty is None:
            qty = abs(quantity * allocation_ratio)
        if qty > ZERO and unit_price > ZERO:
            gross_amount = qty * unit_price
        else:
            gross_amount = base_amount * allocation_ratio

    return PriceResult(unit_price=unit_price, amount=amount, gross_amount=gross_amount)


def is_gift_line(unit_price: Decimal, amount: Decimal) -> bool:
    """Free goods: price and amount both effectively zero."""
    return abs(unit_price) < GIFT_EPSILON and abs(amount) < GIFT_EPSILON

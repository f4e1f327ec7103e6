"""
recon_engines.amounts -- Discount amount aggregation.

Responsibility:
    Collect a sale line's named discount buckets into the canonical
    ``DiscountAmountVector`` (``ck01`` .. ``ck22`` plus tax and subsidy).
    Several buckets alias two stored fields; the first non-zero source
    wins, in the order given by ``_BUCKET_SOURCES``.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Linearity: ``v.scale(r).total() == r * v.total()``.
    - Scaling multiplies every bucket, tax and subsidy, and is applied
      exactly once per invoice line (by explosion, never by a resolver).
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from decimal import Decimal

from recon_engines.classifier import OrderCategoryFlags
from recon_kernel.domain.dtos import DiscountField, SaleLine, numbered_bucket
from recon_kernel.domain.numbers import ZERO, first_non_zero, to_decimal

BUCKET_COUNT = 22


def bucket_name(index: int) -> str:
    return f"ck{index:02d}"


@dataclass(frozen=True)
class DiscountAmountVector:
    """Discount buckets ``ck01`` .. ``ck22`` plus tax and subsidy."""

    buckets: tuple[Decimal, ...] = field(default=(ZERO,) * BUCKET_COUNT)
    tax: Decimal = ZERO
    subsidy: Decimal = ZERO

    def __post_init__(self) -> None:
        if len(self.buckets) != BUCKET_COUNT:
            raise ValueError(
                f"DiscountAmountVector needs {BUCKET_COUNT} buckets, got {len(self.buckets)}"
            )

    @classmethod
    def from_buckets(
        cls,
        values: dict[str, Decimal],
        tax: Decimal = ZERO,
        subsidy: Decimal = ZERO,
    ) -> DiscountAmountVector:
        """Build from a ``{"ck01": ...}`` mapping; absent buckets are zero."""
        unknown = set(values) - {bucket_name(i) for i in range(1, BUCKET_COUNT + 1)}
        if unknown:
            raise ValueError(f"Unknown discount buckets: {sorted(unknown)}")
        return cls(
            buckets=tuple(
                to_decimal(values.get(bucket_name(i)))
                for i in range(1, BUCKET_COUNT + 1)
            ),
            tax=tax,
            subsidy=subsidy,
        )

    def bucket(self, index: int) -> Decimal:
        """Amount in bucket ``ck<index>`` (1-based)."""
        return self.buckets[index - 1]

    def scale(self, ratio: Decimal) -> DiscountAmountVector:
        return DiscountAmountVector(
            buckets=tuple(value * ratio for value in self.buckets),
            tax=self.tax * ratio,
            subsidy=self.subsidy * ratio,
        )

    def total(self) -> Decimal:
        """Sum of all buckets plus tax and subsidy."""
        return sum(self.buckets, ZERO) + self.tax + self.subsidy

    def as_dict(self) -> dict[str, Decimal]:
        result = {
            bucket_name(i): value for i, value in enumerate(self.buckets, start=1)
        }
        result["tax"] = self.tax
        result["subsidy"] = self.subsidy
        return result


ZERO_VECTOR = DiscountAmountVector()

# Buckets filled by the plain "first non-zero source" rule.
_BUCKET_SOURCES: dict[int, tuple[str, ...]] = {
    3: (DiscountField.VIP_DISCOUNT.value, DiscountField.GRADE_DISCOUNT.value),
    4: (DiscountField.COUPON_DISCOUNT.value, numbered_bucket(9)),
    7: (DiscountField.BRAND_VOUCHER_2.value,),
    8: (DiscountField.BRAND_VOUCHER_3.value,),
}
for _index in range(9, BUCKET_COUNT + 1):
    if _index != 11:
        _BUCKET_SOURCES[_index] = (numbered_bucket(_index),)
del _index


def _first(sale: SaleLine, names: tuple[str, ...]) -> Decimal:
    return first_non_zero(*(sale.discount(name) for name in names))


def _positive(value: Decimal) -> Decimal:
    return value if value > ZERO else ZERO


def aggregate_amounts(
    sale: SaleLine,
    flags: OrderCategoryFlags,
    platform_order: bool = False,
    wallet_receipt_total: Decimal | None = None,
) -> DiscountAmountVector:
    """
    Build the unscaled discount vector of a sale line.

    Args:
        sale: The sale line.
        flags: Category flags of the line's own label.
        platform_order: Order came through an e-commerce marketplace; the
            voucher payment moves from ck05/ck06 to ck15.
        wallet_receipt_total: ECOIN receipt amount of the order, used for
            ck11 when a voucher was paid and no wallet bucket is stored.
    """
    values = {
        bucket_name(index): _first(sale, sources)
        for index, sources in _BUCKET_SOURCES.items()
    }

    voucher_payment = _positive(sale.discount(DiscountField.VOUCHER_PAYMENT))

    values["ck01"] = ZERO if flags.point_exchange else first_non_zero(
        sale.discount(DiscountField.PROMOTION_DISCOUNT),
        sale.discount(DiscountField.PURCHASE_DISCOUNT),
    )

    wholesale_policy = _positive(sale.discount(DiscountField.WHOLESALE_POLICY_DISCOUNT))
    values["ck02"] = wholesale_policy or sale.discount(DiscountField.POLICY_DISCOUNT)

    if platform_order:
        values["ck05"] = ZERO
        values["ck06"] = ZERO
        values["ck15"] = voucher_payment or sale.discount(DiscountField.BRAND_VOUCHER_1)
    else:
        values["ck05"] = voucher_payment
        values["ck06"] = sale.discount(DiscountField.BRAND_VOUCHER_1)
    if flags.point_exchange:
        values["ck05"] = ZERO

    wallet = first_non_zero(
        sale.discount(DiscountField.WALLET_PAYMENT),
        sale.discount(numbered_bucket(11)),
    )
    if wallet == ZERO and voucher_payment > ZERO and wallet_receipt_total:
        wallet = wallet_receipt_total
    values["ck11"] = wallet

    return DiscountAmountVector.from_buckets(
        values, tax=sale.tax_amount, subsidy=sale.subsidy_amount
    )

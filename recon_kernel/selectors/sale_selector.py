"""
Module: recon_kernel.selectors.sale_selector
Responsibility: Load the sale lines of an order as immutable ``SaleLine`` DTOs,
    in stored line order.
"""

from __future__ import annotations

from sqlalchemy import select

from recon_kernel.domain.dtos import SaleLine
from recon_kernel.models.sale import SaleRecord
from recon_kernel.selectors.base import BaseSelector

_SALE_FIELDS = (
    "order_code", "item_code", "material_code", "item_name", "quantity",
    "unit_price", "amount", "line_total", "revenue", "gross_line_total",
    "order_type_label", "product_type", "unit_code", "department_code",
    "brand", "sale_type", "partner_code", "promotion_code",
    "gift_promotion_code", "policy_discount_code", "discount_account",
    "expense_account", "fee_code",
    "warehouse_code", "lot", "serial", "card_code",
    "wholesale_discount_reason", "ecommerce_channel", "tax_amount",
    "subsidy_amount", "discounts",
)


def sale_record_to_dto(record: SaleRecord) -> SaleLine:
    data = {name: getattr(record, name) for name in _SALE_FIELDS}
    data["id"] = str(record.id)
    return SaleLine.from_mapping(data)


class SaleSelector(BaseSelector[SaleRecord]):
    """Read sale lines by order code."""

    def for_order(self, order_code: str) -> tuple[SaleLine, ...]:
        rows = self.session.execute(
            select(SaleRecord)
            .where(SaleRecord.order_code == order_code)
            .order_by(SaleRecord.line_no, SaleRecord.created_at)
        ).scalars().all()
        return tuple(sale_record_to_dto(row) for row in rows)

    def for_orders(self, order_codes: list[str]) -> dict[str, tuple[SaleLine, ...]]:
        """Batch variant: one query for many orders, grouped by order code."""
        grouped: dict[str, list[SaleLine]] = {code: [] for code in order_codes}
        if not order_codes:
            return {}
        rows = self.session.execute(
            select(SaleRecord)
            .where(SaleRecord.order_code.in_(order_codes))
            .order_by(SaleRecord.order_code, SaleRecord.line_no, SaleRecord.created_at)
        ).scalars().all()
        for row in rows:
            grouped[row.order_code].append(sale_record_to_dto(row))
        return {code: tuple(lines) for code, lines in grouped.items()}

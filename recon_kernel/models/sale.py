"""
Module: recon_kernel.models.sale
Responsibility: ORM persistence for sale lines as synced from the point-of-sale
    system.  One row per purchased item of an order.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Monetary columns are Numeric(38, 9); discount buckets are stored as a
      JSON object of bucket name -> numeric string.
    - Rows are never updated by the reconciliation engine; selectors convert
      them into immutable ``SaleLine`` DTOs.
"""

from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from recon_kernel.db.base import TimestampedBase


class SaleRecord(TimestampedBase):
    """One stored sale line.  Column names follow the ``SaleLine`` DTO."""

    __tablename__ = "sales"

    __table_args__ = (
        Index("idx_sales_order_code", "order_code"),
        Index("idx_sales_item_code", "item_code"),
    )

    order_code: Mapped[str] = mapped_column(String(50), nullable=False)
    line_no: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    item_code: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    material_code: Mapped[str | None] = mapped_column(String(100))
    item_name: Mapped[str | None] = mapped_column(Text)

    quantity: Mapped[Decimal | None]
    unit_price: Mapped[Decimal | None]
    amount: Mapped[Decimal | None]
    line_total: Mapped[Decimal | None]
    revenue: Mapped[Decimal | None]
    gross_line_total: Mapped[Decimal | None]
    tax_amount: Mapped[Decimal | None]
    subsidy_amount: Mapped[Decimal | None]

    order_type_label: Mapped[str | None] = mapped_column(String(100))
    product_type: Mapped[str | None] = mapped_column(String(8))
    unit_code: Mapped[str | None] = mapped_column(String(20))
    department_code: Mapped[str | None] = mapped_column(String(20))
    brand: Mapped[str | None] = mapped_column(String(50))
    sale_type: Mapped[str | None] = mapped_column(String(20))
    partner_code: Mapped[str | None] = mapped_column(String(50))
    ecommerce_channel: Mapped[str | None] = mapped_column(String(50))

    promotion_code: Mapped[str | None] = mapped_column(String(100))
    gift_promotion_code: Mapped[str | None] = mapped_column(String(100))
    policy_discount_code: Mapped[str | None] = mapped_column(String(32))
    wholesale_discount_reason: Mapped[str | None] = mapped_column(String(100))
    discount_account: Mapped[str | None] = mapped_column(String(20))
    expense_account: Mapped[str | None] = mapped_column(String(20))
    fee_code: Mapped[str | None] = mapped_column(String(20))

    warehouse_code: Mapped[str | None] = mapped_column(String(20))
    lot: Mapped[str | None] = mapped_column(String(100))
    serial: Mapped[str | None] = mapped_column(String(100))
    card_code: Mapped[str | None] = mapped_column(String(100))

    discounts: Mapped[dict[str, Any] | None] = mapped_column(JSON)

    def __repr__(self) -> str:
        return f"<SaleRecord {self.order_code} {self.item_code} x{self.quantity}>"

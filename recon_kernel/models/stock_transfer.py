"""
Module: recon_kernel.models.stock_transfer
Responsibility: ORM persistence for warehouse stock movements synced from the
    warehouse system (stock-out, return, internal transfer).
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - ``quantity`` is signed: stock-out documents carry negative quantities.
    - ``created_at`` orders the per-item FIFO queue used by explosion.
"""

from decimal import Decimal

from sqlalchemy import Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from recon_kernel.db.base import TimestampedBase


class StockTransferRecord(TimestampedBase):
    """One stored stock movement."""

    __tablename__ = "stock_transfers"

    __table_args__ = (
        Index("idx_stock_transfers_order_code", "order_code"),
        Index("idx_stock_transfers_doc_code", "doc_code"),
        Index("idx_stock_transfers_item_code", "item_code"),
    )

    doc_type: Mapped[str] = mapped_column(String(30), nullable=False)
    doc_code: Mapped[str] = mapped_column(String(50), nullable=False)
    order_code: Mapped[str | None] = mapped_column(String(50))
    item_code: Mapped[str] = mapped_column(String(100), nullable=False)
    item_name: Mapped[str | None] = mapped_column(Text)
    material_code: Mapped[str | None] = mapped_column(String(100))
    stock_code: Mapped[str | None] = mapped_column(String(20))
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    batch_serial: Mapped[str | None] = mapped_column(String(100))

    def __repr__(self) -> str:
        return f"<StockTransferRecord {self.doc_code} {self.item_code} {self.quantity}>"

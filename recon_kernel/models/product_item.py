"""
Module: recon_kernel.models.product_item
Responsibility: Local copy of catalog tracking metadata (lot/serial tracking,
    product group, material type) keyed by item code.  Refreshed from the
    loyalty catalog by an external sync job.
Architecture position: Kernel > Models.  May import from db/base.py only.
"""

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from recon_kernel.db.base import TimestampedBase


class ProductItem(TimestampedBase):
    """Catalog entry for one item code."""

    __tablename__ = "product_items"

    code: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    material_code: Mapped[str | None] = mapped_column(String(100))
    track_lot: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    track_serial: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    product_type: Mapped[str | None] = mapped_column(String(30))
    material_type: Mapped[str | None] = mapped_column(String(10))

    def __repr__(self) -> str:
        return f"<ProductItem {self.code}>"

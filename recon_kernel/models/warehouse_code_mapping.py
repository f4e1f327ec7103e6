"""
Module: recon_kernel.models.warehouse_code_mapping
Responsibility: Legacy -> canonical warehouse code mapping maintained by
    operations staff.  Only ACTIVE rows participate in resolution.
Architecture position: Kernel > Models.  May import from db/base.py only.
"""

from enum import Enum

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from recon_kernel.db.base import TimestampedBase


class MappingStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class WarehouseCodeMapping(TimestampedBase):
    """One legacy warehouse code and its canonical replacement."""

    __tablename__ = "warehouse_code_mappings"

    legacy_code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    canonical_code: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=MappingStatus.ACTIVE.value,
    )

    def __repr__(self) -> str:
        return f"<WarehouseCodeMapping {self.legacy_code} -> {self.canonical_code}>"

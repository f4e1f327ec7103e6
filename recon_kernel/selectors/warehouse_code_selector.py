"""
Module: recon_kernel.selectors.warehouse_code_selector
Responsibility: Legacy -> canonical warehouse code map, restricted to ACTIVE
    mappings.
"""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import select

from recon_kernel.models.warehouse_code_mapping import (
    MappingStatus,
    WarehouseCodeMapping,
)
from recon_kernel.selectors.base import BaseSelector


class WarehouseCodeSelector(BaseSelector[WarehouseCodeMapping]):
    """Read active warehouse code mappings."""

    def active_map(self, legacy_codes: Iterable[str] | None = None) -> dict[str, str]:
        stmt = select(WarehouseCodeMapping).where(
            WarehouseCodeMapping.status == MappingStatus.ACTIVE.value
        )
        if legacy_codes is not None:
            wanted = sorted({code for code in legacy_codes if code})
            if not wanted:
                return {}
            stmt = stmt.where(WarehouseCodeMapping.legacy_code.in_(wanted))
        rows = self.session.execute(stmt).scalars().all()
        return {row.legacy_code: row.canonical_code for row in rows}

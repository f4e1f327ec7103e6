"""
Module: recon_kernel.selectors.catalog_selector
Responsibility: Batch lookup of catalog tracking metadata for a set of item or
    material codes.
"""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import or_, select

from recon_kernel.domain.dtos import ProductInfo
from recon_kernel.models.product_item import ProductItem
from recon_kernel.selectors.base import BaseSelector


def product_item_to_dto(item: ProductItem) -> ProductInfo:
    return ProductInfo(
        code=item.code,
        material_code=item.material_code or "",
        track_lot=bool(item.track_lot),
        track_serial=bool(item.track_serial),
        product_type=item.product_type or "",
        material_type=item.material_type or "",
    )


class CatalogSelector(BaseSelector[ProductItem]):
    """Read catalog entries by item or material code."""

    def products(self, codes: Iterable[str]) -> dict[str, ProductInfo]:
        """
        Map each requested code to its catalog entry.

        An entry is reachable under its item code and under its material
        code.  Codes with no catalog entry are simply absent.
        """
        wanted = sorted({code for code in codes if code})
        if not wanted:
            return {}
        rows = self.session.execute(
            select(ProductItem).where(
                or_(
                    ProductItem.code.in_(wanted),
                    ProductItem.material_code.in_(wanted),
                )
            ).order_by(ProductItem.code)
        ).scalars().all()

        result: dict[str, ProductInfo] = {}
        for row in rows:
            info = product_item_to_dto(row)
            result[info.code] = info
            if info.material_code and info.material_code not in result:
                result[info.material_code] = info
        return result

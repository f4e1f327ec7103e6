"""Read-only selectors returning immutable DTOs."""

from recon_kernel.selectors.base import BaseSelector
from recon_kernel.selectors.catalog_selector import CatalogSelector
from recon_kernel.selectors.sale_selector import SaleSelector
from recon_kernel.selectors.stock_movement_selector import StockMovementSelector
from recon_kernel.selectors.warehouse_code_selector import WarehouseCodeSelector

__all__ = [
    "BaseSelector",
    "CatalogSelector",
    "SaleSelector",
    "StockMovementSelector",
    "WarehouseCodeSelector",
]

"""ORM read model for reconciliation inputs."""

from recon_kernel.models.product_item import ProductItem
from recon_kernel.models.sale import SaleRecord
from recon_kernel.models.stock_transfer import StockTransferRecord
from recon_kernel.models.warehouse_code_mapping import (
    MappingStatus,
    WarehouseCodeMapping,
)

__all__ = [
    "MappingStatus",
    "ProductItem",
    "SaleRecord",
    "StockTransferRecord",
    "WarehouseCodeMapping",
]

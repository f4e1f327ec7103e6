"""
recon_services -- orchestration over the reconciliation engines.

The only layer that touches the database session and external lookups.
"""

from recon_services.lookup_cache import TTLCache
from recon_services.reconciliation_service import (
    CachedProductCatalog,
    CachedWarehouseCodeLookup,
    EmployeeDirectory,
    OrderSnapshot,
    ProductCatalog,
    PromotionAccountLookup,
    ReconciliationBatch,
    ReconciliationService,
    StaticEmployeeDirectory,
    StaticPromotionAccounts,
    WarehouseCodeLookup,
)

__all__ = [
    "CachedProductCatalog",
    "CachedWarehouseCodeLookup",
    "EmployeeDirectory",
    "OrderSnapshot",
    "ProductCatalog",
    "PromotionAccountLookup",
    "ReconciliationBatch",
    "ReconciliationService",
    "StaticEmployeeDirectory",
    "StaticPromotionAccounts",
    "TTLCache",
    "WarehouseCodeLookup",
]

"""
recon_services.reconciliation_service -- Order reconciliation orchestration.

Responsibility:
    Load the sale lines and stock movements of an order, pre-fetch every
    lookup the engines need (catalog entries, active warehouse code
    mappings, employee status, wholesale promotion accounts) in batches,
    build the immutable ``ReconciliationContext`` and run
    ``StockExplosionEngine``.

Architecture position:
    Services -- stateful orchestration over engines + kernel.  The only
    layer that touches the database session or external lookups.

Invariants enforced:
    - All lookups complete before explosion starts; per-line resolution
      never blocks on I/O.
    - The session is used from the calling thread only.  ``reconcile_many``
      loads every snapshot sequentially, then runs the pure computation
      of the orders in parallel.
    - Each run reads a fresh snapshot; only reference lookups are cached
      (short TTL, see ``lookup_cache``).

Failure modes:
    - ``EmptyOrderError`` from ``reconcile`` when the order has no sale
      lines.  ``reconcile_many`` records such orders in ``empty_orders``
      instead of failing the batch.
    - Database errors propagate unchanged.

Usage:
    from recon_services import ReconciliationService

    with session_scope() as session:
        service = ReconciliationService(session)
        result = service.reconcile("SO33.00121928")
        for line in result.lines:
            ...
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Protocol, runtime_checkable
from uuid import uuid4

from sqlalchemy.orm import Session

from recon_config import get_active_config
from recon_config.schema import RuleTables
from recon_engines.accounts import AccountAssignment
from recon_engines.explosion import StockExplosionEngine
from recon_engines.promotion import wholesale_policy_code
from recon_engines.records import ExplosionResult, ReconciliationContext
from recon_kernel.domain.clock import Clock, SystemClock
from recon_kernel.domain.dtos import ProductInfo, SaleLine, StockMovement
from recon_kernel.exceptions import EmptyOrderError
from recon_kernel.logging_config import LogContext, get_logger
from recon_kernel.selectors.catalog_selector import CatalogSelector
from recon_kernel.selectors.sale_selector import SaleSelector
from recon_kernel.selectors.stock_movement_selector import StockMovementSelector
from recon_kernel.selectors.warehouse_code_selector import WarehouseCodeSelector
from recon_services.lookup_cache import TTLCache

logger = get_logger("services.reconciliation")

DEFAULT_CACHE_TTL_SECONDS = 300


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


@runtime_checkable
class ProductCatalog(Protocol):
    """Catalog tracking metadata by item or material code."""

    def products(self, codes: Iterable[str]) -> Mapping[str, ProductInfo]: ...


@runtime_checkable
class WarehouseCodeLookup(Protocol):
    """Legacy -> canonical warehouse codes, active mappings only."""

    def active_map(self, legacy_codes: Iterable[str] | None = None) -> Mapping[str, str]: ...


@runtime_checkable
class EmployeeDirectory(Protocol):
    """Whether a partner is an employee of a brand."""

    def is_employee(self, partner_code: str, brand: str) -> bool: ...


@runtime_checkable
class PromotionAccountLookup(Protocol):
    """Accounts configured for wholesale policy promotion codes."""

    def accounts(self, codes: Iterable[str]) -> Mapping[str, AccountAssignment]: ...


class StaticEmployeeDirectory:
    """Employee directory over a fixed set of ``(partner_code, brand)`` pairs."""

    def __init__(self, pairs: Iterable[tuple[str, str]] = ()) -> None:
        self._pairs = frozenset(
            (partner.strip(), brand.strip().lower()) for partner, brand in pairs
        )

    def is_employee(self, partner_code: str, brand: str) -> bool:
        return (partner_code.strip(), brand.strip().lower()) in self._pairs


class StaticPromotionAccounts:
    def __init__(self, accounts: Mapping[str, AccountAssignment] | None = None) -> None:
        self._accounts = dict(accounts or {})

    def accounts(self, codes: Iterable[str]) -> Mapping[str, AccountAssignment]:
        return {code: self._accounts[code] for code in codes if code in self._accounts}


class CachedProductCatalog:
    """``ProductCatalog`` wrapper serving repeated codes from a TTL cache."""

    def __init__(self, catalog: ProductCatalog, cache: TTLCache[str, ProductInfo]) -> None:
        self._catalog = catalog
        self._cache = cache

    def products(self, codes: Iterable[str]) -> Mapping[str, ProductInfo]:
        return self._cache.get_many(
            (code for code in codes if code), self._catalog.products
        )


class CachedWarehouseCodeLookup:
    """``WarehouseCodeLookup`` wrapper serving repeated codes from a TTL cache."""

    def __init__(self, lookup: WarehouseCodeLookup, cache: TTLCache[str, str]) -> None:
        self._lookup = lookup
        self._cache = cache

    def active_map(self, legacy_codes: Iterable[str] | None = None) -> Mapping[str, str]:
        if legacy_codes is None:
            return self._lookup.active_map(None)
        return self._cache.get_many(
            (code for code in legacy_codes if code), self._lookup.active_map
        )


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OrderSnapshot:
    """Point-in-time inputs of one order."""

    order_code: str
    sale_lines: tuple[SaleLine, ...]
    movements: tuple[StockMovement, ...]


@dataclass(frozen=True)
class ReconciliationBatch:
    """Outcome of ``reconcile_many``, keyed by order code in request order."""

    results: dict[str, ExplosionResult] = field(default_factory=dict)
    empty_orders: tuple[str, ...] = ()

    @property
    def line_count(self) -> int:
        return sum(len(result.lines) for result in self.results.values())


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class ReconciliationService:
    """
    Reconcile orders against warehouse stock movements.

    Contract:
        Reads through the caller's session; never writes.  Collaborators
        default to the SQLAlchemy selectors over the same session, wrapped
        in a short-TTL cache.
    Guarantees:
        - ``reconcile`` returns the same lines as the engine would for the
          loaded snapshot; the service adds no derivation of its own.
        - Every run is tagged with a ``run_id`` in the log context.
    Non-goals:
        - Does not assemble or send the accounting system's payload.
    """

    def __init__(
        self,
        session: Session,
        rule_tables: RuleTables | None = None,
        *,
        catalog: ProductCatalog | None = None,
        warehouse_lookup: WarehouseCodeLookup | None = None,
        employees: EmployeeDirectory | None = None,
        promotion_accounts: PromotionAccountLookup | None = None,
        clock: Clock | None = None,
        cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        max_workers: int | None = None,
    ) -> None:
        self._session = session
        self._rule_tables = rule_tables or get_active_config()
        self._clock = clock or SystemClock()
        self._sales = SaleSelector(session)
        self._movements = StockMovementSelector(session)
        self._catalog = CachedProductCatalog(
            catalog or CatalogSelector(session),
            TTLCache(cache_ttl_seconds, self._clock, name="catalog"),
        )
        self._warehouse_lookup = CachedWarehouseCodeLookup(
            warehouse_lookup or WarehouseCodeSelector(session),
            TTLCache(cache_ttl_seconds, self._clock, name="warehouse_codes"),
        )
        self._employees = employees or StaticEmployeeDirectory()
        self._promotion_accounts = promotion_accounts or StaticPromotionAccounts()
        self._engine = StockExplosionEngine(max_workers=max_workers)

    @property
    def rule_tables(self) -> RuleTables:
        return self._rule_tables

    # -- loading ------------------------------------------------------------

    def load_snapshot(self, order_code: str) -> OrderSnapshot:
        return OrderSnapshot(
            order_code=order_code,
            sale_lines=self._sales.for_order(order_code),
            movements=self._movements.for_order(order_code),
        )

    def load_snapshots(self, order_codes: list[str]) -> list[OrderSnapshot]:
        """One sale query and one movement query for all ``order_codes``."""
        sales = self._sales.for_orders(order_codes)
        movements = self._movements.for_orders(order_codes)
        return [
            OrderSnapshot(
                order_code=code,
                sale_lines=sales.get(code, ()),
                movements=movements.get(code, ()),
            )
            for code in order_codes
        ]

    def build_context(
        self,
        snapshot: OrderSnapshot,
        *,
        wallet_receipt_total: Decimal | None = None,
        platform_order: bool = False,
    ) -> ReconciliationContext:
        """Pre-fetch every lookup the order needs, in one batch per source."""
        sales = snapshot.sale_lines
        movements = snapshot.movements

        product_codes = [
            code
            for sale in sales
            for code in (sale.item_code, sale.material_code)
        ] + [
            code
            for movement in movements
            for code in (movement.item_code, movement.material_code)
        ]
        products = self._catalog.products(product_codes)

        warehouse_codes = self._warehouse_lookup.active_map(
            [movement.stock_code for movement in movements]
            + [sale.warehouse_code for sale in sales]
        )

        employee_partners = frozenset(
            (sale.partner_code.strip(), sale.brand.strip().lower())
            for sale in sales
            if sale.partner_code and self._employees.is_employee(sale.partner_code, sale.brand)
        )

        wholesale_codes = sorted({
            wholesale_policy_code(
                products.get(sale.material_code) or products.get(sale.item_code),
                self._rule_tables.promotions,
            )
            for sale in sales
            if sale.is_wholesale
        })
        promotion_accounts = (
            self._promotion_accounts.accounts(wholesale_codes) if wholesale_codes else {}
        )

        return ReconciliationContext(
            rule_tables=self._rule_tables,
            order_code=snapshot.order_code,
            products=products,
            warehouse_codes=warehouse_codes,
            employee_partners=employee_partners,
            promotion_accounts=promotion_accounts,
            wallet_receipt_total=wallet_receipt_total,
            platform_order=platform_order,
        )

    # -- runs ---------------------------------------------------------------

    def reconcile(
        self,
        order_code: str,
        *,
        wallet_receipt_total: Decimal | None = None,
        platform_order: bool = False,
    ) -> ExplosionResult:
        """
        Reconcile one order.

        Raises:
            EmptyOrderError: if the order has no sale lines.
        """
        with LogContext.bind(order_code=order_code, run_id=str(uuid4())):
            t0 = time.monotonic()
            snapshot = self.load_snapshot(order_code)
            context = self.build_context(
                snapshot,
                wallet_receipt_total=wallet_receipt_total,
                platform_order=platform_order,
            )
            result = self._engine.explode(
                sale_lines=snapshot.sale_lines,
                movements=snapshot.movements,
                context=context,
            )
            logger.info("order_reconciled", extra={
                "order_code": order_code,
                "line_count": len(result.lines),
                "duration_ms": round((time.monotonic() - t0) * 1000, 2),
            })
            return result

    def reconcile_many(
        self,
        order_codes: Sequence[str],
        max_workers: int | None = None,
    ) -> ReconciliationBatch:
        """
        Reconcile several orders.

        Snapshots and lookups are loaded sequentially on the caller's
        session; explosion of the loaded orders then runs on up to
        ``max_workers`` threads.  Orders share no mutable state.
        """
        run_id = str(uuid4())
        with LogContext.bind(run_id=run_id):
            t0 = time.monotonic()
            unique_codes = list(dict.fromkeys(order_codes))
            prepared = [
                (snapshot, self.build_context(snapshot))
                for snapshot in self.load_snapshots(unique_codes)
            ]

            def explode(item: tuple[OrderSnapshot, ReconciliationContext]) -> ExplosionResult | None:
                snapshot, context = item
                with LogContext.bind(order_code=snapshot.order_code, run_id=run_id):
                    try:
                        return self._engine.explode(
                            sale_lines=snapshot.sale_lines,
                            movements=snapshot.movements,
                            context=context,
                        )
                    except EmptyOrderError:
                        return None

            if max_workers and max_workers > 1 and len(prepared) > 1:
                with ThreadPoolExecutor(max_workers=max_workers) as executor:
                    outcomes = list(executor.map(explode, prepared))
            else:
                outcomes = [explode(item) for item in prepared]

            results: dict[str, ExplosionResult] = {}
            empty: list[str] = []
            for code, outcome in zip(unique_codes, outcomes):
                if outcome is None:
                    empty.append(code)
                else:
                    results[code] = outcome

            batch = ReconciliationBatch(results=results, empty_orders=tuple(empty))
            logger.info("orders_reconciled", extra={
                "order_count": len(unique_codes),
                "reconciled_count": len(results),
                "empty_order_count": len(empty),
                "line_count": batch.line_count,
                "duration_ms": round((time.monotonic() - t0) * 1000, 2),
            })
            return batch

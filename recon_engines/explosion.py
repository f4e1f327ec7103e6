"""
recon_engines.explosion -- Stock-movement matcher/exploder.

Responsibility:
    Turn the sale lines and stock movements of one order into a flat,
    ordered tuple of ``InvoiceLine``.  A sale line matched by several
    stock-out movements is exploded into one invoice line per movement,
    each carrying its share (allocation ratio) of the sale line's amounts.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Orchestrates the
    classifier, pricing, promotion, account, amount, warehouse and
    line-attribute resolvers per planned line.

Algorithm:
    1. Keep stock-out movements (negative quantity or SALE_STOCKOUT),
       dropping virtual keep items.
    2. Queue sale lines per normalized item code, input order preserved.
    3. Walk movements oldest-first.  Look up the movement's item code,
       then its material code.  Take the first unconsumed sale line of
       the queue, else reuse the first one (legacy one-sale-to-many
       behavior, kept on purpose).
    4. A movement with no queue becomes a synthetic line.
    5. Sale lines never consumed pass through unchanged.

Invariants enforced:
    - Pairing (``plan_pairs``) is sequential and complete before any line
      is resolved; resolution (``resolve_pair``) is independent per pair
      and may run on a thread pool.
    - Consumption is monotonic: a consumed sale line is never released.
    - Output order is deterministic: movement lines in creation order,
      then pass-through lines in input order.
    - Amounts are scaled by the allocation ratio exactly once.

Failure modes:
    - ``EmptyOrderError`` when the order has no sale lines.
    - Nothing else raises: unmatched movements become synthetic lines and
      malformed quantities are already zero in the DTOs.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

from recon_engines.accounts import resolve_accounts
from recon_engines.amounts import ZERO_VECTOR, aggregate_amounts
from recon_engines.classifier import OrderCategoryFlags, classify_order_type, is_keep_item
from recon_engines.line_attributes import gift_marker, resolve_transaction_type
from recon_engines.pricing import is_gift_line, resolve_prices
from recon_engines.promotion import (
    resolve_policy_discount_code,
    resolve_promotion_codes,
    resolve_voucher_code,
)
from recon_engines.records import (
    ExplosionResult,
    InvoiceLine,
    MatchedPair,
    Provenance,
    ReconciliationContext,
)
from recon_engines.tracer import traced_engine
from recon_engines.warehouse import (
    LotSerial,
    resolve_card_code,
    resolve_lot_serial,
    resolve_warehouse_code,
)
from recon_kernel.domain.dtos import ProductInfo, SaleLine, StockMovement
from recon_kernel.domain.numbers import ONE, ZERO
from recon_kernel.exceptions import EmptyOrderError
from recon_kernel.logging_config import get_logger

logger = get_logger("engines.explosion")


def _item_key(code: str | None) -> str:
    return (code or "").strip().lower()


def allocation_ratio(movement_quantity: Decimal, sale_quantity: Decimal) -> Decimal:
    """``|movement qty| / max(sale qty, 1)``."""
    return abs(movement_quantity) / max(sale_quantity, ONE)


def qualifying_movements(movements: Sequence[StockMovement]) -> list[StockMovement]:
    """Stock-out movements of real items, oldest first (stable for ties)."""
    kept = [
        movement for movement in movements
        if movement.is_stock_out and not is_keep_item(movement.item_code)
    ]
    return sorted(kept, key=lambda movement: movement.created_at)


def plan_pairs(
    sale_lines: Sequence[SaleLine],
    movements: Sequence[StockMovement],
) -> tuple[MatchedPair, ...]:
    """
    Decide which invoice lines exist.  Sequential by construction.

    Postconditions:
        - One pair per qualifying movement, in creation-time order.
        - Followed by one PASS_THROUGH pair per unconsumed sale line, in
          input order.
    """
    ordered = qualifying_movements(movements)

    # sale lines without an item code are never matched; they pass through
    queues: dict[str, list[int]] = {}
    for index, sale in enumerate(sale_lines):
        key = _item_key(sale.item_code)
        if key:
            queues.setdefault(key, []).append(index)

    consumed = [False] * len(sale_lines)
    pairs: list[MatchedPair] = []

    for movement in ordered:
        queue = None
        for key in (_item_key(movement.item_code), _item_key(movement.material_code)):
            if key:
                queue = queues.get(key)
            if queue:
                break

        if not queue:
            pairs.append(MatchedPair(
                sequence=len(pairs),
                provenance=Provenance.SYNTHETIC,
                movement=movement,
            ))
            continue

        index = next((i for i in queue if not consumed[i]), queue[0])
        consumed[index] = True
        sale = sale_lines[index]
        pairs.append(MatchedPair(
            sequence=len(pairs),
            provenance=Provenance.STOCK_MATCHED,
            sale=sale,
            movement=movement,
            allocation_ratio=allocation_ratio(movement.quantity, sale.quantity),
        ))

    for index, sale in enumerate(sale_lines):
        if not consumed[index]:
            pairs.append(MatchedPair(
                sequence=len(pairs),
                provenance=Provenance.PASS_THROUGH,
                sale=sale,
            ))

    return tuple(pairs)


def _line_id(context: ReconciliationContext, pair: MatchedPair) -> str:
    order_code = context.order_code
    if not order_code:
        order_code = pair.sale.order_code if pair.sale else pair.movement.order_code
    return f"{order_code}:{pair.sequence + 1:04d}"


def _stored_lot_serial(sale: SaleLine, product: ProductInfo | None) -> LotSerial:
    if product is not None:
        return resolve_lot_serial(
            sale.lot or sale.serial, product.track_lot, product.track_serial
        )
    if sale.serial:
        return LotSerial(serial=sale.serial)
    return LotSerial(lot=sale.lot)


def _resolve_synthetic(pair: MatchedPair, context: ReconciliationContext) -> InvoiceLine:
    movement = pair.movement
    product = context.product_for(movement.item_code, movement.material_code)
    tracking = resolve_lot_serial(
        movement.tracking_code,
        product.track_lot if product else False,
        product.track_serial if product else False,
    )
    flags = OrderCategoryFlags()
    return InvoiceLine(
        line_id=_line_id(context, pair),
        order_code=context.order_code or movement.order_code,
        item_code=movement.item_code,
        material_code=movement.material_code,
        item_name=movement.item_name,
        quantity=movement.out_quantity,
        provenance=Provenance.SYNTHETIC,
        warehouse_code=resolve_warehouse_code(
            movement.stock_code, None, None, flags, context.warehouse_codes,
            context.rule_tables.warehouse.card_separation_prefix,
        ),
        lot=tracking.lot,
        serial=tracking.serial,
        is_gift=True,
        amounts=ZERO_VECTOR,
        allocation_ratio=ONE,
        stock_movement_id=movement.id,
        stock_doc_code=movement.doc_code,
        categories=flags,
    )


def resolve_pair(pair: MatchedPair, context: ReconciliationContext) -> InvoiceLine:
    """
    Resolve one planned line into an ``InvoiceLine``.

    Independent of every other pair: safe to run concurrently given the
    immutable context.
    """
    if pair.provenance is Provenance.SYNTHETIC:
        return _resolve_synthetic(pair, context)

    sale = pair.sale
    movement = pair.movement
    tables = context.rule_tables
    ratio = pair.allocation_ratio
    flags = classify_order_type(sale.order_type_label)

    if movement is not None:
        product = context.product_for(
            movement.item_code, movement.material_code, sale.material_code, sale.item_code
        )
        quantity = movement.out_quantity
        tracking = resolve_lot_serial(
            movement.tracking_code,
            product.track_lot if product else False,
            product.track_serial if product else False,
        )
        prices = resolve_prices(sale, flags, ratio, confirmed_quantity=quantity)
    else:
        product = context.product_for(sale.material_code, sale.item_code)
        quantity = sale.quantity
        tracking = _stored_lot_serial(sale, product)
        prices = resolve_prices(sale, flags, ratio)

    is_gift = is_gift_line(prices.unit_price, prices.amount)
    is_employee = context.is_employee(sale.partner_code, sale.brand)
    platform = context.platform_order or flags.ecommerce_platform

    codes = resolve_promotion_codes(
        sale,
        flags,
        is_gift,
        sale.unit_code,
        sale.product_type_upper,
        sale.promotion_code,
        tables.promotions,
        is_employee=is_employee,
        platform_override=context.platform_order,
    )
    accounts = resolve_accounts(
        sale,
        product,
        flags,
        is_gift,
        has_promotion_code=bool(sale.promotion_code or codes.promotion_code),
        has_gift_promotion_code=bool(codes.gift_promotion_code),
        accounts=tables.accounts,
        promotions=tables.promotions,
        promotion_accounts=context.promotion_accounts,
    )
    amounts = aggregate_amounts(
        sale,
        flags,
        platform_order=platform,
        wallet_receipt_total=context.wallet_receipt_total,
    )
    if ratio != ONE:
        amounts = amounts.scale(ratio)

    warehouse_code = resolve_warehouse_code(
        movement.stock_code if movement else None,
        sale.warehouse_code,
        sale.department_code,
        flags,
        context.warehouse_codes,
        tables.warehouse.card_separation_prefix,
    )

    return InvoiceLine(
        line_id=_line_id(context, pair),
        order_code=context.order_code or sale.order_code,
        item_code=sale.item_code,
        material_code=sale.material_code,
        item_name=sale.item_name or (movement.item_name if movement else ""),
        quantity=quantity,
        provenance=pair.provenance,
        unit_price=prices.unit_price,
        amount=prices.amount,
        gross_amount=prices.gross_amount,
        warehouse_code=warehouse_code,
        lot=tracking.lot,
        serial=tracking.serial,
        promotion_code=codes.promotion_code,
        gift_promotion_code=codes.gift_promotion_code,
        policy_discount_code=resolve_policy_discount_code(
            sale, product, amounts.bucket(2), tables.promotions,
        ),
        voucher_code=resolve_voucher_code(
            sale, product, tables.promotions,
            unit_code=sale.unit_code, is_employee=is_employee,
        ),
        discount_account=accounts.discount_account,
        expense_account=accounts.expense_account,
        fee_code=accounts.fee_code,
        account_rule=accounts.rule,
        transaction_type=resolve_transaction_type(
            flags,
            sale.product_type,
            sale.quantity,
            prices.unit_price,
            product=product,
            is_wholesale=sale.is_wholesale,
        ),
        card_code=resolve_card_code(
            product, tracking.serial, flags, sale.product_type, sale.card_code
        ),
        is_gift=is_gift,
        gift_marker=gift_marker(
            is_gift, flags, codes.gift_promotion_code,
            tables.promotions.investment_gift_code,
        ),
        amounts=amounts,
        allocation_ratio=ratio,
        sale_line_id=sale.id,
        stock_movement_id=movement.id if movement else None,
        stock_doc_code=movement.doc_code if movement else "",
        categories=flags,
    )


class StockExplosionEngine:
    """
    Matcher/exploder for one order.

    Contract:
        Pure -- no I/O, no clock access.  All lookups arrive pre-fetched in
        the ``ReconciliationContext``.
    Guarantees:
        - Identical inputs produce identical ordered output.
        - With ``max_workers > 1`` pairs are resolved on a thread pool;
          the output order is the same as the sequential run.
    Non-goals:
        - Does not persist invoice lines.
    """

    def __init__(self, max_workers: int | None = None) -> None:
        self._max_workers = max_workers

    @traced_engine("explosion", "1.0", fingerprint_fields=("sale_lines", "movements"))
    def explode(
        self,
        sale_lines: Sequence[SaleLine],
        movements: Sequence[StockMovement],
        context: ReconciliationContext,
    ) -> ExplosionResult:
        """
        Explode the sale lines of one order against its stock movements.

        Raises:
            EmptyOrderError: if ``sale_lines`` is empty.
        """
        t0 = time.monotonic()
        if not sale_lines:
            logger.error("explosion_empty_order", extra={
                "order_code": context.order_code,
                "movement_count": len(movements),
            })
            raise EmptyOrderError(context.order_code)

        logger.info("explosion_started", extra={
            "order_code": context.order_code,
            "sale_line_count": len(sale_lines),
            "movement_count": len(movements),
        })

        pairs = plan_pairs(sale_lines, movements)
        lines = self._resolve_all(pairs, context)
        result = ExplosionResult(
            order_code=context.order_code or sale_lines[0].order_code,
            lines=lines,
        )

        for line in lines:
            if line.provenance is Provenance.SYNTHETIC:
                logger.warning("stock_movement_unmatched", extra={
                    "order_code": result.order_code,
                    "item_code": line.item_code,
                    "stock_movement_id": line.stock_movement_id,
                    "quantity": str(line.quantity),
                })

        duration_ms = round((time.monotonic() - t0) * 1000, 2)
        logger.info("explosion_completed", extra={
            "order_code": result.order_code,
            "line_count": len(lines),
            "matched_count": result.matched_count,
            "synthetic_count": result.synthetic_count,
            "pass_through_count": result.pass_through_count,
            "total_quantity": str(result.total_quantity),
            "duration_ms": duration_ms,
        })
        return result

    def _resolve_all(
        self,
        pairs: tuple[MatchedPair, ...],
        context: ReconciliationContext,
    ) -> tuple[InvoiceLine, ...]:
        if self._max_workers and self._max_workers > 1 and len(pairs) > 1:
            with ThreadPoolExecutor(max_workers=self._max_workers) as executor:
                return tuple(executor.map(lambda pair: resolve_pair(pair, context), pairs))
        return tuple(resolve_pair(pair, context) for pair in pairs)

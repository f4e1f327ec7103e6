"""
Module: recon_kernel.selectors.stock_movement_selector
Responsibility: Load stock movements filed for an order.  Return orders also
    pull the movements filed under their originating sale order
    (``RT..._n`` -> ``SO...``).
"""

from __future__ import annotations

from sqlalchemy import select

from recon_kernel.domain.dtos import StockMovement
from recon_kernel.domain.numbers import to_decimal
from recon_kernel.domain.order_codes import movement_lookup_codes
from recon_kernel.models.stock_transfer import StockTransferRecord
from recon_kernel.selectors.base import BaseSelector


def stock_record_to_dto(record: StockTransferRecord) -> StockMovement:
    return StockMovement(
        id=str(record.id),
        order_code=record.order_code or "",
        item_code=(record.item_code or "").strip(),
        quantity=to_decimal(record.quantity),
        created_at=record.created_at,
        doc_type=record.doc_type or "",
        doc_code=record.doc_code or "",
        item_name=record.item_name or "",
        material_code=(record.material_code or "").strip(),
        stock_code=(record.stock_code or "").strip(),
        tracking_code=(record.batch_serial or "").strip(),
    )


class StockMovementSelector(BaseSelector[StockTransferRecord]):
    """Read stock movements by (possibly return) order code."""

    def for_order(self, order_code: str) -> tuple[StockMovement, ...]:
        codes = movement_lookup_codes(order_code)
        rows = self.session.execute(
            select(StockTransferRecord)
            .where(StockTransferRecord.order_code.in_(codes))
            .order_by(StockTransferRecord.created_at, StockTransferRecord.doc_code)
        ).scalars().all()
        return tuple(stock_record_to_dto(row) for row in rows)

    def for_orders(self, order_codes: list[str]) -> dict[str, tuple[StockMovement, ...]]:
        """Batch variant: one query for many orders.  A movement filed under
        a sale order is returned for that order and for each of its returns."""
        if not order_codes:
            return {}
        lookup = {code: movement_lookup_codes(code) for code in order_codes}
        wanted = sorted({code for codes in lookup.values() for code in codes})
        rows = self.session.execute(
            select(StockTransferRecord)
            .where(StockTransferRecord.order_code.in_(wanted))
            .order_by(StockTransferRecord.created_at, StockTransferRecord.doc_code)
        ).scalars().all()
        movements = [stock_record_to_dto(row) for row in rows]
        return {
            code: tuple(m for m in movements if m.order_code in codes)
            for code, codes in lookup.items()
        }

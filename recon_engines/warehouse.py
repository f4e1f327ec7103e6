"""
recon_engines.warehouse -- Lot/serial, warehouse code and card code resolution.

Responsibility:
    Decide which warehouse-tracking field a movement's tracking string goes
    to, which warehouse code an invoice line carries, and which card code
    it is issued against.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Warehouse code lookups
    consult a pre-fetched legacy -> canonical map passed in by the caller.

Invariants enforced:
    - Lot and serial are mutually exclusive: at most one is non-empty.
    - A lookup miss keeps the pre-lookup code.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from recon_engines.classifier import OrderCategoryFlags, normalize_product_type
from recon_kernel.domain.dtos import ProductInfo

DEFAULT_CARD_SEPARATION_PREFIX = "B"


@dataclass(frozen=True)
class LotSerial:
    lot: str = ""
    serial: str = ""


def resolve_lot_serial(
    tracking_code: str | None,
    track_lot: bool,
    track_serial: bool,
) -> LotSerial:
    """
    Route a tracking string to ``lot`` or ``serial``.

    Lot only when the item is lot-tracked and not serial-tracked; in every
    other case (both flags, neither flag, serial only) it is a serial.
    """
    value = (tracking_code or "").strip()
    if not value:
        return LotSerial()
    if track_lot and not track_serial:
        return LotSerial(lot=value)
    return LotSerial(serial=value)


def resolve_warehouse_code(
    movement_code: str | None,
    sale_code: str | None,
    department_code: str | None,
    flags: OrderCategoryFlags,
    warehouse_codes: Mapping[str, str],
    card_separation_prefix: str = DEFAULT_CARD_SEPARATION_PREFIX,
) -> str:
    """
    Resolve the warehouse code of an invoice line.

    Card-separation orders always go to ``prefix + department code`` with
    no lookup.  Otherwise the movement's code wins over the sale line's,
    and the result is mapped through the active legacy -> canonical table.
    """
    if flags.card_separation:
        return f"{card_separation_prefix}{(department_code or '').strip()}"
    code = (movement_code or "").strip() or (sale_code or "").strip()
    if not code:
        return ""
    return warehouse_codes.get(code, code)


def resolve_card_code(
    product: ProductInfo | None,
    serial: str,
    flags: OrderCategoryFlags,
    product_type: str,
    stored_card_code: str,
) -> str:
    """E-codes and normal-order service/product lines are issued against their serial."""
    if serial:
        if product is not None and product.is_ecode:
            return serial
        if flags.normal and normalize_product_type(product_type) in ("S", "V"):
            return serial
    return stored_card_code

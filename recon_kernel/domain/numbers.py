"""
Numbers -- tolerant Decimal coercion for stored sale/stock values.

Responsibility:
    Convert loosely typed stored values (None, "", "12.5", 12, Decimal,
    floats from JSON columns) into ``Decimal``.  Malformed values become
    zero: non-numeric amount fields are a data-quality condition, never an
    error, in the reconciliation engine.

Architecture position:
    Kernel > Domain -- pure, zero I/O.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0")
ONE = Decimal("1")

# Absolute threshold below which a price/amount is treated as zero
GIFT_EPSILON = Decimal("0.01")


def to_decimal(value: Any, default: Decimal = ZERO) -> Decimal:
    """
    Coerce a stored value to Decimal.

    Postconditions:
        Returns ``default`` for None, empty strings, booleans, NaN/Infinity
        and anything that does not parse as a number.  Floats go through
        ``str()`` so 0.1 stays 0.1.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, Decimal):
        return value if value.is_finite() else default
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        value = str(value)
    if isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            return default
        try:
            parsed = Decimal(text)
        except InvalidOperation:
            return default
        return parsed if parsed.is_finite() else default
    return default


def first_non_zero(*values: Any) -> Decimal:
    """Return the first value that coerces to a non-zero Decimal, else zero."""
    for value in values:
        number = to_decimal(value)
        if number != ZERO:
            return number
    return ZERO

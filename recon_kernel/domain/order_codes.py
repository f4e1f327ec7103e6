"""
Order codes -- sale-order / return-order code transforms.

A return order is filed under an ``RT`` code, while the stock that left the
warehouse was recorded against the original ``SO`` order:

    RT33.00121928_1  ->  SO33.00121928

Stock movements for a return must therefore be pulled under both codes.
"""

from __future__ import annotations

import re

RETURN_PREFIX = "RT"
SALE_PREFIX = "SO"

_RETURN_SUFFIX = re.compile(r"_\d+$")


def is_return_order(order_code: str) -> bool:
    return order_code.startswith(RETURN_PREFIX)


def original_order_code(order_code: str) -> str:
    """Map a return code to its originating sale code; other codes unchanged."""
    if not is_return_order(order_code):
        return order_code
    return _RETURN_SUFFIX.sub("", SALE_PREFIX + order_code[len(RETURN_PREFIX):])


def movement_lookup_codes(order_code: str) -> tuple[str, ...]:
    """Order codes under which stock movements for ``order_code`` are filed."""
    codes = [order_code]
    original = original_order_code(order_code)
    if original != order_code:
        codes.append(original)
    return tuple(codes)

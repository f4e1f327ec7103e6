"""
Typed Exception Hierarchy for the Reconciliation Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Reconciliation is a pure computation: almost every irregular input is
absorbed by a fallback (missing catalog entry, missing warehouse mapping,
unmatched stock movement, non-numeric amount).  The few conditions that
ARE surfaced to callers must be distinguishable by type, not by message:

    try:
        lines = service.reconcile(order_code)
    except EmptyOrderError as e:
        # "no input" -- not the same as "nothing to bill"
        report_missing_order(e.order_code)

Every exception carries a class-level ``code`` (machine-readable, API-safe)
and stores its context as attributes so structured logging can emit it.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ReconciliationError (base)
    |
    +-- OrderError
    |   +-- EmptyOrderError
    |
    +-- ConfigurationError
        +-- RuleTableError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                  | When Raised
----------------|-----------------------|------------------------------------
Order           | EMPTY_ORDER           | Order has zero sale lines
----------------|-----------------------|------------------------------------
Configuration   | INVALID_RULE_TABLE    | Rule table YAML is structurally bad
"""


class ReconciliationError(Exception):
    """
    Base exception for all reconciliation errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "RECONCILIATION_ERROR"


# Order-shape exceptions


class OrderError(ReconciliationError):
    """Base exception for order-shape errors."""

    code: str = "ORDER_ERROR"


class EmptyOrderError(OrderError):
    """
    Order has no sale lines.

    This is the one hard precondition of the engine: a caller must be able
    to tell "nothing to bill" apart from "no input".
    """

    code: str = "EMPTY_ORDER"

    def __init__(self, order_code: str):
        self.order_code = order_code
        super().__init__(f"Order has no sale lines: {order_code}")


# Configuration exceptions


class ConfigurationError(ReconciliationError):
    """Base exception for configuration errors."""

    code: str = "CONFIGURATION_ERROR"


class RuleTableError(ConfigurationError):
    """A rule table in the configuration is missing or malformed."""

    code: str = "INVALID_RULE_TABLE"

    def __init__(self, table: str, reason: str):
        self.table = table
        self.reason = reason
        super().__init__(f"Invalid rule table '{table}': {reason}")

"""
Module: recon_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    reconciliation engines.  This is the import surface for
    ``recon_services``.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May import recon_kernel (domain, exceptions, logging) and
    recon_config.schema.  MUST NOT import recon_services.

Invariants enforced:
    - Purity: engines NEVER read the clock, the database or files.
      Everything they consult arrives in a ``ReconciliationContext``.
    - Decimal-only arithmetic for quantities and amounts.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    ``StockExplosionEngine.explode`` is traced via ``@traced_engine``,
    emitting RECON_ENGINE_TRACE records with an input fingerprint.
"""

from recon_engines.accounts import (
    ACCOUNT_RULES,
    AccountAssignment,
    AccountRule,
    resolve_accounts,
)
from recon_engines.amounts import DiscountAmountVector, aggregate_amounts
from recon_engines.classifier import (
    KEYWORD_RULES,
    KeywordRule,
    OrderCategoryFlags,
    classify_order_type,
    is_keep_item,
)
from recon_engines.explosion import StockExplosionEngine, plan_pairs, resolve_pair
from recon_engines.line_attributes import gift_marker, resolve_transaction_type
from recon_engines.pricing import PriceResult, is_gift_line, resolve_prices
from recon_engines.promotion import (
    PromotionCodes,
    append_type_suffix,
    resolve_policy_discount_code,
    resolve_promotion_codes,
    resolve_voucher_code,
    resolve_wholesale_promotion_code,
    shorten_promotion_code,
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

__all__ = [
    "ACCOUNT_RULES",
    "AccountAssignment",
    "AccountRule",
    "DiscountAmountVector",
    "ExplosionResult",
    "InvoiceLine",
    "KEYWORD_RULES",
    "KeywordRule",
    "LotSerial",
    "MatchedPair",
    "OrderCategoryFlags",
    "PriceResult",
    "PromotionCodes",
    "Provenance",
    "ReconciliationContext",
    "StockExplosionEngine",
    "aggregate_amounts",
    "append_type_suffix",
    "classify_order_type",
    "gift_marker",
    "is_gift_line",
    "is_keep_item",
    "plan_pairs",
    "resolve_accounts",
    "resolve_card_code",
    "resolve_lot_serial",
    "resolve_pair",
    "resolve_policy_discount_code",
    "resolve_prices",
    "resolve_promotion_codes",
    "resolve_transaction_type",
    "resolve_voucher_code",
    "resolve_warehouse_code",
    "resolve_wholesale_promotion_code",
    "shorten_promotion_code",
    "traced_engine",
]

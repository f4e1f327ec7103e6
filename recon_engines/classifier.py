"""
recon_engines.classifier -- Order category classifier.

Responsibility:
    Turn one free-text order-type label into ``OrderCategoryFlags``.  The
    label may carry Vietnamese diacritics, numbered prefixes such as
    ``"01."`` and inconsistent spacing.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - The label is normalized exactly once (NFC, trimmed); every rule is
      evaluated against that single ``NormalizedLabel``.
    - Matching styles are deliberately mixed per flag.  Numbered-prefix
      keywords (``"08. Tách thẻ"``) match only as exact, case- and
      diacritic-sensitive substrings.  Folded keywords (``"dau tu"``)
      match after lower-casing and diacritic folding (``đ`` -> ``d``).
    - Flags are recomputed per line from that line's own label.

Failure modes:
    - None.  An empty or unknown label yields all flags False, which the
      downstream resolvers treat through their default branches.
"""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass, fields
from enum import Enum

KEEP_ITEM_CODE = "TRUTONKEEP"


def fold_text(text: str) -> str:
    """Lower-case and strip diacritics (``"Đổi Vỏ"`` -> ``"doi vo"``)."""
    lowered = text.lower().replace("đ", "d")
    decomposed = unicodedata.normalize("NFD", lowered)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


@dataclass(frozen=True)
class NormalizedLabel:
    """The views of a label that keyword rules are evaluated against."""

    exact: str
    lowered: str
    folded: str

    @classmethod
    def from_label(cls, label: str | None) -> NormalizedLabel:
        exact = unicodedata.normalize("NFC", (label or "").strip())
        return cls(exact=exact, lowered=exact.lower(), folded=fold_text(exact))


class MatchKind(str, Enum):
    EXACT = "exact"                  # substring of the NFC label
    FOLDED = "folded"                # substring of the folded label
    PREFIX = "prefix"                # the NFC label starts with the keyword
    LOWER_EQUALS = "lower_equals"    # lower-cased label equals the keyword


@dataclass(frozen=True)
class KeywordRule:
    """One (keywords -> flag) row of the classification table."""

    flag: str
    kind: MatchKind
    keywords: tuple[str, ...]

    def __post_init__(self) -> None:
        if self.kind is MatchKind.FOLDED:
            normalized = tuple(fold_text(k) for k in self.keywords)
        elif self.kind is MatchKind.LOWER_EQUALS:
            normalized = tuple(unicodedata.normalize("NFC", k).lower() for k in self.keywords)
        else:
            normalized = tuple(unicodedata.normalize("NFC", k) for k in self.keywords)
        object.__setattr__(self, "keywords", normalized)

    def matches(self, label: NormalizedLabel) -> bool:
        if self.kind is MatchKind.EXACT:
            return any(k in label.exact for k in self.keywords)
        if self.kind is MatchKind.FOLDED:
            return any(k in label.folded for k in self.keywords)
        if self.kind is MatchKind.PREFIX:
            return any(label.exact.startswith(k) for k in self.keywords)
        return any(label.lowered == k for k in self.keywords)


KEYWORD_RULES: tuple[KeywordRule, ...] = (
    KeywordRule("point_exchange", MatchKind.EXACT, ("03. Đổi điểm", "03.Đổi điểm")),
    KeywordRule("bottle_exchange", MatchKind.FOLDED, ("doi vo",)),
    KeywordRule("investment", MatchKind.EXACT, ("06. Đầu tư", "06.Đầu tư")),
    KeywordRule("investment", MatchKind.FOLDED, ("dau tu",)),
    KeywordRule("birthday_gift", MatchKind.EXACT, ("05. Tặng sinh nhật", "05.Tặng sinh nhật")),
    KeywordRule("birthday_gift", MatchKind.FOLDED, ("tang sinh nhat",)),
    KeywordRule("normal", MatchKind.PREFIX, ("01.", "01 ")),
    KeywordRule("normal", MatchKind.LOWER_EQUALS, ("thường", "thuong")),
    KeywordRule("dv_exchange", MatchKind.EXACT, ("04. Đổi DV", "04.Đổi DV")),
    KeywordRule("card_separation", MatchKind.EXACT, ("08. Tách thẻ", "08.Tách thẻ")),
    KeywordRule("account_sale", MatchKind.EXACT, ("07. Bán tài khoản", "07.Bán tài khoản")),
    KeywordRule("ecommerce_platform", MatchKind.EXACT, ("9. Sàn TMDT", "9.Sàn TMDT")),
    KeywordRule("service", MatchKind.EXACT, ("02. Làm dịch vụ", "Đổi thẻ KEEP->Thẻ DV")),
)

# flag -> flags that imply it (evaluated after the keyword table)
IMPLIED_FLAGS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("service", ("dv_exchange", "card_separation")),
)


@dataclass(frozen=True)
class OrderCategoryFlags:
    """Category flags of one order-type label.  Not mutually exclusive."""

    normal: bool = False
    service: bool = False
    point_exchange: bool = False
    bottle_exchange: bool = False
    investment: bool = False
    birthday_gift: bool = False
    dv_exchange: bool = False
    card_separation: bool = False
    account_sale: bool = False
    ecommerce_platform: bool = False

    def active(self) -> tuple[str, ...]:
        """Names of the flags that are set, in declaration order."""
        return tuple(f.name for f in fields(self) if getattr(self, f.name))


def classify_order_type(label: str | None) -> OrderCategoryFlags:
    """Classify an order-type label against ``KEYWORD_RULES``."""
    normalized = NormalizedLabel.from_label(label)
    hits: dict[str, bool] = {}
    for rule in KEYWORD_RULES:
        if not hits.get(rule.flag) and rule.matches(normalized):
            hits[rule.flag] = True
    for flag, sources in IMPLIED_FLAGS:
        if any(hits.get(source) for source in sources):
            hits[flag] = True
    return OrderCategoryFlags(**hits)


def is_keep_item(item_code: str | None) -> bool:
    """Virtual "keep" items never correspond to physical stock."""
    return bool(item_code) and item_code.strip().upper() == KEEP_ITEM_CODE


def normalize_product_type(value: str | None) -> str:
    return (value or "").strip().upper()

"""
recon_engines.promotion -- Promotion, gift and voucher code resolution.

Responsibility:
    Derive the primary promotion code, the gift-promotion code and the
    voucher-payment (ck05) code of an invoice line from its category
    flags, its gift status, the company unit, the product type and the
    raw promotion code carried by the sale line.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Code tables come from
    ``recon_config`` (``PromotionTable``) and are passed in by argument.

Invariants enforced:
    - The type suffix (``.I`` / ``.S`` / ``.V``) is appended at most once:
      ``append_type_suffix`` is idempotent.
    - Gift-promotion codes never carry a type suffix.
    - Raw codes with the legacy ``PRMN`` prefix are rewritten to ``RMN``
      and take a separate branch that never appends a suffix.
    - Point-exchange lines never carry a primary code.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from recon_config.schema import PromotionTable
from recon_engines.classifier import OrderCategoryFlags, normalize_product_type
from recon_kernel.domain.dtos import DiscountField, ProductInfo, SaleLine
from recon_kernel.domain.numbers import ZERO

_ANY_TYPE = "*"
_GIFT_MARKER = "gift"


@dataclass(frozen=True)
class PromotionCodes:
    promotion_code: str = ""
    gift_promotion_code: str = ""


# ---------------------------------------------------------------------------
# Code transforms
# ---------------------------------------------------------------------------


def shorten_promotion_code(code: str | None, separator: str = "-") -> str:
    """Keep the segment before the separator (``"RMN.A-01"`` -> ``"RMN.A"``)."""
    if not code:
        return ""
    head = code.split(separator)[0]
    return head or code


def strip_type_suffix(code: str, suffixes: tuple[str, ...] = ("I", "S", "V")) -> str:
    """Drop one trailing ``.<type>`` suffix, if present."""
    for suffix in suffixes:
        marker = f".{suffix}"
        if code.endswith(marker):
            return code[: -len(marker)]
    return code


def append_type_suffix(
    code: str,
    product_type: str,
    suffixes: tuple[str, ...] = ("I", "S", "V"),
) -> str:
    """Append ``.<type>`` unless already present; unknown types are left alone."""
    if not code:
        return code
    product_type = normalize_product_type(product_type)
    if product_type not in suffixes:
        return code
    marker = f".{product_type}"
    if code.endswith(marker):
        return code
    return code + marker


def rewrite_legacy_prefix(code: str, table: PromotionTable) -> tuple[str, bool]:
    """Rewrite a legacy ``PRMN`` prefix to ``RMN``; returns (code, was_legacy)."""
    prefix = table.legacy_prefix
    if prefix and code.upper().startswith(prefix.upper()):
        return table.canonical_prefix + code[len(prefix):], True
    return code, False


# ---------------------------------------------------------------------------
# Table lookups
# ---------------------------------------------------------------------------


def point_exchange_code(unit_code: str, table: PromotionTable) -> str:
    return table.point_exchange_codes.get(
        unit_code.strip().upper(), table.point_exchange_default
    )


def employee_discount_code(unit_code: str, product_type: str, table: PromotionTable) -> str:
    by_type = table.employee_discount_codes.get(unit_code.strip().upper(), {})
    return by_type.get(_ANY_TYPE) or by_type.get(product_type, "")


def wholesale_category(product_group: str | None, table: PromotionTable) -> str:
    """Catalog group -> wholesale category (``TPCN``, ``CCDC``, default ``MP``)."""
    group = (product_group or "").upper()
    for rule in table.wholesale.categories:
        if rule.keyword in group:
            return rule.category
    return table.wholesale.default_category


def wholesale_policy_code(product: ProductInfo | None, table: PromotionTable) -> str:
    """``CKCSBH[.E].<category>`` for a catalog product."""
    codes = table.wholesale
    category = wholesale_category(product.product_type if product else "", table)
    parts = [codes.prefix]
    if product is not None and product.is_ecode:
        parts.append(codes.ecode_marker)
    parts.append(category)
    return ".".join(parts)


# ---------------------------------------------------------------------------
# Resolvers
# ---------------------------------------------------------------------------


def resolve_promotion_codes(
    sale: SaleLine,
    flags: OrderCategoryFlags,
    is_gift: bool,
    unit_code: str,
    product_type: str,
    raw_code: str | None,
    tables: PromotionTable,
    *,
    is_employee: bool = False,
    platform_override: bool = False,
) -> PromotionCodes:
    """
    Resolve the primary and gift-promotion codes of one invoice line.

    Rules, first applicable wins:
        1. Point-exchange: gift code from the unit table, no primary code.
        2. Gift line: investment literal, or for normal / account-sale /
           e-commerce orders the shortened raw code without its type
           suffix; otherwise the stored gift code.
        3. Retail, not gift: e-commerce brand code, then the employee
           purchase-discount code, then the shortened raw code with its
           type suffix.
    Wholesale lines with a discount reason get ``<reason>.<material>``.
    """
    product_type = normalize_product_type(product_type) or sale.product_type_upper
    platform = platform_override or flags.ecommerce_platform
    purchase_discount = sale.discount(DiscountField.PURCHASE_DISCOUNT)

    primary = ""
    gift = sale.gift_promotion_code

    if (
        sale.is_wholesale
        and sale.wholesale_discount_reason
        and sale.discount(DiscountField.PROMOTION_DISCOUNT) > ZERO
    ):
        primary = f"{sale.wholesale_discount_reason}.{sale.material_code or sale.item_code}"

    code, legacy = rewrite_legacy_prefix((raw_code or "").strip(), tables)
    shortened = shorten_promotion_code(code, tables.code_separator)

    if flags.point_exchange:
        return PromotionCodes(gift_promotion_code=point_exchange_code(unit_code, tables))

    if is_gift:
        if flags.investment:
            gift = tables.investment_gift_code
        elif flags.normal or flags.account_sale or flags.ecommerce_platform:
            gift = strip_type_suffix(shortened, tables.type_suffixes)
        return PromotionCodes(promotion_code=primary, gift_promotion_code=gift)

    if sale.is_wholesale:
        return PromotionCodes(promotion_code=primary, gift_promotion_code=gift)

    if platform:
        primary = tables.platform_brand_codes.get(sale.brand.strip().lower(), "")

    employee_discount = is_employee and purchase_discount > ZERO
    if employee_discount and not platform and not primary:
        primary = employee_discount_code(unit_code, product_type, tables)

    if not primary:
        if legacy:
            # Legacy PRMN codes keep their rewritten form without a type suffix.
            return PromotionCodes(promotion_code=shortened, gift_promotion_code=gift)
        primary = shortened

    is_employee_code = employee_discount and primary in tables.employee_code_values
    if primary and not platform and not is_employee_code:
        primary = append_type_suffix(primary, product_type, tables.type_suffixes)
    return PromotionCodes(promotion_code=primary, gift_promotion_code=gift)


def resolve_voucher_code(
    sale: SaleLine,
    product: ProductInfo | None,
    tables: PromotionTable,
    *,
    unit_code: str = "",
    is_employee: bool = False,
) -> str:
    """
    Resolve the voucher-payment (ck05) code of a line.

    Employees of the listed units get the employee voucher code;
    marketplace customers get the brand's marketplace code; wholesale lines
    get none; everything else follows the brand / product-type table.
    Lines with neither revenue nor line total get none.
    """
    vouchers = tables.vouchers
    brand = sale.brand.strip().lower()

    if is_employee and unit_code.strip().upper() in vouchers.employee_units:
        return vouchers.employee_code

    if sale.ecommerce_channel.strip().lower() in vouchers.ecommerce_channels:
        return vouchers.ecommerce_brand_codes.get(brand, vouchers.ecommerce_default)

    if sale.is_wholesale:
        return ""
    if sale.revenue == ZERO and sale.line_total == ZERO:
        return ""

    codes = vouchers.brand_codes.get(brand)
    if not codes:
        return ""
    product_type = sale.product_type_upper
    if product is not None and product.is_gift_product:
        gift_code = codes.get(f"{product_type}:{_GIFT_MARKER}")
        if gift_code:
            return gift_code
    return codes.get(product_type, "")


def resolve_wholesale_promotion_code(
    product: ProductInfo | None,
    policy_discount: Decimal,
    tables: PromotionTable,
) -> str:
    """Wholesale policy code, only when a policy discount was granted."""
    if policy_discount <= ZERO:
        return ""
    return wholesale_policy_code(product, tables)


def resolve_policy_discount_code(
    sale: SaleLine,
    product: ProductInfo | None,
    policy_discount: Decimal,
    tables: PromotionTable,
) -> str:
    """
    Code of the policy-discount bucket (ck02).

    Wholesale lines with a policy discount get their ``CKCSBH`` code;
    every other line keeps the stored code.
    """
    if sale.is_wholesale:
        code = resolve_wholesale_promotion_code(product, policy_discount, tables)
        if code:
            return code
    return sale.policy_discount_code

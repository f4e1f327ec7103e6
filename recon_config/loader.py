"""
Rule Table Loader (``recon_config.loader``).

Responsibility
--------------
Loads the YAML rule document and parses it into the frozen dataclasses of
``recon_config.schema``.  The single public entry point for runtime
configuration is ``recon_config.get_active_config()``; this module is the
tooling behind it.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Missing required keys raise ``RuleTableError`` naming the table; there
  are no silent defaults for account numbers.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the source
  document for configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Wrong shape or missing keys  -> ``RuleTableError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from recon_config.schema import (
    AccountTable,
    ExpensePair,
    PromotionTable,
    RuleTables,
    VoucherTable,
    WarehouseRules,
    WholesaleCategoryRule,
    WholesaleCodes,
)
from recon_kernel.exceptions import RuleTableError


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        RuleTableError: if the document is not a mapping.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise RuleTableError("root", "document must be a mapping")
    return data


def _section(data: dict[str, Any], key: str, table: str) -> dict[str, Any]:
    value = data.get(key)
    if not isinstance(value, dict):
        raise RuleTableError(table, f"missing or non-mapping key '{key}'")
    return value


def _required(data: dict[str, Any], key: str, table: str) -> Any:
    if key not in data or data[key] is None:
        raise RuleTableError(table, f"missing required key '{key}'")
    return data[key]


def _str_map(value: Any, table: str) -> dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise RuleTableError(table, "expected a mapping")
    return {str(k): str(v) for k, v in value.items()}


def _nested_str_map(value: Any, table: str) -> dict[str, dict[str, str]]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise RuleTableError(table, "expected a mapping of mappings")
    return {str(k): _str_map(v, f"{table}.{k}") for k, v in value.items()}


def _str_tuple(value: Any) -> tuple[str, ...]:
    if not value:
        return ()
    return tuple(str(item) for item in value)


def parse_expense_pair(data: Any, table: str) -> ExpensePair:
    if not isinstance(data, dict):
        raise RuleTableError(table, "expected expense_account/fee_code mapping")
    return ExpensePair(
        expense_account=str(_required(data, "expense_account", table)),
        fee_code=str(_required(data, "fee_code", table)),
    )


def parse_account_table(data: dict[str, Any]) -> AccountTable:
    """Parse the ``accounts`` section."""
    return AccountTable(
        reward_expense=parse_expense_pair(
            data.get("reward_expense"), "accounts.reward_expense"
        ),
        birthday_expense=parse_expense_pair(
            data.get("birthday_expense"), "accounts.birthday_expense"
        ),
        vip_discount=_str_map(data.get("vip_discount"), "accounts.vip_discount"),
        voucher_gift_product=str(
            _required(data, "voucher_gift_product", "accounts")
        ),
        voucher_discount=_str_map(
            data.get("voucher_discount"), "accounts.voucher_discount"
        ),
        purchase_discount=_str_map(
            data.get("purchase_discount"), "accounts.purchase_discount"
        ),
        promotion_discount=_str_map(
            data.get("promotion_discount"), "accounts.promotion_discount"
        ),
    )


def parse_voucher_table(data: dict[str, Any]) -> VoucherTable:
    return VoucherTable(
        employee_units=_str_tuple(data.get("employee_units")),
        employee_code=str(data.get("employee_code", "")),
        ecommerce_channels=tuple(
            channel.lower() for channel in _str_tuple(data.get("ecommerce_channels"))
        ),
        ecommerce_default=str(data.get("ecommerce_default", "")),
        ecommerce_brand_codes=_str_map(
            data.get("ecommerce_brand_codes"), "promotions.vouchers.ecommerce_brand_codes"
        ),
        brand_codes=_nested_str_map(
            data.get("brand_codes"), "promotions.vouchers.brand_codes"
        ),
    )


def parse_wholesale_codes(data: dict[str, Any]) -> WholesaleCodes:
    table = "promotions.wholesale"
    categories = []
    for entry in data.get("categories") or []:
        if not isinstance(entry, dict):
            raise RuleTableError(table, "category rules must be mappings")
        categories.append(
            WholesaleCategoryRule(
                keyword=str(_required(entry, "keyword", table)).upper(),
                category=str(_required(entry, "category", table)),
            )
        )
    return WholesaleCodes(
        prefix=str(_required(data, "prefix", table)),
        ecode_marker=str(_required(data, "ecode_marker", table)),
        default_category=str(_required(data, "default_category", table)),
        categories=tuple(categories),
    )


def parse_promotion_table(data: dict[str, Any]) -> PromotionTable:
    """Parse the ``promotions`` section."""
    table = "promotions"
    point_exchange = _section(data, "point_exchange", table)
    return PromotionTable(
        code_separator=str(_required(data, "code_separator", table)),
        type_suffixes=_str_tuple(_required(data, "type_suffixes", table)),
        legacy_prefix=str(_required(data, "legacy_prefix", table)),
        canonical_prefix=str(_required(data, "canonical_prefix", table)),
        investment_gift_code=str(_required(data, "investment_gift_code", table)),
        point_exchange_default=str(
            _required(point_exchange, "default", "promotions.point_exchange")
        ),
        point_exchange_codes=_str_map(
            point_exchange.get("units"), "promotions.point_exchange.units"
        ),
        platform_brand_codes={
            brand.lower(): code
            for brand, code in _str_map(
                data.get("platform_brand_codes"), "promotions.platform_brand_codes"
            ).items()
        },
        employee_discount_codes=_nested_str_map(
            data.get("employee_discount_codes"), "promotions.employee_discount_codes"
        ),
        vouchers=parse_voucher_table(_section(data, "vouchers", table)),
        wholesale=parse_wholesale_codes(_section(data, "wholesale", table)),
    )


def parse_warehouse_rules(data: dict[str, Any]) -> WarehouseRules:
    return WarehouseRules(
        card_separation_prefix=str(
            _required(data, "card_separation_prefix", "warehouse")
        ),
    )


def parse_rule_tables(data: dict[str, Any]) -> RuleTables:
    """
    Parse a complete rule document.

    Postconditions:
        - Returns a ``RuleTables`` whose ``checksum`` is the checksum of
          ``data``.
    Raises:
        RuleTableError: if any section is missing or malformed.
    """
    version = _required(data, "version", "root")
    try:
        version = int(version)
    except (TypeError, ValueError) as exc:
        raise RuleTableError("root", f"version must be an integer, got {version!r}") from exc

    return RuleTables(
        config_id=str(_required(data, "config_id", "root")),
        version=version,
        accounts=parse_account_table(_section(data, "accounts", "root")),
        promotions=parse_promotion_table(_section(data, "promotions", "root")),
        warehouse=parse_warehouse_rules(_section(data, "warehouse", "root")),
        checksum=compute_checksum(data),
    )


def load_rule_tables(path: Path) -> RuleTables:
    """Load and parse a rule document from disk (no validation)."""
    return parse_rule_tables(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Postconditions:
        - Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()

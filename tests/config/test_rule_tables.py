"""
Tests for rule table loading, validation and the active-config entrypoint.

Covers:
- The shipped default rule tables
- Missing and malformed documents
- Validation errors and warnings
- Checksum determinism and the RECON_CONFIG_TRACE log entry
"""

from pathlib import Path

import pytest
import yaml

from recon_config import get_active_config
from recon_config.loader import (
    compute_checksum,
    load_rule_tables,
    load_yaml_file,
    parse_rule_tables,
)
from recon_config.validator import validate_rule_tables
from recon_kernel.exceptions import RuleTableError

DEFAULT_PATH = Path(__file__).resolve().parents[2] / "recon_config" / "sets" / "default.yaml"


@pytest.fixture
def default_document() -> dict:
    return load_yaml_file(DEFAULT_PATH)


def _write(tmp_path: Path, document) -> Path:
    path = tmp_path / "rules.yaml"
    path.write_text(yaml.safe_dump(document, allow_unicode=True), encoding="utf-8")
    return path


class TestDefaultConfig:
    def test_loads(self, rule_tables):
        assert rule_tables.config_id == "default"
        assert rule_tables.version == 3
        assert len(rule_tables.checksum) == 64

    def test_account_numbers(self, rule_tables):
        accounts = rule_tables.accounts
        assert accounts.reward_expense.expense_account == "64191"
        assert accounts.birthday_expense.fee_code == "162010"
        assert accounts.vip_discount == {"I": "521113", "S": "521132"}

    def test_promotion_tables(self, rule_tables):
        promotions = rule_tables.promotions
        assert promotions.type_suffixes == ("I", "S", "V")
        assert promotions.point_exchange_codes["FBV"] == "FBV.KMDIEM"
        assert promotions.platform_brand_codes["menard"] == "TTM.R601ECOM"
        assert "2505MN.CK521" in promotions.employee_code_values
        assert promotions.vouchers.ecommerce_channels == ("shopee", "lazada", "tiktok")
        assert [rule.category for rule in promotions.wholesale.categories] == ["TPCN", "CCDC"]

    def test_valid(self, rule_tables):
        result = validate_rule_tables(rule_tables)
        assert result.is_valid
        assert result.warnings == []

    def test_trace_logged(self, captured_logs):
        tables = get_active_config()

        traces = [r for r in captured_logs() if r["message"] == "RECON_CONFIG_TRACE"]
        assert len(traces) == 1
        assert traces[0]["config_id"] == "default"
        assert traces[0]["config_version"] == 3
        assert traces[0]["checksum"] == tables.checksum


class TestLoadFailures:
    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "nope.yaml")

    def test_non_mapping_document(self, tmp_path):
        path = tmp_path / "rules.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(RuleTableError) as exc_info:
            get_active_config(path)
        assert exc_info.value.table == "root"

    def test_missing_section(self, tmp_path, default_document):
        del default_document["accounts"]
        with pytest.raises(RuleTableError) as exc_info:
            get_active_config(_write(tmp_path, default_document))
        assert "accounts" in exc_info.value.reason

    def test_missing_required_account(self, tmp_path, default_document):
        del default_document["accounts"]["voucher_gift_product"]
        with pytest.raises(RuleTableError):
            get_active_config(_write(tmp_path, default_document))

    def test_non_integer_version(self, default_document):
        default_document["version"] = "three"
        with pytest.raises(RuleTableError):
            parse_rule_tables(default_document)


class TestValidation:
    def test_promotion_discount_needs_goods_account(self, tmp_path, default_document):
        default_document["accounts"]["promotion_discount"] = {"S": "521131"}
        with pytest.raises(RuleTableError) as exc_info:
            get_active_config(_write(tmp_path, default_document))
        assert "promotion_discount" in exc_info.value.reason

    def test_unknown_product_type_key(self, default_document):
        default_document["accounts"]["vip_discount"]["Q"] = "1"
        result = validate_rule_tables(parse_rule_tables(default_document))
        assert not result.is_valid
        assert any("unknown product type key 'Q'" in e for e in result.errors)

    def test_unknown_voucher_key(self, default_document):
        default_document["promotions"]["vouchers"]["brand_codes"]["menard"]["I:promo"] = "X"
        result = validate_rule_tables(parse_rule_tables(default_document))
        assert any("I:promo" in e for e in result.errors)

    def test_empty_wholesale_categories_warns(self, tmp_path, default_document, captured_logs):
        default_document["promotions"]["wholesale"]["categories"] = []

        tables = get_active_config(_write(tmp_path, default_document))

        assert tables.promotions.wholesale.categories == ()
        assert any(r["message"] == "rule_table_warning" for r in captured_logs())


class TestChecksum:
    def test_deterministic(self, default_document):
        assert compute_checksum(default_document) == compute_checksum(dict(default_document))

    def test_changes_with_content(self, default_document):
        before = compute_checksum(default_document)
        default_document["version"] = 4
        assert compute_checksum(default_document) != before

    def test_tables_carry_document_checksum(self, default_document):
        assert load_rule_tables(DEFAULT_PATH).checksum == compute_checksum(default_document)

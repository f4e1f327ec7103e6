"""
Tests for the order category classifier.

Covers:
- Numbered-prefix keywords (exact, diacritic-sensitive)
- Folded keywords (case- and diacritic-insensitive)
- Implied flags and multi-flag labels
- Empty and unknown labels
"""

import unicodedata

import pytest

from recon_engines.classifier import (
    KeywordRule,
    MatchKind,
    NormalizedLabel,
    OrderCategoryFlags,
    classify_order_type,
    fold_text,
    is_keep_item,
    normalize_product_type,
)


class TestFoldText:
    def test_strips_diacritics_and_case(self):
        assert fold_text("Đổi Vỏ") == "doi vo"

    def test_plain_ascii_unchanged(self):
        assert fold_text("thuong") == "thuong"

    def test_vietnamese_d(self):
        assert fold_text("đầu tư") == "dau tu"


class TestNumberedLabels:
    """Labels as the point-of-sale system writes them."""

    @pytest.mark.parametrize("label, flag", [
        ("03. Đổi điểm", "point_exchange"),
        ("03.Đổi điểm", "point_exchange"),
        ("05. Tặng sinh nhật", "birthday_gift"),
        ("06. Đầu tư", "investment"),
        ("07. Bán tài khoản", "account_sale"),
        ("9. Sàn TMDT", "ecommerce_platform"),
        ("02. Làm dịch vụ", "service"),
        ("Đổi thẻ KEEP->Thẻ DV", "service"),
    ])
    def test_flag_set(self, label, flag):
        flags = classify_order_type(label)
        assert getattr(flags, flag)

    @pytest.mark.parametrize("label, flag", [
        ("03. Doi diem", "point_exchange"),
        ("03. đổi điểm", "point_exchange"),
        ("08. tach the", "card_separation"),
        ("08. tách thẻ", "card_separation"),
        ("04. doi dv", "dv_exchange"),
        ("04. đổi dv", "dv_exchange"),
        ("07. ban tai khoan", "account_sale"),
        ("07. bán tài khoản", "account_sale"),
        ("9. san tmdt", "ecommerce_platform"),
        ("9. sàn tmdt", "ecommerce_platform"),
    ])
    def test_numbered_keywords_do_not_fold(self, label, flag):
        """Numbered-prefix keywords are case- and diacritic-sensitive."""
        assert not getattr(classify_order_type(label), flag)

    @pytest.mark.parametrize("label", ["08. tach the", "04. đổi dv"])
    def test_folded_numbered_label_implies_nothing(self, label):
        assert not classify_order_type(label).service

    def test_decomposed_input_normalized(self):
        label = unicodedata.normalize("NFD", "03. Đổi điểm")
        assert classify_order_type(label).point_exchange

    def test_surrounding_whitespace_ignored(self):
        assert classify_order_type("  01. Thường  ").normal


class TestFoldedLabels:
    @pytest.mark.parametrize("label", ["Đổi vỏ", "DOI VO chai", "đổi vỏ 500ml"])
    def test_bottle_exchange(self, label):
        assert classify_order_type(label).bottle_exchange

    @pytest.mark.parametrize("label", ["dau tu", "Khách ĐẦU TƯ"])
    def test_investment(self, label):
        assert classify_order_type(label).investment

    def test_birthday_without_number(self):
        assert classify_order_type("Tang sinh nhat").birthday_gift


class TestNormalOrders:
    @pytest.mark.parametrize("label", ["01. Thường", "01 Thường", "Thường", "THƯỜNG", "thuong", "Thuong"])
    def test_normal(self, label):
        assert classify_order_type(label).normal

    def test_equality_not_substring(self):
        assert not classify_order_type("Bán thường xuyên").normal

    @pytest.mark.parametrize("label", ["Thưởng", "thưởng", "Thuờng"])
    def test_other_diacritics_not_normal(self, label):
        """Only the plain and the correctly accented spelling count."""
        assert not classify_order_type(label).normal


class TestImpliedFlags:
    def test_dv_exchange_implies_service(self):
        flags = classify_order_type("04. Đổi DV")
        assert flags.dv_exchange
        assert flags.service

    def test_card_separation_implies_service(self):
        flags = classify_order_type("08. Tách thẻ")
        assert flags.card_separation
        assert flags.service

    def test_active_in_declaration_order(self):
        assert classify_order_type("04. Đổi DV").active() == ("service", "dv_exchange")


class TestUnknownLabels:
    @pytest.mark.parametrize("label", [None, "", "   ", "99. Something else"])
    def test_all_flags_false(self, label):
        assert classify_order_type(label) == OrderCategoryFlags()

    def test_no_active_flags(self):
        assert OrderCategoryFlags().active() == ()


class TestKeywordRule:
    def test_folded_keywords_normalized(self):
        rule = KeywordRule("bottle_exchange", MatchKind.FOLDED, ("Đổi Vỏ",))
        assert rule.keywords == ("doi vo",)
        assert rule.matches(NormalizedLabel.from_label("doi vo"))

    def test_lower_equals_keeps_diacritics(self):
        rule = KeywordRule("normal", MatchKind.LOWER_EQUALS, ("Thường",))
        assert rule.keywords == ("thường",)
        assert rule.matches(NormalizedLabel.from_label("THƯỜNG"))
        assert not rule.matches(NormalizedLabel.from_label("thuong"))

    def test_prefix_match(self):
        rule = KeywordRule("normal", MatchKind.PREFIX, ("01.",))
        assert rule.matches(NormalizedLabel.from_label("01.Thường"))
        assert not rule.matches(NormalizedLabel.from_label("Thường 01."))


class TestHelpers:
    @pytest.mark.parametrize("code", ["TRUTONKEEP", " trutonkeep ", "TruTonKeep"])
    def test_keep_item(self, code):
        assert is_keep_item(code)

    @pytest.mark.parametrize("code", [None, "", "X", "TRUTONKEEP2"])
    def test_not_keep_item(self, code):
        assert not is_keep_item(code)

    def test_normalize_product_type(self):
        assert normalize_product_type(" s ") == "S"
        assert normalize_product_type(None) == ""

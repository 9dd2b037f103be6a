"""Tests for inventory_api/utils/utils_helpers.py"""

import pytest

from inventory_api.utils.utils_helpers import normalize_gid, normalize_text, parse_bool_flag, parse_csv_list


class TestNormalizeGid:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("gid://shopify/Product/123", "123"),
            ("gid://shopify/ProductVariant/456", "456"),
            (789, "789"),
            (" 42 ", "42"),
            (None, ""),
        ],
    )
    def test_values(self, value, expected):
        assert normalize_gid(value) == expected


class TestNormalizeText:
    def test_case_and_accents(self):
        assert normalize_text("  Árvore FRUTÍFERA ") == "arvore frutifera"

    def test_none(self):
        assert normalize_text(None) == ""


class TestParseBoolFlag:
    @pytest.mark.parametrize("value", ["1", "true", "True", "YES", "y", "on", True])
    def test_truthy(self, value):
        assert parse_bool_flag(value) is True

    @pytest.mark.parametrize("value", ["0", "false", "", "no", None, "2", False])
    def test_falsy(self, value):
        assert parse_bool_flag(value) is False


class TestParseCsvList:
    def test_split_and_trim(self):
        assert parse_csv_list(" a, b ,,c ") == ["a", "b", "c"]

    @pytest.mark.parametrize("value", [None, "", " , "])
    def test_empty(self, value):
        assert parse_csv_list(value) == []

"""Tests for inventory_api/services/metafields.py"""

import pytest

from inventory_api.schemas.inventory import AbsentValue, FlagValue, MeasurementValue, TextValue
from inventory_api.services.metafields import (
    abbreviate_unit,
    decode_metafield,
    display_text,
    is_flag_set,
    normalize_measurement,
    parse_flag,
)


class TestNormalizeMeasurement:
    def test_dimension_object(self):
        assert normalize_measurement({"value": 4, "unit": "INCHES"}) == "4 in"

    def test_plain_text_with_unit(self):
        assert normalize_measurement("4 INCHES") == "4 in"

    def test_empty_is_none(self):
        assert normalize_measurement("") is None
        assert normalize_measurement("   ") is None
        assert normalize_measurement(None) is None

    def test_free_text_passes_through(self):
        assert normalize_measurement("not a number") == "not a number"

    def test_json_encoded_dimension(self):
        assert normalize_measurement('{"value": 2.5, "unit": "FEET"}') == "2.5 ft"

    def test_json_dimension_without_unit_uses_default(self):
        assert normalize_measurement('{"value": "3"}', default_unit="cm") == "3 cm"

    def test_bare_number_uses_default_unit(self):
        assert normalize_measurement("4") == "4 in"
        assert normalize_measurement(4) == "4 in"
        assert normalize_measurement(1.5, default_unit="feet") == "1.5 ft"

    def test_trailing_zeros_dropped(self):
        assert normalize_measurement("4.50 inches") == "4.5 in"
        assert normalize_measurement({"value": 6.0, "unit": "feet"}) == "6 ft"

    def test_quote_marks_as_units(self):
        assert normalize_measurement('4"') == "4 in"
        assert normalize_measurement("6'") == "6 ft"

    def test_unknown_unit_lowercased(self):
        assert normalize_measurement({"value": 3, "unit": "GALLONS"}) == "3 gallons"

    def test_non_finite_value_stringified(self):
        assert normalize_measurement({"value": "abc"}) == "abc"
        assert normalize_measurement({"value": float("inf")}) == "inf"

    def test_object_without_value_is_none(self):
        assert normalize_measurement({"unit": "INCHES"}) is None

    def test_blank_or_null_value_is_none(self):
        assert normalize_measurement({"value": "", "unit": "INCHES"}) is None
        assert normalize_measurement({"value": "   "}) is None
        assert normalize_measurement('{"value": ""}') is None
        assert normalize_measurement({"value": None}) is None

    def test_negative_zero_has_no_sign(self):
        assert normalize_measurement(-1e-07) == "0 in"
        assert normalize_measurement("-0 ft") == "0 ft"

    def test_text_value_inside_object(self):
        assert normalize_measurement({"value": "4 INCHES"}) == "4 in"

    def test_json_without_value_returned_raw(self):
        raw = '{"height": 4}'
        assert normalize_measurement(raw) == raw

    def test_boolean_string_returned_raw(self):
        assert normalize_measurement("true") == "true"

    def test_never_raises_on_odd_input(self):
        for raw in (object(), [1, 2], {"value": None}, "{not json", b"4 in", True):
            normalize_measurement(raw)

    @pytest.mark.parametrize(
        "raw",
        [
            {"value": 4, "unit": "INCHES"},
            '{"value": 12, "unit": "CENTIMETERS"}',
            "4 INCHES",
            "4.50 inches",
            "3 Gallons",
            "4 cubic feet",
            "not a number",
            '{"height": 4}',
            {"value": "abc"},
            "",
            "7",
            '5"',
            -2,
            {"value": ""},
            {"value": "   "},
            '{"value": ""}',
            {"value": None},
            -1e-07,
            "-0",
            {"value": "4 INCHES"},
            {"value": '{"value": 3}'},
        ],
    )
    def test_idempotent(self, raw):
        once = normalize_measurement(raw)
        assert normalize_measurement(once) == once


class TestAbbreviateUnit:
    @pytest.mark.parametrize(
        "unit, expected",
        [
            ("inches", "in"),
            ("Inch", "in"),
            ("IN", "in"),
            ("feet", "ft"),
            ("foot", "ft"),
            ("centimeters", "cm"),
            ("meters", "m"),
            ("M", "m"),
            ("Pots", "pots"),
            (None, ""),
        ],
    )
    def test_table(self, unit, expected):
        assert abbreviate_unit(unit) == expected


class TestDecodeMetafield:
    def test_absent(self):
        assert isinstance(decode_metafield(None), AbsentValue)
        assert isinstance(decode_metafield(""), AbsentValue)
        assert isinstance(decode_metafield({}), AbsentValue)
        assert isinstance(decode_metafield({"value": "  "}), AbsentValue)
        assert isinstance(decode_metafield({"value": None, "unit": "FEET"}), AbsentValue)

    def test_boolean_type_hint(self):
        assert decode_metafield("true", "boolean") == FlagValue(enabled=True)
        assert decode_metafield("false", "boolean") == FlagValue(enabled=False)
        assert decode_metafield("yes", "boolean") == FlagValue(enabled=True)

    def test_boolean_as_string_without_hint(self):
        assert decode_metafield("TRUE") == FlagValue(enabled=True)

    def test_dimension_json(self):
        value = decode_metafield('{"value": 4, "unit": "INCHES"}', "dimension")
        assert value == MeasurementValue(value=4.0, unit="INCHES")

    def test_number_hint(self):
        assert decode_metafield("2.5", "number_decimal") == MeasurementValue(value=2.5)

    def test_text(self):
        assert decode_metafield("Full Sun", "single_line_text_field") == TextValue(text="Full Sun")


class TestFlagsAndText:
    @pytest.mark.parametrize("raw", ["1", "true", "YES", "y", "on", True])
    def test_parse_flag_truthy(self, raw):
        assert parse_flag(raw) is True

    @pytest.mark.parametrize("raw", ["0", "false", "", None, "maybe", False])
    def test_parse_flag_falsy(self, raw):
        assert parse_flag(raw) is False

    def test_is_flag_set(self):
        assert is_flag_set(FlagValue(enabled=True))
        assert is_flag_set(TextValue(text="yes"))
        assert not is_flag_set(TextValue(text="Hide me?"))
        assert not is_flag_set(AbsentValue())
        assert not is_flag_set(None)

    def test_display_text(self):
        assert display_text(TextValue(text="  Blue Spruce ")) == "Blue Spruce"
        assert display_text(AbsentValue()) is None
        assert display_text(None) is None
        assert display_text(MeasurementValue(value=3.0)) == "3"

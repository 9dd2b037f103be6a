"""
Metafield decoding and measurement normalization.

Shopify hands metafield values back in several shapes depending on the
definition type and on how the merchant filled them in: plain text
("4 inches"), JSON-encoded dimension objects ('{"value": 4, "unit":
"INCHES"}'), already-parsed objects, numbers, and booleans-as-strings.
`decode_metafield` turns any of those into one of the MetafieldValue
variants; `normalize_measurement` renders a display string such as "4 in".

Nothing in here raises on bad data.
"""

from __future__ import annotations

import json
import math
import re
from collections.abc import Mapping
from typing import Any

from inventory_api.schemas.inventory import (
    AbsentValue,
    FlagValue,
    MeasurementValue,
    MetafieldValue,
    TextValue,
)
from inventory_api.utils.utils_helpers import parse_bool_flag

UNIT_ABBREVIATIONS: dict[str, str] = {
    "inches": "in",
    "inch": "in",
    "in": "in",
    '"': "in",
    "feet": "ft",
    "foot": "ft",
    "ft": "ft",
    "'": "ft",
    "centimeters": "cm",
    "centimeter": "cm",
    "cm": "cm",
    "meters": "m",
    "meter": "m",
    "m": "m",
    "millimeters": "mm",
    "millimeter": "mm",
    "mm": "mm",
    "yards": "yd",
    "yard": "yd",
    "yd": "yd",
}

# "4", "4.5 in", "4 INCHES", "4in", '4"', "4 ft."
_PLAIN_MEASUREMENT = re.compile(r"""^\s*(-?\d+(?:\.\d+)?)\s*([A-Za-z]+|"|')?\.?\s*$""")


def abbreviate_unit(unit: str | None) -> str:
    u = (unit or "").strip().lower()
    return UNIT_ABBREVIATIONS.get(u, u)


def format_number(num: float) -> str:
    text = str(int(num)) if num.is_integer() else f"{num:.6f}".rstrip("0").rstrip(".")
    # values that round to zero keep no sign
    return "0" if text == "-0" else text


def format_measurement(num: float, unit: str | None, default_unit: str) -> str:
    abbrev = abbreviate_unit(unit) or abbreviate_unit(default_unit)
    text = format_number(num)
    return f"{text} {abbrev}" if abbrev else text


def _to_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    return num if math.isfinite(num) else None


def _parse_json_object(raw: str) -> Mapping[str, Any] | None:
    s = raw.strip()
    if not s.startswith("{"):
        return None
    try:
        parsed = json.loads(s)
    except ValueError:
        return None
    return parsed if isinstance(parsed, Mapping) else None


# -----------------------------------------------------------------------------
# Boundary decoding
# -----------------------------------------------------------------------------


def parse_flag(raw: Any) -> bool:
    return parse_bool_flag(raw)


def decode_metafield(raw: Any, type_hint: str | None = None) -> MetafieldValue:
    """Map a raw Shopify metafield value (plus its declared type, if known) to a MetafieldValue."""
    hint = (type_hint or "").strip().lower()

    if raw is None or isinstance(raw, Mapping | list) and not raw:
        return AbsentValue()
    if isinstance(raw, bool):
        return FlagValue(enabled=raw)
    if isinstance(raw, int | float):
        num = _to_float(raw)
        return MeasurementValue(value=num) if num is not None else TextValue(text=str(raw))

    if isinstance(raw, Mapping):
        value = raw.get("value")
        if value is None or isinstance(value, str) and not value.strip():
            return AbsentValue()
        num = _to_float(value)
        if num is None:
            # "4 in", nested JSON and free text get the same treatment as a bare string
            return decode_metafield(value) if isinstance(value, str) else TextValue(text=str(value))
        unit = raw.get("unit")
        return MeasurementValue(value=num, unit=str(unit) if unit else None)

    text = str(raw)
    if not text.strip():
        return AbsentValue()

    if hint == "boolean" or text.strip().lower() in ("true", "false"):
        return FlagValue(enabled=parse_flag(text))

    obj = _parse_json_object(text)
    if obj is not None and "value" in obj:
        return decode_metafield(obj)

    if hint.startswith("number_"):
        num = _to_float(text)
        if num is not None:
            return MeasurementValue(value=num)

    return TextValue(text=text)


def display_text(value: MetafieldValue | None) -> str | None:
    """Plain display string for text-like fields (common name, sun, growth rate)."""
    if value is None or isinstance(value, AbsentValue):
        return None
    if isinstance(value, TextValue):
        return value.text.strip() or None
    if isinstance(value, MeasurementValue):
        return format_number(value.value) if not value.unit else format_measurement(value.value, value.unit, "")
    return "Yes" if value.enabled else "No"


def is_flag_set(value: MetafieldValue | None) -> bool:
    if isinstance(value, FlagValue):
        return value.enabled
    if isinstance(value, TextValue):
        return parse_flag(value.text)
    if isinstance(value, MeasurementValue):
        return value.value != 0
    return False


# -----------------------------------------------------------------------------
# Measurement normalization
# -----------------------------------------------------------------------------


def measurement_display(value: MetafieldValue | None, default_unit: str = "in") -> str | None:
    if value is None or isinstance(value, AbsentValue | FlagValue):
        return None
    if isinstance(value, MeasurementValue):
        return format_measurement(value.value, value.unit, default_unit)

    if not value.text.strip():
        return None
    m = _PLAIN_MEASUREMENT.match(value.text)
    if m:
        num = _to_float(m.group(1))
        if num is not None:
            return format_measurement(num, m.group(2), default_unit)
    # free text ("Ask us"), returned as-is
    return value.text


def normalize_measurement(raw: Any, default_unit: str = "in") -> str | None:
    """
    Display string for a height/caliper metafield.

    >>> normalize_measurement({"value": 4, "unit": "INCHES"})
    '4 in'
    >>> normalize_measurement("4 INCHES")
    '4 in'
    >>> normalize_measurement("") is None
    True
    >>> normalize_measurement("not a number")
    'not a number'
    """
    if isinstance(raw, MeasurementValue | TextValue | FlagValue | AbsentValue):
        return measurement_display(raw, default_unit)
    if isinstance(raw, bool):
        return None
    # booleans-as-strings are not measurements, but must still come back unchanged
    if isinstance(raw, str) and raw.strip().lower() in ("true", "false"):
        return raw
    return measurement_display(decode_metafield(raw), default_unit)


__all__ = [
    "UNIT_ABBREVIATIONS",
    "abbreviate_unit",
    "decode_metafield",
    "display_text",
    "format_measurement",
    "is_flag_set",
    "measurement_display",
    "normalize_measurement",
    "parse_flag",
]

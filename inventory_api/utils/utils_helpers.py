from __future__ import annotations

import unicodedata
from typing import Any

from unidecode import unidecode

TRUTHY = frozenset({"1", "true", "yes", "y", "on"})


# -----------------------------------------------------------------------------
# General helpers
# -----------------------------------------------------------------------------
def normalize_gid(value: str | int | None) -> str:
    """`gid://shopify/Product/123` -> `123`; plain ids pass through as strings."""
    if value is None:
        return ""
    if isinstance(value, int):
        return str(value)
    s = str(value).strip()
    return s.split("/")[-1] if "gid://" in s and "/" in s else s


def normalize_text(s: str) -> str:
    """Case and accent folding for tag/type comparisons."""
    s = unicodedata.normalize("NFKC", s or "")
    return unidecode(s).lower().strip()


def parse_bool_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in TRUTHY


def parse_csv_list(value: str | None) -> list[str]:
    return [part.strip() for part in (value or "").split(",") if part.strip()]

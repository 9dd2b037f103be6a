from __future__ import annotations

from collections.abc import Sequence

from inventory_api.schemas.inventory import InventoryRow, MinimalRow

MINIMAL_FIELDS = tuple(MinimalRow.model_fields)


def to_minimal(row: InventoryRow) -> MinimalRow:
    return MinimalRow(**{name: getattr(row, name) for name in MINIMAL_FIELDS})


def shape_rows(rows: Sequence[InventoryRow], *, minimal: bool) -> list[InventoryRow] | list[MinimalRow]:
    """Full rows or their minimal projection; never drops or reorders rows."""
    if not minimal:
        return list(rows)
    return [to_minimal(r) for r in rows]

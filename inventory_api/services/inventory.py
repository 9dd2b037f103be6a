from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

from inventory_api.common.settings import Settings
from inventory_api.schemas.inventory import (
    InventoryDebug,
    InventoryFilters,
    InventoryRow,
    MetafieldValue,
    MinimalRow,
    Product,
    Variant,
)
from inventory_api.utils.utils_helpers import normalize_text

from .metafields import display_text, is_flag_set, measurement_display
from .pager import RateLimitedPager
from .shaper import shape_rows
from .shopify_client import public_product_url
from .shopify_products import fetch_products, metafield_key

logger = logging.getLogger(__name__)

DEFAULT_VARIANT_TITLE = "Default Title"


# -----------------------------------------------------------------------------
# Exclusion policy
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class ExclusionPolicy:
    """
    A product is dropped (all of its variants) when any of its tags contains one
    of `tag_substrings` (case/accent-insensitive) OR its `flag_key` metafield is
    set. The two checks are independent of each other.
    """

    tag_substrings: tuple[str, ...]
    flag_key: str

    @classmethod
    def from_settings(cls, settings: Settings, extra: Iterable[str] = ()) -> ExclusionPolicy:
        needles: list[str] = []
        for raw in [*settings.exclusion_substrings, *extra]:
            needle = normalize_text(raw)
            if needle and needle not in needles:
                needles.append(needle)
        return cls(
            tag_substrings=tuple(needles),
            flag_key=metafield_key(settings.meta_namespace, settings.key_exclude),
        )


def is_excluded(product: Product, policy: ExclusionPolicy) -> bool:
    if is_flag_set(product.metafields.get(policy.flag_key)):
        return True
    tags = [normalize_text(t) for t in product.tags]
    return any(needle in tag for needle in policy.tag_substrings for tag in tags)


def is_in_stock(qty: int | None) -> bool:
    return isinstance(qty, int) and not isinstance(qty, bool) and qty > 0


# -----------------------------------------------------------------------------
# Row mapping
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class MetafieldKeys:
    common_name: str
    sun: str
    growth: str
    height: str
    caliper: str

    @classmethod
    def from_settings(cls, settings: Settings) -> MetafieldKeys:
        ns = settings.meta_namespace
        return cls(
            common_name=metafield_key(ns, settings.key_common_name),
            sun=metafield_key(ns, settings.key_sun),
            growth=metafield_key(ns, settings.key_growth),
            height=metafield_key(ns, settings.key_height),
            caliper=metafield_key(ns, settings.key_caliper),
        )


def _measurement(
    key: str,
    product: Product,
    variant: Variant,
    default_unit: str,
) -> str | None:
    # variant-level value wins over the product-level one
    value: MetafieldValue | None = variant.metafields.get(key)
    shown = measurement_display(value, default_unit)
    if shown is None:
        shown = measurement_display(product.metafields.get(key), default_unit)
    return shown


def synthetic_sku(variant: Variant) -> str | None:
    """Blank SKU -> the variant's title (not a real SKU), unless it is the default variant."""
    if variant.sku:
        return variant.sku
    title = (variant.title or "").strip()
    return title if title and title != DEFAULT_VARIANT_TITLE else None


def row_for(product: Product, variant: Variant, settings: Settings, keys: MetafieldKeys) -> InventoryRow:
    pm = product.metafields
    return InventoryRow(
        product_id=product.id,
        variant_id=variant.id,
        title=product.title,
        handle=product.handle or None,
        variant=None if variant.title == DEFAULT_VARIANT_TITLE else (variant.title or None),
        sku=synthetic_sku(variant),
        price=variant.price,
        qty=variant.inventory_quantity,
        image=product.images[0] if product.images else None,
        product_type=product.product_type or None,
        tags=list(product.tags),
        url=public_product_url(settings, product.handle),
        common_name=display_text(pm.get(keys.common_name)),
        sun_requirement=display_text(pm.get(keys.sun)),
        growth_rate=display_text(pm.get(keys.growth)),
        height=_measurement(keys.height, product, variant, settings.default_unit),
        caliper=_measurement(keys.caliper, product, variant, settings.default_unit),
    )


def map_rows(
    products: Iterable[Product],
    settings: Settings,
    filters: InventoryFilters,
) -> tuple[list[InventoryRow], int]:
    """One row per variant of every kept product. Returns (rows, excluded product count)."""
    policy = ExclusionPolicy.from_settings(settings, filters.exclude)
    keys = MetafieldKeys.from_settings(settings)
    wanted_type = normalize_text(filters.product_type) if filters.product_type else None
    wanted_tag = normalize_text(filters.tag) if filters.tag else None

    rows: list[InventoryRow] = []
    excluded = 0
    for product in products:
        if is_excluded(product, policy):
            excluded += 1
            continue
        if wanted_type is not None and normalize_text(product.product_type) != wanted_type:
            continue
        if wanted_tag is not None and wanted_tag not in {normalize_text(t) for t in product.tags}:
            continue

        for variant in product.variants:
            if not filters.show_out_of_stock and not is_in_stock(variant.inventory_quantity):
                continue
            rows.append(row_for(product, variant, settings, keys))

    return rows, excluded


# -----------------------------------------------------------------------------
# Request pipeline
# -----------------------------------------------------------------------------


@dataclass
class InventoryResult:
    items: Sequence[InventoryRow] | Sequence[MinimalRow]
    generated_at: str
    debug: InventoryDebug | None = None

    @property
    def count(self) -> int:
        return len(self.items)


def build_inventory(settings: Settings, filters: InventoryFilters, pager: RateLimitedPager) -> InventoryResult:
    products = fetch_products(settings, pager, limit=filters.limit)
    rows, excluded = map_rows(products, settings, filters)
    items = shape_rows(rows, minimal=filters.minimal)

    debug = None
    if filters.debug_meta:
        seen: set[str] = set()
        for p in products:
            seen.update(p.metafields)
            for v in p.variants:
                seen.update(v.metafields)
        debug = InventoryDebug(
            products_scanned=len(products),
            products_excluded=excluded,
            metafield_keys=sorted(seen),
        )

    generated_at = datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    logger.info(
        "inventory_built",
        extra={
            "products": len(products),
            "excluded": excluded,
            "rows": len(items),
            "minimal": filters.minimal,
        },
    )
    return InventoryResult(items=items, generated_at=generated_at, debug=debug)

from __future__ import annotations

import contextvars
import logging
from collections.abc import Iterable, Iterator, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Any, cast
from urllib.parse import quote

from inventory_api.common.errors import UpstreamError
from inventory_api.common.settings import Settings
from inventory_api.schemas.inventory import MetafieldValue, Product, Variant
from inventory_api.utils.utils_helpers import normalize_gid

from .metafields import decode_metafield
from .pager import RateLimitedPager
from .shopify_client import rest_url

logger = logging.getLogger(__name__)

REST_PRODUCT_FIELDS = "id,title,handle,images,variants,product_type,tags"

# Shopify rejects any single query whose requested cost is above this
MAX_QUERY_COST = 1000
GRAPHQL_VARIANTS_PER_PRODUCT = 20


def query_products_graphql() -> str:
    """
    Products with their first image and only the configured metafields
    (product and variant level) in one round-trip per page. Connection sizes
    come in as variables so the cost can be kept under MAX_QUERY_COST.
    """
    return """
    query(
      $cursor: String
      $first: Int!
      $variants: Int!
      $productKeys: [String!]
      $productKeyCount: Int!
      $variantKeys: [String!]
      $variantKeyCount: Int!
    ) {
      products(first: $first, after: $cursor) {
        pageInfo { hasNextPage endCursor }
        edges {
          node {
            id
            title
            handle
            productType
            tags
            images(first: 1) { edges { node { url } } }
            metafields(first: $productKeyCount, keys: $productKeys) {
              edges { node { namespace key type value } }
            }
            variants(first: $variants) {
              pageInfo { hasNextPage }
              edges {
                node {
                  id
                  title
                  sku
                  price
                  inventoryQuantity
                  metafields(first: $variantKeyCount, keys: $variantKeys) {
                    edges { node { namespace key type value } }
                  }
                }
              }
            }
          }
        }
      }
    }
    """.strip()


def _connection_cost(first: int, node_cost: int) -> int:
    # a connection costs 2 plus its requested objects, each with its own nested cost
    return 2 + first * node_cost


def estimate_query_cost(page_size: int, *, variants: int, product_keys: int, variant_keys: int) -> int:
    """Requested cost of query_products_graphql() under Shopify's static cost rules."""
    variant_cost = 1 + _connection_cost(variant_keys, 1)
    product_cost = (
        1
        + _connection_cost(1, 1)  # images
        + _connection_cost(product_keys, 1)
        + _connection_cost(variants, variant_cost)
    )
    return _connection_cost(page_size, product_cost)


def product_metafield_keys(settings: Settings) -> list[str]:
    ns = settings.meta_namespace.strip()
    keys = (
        settings.key_common_name,
        settings.key_sun,
        settings.key_growth,
        settings.key_height,
        settings.key_caliper,
        settings.key_exclude,
    )
    return list(dict.fromkeys(f"{ns}.{k.strip()}" for k in keys if k.strip()))


def variant_metafield_keys(settings: Settings) -> list[str]:
    ns = settings.meta_namespace.strip()
    keys = (settings.key_height, settings.key_caliper)
    return list(dict.fromkeys(f"{ns}.{k.strip()}" for k in keys if k.strip()))


def graphql_product_variables(settings: Settings) -> dict[str, Any]:
    """Page variables, with the page size shrunk until the query fits MAX_QUERY_COST."""
    product_keys = product_metafield_keys(settings)
    variant_keys = variant_metafield_keys(settings)
    variants = GRAPHQL_VARIANTS_PER_PRODUCT

    sizes = {"variants": variants, "product_keys": len(product_keys), "variant_keys": len(variant_keys)}
    first = max(1, settings.graphql_page_size)
    while first > 1 and estimate_query_cost(first, **sizes) > MAX_QUERY_COST:
        first -= 1

    return {
        "first": first,
        "variants": variants,
        "productKeys": product_keys,
        "productKeyCount": max(1, len(product_keys)),
        "variantKeys": variant_keys,
        "variantKeyCount": max(1, len(variant_keys)),
    }


# -----------------------------------------------------------------------------
# Payload -> model
# -----------------------------------------------------------------------------


def metafield_key(namespace: Any, key: Any) -> str:
    return f"{str(namespace or '').strip().lower()}.{str(key or '').strip().lower()}"


def decode_metafields(raw: Iterable[Mapping[str, Any]]) -> dict[str, MetafieldValue]:
    out: dict[str, MetafieldValue] = {}
    for mf in raw:
        if not mf or not mf.get("key"):
            continue
        out[metafield_key(mf.get("namespace"), mf.get("key"))] = decode_metafield(mf.get("value"), mf.get("type"))
    return out


def _split_tags(tags: Any) -> list[str]:
    raw = tags.split(",") if isinstance(tags, str) else list(tags or [])
    seen: list[str] = []
    for t in raw:
        tag = str(t).strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


def _as_quantity(value: Any) -> int | None:
    # bool is an int subclass; it is never a stock level
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return int(value)


def _edge_nodes(conn: Any) -> list[dict[str, Any]]:
    edges = (conn.get("edges") or []) if isinstance(conn, dict) else []
    return [cast(dict[str, Any], (e or {}).get("node") or {}) for e in edges]


def product_from_rest(payload: Mapping[str, Any]) -> Product:
    images = [str(img.get("src")) for img in payload.get("images") or [] if img and img.get("src")]
    variants = [
        Variant(
            id=normalize_gid(v.get("id")),
            title=str(v.get("title") or ""),
            sku=str(v.get("sku") or "").strip(),
            price=str(v["price"]) if v.get("price") is not None else None,
            inventory_quantity=_as_quantity(v.get("inventory_quantity")),
        )
        for v in payload.get("variants") or []
        if v
    ]
    return Product(
        id=normalize_gid(payload.get("id")),
        title=str(payload.get("title") or ""),
        handle=str(payload.get("handle") or ""),
        tags=_split_tags(payload.get("tags")),
        product_type=str(payload.get("product_type") or ""),
        images=images,
        variants=variants,
    )


def product_from_graphql(node: Mapping[str, Any]) -> Product:
    variants_conn = node.get("variants")
    if isinstance(variants_conn, dict) and (variants_conn.get("pageInfo") or {}).get("hasNextPage"):
        logger.warning(
            "graphql_variants_truncated",
            extra={"product_id": normalize_gid(node.get("id")), "read": len(_edge_nodes(variants_conn))},
        )
    images = [str(n.get("url")) for n in _edge_nodes(node.get("images")) if n.get("url")]
    variants = [
        Variant(
            id=normalize_gid(v.get("id")),
            title=str(v.get("title") or ""),
            sku=str(v.get("sku") or "").strip(),
            price=str(v["price"]) if v.get("price") is not None else None,
            inventory_quantity=_as_quantity(v.get("inventoryQuantity")),
            metafields=decode_metafields(_edge_nodes(v.get("metafields"))),
        )
        for v in _edge_nodes(node.get("variants"))
    ]
    return Product(
        id=normalize_gid(node.get("id")),
        title=str(node.get("title") or ""),
        handle=str(node.get("handle") or ""),
        tags=_split_tags(node.get("tags")),
        product_type=str(node.get("productType") or ""),
        images=images,
        metafields=decode_metafields(_edge_nodes(node.get("metafields"))),
        variants=variants,
    )


# -----------------------------------------------------------------------------
# Readers
# -----------------------------------------------------------------------------


def iter_products_rest(pager: RateLimitedPager, settings: Settings) -> Iterator[Product]:
    url = rest_url(settings, f"products.json?limit={settings.page_size}&fields={quote(REST_PRODUCT_FIELDS)}")
    for page in pager.iter_rest_pages(url, items_key="products"):
        for item in page:
            yield product_from_rest(item)


def iter_products_graphql(pager: RateLimitedPager, settings: Settings) -> Iterator[Product]:
    variables = graphql_product_variables(settings)
    if variables["first"] < settings.graphql_page_size:
        logger.info(
            "graphql_page_size_reduced",
            extra={"configured": settings.graphql_page_size, "used": variables["first"], "max_cost": MAX_QUERY_COST},
        )
    pages = pager.iter_graphql_pages(query_products_graphql(), connection="products", variables=variables)
    for page in pages:
        for node in page:
            yield product_from_graphql(node)


def fetch_product_metafields(pager: RateLimitedPager, settings: Settings, product_id: str) -> dict[str, MetafieldValue]:
    payload = pager.get_json(rest_url(settings, f"products/{product_id}/metafields.json"))
    return decode_metafields(cast(list[dict[str, Any]], payload.get("metafields") or []))


def _chunks(items: Sequence[str], size: int) -> Iterator[Sequence[str]]:
    for i in range(0, len(items), size):
        yield items[i : i + size]


def fetch_metafields_for_products(
    pager: RateLimitedPager,
    settings: Settings,
    product_ids: Sequence[str],
) -> dict[str, dict[str, MetafieldValue]]:
    """
    Per-product metafields in batches of `metafield_concurrency`, pausing
    `metafield_batch_delay_s` between batches. A product whose fetch fails with
    UpstreamError is logged and maps to {}; throttling exhaustion and the request
    deadline abort the whole call.
    """
    out: dict[str, dict[str, MetafieldValue]] = {}
    if not product_ids:
        return out

    size = max(1, settings.metafield_concurrency)
    batches = list(_chunks(list(product_ids), size))
    with ThreadPoolExecutor(max_workers=size) as executor:
        for n, batch in enumerate(batches):
            # each task runs in a copy of the request context (correlation id)
            futures = {
                pid: executor.submit(contextvars.copy_context().run, fetch_product_metafields, pager, settings, pid)
                for pid in batch
            }
            try:
                for pid, future in futures.items():
                    try:
                        out[pid] = future.result()
                    except UpstreamError as e:
                        logger.warning(
                            "metafield_fetch_failed",
                            extra={"product_id": pid, "status": e.status, "error": str(e)},
                        )
                        out[pid] = {}
            except BaseException:
                for future in futures.values():
                    future.cancel()
                raise

            if n < len(batches) - 1 and settings.metafield_batch_delay_s > 0:
                pager.wait(settings.metafield_batch_delay_s, "metafields-batch")

    logger.info("metafields_ok", extra={"products": len(out), "batches": len(batches)})
    return out


def fetch_products(settings: Settings, pager: RateLimitedPager, *, limit: int = 0) -> list[Product]:
    """
    All products (optionally only the first `limit`) with their metafields.
    REST mode pulls metafields per product; GraphQL mode gets them inline.
    """
    settings.require_upstream()
    reader = iter_products_graphql if settings.fetch_mode == "graphql" else iter_products_rest

    products: list[Product] = []
    for product in reader(pager, settings):
        products.append(product)
        if limit and len(products) >= limit:
            break

    if settings.fetch_mode == "rest":
        meta = fetch_metafields_for_products(pager, settings, [p.id for p in products])
        for p in products:
            p.metafields = meta.get(p.id, {})

    logger.info("products_ok", extra={"products": len(products), "mode": settings.fetch_mode})
    return products

from __future__ import annotations

from datetime import UTC, datetime

from inventory_api.common.settings import Settings


def current_api_version(now: datetime | None = None) -> str:
    """
    Quarterly Shopify API version (YYYY-01/04/07/10) for `now` (UTC by default).
    Used when SHOPIFY_API_VERSION is set to an empty string.
    """
    dt = now or datetime.now(UTC)
    q_start = ((dt.month - 1) // 3) * 3 + 1  # 1, 4, 7, 10
    return f"{dt.year}-{q_start:02d}"


def api_version(settings: Settings) -> str:
    return (settings.shopify_api_version or "").strip() or current_api_version()


def store_host(settings: Settings) -> str:
    host = (settings.shopify_store_domain or "").strip()
    for prefix in ("https://", "http://"):
        if host.startswith(prefix):
            host = host[len(prefix) :]
    return host.rstrip("/")


def rest_url(settings: Settings, path: str) -> str:
    return f"https://{store_host(settings)}/admin/api/{api_version(settings)}/{path.lstrip('/')}"


def graphql_url(settings: Settings) -> str:
    return rest_url(settings, "graphql.json")


def shopify_headers(settings: Settings) -> dict[str, str]:
    return {
        "X-Shopify-Access-Token": settings.shopify_admin_token,
        "Accept": "application/json",
        "Content-Type": "application/json",
    }


def parse_link_header(link: str | None) -> dict[str, str]:
    """`<https://…page_info=abc>; rel="next", <…>; rel="previous"` -> {"next": url, "previous": url}."""
    links: dict[str, str] = {}
    for part in (link or "").split(","):
        pieces = [p.strip() for p in part.split(";")]
        if len(pieces) < 2:
            continue
        url = pieces[0].strip("<>")
        for attr in pieces[1:]:
            if attr.startswith("rel="):
                rel = attr[len("rel=") :].strip('"')
                if rel and url:
                    links[rel] = url
    return links


def public_product_url(settings: Settings, handle: str | None) -> str | None:
    if not handle:
        return None
    base = (settings.public_store_domain or "").strip().rstrip("/")
    if base and not base.startswith(("http://", "https://")):
        base = f"https://{base}"
    return f"{base}/products/{handle}"

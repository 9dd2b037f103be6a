from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import JSONResponse

from inventory_api.common.settings import Settings, get_settings
from inventory_api.schemas.inventory import ErrorResponse, InventoryFilters, InventoryResponse
from inventory_api.services.inventory import build_inventory
from inventory_api.services.pager import RateLimitedPager
from inventory_api.utils.utils_helpers import parse_bool_flag, parse_csv_list

router = APIRouter(prefix="/api", tags=["Inventory"])


def get_pager(settings: Settings = Depends(get_settings)) -> RateLimitedPager:
    # new pager per request: its request budget starts now
    return RateLimitedPager(settings)


def get_filters(
    show_out_of_stock: str | None = Query(
        None, alias="showOutOfStock", description="Include variants with qty <= 0 or unknown (1/true/yes)"
    ),
    product_type: str | None = Query(None, alias="productType", description="Exact product type, case-insensitive"),
    tag: str | None = Query(None, description="Exact tag, case-insensitive"),
    exclude: str | None = Query(None, description="Extra comma-separated tag substrings to exclude"),
    minimal: str | None = Query(None, description="Return the reduced row shape (1/true/yes)"),
    limit: int = Query(0, ge=0, description="Diagnostic: only read the first N products (0 = all)"),
    debug_meta: str | None = Query(None, alias="debugMeta", description="Diagnostic: add a `debug` block"),
) -> InventoryFilters:
    return InventoryFilters(
        show_out_of_stock=parse_bool_flag(show_out_of_stock),
        product_type=(product_type or "").strip() or None,
        tag=(tag or "").strip() or None,
        exclude=parse_csv_list(exclude),
        minimal=parse_bool_flag(minimal),
        limit=limit,
        debug_meta=parse_bool_flag(debug_meta),
    )


@router.get(
    "/inventory",
    summary="Flat inventory feed",
    description=(
        "Reads every product/variant from the Shopify Admin API and returns one row per variant, "
        "minus excluded products and (unless `showOutOfStock`) variants without stock."
    ),
    responses={200: {"model": InventoryResponse}, 500: {"model": ErrorResponse}},
)
def get_inventory(
    filters: InventoryFilters = Depends(get_filters),
    settings: Settings = Depends(get_settings),
    pager: RateLimitedPager = Depends(get_pager),
) -> JSONResponse:
    result = build_inventory(settings, filters, pager)

    body: dict[str, Any] = {
        "ok": True,
        "count": result.count,
        "generatedAt": result.generated_at,
        "items": [row.model_dump(mode="json", by_alias=True) for row in result.items],
    }
    if result.debug is not None:
        body["debug"] = result.debug.model_dump(mode="json", by_alias=True)

    return JSONResponse(
        content=body,
        headers={
            "Cache-Control": settings.cache_control,
            "X-Generated-At": result.generated_at,
        },
    )


@router.options("/inventory", status_code=204, include_in_schema=False)
def inventory_options() -> Response:
    # CORSMiddleware adds the Access-Control-* headers
    return Response(status_code=204)

# inventory_api/schemas/inventory.py
from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

# -----------------------------------------------------------------------------
# Metafield values (decoded once at the API boundary)
# -----------------------------------------------------------------------------


class TextValue(BaseModel):
    kind: Literal["text"] = "text"
    text: str


class MeasurementValue(BaseModel):
    kind: Literal["measurement"] = "measurement"
    value: float
    unit: str | None = None


class FlagValue(BaseModel):
    kind: Literal["flag"] = "flag"
    enabled: bool


class AbsentValue(BaseModel):
    kind: Literal["absent"] = "absent"


MetafieldValue = Annotated[TextValue | MeasurementValue | FlagValue | AbsentValue, Field(discriminator="kind")]

# -----------------------------------------------------------------------------
# Upstream product tree (read-only)
# -----------------------------------------------------------------------------


class Variant(BaseModel):
    id: str
    title: str = ""
    sku: str = ""
    price: str | None = None
    inventory_quantity: int | None = None
    # "namespace.key" (lower-cased) -> decoded value
    metafields: dict[str, MetafieldValue] = Field(default_factory=dict)


class Product(BaseModel):
    id: str
    title: str = ""
    handle: str = ""
    tags: list[str] = Field(default_factory=list)
    product_type: str = ""
    images: list[str] = Field(default_factory=list)
    metafields: dict[str, MetafieldValue] = Field(default_factory=dict)
    variants: list[Variant] = Field(default_factory=list)


# -----------------------------------------------------------------------------
# Output rows
# -----------------------------------------------------------------------------


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class MinimalRow(_CamelModel):
    title: str
    common_name: str | None = Field(None, alias="commonName")
    variant: str | None = None
    sku: str | None = None
    price: str | None = None
    qty: int | None = None
    height: str | None = None
    caliper: str | None = None
    url: str | None = None


class InventoryRow(MinimalRow):
    product_id: str = Field(..., alias="productId")
    variant_id: str = Field(..., alias="variantId")
    handle: str | None = None
    image: str | None = None
    product_type: str | None = Field(None, alias="productType")
    tags: list[str] = Field(default_factory=list)
    sun_requirement: str | None = Field(None, alias="sunRequirement")
    growth_rate: str | None = Field(None, alias="growthRate")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "productId": "8123456789",
                "variantId": "44123456789",
                "title": "Colorado Spruce",
                "commonName": "Picea pungens",
                "variant": "6-7 ft",
                "sku": "PP-67",
                "price": "349.00",
                "qty": 5,
                "height": "6 ft",
                "caliper": "2 in",
                "url": "https://shop.rockcrestgardens.com/products/colorado-spruce",
                "handle": "colorado-spruce",
                "image": "https://cdn.shopify.com/s/files/spruce.jpg",
                "productType": "Evergreen",
                "tags": ["Evergreen", "Full Sun"],
                "sunRequirement": "Full Sun",
                "growthRate": "Slow",
            }
        },
    )


# -----------------------------------------------------------------------------
# Request / response
# -----------------------------------------------------------------------------


class InventoryFilters(BaseModel):
    show_out_of_stock: bool = False
    product_type: str | None = None
    tag: str | None = None
    exclude: list[str] = Field(default_factory=list)
    minimal: bool = False
    limit: int = 0
    debug_meta: bool = False


class InventoryDebug(_CamelModel):
    products_scanned: int = Field(..., alias="productsScanned")
    products_excluded: int = Field(..., alias="productsExcluded")
    metafield_keys: list[str] = Field(default_factory=list, alias="metafieldKeys")


class InventoryResponse(_CamelModel):
    ok: bool = True
    count: int
    generated_at: str = Field(..., alias="generatedAt")
    items: list[InventoryRow] | list[MinimalRow]
    debug: InventoryDebug | None = None


class ErrorResponse(BaseModel):
    ok: bool = False
    error: str

# inventory_api/common/settings.py
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from inventory_api.common.errors import ConfigurationError
from inventory_api.utils.utils_helpers import parse_csv_list

BASE_DIR = Path(__file__).resolve().parent.parent.parent  # repo root (where .env lives)


class Settings(BaseSettings):
    # upstream (Shopify Admin API)
    shopify_store_domain: str = Field(
        default="",
        # accepted env names, first one found wins
        validation_alias=AliasChoices("SHOPIFY_STORE_DOMAIN", "SHOP_URL"),
    )
    shopify_admin_token: str = Field(
        default="",
        validation_alias=AliasChoices("SHOPIFY_ADMIN_TOKEN", "SHOPIFY_TOKEN"),
    )
    shopify_api_version: str = Field(default="2025-07", validation_alias=AliasChoices("SHOPIFY_API_VERSION"))
    fetch_mode: Literal["rest", "graphql"] = Field(default="rest", validation_alias=AliasChoices("SHOPIFY_FETCH_MODE"))

    # public storefront + CORS
    public_store_domain: str = Field(
        default="https://shop.rockcrestgardens.com",
        validation_alias=AliasChoices("PUBLIC_STORE_DOMAIN"),
    )
    allowed_origin: str = Field(default="*", validation_alias=AliasChoices("ALLOWED_ORIGIN", "CORS_ORIGINS"))
    cache_control: str = Field(
        default="s-maxage=30, stale-while-revalidate=120",
        validation_alias=AliasChoices("CACHE_CONTROL"),
    )

    # metafield mapping (defaults match the storefront Liquid templates)
    meta_namespace: str = Field(default="custom", validation_alias=AliasChoices("META_NAMESPACE"))
    key_common_name: str = Field(default="common_name", validation_alias=AliasChoices("KEY_COMMON_NAME"))
    key_sun: str = Field(default="sun_requirement", validation_alias=AliasChoices("KEY_SUN"))
    key_growth: str = Field(default="growth_rate", validation_alias=AliasChoices("KEY_GROWTH"))
    key_caliper: str = Field(default="plant_caliper", validation_alias=AliasChoices("KEY_CALIPER"))
    key_height: str = Field(default="plant_height", validation_alias=AliasChoices("KEY_HEIGHT"))
    key_exclude: str = Field(default="exclude_from_inventory", validation_alias=AliasChoices("KEY_EXCLUDE"))
    default_unit: str = Field(default="in", validation_alias=AliasChoices("DEFAULT_MEASUREMENT_UNIT"))

    # row filtering
    exclude_tag_substrings: str = Field(default="blue", validation_alias=AliasChoices("EXCLUDE_TAG_SUBSTRINGS"))

    # pagination / throttling
    page_size: int = Field(default=250, ge=1, le=250, validation_alias=AliasChoices("SHOPIFY_PAGE_SIZE"))
    graphql_page_size: int = Field(
        default=8, ge=1, le=250, validation_alias=AliasChoices("SHOPIFY_GRAPHQL_PAGE_SIZE")
    )
    metafield_concurrency: int = Field(default=4, ge=1, validation_alias=AliasChoices("METAFIELD_CONCURRENCY"))
    metafield_batch_delay_s: float = Field(
        default=0.2, ge=0, validation_alias=AliasChoices("METAFIELD_BATCH_DELAY_S")
    )
    retry_after_default_s: float = Field(default=2.0, ge=0, validation_alias=AliasChoices("RETRY_AFTER_DEFAULT_S"))
    retry_after_cap_s: float = Field(default=5.0, ge=0, validation_alias=AliasChoices("RETRY_AFTER_CAP_S"))
    max_retry_attempts: int = Field(default=6, ge=1, validation_alias=AliasChoices("MAX_RETRY_ATTEMPTS"))
    request_timeout_s: float = Field(default=25.0, gt=0, validation_alias=AliasChoices("REQUEST_TIMEOUT_S"))

    app_env: str = Field(default="dev", validation_alias=AliasChoices("APP_ENV"))

    model_config = SettingsConfigDict(
        env_file=str(BASE_DIR / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    @property
    def allowed_origins(self) -> list[str]:
        return parse_csv_list(self.allowed_origin) or ["*"]

    @property
    def exclusion_substrings(self) -> list[str]:
        return parse_csv_list(self.exclude_tag_substrings)

    def require_upstream(self) -> None:
        """Fail before any network call when the Shopify credentials are missing."""
        missing = [
            name
            for name, value in (
                ("SHOPIFY_STORE_DOMAIN", self.shopify_store_domain),
                ("SHOPIFY_ADMIN_TOKEN", self.shopify_admin_token),
            )
            if not (value or "").strip()
        ]
        if missing:
            raise ConfigurationError(f"Missing env vars: {' and/or '.join(missing)}", data={"missing": missing})


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()

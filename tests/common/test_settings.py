"""Tests for inventory_api/common/settings.py"""

import pytest

from inventory_api.common.errors import ConfigurationError
from inventory_api.common.settings import Settings

ENV_NAMES = (
    "SHOPIFY_STORE_DOMAIN",
    "SHOP_URL",
    "SHOPIFY_ADMIN_TOKEN",
    "SHOPIFY_TOKEN",
    "SHOPIFY_API_VERSION",
    "PUBLIC_STORE_DOMAIN",
    "ALLOWED_ORIGIN",
    "CORS_ORIGINS",
    "META_NAMESPACE",
    "KEY_CALIPER",
    "EXCLUDE_TAG_SUBSTRINGS",
    "METAFIELD_CONCURRENCY",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


class TestDefaults:
    def test_defaults(self):
        s = Settings(_env_file=None)

        assert s.shopify_api_version == "2025-07"
        assert s.public_store_domain == "https://shop.rockcrestgardens.com"
        assert s.meta_namespace == "custom"
        assert s.key_common_name == "common_name"
        assert s.key_caliper == "plant_caliper"
        assert s.cache_control == "s-maxage=30, stale-while-revalidate=120"
        assert s.page_size == 250
        assert s.metafield_concurrency == 4
        assert s.metafield_batch_delay_s == 0.2
        assert s.allowed_origins == ["*"]
        assert s.exclusion_substrings == ["blue"]


class TestEnvironment:
    def test_primary_names(self, monkeypatch):
        monkeypatch.setenv("SHOPIFY_STORE_DOMAIN", "a.myshopify.com")
        monkeypatch.setenv("SHOPIFY_ADMIN_TOKEN", "shpat_abc")
        monkeypatch.setenv("KEY_CALIPER", "trunk_caliper")
        monkeypatch.setenv("METAFIELD_CONCURRENCY", "8")

        s = Settings(_env_file=None)

        assert s.shopify_store_domain == "a.myshopify.com"
        assert s.shopify_admin_token == "shpat_abc"
        assert s.key_caliper == "trunk_caliper"
        assert s.metafield_concurrency == 8

    def test_alternative_names(self, monkeypatch):
        monkeypatch.setenv("SHOP_URL", "b.myshopify.com")
        monkeypatch.setenv("SHOPIFY_TOKEN", "shpat_def")

        s = Settings(_env_file=None)

        assert s.shopify_store_domain == "b.myshopify.com"
        assert s.shopify_admin_token == "shpat_def"

    def test_csv_lists(self, monkeypatch):
        monkeypatch.setenv("ALLOWED_ORIGIN", "https://a.example.com, https://b.example.com")
        monkeypatch.setenv("EXCLUDE_TAG_SUBSTRINGS", "blue, clearance,,")

        s = Settings(_env_file=None)

        assert s.allowed_origins == ["https://a.example.com", "https://b.example.com"]
        assert s.exclusion_substrings == ["blue", "clearance"]

    def test_invalid_fetch_mode(self, monkeypatch):
        monkeypatch.setenv("SHOPIFY_FETCH_MODE", "soap")

        with pytest.raises(ValueError):
            Settings(_env_file=None)


class TestRequireUpstream:
    def test_ok(self):
        Settings(_env_file=None, shopify_store_domain="a.myshopify.com", shopify_admin_token="t").require_upstream()

    def test_missing_token_only(self):
        s = Settings(_env_file=None, shopify_store_domain="a.myshopify.com")

        with pytest.raises(ConfigurationError) as exc:
            s.require_upstream()

        assert str(exc.value) == "Missing env vars: SHOPIFY_ADMIN_TOKEN"
        assert exc.value.data == {"missing": ["SHOPIFY_ADMIN_TOKEN"]}

    def test_both_missing(self):
        with pytest.raises(ConfigurationError, match="SHOPIFY_STORE_DOMAIN and/or SHOPIFY_ADMIN_TOKEN"):
            Settings(_env_file=None).require_upstream()

"""Shared test fixtures."""

from typing import Any
from unittest.mock import MagicMock

import pytest

from inventory_api.common.settings import Settings
from inventory_api.services.pager import RateLimitedPager

STORE = "test-store.myshopify.com"
REST_BASE = f"https://{STORE}/admin/api/2025-07"


@pytest.fixture
def settings():
    """Settings isolated from the environment and .env, with fast batching."""
    return Settings(
        _env_file=None,
        shopify_store_domain=STORE,
        shopify_admin_token="shpat_test",
        shopify_api_version="2025-07",
        fetch_mode="rest",
        public_store_domain="https://shop.example.com",
        allowed_origin="*",
        exclude_tag_substrings="blue",
        metafield_batch_delay_s=0,
    )


@pytest.fixture
def make_response():
    """Build a fake requests.Response."""

    def _make(status: int = 200, json_body: Any = None, headers: dict | None = None, text: str = ""):
        resp = MagicMock()
        resp.status_code = status
        resp.headers = headers or {}
        resp.json.return_value = json_body if json_body is not None else {}
        resp.text = text
        return resp

    return _make


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def sleep():
    return MagicMock()


@pytest.fixture
def pager(settings, session, sleep):
    return RateLimitedPager(settings, session=session, sleep=sleep)


@pytest.fixture
def rest_product():
    """Build a REST products.json item."""

    def _make(pid: int, *, title: str = "Plant", tags: str = "", variants: list | None = None, **extra):
        if variants is None:
            variants = [
                {
                    "id": pid * 10,
                    "title": "Default Title",
                    "sku": f"SKU-{pid}",
                    "price": "10.00",
                    "inventory_quantity": 1,
                }
            ]
        return {
            "id": pid,
            "title": title,
            "handle": title.lower().replace(" ", "-"),
            "product_type": extra.pop("product_type", "Tree"),
            "tags": tags,
            "images": extra.pop("images", [{"src": f"https://cdn.example.com/{pid}.jpg"}]),
            "variants": variants,
            **extra,
        }

    return _make

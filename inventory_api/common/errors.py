# inventory_api/common/errors.py
from __future__ import annotations

from typing import Any


class InventoryError(Exception):
    """Base error: message plus a stable code and extra data for the logs."""

    code: str = "INVENTORY_ERROR"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        cause: BaseException | None = None,
        retryable: bool = False,
        data: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.cause = cause
        self.retryable = retryable
        self.data: dict[str, Any] = dict(data or {})

    def __str__(self) -> str:
        return self.message


class ConfigurationError(InventoryError):
    code = "CONFIG_ERROR"


class UpstreamError(InventoryError):
    """Non-2xx (other than 429) response or transport failure talking to Shopify."""

    code = "UPSTREAM_ERROR"

    def __init__(
        self,
        status: int | None,
        body: str = "",
        *,
        url: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        snippet = (body or "").strip()[:300]
        if status is None:
            message = f"Shopify request failed: {snippet or 'network error'}"
        else:
            message = f"Shopify {status}: {snippet or 'request failed'}"
        super().__init__(
            message,
            cause=cause,
            retryable=status is None,
            data={"status": status, "url": url},
        )
        self.status = status
        self.body = body


class RateLimitExceeded(InventoryError):
    code = "RATE_LIMITED"

    def __init__(self, attempts: int, *, url: str | None = None) -> None:
        super().__init__(
            f"Shopify kept throttling after {attempts} attempts",
            retryable=True,
            data={"attempts": attempts, "url": url},
        )
        self.attempts = attempts


class RequestTimeout(InventoryError):
    code = "REQUEST_TIMEOUT"

    def __init__(self, budget_s: float, *, url: str | None = None) -> None:
        super().__init__(
            f"Request budget of {budget_s:g}s exhausted while calling Shopify",
            retryable=True,
            data={"budget_s": budget_s, "url": url},
        )
        self.budget_s = budget_s


__all__ = [
    "ConfigurationError",
    "InventoryError",
    "RateLimitExceeded",
    "RequestTimeout",
    "UpstreamError",
]

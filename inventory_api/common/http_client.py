from __future__ import annotations

from functools import lru_cache
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .errors import UpstreamError
from .logging_setup import get_correlation_id, get_logger

DEFAULT_TIMEOUT: tuple[float, float] = (5.0, 30.0)

logger = get_logger("http")


def _build_retry(total: int = 3, backoff_factor: float = 0.3) -> Retry:
    """
    Connection-level retry only. Status codes (429 included) are never retried
    here: the pager owns the throttling policy and needs to see every 429.
    """
    return Retry(
        total=total,
        connect=total,
        read=0,
        status=0,
        other=0,
        backoff_factor=backoff_factor,
        allowed_methods=frozenset({"GET", "POST"}),
        raise_on_status=False,
        respect_retry_after_header=False,
    )


def _build_session() -> requests.Session:
    s = requests.Session()
    s.headers.update(
        {
            "User-Agent": "inventory-api/HTTPClient",
            "Accept": "application/json",
        }
    )
    adapter = HTTPAdapter(max_retries=_build_retry(), pool_connections=10, pool_maxsize=10)
    s.mount("https://", adapter)
    s.mount("http://", adapter)
    return s


@lru_cache(maxsize=1)
def _get_cached_session() -> requests.Session:
    return _build_session()


def get_session(session: requests.Session | None = None) -> requests.Session:
    return session or _get_cached_session()


def send(
    session: requests.Session,
    method: str,
    url: str,
    *,
    timeout: tuple[float, float] = DEFAULT_TIMEOUT,
    **kwargs: Any,
) -> requests.Response:
    """
    Issue one HTTP call and return the response whatever its status.
    Transport failures surface as UpstreamError(status=None).
    """
    headers = dict(kwargs.pop("headers", None) or {})
    headers.setdefault("X-Request-Id", get_correlation_id())

    try:
        return session.request(method, url, headers=headers, timeout=timeout, **kwargs)
    except requests.Timeout as e:
        logger.warning("http_timeout", extra={"method": method, "url": url})
        raise UpstreamError(None, f"timeout calling {url}", url=url, cause=e) from e
    except requests.RequestException as e:
        logger.error("http_request_exception", extra={"method": method, "url": url, "error": str(e)})
        raise UpstreamError(None, str(e), url=url, cause=e) from e

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator, Mapping
from typing import Any, cast

import requests

from inventory_api.common.errors import RateLimitExceeded, RequestTimeout, UpstreamError
from inventory_api.common.http_client import DEFAULT_TIMEOUT, get_session, send
from inventory_api.common.settings import Settings
from inventory_api.utils.throttlers import (
    is_throttled,
    next_backoff,
    retry_after_seconds,
    sleep_throttle,
    throttle_from_extensions,
)

from .shopify_client import graphql_url, parse_link_header, shopify_headers

logger = logging.getLogger(__name__)


class RateLimitedPager:
    """
    Sequential reader for the Shopify Admin API.

    One instance per inbound request: the request budget (`request_timeout_s`)
    starts counting when the pager is built and bounds every upstream call and
    every backoff sleep made through it.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings
        self.session = get_session(session)
        self.sleep = sleep
        self.clock = clock
        self.headers = shopify_headers(settings)
        self.deadline = clock() + settings.request_timeout_s

    # ------------------------------------------------------------------
    # budget
    # ------------------------------------------------------------------
    def remaining(self) -> float:
        return self.deadline - self.clock()

    def _timeout(self, url: str) -> tuple[float, float]:
        left = self.remaining()
        if left <= 0:
            raise RequestTimeout(self.settings.request_timeout_s, url=url)
        connect, read = DEFAULT_TIMEOUT
        return (min(connect, left), min(read, left))

    def wait(self, seconds: float, url: str, **log_extra: Any) -> None:
        if seconds >= self.remaining():
            raise RequestTimeout(self.settings.request_timeout_s, url=url)
        sleep_throttle(seconds, sleep=self.sleep, **log_extra)

    # ------------------------------------------------------------------
    # single request with 429 handling
    # ------------------------------------------------------------------
    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        """
        Send one request, re-sending it unchanged after each 429.
        Any other non-2xx raises UpstreamError straight away.
        """
        s = self.settings
        backoff = s.retry_after_default_s
        attempt = 0

        while True:
            t0 = time.perf_counter()
            resp = send(self.session, method, url, headers=self.headers, timeout=self._timeout(url), **kwargs)
            dur = round(time.perf_counter() - t0, 3)

            if resp.status_code == 429:
                attempt += 1
                if attempt >= s.max_retry_attempts:
                    logger.error("http_429_giving_up", extra={"url": url, "attempts": attempt})
                    raise RateLimitExceeded(attempt, url=url)
                wait = retry_after_seconds(
                    resp.headers.get("Retry-After"),
                    default=backoff,
                    cap=s.retry_after_cap_s,
                )
                logger.warning(
                    "http_429",
                    extra={"url": url, "attempt": attempt, "wait_s": wait, "duration_s": dur},
                )
                self.wait(wait, url, attempt=attempt)
                backoff = next_backoff(backoff, cap=s.retry_after_cap_s)
                continue

            if not 200 <= resp.status_code < 300:
                body = resp.text or ""
                logger.error("http_error", extra={"url": url, "status": resp.status_code, "duration_s": dur})
                raise UpstreamError(resp.status_code, body, url=url)

            logger.debug("http_ok", extra={"url": url, "status": resp.status_code, "duration_s": dur})
            return resp

    def get_json(self, url: str, *, params: Mapping[str, Any] | None = None) -> dict[str, Any]:
        resp = self.request("GET", url, params=dict(params) if params else None)
        return cast(dict[str, Any], resp.json() or {})

    # ------------------------------------------------------------------
    # REST: Link header pagination
    # ------------------------------------------------------------------
    def iter_rest_pages(
        self,
        url: str,
        *,
        items_key: str,
        params: Mapping[str, Any] | None = None,
    ) -> Iterator[list[dict[str, Any]]]:
        """Yield each page's `items_key` list, following `rel="next"` until it disappears."""
        next_url: str | None = url
        # the next link already carries page_info + limit; params only go on the first call
        next_params: dict[str, Any] | None = dict(params) if params else None
        page = 0

        while next_url:
            resp = self.request("GET", next_url, params=next_params)
            payload = cast(dict[str, Any], resp.json() or {})
            items = cast(list[dict[str, Any]], payload.get(items_key) or [])
            page += 1
            logger.info("rest_page_ok", extra={"page": page, "items": len(items), "items_key": items_key})
            yield items

            link = resp.headers.get("Link") or resp.headers.get("link")
            next_url = parse_link_header(link).get("next")
            next_params = None

    # ------------------------------------------------------------------
    # GraphQL: pageInfo { hasNextPage endCursor }
    # ------------------------------------------------------------------
    def graphql(self, query: str, variables: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Run one GraphQL operation, waiting out THROTTLED errors like a 429."""
        s = self.settings
        url = graphql_url(s)
        body = {"query": query, "variables": dict(variables or {})}
        backoff = s.retry_after_default_s
        attempt = 0

        while True:
            payload = cast(dict[str, Any], self.request("POST", url, json=body).json() or {})
            errors = cast(list[Any], payload.get("errors") or [])
            if not errors:
                return cast(dict[str, Any], payload.get("data") or {})

            if not is_throttled(errors):
                logger.error("graphql_errors", extra={"errors": errors})
                raise UpstreamError(200, str(errors), url=url)

            attempt += 1
            if attempt >= s.max_retry_attempts:
                raise RateLimitExceeded(attempt, url=url)
            wait, metrics = throttle_from_extensions(payload)
            wait = min(wait if wait > 0 else backoff, s.retry_after_cap_s)
            logger.info("graphql_throttled", extra={"attempt": attempt, "wait_s": round(wait, 3), **metrics})
            self.wait(wait, url, attempt=attempt)
            backoff = next_backoff(backoff, cap=s.retry_after_cap_s)

    def iter_graphql_pages(
        self,
        query: str,
        *,
        connection: str,
        variables: Mapping[str, Any] | None = None,
    ) -> Iterator[list[dict[str, Any]]]:
        """
        Yield the `edges[].node` list of the connection found at the dotted path
        `connection` (e.g. "products"), feeding `endCursor` back as `$cursor`.
        """
        cursor: str | None = None
        page = 0

        while True:
            data = self.graphql(query, {**dict(variables or {}), "cursor": cursor})
            conn: Any = data
            for key in connection.split("."):
                conn = (conn or {}).get(key) if isinstance(conn, dict) else None
            conn = cast(dict[str, Any], conn or {})

            edges = cast(list[dict[str, Any]], conn.get("edges") or [])
            page_info = cast(dict[str, Any], conn.get("pageInfo") or {})
            has_next = bool(page_info.get("hasNextPage"))
            end_cursor = cast(str | None, page_info.get("endCursor"))

            page += 1
            logger.info("graphql_page_ok", extra={"page": page, "edges": len(edges), "has_next": has_next})
            yield [cast(dict[str, Any], (e or {}).get("node") or {}) for e in edges]

            if not has_next or not end_cursor:
                break
            cursor = end_cursor

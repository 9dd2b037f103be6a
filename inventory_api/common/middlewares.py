# inventory_api/common/middlewares.py
from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from inventory_api.common.logging_setup import get_logger, set_correlation_id

logger = get_logger("access")

REQUEST_ID_HEADER = "X-Request-Id"


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Binds X-Request-Id (the caller's, or a new UUID) to the request's logs and echoes it back."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        cid = set_correlation_id(request.headers.get(REQUEST_ID_HEADER) or None)
        started = time.perf_counter()

        response = await call_next(request)

        status = response.status_code
        logger.log(
            logging.WARNING if status >= 500 else logging.INFO,
            "request_done",
            extra={
                "method": request.method,
                "path": request.url.path,
                "query": str(request.url.query),
                "status": status,
                "duration_s": round(time.perf_counter() - started, 3),
            },
        )
        response.headers[REQUEST_ID_HEADER] = cid
        return response

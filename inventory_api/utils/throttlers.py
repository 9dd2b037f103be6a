import logging
import time
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

# growth of the fallback wait when the upstream sends no usable Retry-After
BACKOFF_MULT = 1.6


def retry_after_seconds(header: str | None, *, default: float, cap: float) -> float:
    """Seconds to wait for a 429: the Retry-After hint, or `default`, never above `cap`."""
    try:
        wait = float(header) if header is not None and str(header).strip() else default
    except (TypeError, ValueError):
        wait = default
    if wait != wait or wait < 0:  # NaN / negative
        wait = default
    return max(0.0, min(wait, cap))


def next_backoff(current: float, *, cap: float) -> float:
    return min(current * BACKOFF_MULT, cap)


def sleep_throttle(seconds: float, *, sleep: Callable[[float], None] = time.sleep, **log_extra: Any) -> None:
    s = max(0.0, seconds)
    if s > 0:
        logger.info("throttle_sleep", extra={"sleep_s": round(s, 3), **log_extra})
        sleep(s)


def throttle_from_extensions(payload: dict[str, Any]) -> tuple[float, dict[str, float]]:
    """
    GraphQL cost extensions -> (wait_seconds, metrics) where
    metrics = {requested, available, restore_rate}.
    """
    try:
        ext = (payload.get("extensions") or {}).get("cost") or {}
        ts = ext.get("throttleStatus") or {}
        requested = float(ext.get("requestedQueryCost", ext.get("actualQueryCost", 0)) or 0)
        available = float(ts.get("currentlyAvailable", 0) or 0)
        restore = float(ts.get("restoreRate", 0) or 0)
    except (AttributeError, TypeError, ValueError):
        return 0.0, {"requested": 0.0, "available": 0.0, "restore_rate": 0.0}
    wait = (requested - available) / restore if restore > 0 and requested > available else 0.0
    return max(0.0, wait), {"requested": requested, "available": available, "restore_rate": restore}


def is_throttled(errors: list[Any]) -> bool:
    for err in errors:
        if not isinstance(err, dict):
            continue
        code = str((err.get("extensions") or {}).get("code", "")).upper()
        if code == "THROTTLED" or "throttled" in str(err.get("message", "")).lower():
            return True
    return False

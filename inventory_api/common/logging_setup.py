# inventory_api/common/logging_setup.py
from __future__ import annotations

import logging
import os
import re
import sys
import uuid
from collections.abc import Iterable
from contextvars import ContextVar
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pythonjsonlogger import jsonlogger

# ---------------------------
# Per-request context
# ---------------------------
correlation_id_ctx: ContextVar[str] = ContextVar("correlation_id", default="-")
app_env_ctx: ContextVar[str] = ContextVar("app_env", default="dev")

# Shopify admin tokens show up in headers, query strings and exception text
_SECRET_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"(x-shopify-access-token['\"]?\s*[:=]\s*['\"]?)([A-Za-z0-9_\-]{6,})", re.IGNORECASE),
    re.compile(r"(token\s*=\s*)([A-Za-z0-9_\-]{6,})", re.IGNORECASE),
    re.compile(r"(authorization:\s*bearer\s+)([A-Za-z0-9\._\-]{6,})", re.IGNORECASE),
    re.compile(r"()(shpat_[A-Za-z0-9]{6,})"),
)

_OFF = ("0", "false", "no", "off")
_ON = ("1", "true", "yes", "on")


def get_correlation_id() -> str:
    return correlation_id_ctx.get("-")


def set_correlation_id(value: str | None = None) -> str:
    """Set (or generate) the correlation id for the current context and return it."""
    cid = value or str(uuid.uuid4())
    correlation_id_ctx.set(cid)
    return cid


def mask_secrets(msg: str) -> str:
    masked = msg
    for pattern in _SECRET_PATTERNS:
        masked = pattern.sub(r"\1***", masked)
    return masked


# ---------------------------
# Context filter + optional masking
# ---------------------------
class ContextFilter(logging.Filter):
    def __init__(self, *, service: str, version: str, mask: bool = False) -> None:
        super().__init__()
        self.service = service
        self.version = version
        self.mask = mask

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_ctx.get("-")
        record.env = app_env_ctx.get()
        record.service = self.service
        record.version = self.version
        record.pid = os.getpid()

        if self.mask and isinstance(record.msg, str):
            record.msg = mask_secrets(record.msg)
        return True


# ---------------------------
# JSON formatter (UTC, ISO-8601)
# ---------------------------
class UtcJsonFormatter(jsonlogger.JsonFormatter):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("timestamp", True)
        kwargs.setdefault("json_ensure_ascii", False)
        kwargs.setdefault("rename_fields", {"asctime": "ts", "levelname": "level", "message": "msg"})
        super().__init__(*args, **kwargs)

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        ts = log_record.get("timestamp")
        if isinstance(ts, datetime):
            ts = ts.isoformat(timespec="milliseconds")
        if isinstance(ts, str) and ts.endswith("+00:00"):
            log_record["timestamp"] = ts[: -len("+00:00")] + "Z"


_CONTEXT_FIELDS = "%(correlation_id)s %(env)s %(service)s %(version)s %(pid)s"


def _formatter(json_output: bool) -> logging.Formatter:
    if json_output:
        return UtcJsonFormatter(f"%(asctime)s %(levelname)s %(name)s %(message)s {_CONTEXT_FIELDS}")
    return logging.Formatter("[%(asctime)s] %(levelname)s %(name)s (cid=%(correlation_id)s) %(message)s")


# ---------------------------
# Setup
# ---------------------------
@dataclass(frozen=True)
class LogConfig:
    service: str
    version: str
    env: str
    level: int
    json_console: bool
    file_path: str | None
    mask: bool

    @classmethod
    def from_env(
        cls,
        *,
        level: int | str | None = None,
        json_console: bool | None = None,
        file_path: str | None = None,
    ) -> LogConfig:
        """Explicit arguments win over LOG_LEVEL / LOG_JSON / LOG_FILE."""
        raw_level = level if level is not None else os.getenv("LOG_LEVEL", "INFO")
        if isinstance(raw_level, str):
            raw_level = logging.getLevelName(raw_level.strip().upper())
        if not isinstance(raw_level, int):
            raw_level = logging.INFO

        if json_console is None:
            json_console = os.getenv("LOG_JSON", "1").strip().lower() not in _OFF

        return cls(
            service=os.getenv("APP_NAME", "inventory-api"),
            version=os.getenv("APP_VERSION", "0.0.0"),
            env=os.getenv("APP_ENV", "dev"),
            level=raw_level,
            json_console=json_console,
            file_path=file_path or os.getenv("LOG_FILE") or None,
            mask=os.getenv("LOG_MASK_SECRETS", "0").strip().lower() in _ON,
        )


def _handler(
    handler: logging.Handler,
    cfg: LogConfig,
    ctx_filter: ContextFilter,
    *,
    json_output: bool,
) -> logging.Handler:
    handler.setLevel(cfg.level)
    handler.setFormatter(_formatter(json_output))
    handler.addFilter(ctx_filter)
    return handler


def setup_logging(
    *,
    level: int | str | None = None,
    json_console: bool | None = None,
    file_path: str | None = None,
    quiet_loggers: Iterable[str] = ("urllib3", "httpx"),
) -> LogConfig:
    """
    Route every logger through the root logger with the service context attached.

    stdout gets JSON lines (or plain text with LOG_JSON=0); LOG_FILE adds a
    JSON file handler. Calling it again replaces the handlers instead of
    stacking them.
    """
    cfg = LogConfig.from_env(level=level, json_console=json_console, file_path=file_path)
    app_env_ctx.set(cfg.env)
    ctx_filter = ContextFilter(service=cfg.service, version=cfg.version, mask=cfg.mask)

    handlers = [_handler(logging.StreamHandler(stream=sys.stdout), cfg, ctx_filter, json_output=cfg.json_console)]
    if cfg.file_path:
        file_handler = logging.FileHandler(cfg.file_path, encoding="utf-8")
        handlers.append(_handler(file_handler, cfg, ctx_filter, json_output=True))

    root = logging.getLogger()
    root.handlers[:] = handlers
    root.setLevel(cfg.level)

    for name in quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)
    # uvicorn installs its own handlers; keep its levels in step with ours
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).setLevel(cfg.level)

    return cfg


def get_logger(name: str | None = None) -> logging.Logger:
    return logging.getLogger(name or "inventory_api")

# inventory_api/main.py
from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from inventory_api.common.errors import InventoryError
from inventory_api.common.logging_setup import get_correlation_id, get_logger, setup_logging
from inventory_api.common.middlewares import CorrelationIdMiddleware
from inventory_api.common.settings import Settings, get_settings
from inventory_api.routers.inventory import router as inventory_router

logger = get_logger(__name__)


# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------
def _init_logging() -> None:
    # reads LOG_LEVEL, LOG_JSON, LOG_FILE, LOG_MASK_SECRETS, APP_NAME, APP_VERSION, APP_ENV
    cfg = setup_logging()
    logger.info("app_startup", extra={"app": cfg.service, "version": cfg.version, "env": cfg.env})


# -----------------------------------------------------------------------------
# Error handlers ({ok: false, error})
# -----------------------------------------------------------------------------
async def inventory_error_handler(request: Request, exc: Exception) -> JSONResponse:
    code = getattr(exc, "code", "INVENTORY_ERROR")
    data = getattr(exc, "data", {})
    logger.error(
        "inventory_error",
        extra={"path": request.url.path, "code": code, "error": str(exc), **{f"err_{k}": v for k, v in data.items()}},
    )
    return JSONResponse(status_code=500, content={"ok": False, "error": str(exc)})


async def validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    errors = exc.errors() if isinstance(exc, RequestValidationError) else []
    # ("query", "limit") -> "limit: Input should be greater than or equal to 0"
    parts = [f"{'.'.join(str(p) for p in e.get('loc', ())[1:])}: {e.get('msg', 'invalid')}" for e in errors]
    message = "; ".join(parts) or "Invalid request"
    logger.warning("request_invalid", extra={"path": request.url.path, "error": message})
    return JSONResponse(status_code=422, content={"ok": False, "error": message})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", extra={"path": request.url.path, "cid": get_correlation_id()})
    return JSONResponse(status_code=500, content={"ok": False, "error": "Internal error"})


# -----------------------------------------------------------------------------
# App factory
# -----------------------------------------------------------------------------
def create_app(settings: Settings | None = None, *, init_logging: bool = True) -> FastAPI:
    if init_logging:
        _init_logging()
    settings = settings or get_settings()

    app = FastAPI(title="Inventory Feed API")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=False,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type"],
    )
    # added last so it wraps CORS and stamps X-Request-Id on every response
    app.add_middleware(CorrelationIdMiddleware)

    app.add_exception_handler(InventoryError, inventory_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(inventory_router)

    @app.get("/health", tags=["Health"])
    def health() -> dict[str, bool]:
        return {"ok": True}

    return app


# instance served by uvicorn (and by serverless adapters)
app = create_app()

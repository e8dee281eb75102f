"""
QloudSound API - Main Application

FastAPI application that serves the public QloudSound site:
- Service info and health endpoints
- Published catalog listing
- Song request intake (SQLite + Telegram notification)
- CORS handling for the site's origin(s)

Every response, including errors, is JSON and carries CORS headers.
Unmatched routes answer 404 ``not_found``; any unhandled exception is turned
into a 500 ``internal_error`` instead of escaping the service.
"""

import sys
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from qloudsound import config
from qloudsound.config import (
    APP_ENV,
    APP_HOST,
    APP_PORT,
    APP_VERSION,
    DEBUG,
    LOG_LEVEL,
    REQUESTS_DB_PATH,
    SERVICE_NAME,
    ensure_directories,
)
from qloudsound.cors import apply_cors, preflight_response
from qloudsound.notifier import is_configured as notifier_configured
from qloudsound.routes.api import router as api_router
from qloudsound.routes.public_site import router as public_site_router
from qloudsound.utils import error_response

# ---------------------------------------------------------------------------
# Logging setup — stdout only
# ---------------------------------------------------------------------------
logger.remove()

logger.add(
    sys.stdout,
    level="DEBUG" if DEBUG else LOG_LEVEL,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
    colorize=True,
)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Log the effective configuration and prepare the database directory.

    Tables themselves are created lazily by the first request that needs them.
    """
    logger.info("🚀 Starting {} v{}", SERVICE_NAME, APP_VERSION)
    logger.info("📋 Environment: {} | Debug: {}", APP_ENV, DEBUG)

    if REQUESTS_DB_PATH is None:
        logger.warning("⚠️  REQUESTS_DB_PATH is empty — persistence routes will fail")
    else:
        ensure_directories()
        logger.info("🗄️  SQLite store: {}", REQUESTS_DB_PATH)

    if notifier_configured():
        logger.info("📨 Telegram notifications enabled")
    else:
        logger.warning("🔕 Telegram notifications disabled (no token/chat configured)")

    logger.success("✅ Application ready — listening on {}:{}", APP_HOST, APP_PORT)

    yield

    logger.info("👋 Shutdown complete")


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------
def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="QloudSound API",
        description="Song requests and track catalog for the QloudSound public site.",
        version=APP_VERSION,
        lifespan=lifespan,
        docs_url="/docs" if DEBUG else None,
        redoc_url=None,
        openapi_url="/openapi.json" if DEBUG else None,
    )

    # ------------------------------------------------------------------
    # Unmatched routes (404 and wrong method alike); other HTTP errors are 500s
    # ------------------------------------------------------------------
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code in (404, 405):
            return error_response(
                "not_found",
                f"Route {request.method} {request.url.path} is not implemented",
                404,
            )
        return error_response("internal_error", str(exc.detail), 500)

    # ------------------------------------------------------------------
    # CORS + top-level error guard
    # ------------------------------------------------------------------
    @app.middleware("http")
    async def cors_and_guard(request: Request, call_next):
        """Answer preflights, apply CORS headers and convert crashes to 500s."""
        allowed_origins = config.API_ALLOWED_ORIGINS

        if request.method == "OPTIONS":
            return preflight_response(request.headers, allowed_origins)

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.exception("❌ Unhandled error on {} {}", request.method, request.url.path)
            response = error_response("internal_error", str(exc) or "Unexpected error", 500)

        return apply_cors(request.headers, response, allowed_origins)

    # ------------------------------------------------------------------
    # Request logging middleware
    # ------------------------------------------------------------------
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log every incoming HTTP request with timing information."""
        start = time.time()
        response = await call_next(request)
        duration = round(time.time() - start, 3)
        status = response.status_code

        if status >= 500:
            log = logger.error
        elif status >= 400:
            log = logger.warning
        else:
            log = logger.info

        log(
            "📤 {method} {path} — {status} [{duration}s]",
            method=request.method,
            path=request.url.path,
            status=status,
            duration=duration,
        )
        return response

    # ------------------------------------------------------------------
    # Register routers
    # ------------------------------------------------------------------
    app.include_router(api_router)
    app.include_router(public_site_router)

    return app


# ---------------------------------------------------------------------------
# Create the app instance (used by Uvicorn)
# ---------------------------------------------------------------------------
app = create_app()


# ---------------------------------------------------------------------------
# Direct execution (development)
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "qloudsound.main:app",
        host=APP_HOST,
        port=APP_PORT,
        reload=DEBUG,
        log_level="debug" if DEBUG else "info",
    )

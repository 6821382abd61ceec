"""Entry-point for Vercel → FastAPI ASGI app.

This module constructs the FastAPI instance, wires global middleware,
registers all route groups, and exposes the `app` variable that Vercel
expects (detects `app` attribute).
"""

from __future__ import annotations

import os
import logging
import traceback
from contextvars import ContextVar
from time import perf_counter
from typing import Callable, Awaitable, Dict

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from slowapi import Limiter
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from app import APP_ENV

from app.utils.logger import configure_logging, logger
from app.settings import ALLOWED_ORIGINS

# ---------------------------------------------------------------------------
# Runtime environment
# ---------------------------------------------------------------------------


# Rate limiter (IP-based by default)
limiter = Limiter(key_func=get_remote_address, default_limits=["60/minute"])


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Attach request-level context vars for structured logging."""

    _request_id_ctx: ContextVar[str] = ContextVar("request_id", default="-")

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:  # type: ignore[override]
        start = perf_counter()
        request_id = request.headers.get("X-Request-Id", os.urandom(4).hex())
        token = self._request_id_ctx.set(request_id)
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            duration_ms = (perf_counter() - start) * 1000
            logger.info(
                "request.complete",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "status_code": status_code,
                    "duration_ms": round(duration_ms, 2),
                    "request_id": request_id,
                },
            )
            self._request_id_ctx.reset(token)
        return response


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(
        title="DKIM Archive Batch Update API",
        version="0.1.0",
        docs_url="/docs" if APP_ENV != "production" else None,
        redoc_url=None,
        openapi_url="/openapi.json" if APP_ENV != "production" else None,
    )

    # Global middleware
    app.add_middleware(RequestContextMiddleware)
    # Rate limiting middleware (SlowAPI expects limiter via app.state)
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)

    # Register default handler for 429 responses from SlowAPI
    from slowapi.errors import RateLimitExceeded  # noqa: WPS433  (runtime import)
    from slowapi import _rate_limit_exceeded_handler

    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Global exception handler - logs full tracebacks for any unhandled 500s
    @app.exception_handler(Exception)
    async def log_unhandled_exceptions(request: Request, exc: Exception):
        """Log full traceback for any unhandled exception that would become a 500."""
        error_logger = logging.getLogger("uvicorn.error")
        error_logger.error(
            "UNHANDLED %s at %s %s\n%s",
            type(exc).__name__,
            request.method,
            request.url.path,
            "".join(traceback.format_tb(exc.__traceback__))
        )
        # Re-raise so FastAPI still returns the appropriate status code
        raise exc

    # -------------------------------------------------------------------
    # Private-API CORS (env-driven allow-list)
    # -------------------------------------------------------------------

    logger.info("cors.origins", extra={"allowed_origins": ALLOWED_ORIGINS})
    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
        max_age=600,
    )

    # Health check
    @app.get("/")
    async def root() -> Dict[str, str]:  # pylint: disable=unused-variable
        return {"status": "ok"}

    # -------------------------------------------------------------------
    # Mount public (unauthenticated) sub-app → wildcard CORS
    # -------------------------------------------------------------------
    public_app = FastAPI(
        title="DKIM Archive Public API",
        docs_url="/docs" if APP_ENV != "production" else None,
        redoc_url=None,
        openapi_url="/openapi.json" if APP_ENV != "production" else None,
    )
    public_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
        max_age=600,
    )
    from app.routers import batch_update_routes, key_routes  # noqa: WPS433 (runtime import)

    # Key lookup is reachable both at /public/api/key (any origin) and at
    # /api/key for the archive front-end.
    public_app.include_router(key_routes.router)
    app.include_router(key_routes.router)
    app.mount("/public", public_app)

    # Cron target – shared-secret auth, see app.utils.auth
    app.include_router(batch_update_routes.router)

    return app

# The object Vercel imports
app = create_app()

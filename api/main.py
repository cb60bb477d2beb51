"""
api/main.py -- FastAPI application entry point for the User Login API.

Run with:  uvicorn asgi:app --reload
           python main.py serve

Middleware stack (outermost to innermost):
  1. CORSMiddleware -- adds CORS headers for allowed browser origins
  2. log_requests   -- one access-log line per request

Lifespan handles startup (stores, token cleanup schedule) and shutdown
(cancel cleanup, close DB connections) symmetrically.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorDetail, ErrorResponse, MessageResponse
from api.routes.users import router as users_router
from auth.cleanup import TokenCleanup
from auth.store import TokenStore, UserStore
from core.config import get_settings
from core.errors import ServiceError
from core.logging import ACCESS_LOGGER, configure_logging

_settings = get_settings()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

configure_logging(_settings)
logger = logging.getLogger("userapi.api")
access_logger = logging.getLogger(ACCESS_LOGGER)

# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Startup order matters: the cleanup schedule holds a reference to the
    token store, so the stores come first.
    """
    logger.info("User Login API starting up (environment=%s)", _settings.environment)
    app.state.user_store = UserStore(_settings.database_url)
    app.state.token_store = TokenStore(_settings.database_url)
    app.state.token_cleanup = TokenCleanup(
        app.state.token_store,
        stale_seconds=_settings.token_stale_seconds,
        hour=_settings.cleanup_hour,
        minute=_settings.cleanup_minute,
    )
    if _settings.cleanup_enabled:
        app.state.token_cleanup.start()
    else:
        logger.warning("Token cleanup disabled (CLEANUP_ENABLED=false)")

    yield

    await app.state.token_cleanup.stop()
    app.state.token_store.close()
    app.state.user_store.close()
    logger.info("User Login API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="User Login API",
    description="User registration, token-based sessions, and user management.",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/api-docs",
    redoc_url=None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)


# ---------------------------------------------------------------------------
# Request logging middleware
#
# Access line format:
#   [2024-01-01T00:00:00.000Z] GET /api/users 200 512 - 3.1 ms
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started_at = datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    url = request.url.path + (f"?{request.url.query}" if request.url.query else "")
    access_logger.info(
        "[%s] %s %s %d %s - %.3f ms",
        started_at,
        request.method,
        url,
        response.status_code,
        response.headers.get("content-length", "-"),
        ms,
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(users_router, prefix="/api", tags=["Users"])


@app.get("/", response_model=MessageResponse, tags=["Health"])
async def root() -> MessageResponse:
    """Liveness check and welcome message."""
    return MessageResponse(message="Welcome to the User Login API")


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _error_response(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Render session and store errors raised by route handlers and dependencies."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.detail)
    return _error_response(exc.status_code, exc.error_code, exc.message, exc.detail)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 with a structured error when the body or query fails validation.

    The message is the first failing rule, e.g. "Please provide a valid email address".
    """
    errors = exc.errors()
    message = "Request validation failed."
    if errors:
        message = str(errors[0].get("msg", message)).removeprefix("Value error, ")
    return _error_response(400, "validation_error", message, str(errors))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Wrap framework HTTP errors (404 unknown route, 405 wrong method) in the envelope."""
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})
    return _error_response(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unexpected server errors. The traceback goes to the log only."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(500, "internal_error", "An unexpected error occurred.")

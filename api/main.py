"""
api/main.py -- FastAPI application entry point for TaskTracker.

Run with:      uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware     -- adds CORS headers for the configured browser origins
  2. SlowAPIMiddleware  -- enforces the shared per-IP budget from api.limiter

The @app.middleware("http") functions below sit outside both: security
headers are set on every response, including 429s and 4xx errors.

Lifespan builds the stores and services once at startup and hangs them on
app.state; shutdown disposes the connection pools. The signing secret and TTL
are read from Settings exactly once here and injected as an immutable
AuthConfig -- nothing below this module reads settings during a request.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import Envelope, HealthData
from api.responses import error_response, failure_response, success_response
from api.routes.v1.auth import router as auth_router
from api.routes.v1.tasks import router as tasks_router
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import get_settings
from core.errors import FailureError
from tasks.access import TaskAccess
from tasks.store import TaskStore

VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("tasktracker.api")


# ---------------------------------------------------------------------------
# Lifespan -- startup / shutdown
# ---------------------------------------------------------------------------


def init_state(app: FastAPI, user_store: UserStore, task_store: TaskStore) -> None:
    """Wire stores and services onto app.state.

    Split out of lifespan so tests can wire in-memory stores the same way.
    """
    config = get_settings().auth_config()
    tokens = TokenService(config)
    app.state.user_store = user_store
    app.state.task_store = task_store
    app.state.token_service = tokens
    app.state.auth_service = AuthService(user_store, config, tokens=tokens)
    app.state.task_access = TaskAccess(task_store)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown. Both stores share one database URL but own separate pools.
    """
    logger.info("TaskTracker API starting up")
    settings = get_settings()
    init_state(app, UserStore(settings.database_url), TaskStore(settings.database_url))
    logger.info("Stores initialized (token_ttl=%ds)", settings.token_expire_seconds)

    yield

    app.state.user_store.close()
    app.state.task_store.close()
    logger.info("TaskTracker API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="TaskTracker API",
    description="Multi-user task tracking with bearer-token sessions.",
    version=VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Security headers middleware
#
# The JSON API never renders HTML, so framing and MIME sniffing are refused
# outright.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = get_settings().referrer_policy
    return response


# ---------------------------------------------------------------------------
# Request logging middleware
#
# Every request passes through this coroutine before reaching any route
# handler. Headers are not logged -- they carry bearer tokens.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api", tags=["Auth"])
app.include_router(tasks_router, prefix="/api", tags=["Tasks"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same {success, message} envelope so clients can
# parse errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(FailureError)
async def failure_handler(request: Request, exc: FailureError) -> JSONResponse:
    """Translate a domain Failure raised from a route or dependency."""
    return failure_response(exc.failure)


@app.exception_handler(RateLimitExceeded)
def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 when a rate limit is exceeded.

    Retry-After is the length of the limit window in seconds. Kept synchronous:
    SlowAPIMiddleware only calls sync handlers and falls back to its own
    non-envelope response for async ones.
    """
    retry_after = exc.limit.limit.get_expiry() if exc.limit is not None else 60
    response = error_response(429, "Too many requests from this IP, please try again later.")
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 when the request body or query params have the wrong shape.

    The pydantic error list is logged, not returned -- it can echo input back.
    """
    logger.info("Request validation failed on %s %s: %s", request.method, request.url.path, exc.errors())
    return error_response(400, "Invalid request body or parameters.")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Envelope for framework-raised HTTP errors (unknown route, wrong method)."""
    if exc.status_code == 404:
        return error_response(404, "Route not found")
    return error_response(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    Security note: the raw exception is written to the log only, never to the
    response body. The client receives only a generic message.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return error_response(500, "Internal server error")


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable.
# No auth and no rate limit -- load balancers must not be throttled.
# ---------------------------------------------------------------------------


@app.get("/api/health", response_model=Envelope[HealthData], tags=["Health"])
@limiter.exempt
def health(request: Request) -> JSONResponse:
    """Return API liveness, version and database reachability."""
    try:
        request.app.state.user_store.ping()
        request.app.state.task_store.ping()
        database = "ok"
    except SQLAlchemyError:
        logger.exception("Health check database ping failed")
        database = "error"
    status = "healthy" if database == "ok" else "degraded"
    return success_response(
        HealthData(status=status, version=VERSION, components={"app": "ok", "database": database})
    )

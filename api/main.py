"""
api/main.py -- FastAPI application entry point for the coffee catalog.

Run with:  uvicorn api.main:app --reload
           python main.py serve

Middleware stack (outermost to innermost, i.e. the order a request sees it):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. log_requests          -- method, path, status, latency per request
  3. authorize             -- AuthorizationGate: sets request.state.principal
  4. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter

Composition happens once, in lifespan -> wire_services(): the stores, the
TokenCodec, both gates, and ProductService are built with explicit
constructor arguments and parked on app.state. Nothing is wired by import.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from api.limiter import limiter
from api.models import ErrorResponse, HealthResponse
from api.routes.auth import router as auth_router
from api.routes.coffees import router as coffees_router
from auth.gates import AuthenticationGate, AuthorizationGate
from auth.store import CredentialStore
from auth.tokens import TokenCodec
from catalog.service import ProductService
from catalog.store import ProductStore
from core.config import Settings, get_settings
from core.errors import (
    AuthenticationError,
    CatalogError,
    DuplicateNameError,
    InvalidTokenError,
    NotFoundError,
)

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("coffeeshop.api")

# Domain error -> HTTP status. Anything not listed is a 400.
_ERROR_STATUS: dict[type[CatalogError], int] = {
    NotFoundError: 404,
    DuplicateNameError: 409,
    AuthenticationError: 401,
    InvalidTokenError: 401,
}


# ---------------------------------------------------------------------------
# Composition
# ---------------------------------------------------------------------------


def wire_services(
    app: FastAPI,
    settings: Settings,
    product_store: ProductStore,
    credential_store: CredentialStore,
) -> None:
    """Build every collaborator from its dependencies and attach it to app.state.

    Tests call this directly with in-memory stores; lifespan calls it with
    stores on the configured database.
    """
    codec = TokenCodec(settings.secret_key, settings.token_expire_seconds)
    app.state.settings = settings
    app.state.product_store = product_store
    app.state.credential_store = credential_store
    app.state.token_codec = codec
    app.state.product_service = ProductService(product_store)
    app.state.authentication_gate = AuthenticationGate(credential_store, codec)
    app.state.authorization_gate = AuthorizationGate(codec, reject_invalid=settings.reject_invalid_tokens)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the stores on startup and dispose of their engines on shutdown."""
    settings = get_settings()
    db_url = settings.resolved_database_url
    product_store = ProductStore(db_url)
    credential_store = CredentialStore(db_url)
    wire_services(app, settings, product_store, credential_store)
    logger.info(
        "Coffee catalog starting up (users=%d, reject_invalid_tokens=%s, protect_catalog=%s)",
        credential_store.count(),
        settings.reject_invalid_tokens,
        settings.protect_catalog,
    )

    yield

    product_store.close()
    credential_store.close()
    logger.info("Coffee catalog shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Coffee Catalog API",
    description="A priced coffee catalog behind a bearer-token gate.",
    version=VERSION,
    lifespan=lifespan,
)

# Attach the shared limiter to app.state so SlowAPIMiddleware can locate it.
app.state.limiter = limiter

# ---------------------------------------------------------------------------
# Middleware stack
#
# Starlette wraps middleware so that the LAST one registered is the
# outermost. Registration below therefore runs innermost-first:
# SlowAPI, then authorize, then log_requests, then TrustedHost.
# ---------------------------------------------------------------------------

app.add_middleware(SlowAPIMiddleware)


@app.middleware("http")
async def authorize(request: Request, call_next):
    """Run the AuthorizationGate built in wire_services()."""
    gate: AuthorizationGate = request.app.state.authorization_gate
    return await gate.dispatch(request, call_next)


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


app.add_middleware(TrustedHostMiddleware, allowed_hosts=get_settings().allowed_hosts)

# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, tags=["Auth"])
app.include_router(coffees_router, tags=["Coffees"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same flat ErrorResponse body so API clients can
# parse errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError) -> JSONResponse:
    """Map a domain error to its client-error status with a {code, message} body."""
    status_code = _ERROR_STATUS.get(type(exc), 400)
    response = JSONResponse(
        status_code=status_code,
        content=ErrorResponse(code=exc.code, message=exc.message).model_dump(exclude_none=True),
    )
    if status_code == 401:
        response.headers["Cache-Control"] = "no-store"
    return response


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = JSONResponse(
        status_code=429,
        content=ErrorResponse(code="rate_limited", message="Too many requests.", detail=str(exc)).model_dump(),
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or path params fail validation."""
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            code="validation_error",
            message="Request validation failed.",
            detail=str(exc.errors()),
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    Route handlers raise HTTPException with detail={"code": ..., "message": ...}.
    A structured dict is used as the body directly; anything else is wrapped.
    """
    if isinstance(exc.detail, dict):
        content = exc.detail
    else:
        content = ErrorResponse(code=f"http_{exc.status_code}", message=str(exc.detail)).model_dump(
            exclude_none=True
        )
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors, including store failures.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(code="internal_error", message="An unexpected error occurred.").model_dump(
            exclude_none=True
        ),
    )


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version."""
    return HealthResponse(version=VERSION)

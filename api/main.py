"""
api/main.py -- FastAPI application entry point for Inkpost.

Run with:  uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware -- adds CORS headers for the configured browser origins
  2. log_requests   -- one access-log line per request

Lifespan builds every process-wide object from the single Settings instance
(token service, password hasher, stores, cover storage) and parks them on
app.state. Nothing else reads configuration, so tests can swap the lifespan
and inject their own objects.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from starlette.exceptions import HTTPException

from api.concurrency import run_bounded
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.posts import router as posts_router
from auth.store import UserStore
from auth.tokens import PasswordHasher, TokenService
from blog.covers import PUBLIC_PREFIX, CoverStorage
from blog.store import PostStore
from core.config import Settings, get_settings
from core.errors import InkpostError, StoreTimeout

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("inkpost.api")

settings: Settings = get_settings()


def configure_state(app: FastAPI, settings: Settings) -> None:
    """Build the process-wide services from settings and attach them to app.state."""
    app.state.tokens = TokenService(settings.secret_key, settings.token_expire_seconds)
    app.state.hasher = PasswordHasher(settings.bcrypt_rounds)
    app.state.user_store = UserStore(settings.database_url, timeout=settings.store_timeout_seconds)
    app.state.post_store = PostStore(settings.database_url, timeout=settings.store_timeout_seconds)
    app.state.covers = CoverStorage(settings.upload_dir, settings.max_cover_bytes)
    app.state.store_timeout = settings.store_timeout_seconds
    app.state.post_list_limit = settings.post_list_limit


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Everything before yield runs on startup; everything after on shutdown."""
    logger.info("Inkpost API starting up")
    configure_state(app, settings)
    logger.info("Stores initialized (upload_dir=%s)", settings.upload_dir)

    yield

    app.state.post_store.close()
    app.state.user_store.close()
    logger.info("Inkpost API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Inkpost API",
    description="Minimal blogging backend: accounts, bearer tokens and author-owned posts.",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)


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

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(posts_router, prefix="/api/v1", tags=["Posts"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# Every failure, typed or not, leaves as the same ErrorResponse envelope.
# ---------------------------------------------------------------------------


@app.exception_handler(InkpostError)
async def inkpost_error_handler(request: Request, exc: InkpostError) -> JSONResponse:
    """Render any typed error kind with its own status and code."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(code=exc.code, message=exc.message, detail=exc.detail),
        ).model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed JSON, missing form fields or bad path params: 422 validation_error."""
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=str(exc.errors()),
            )
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for FastAPI/Starlette HTTP exceptions (404 route, 405, ...)."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything not raised as an InkpostError is a 500.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint
#
# Lives on the app itself, next to the state it checks.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
async def health(request: Request) -> HealthResponse:
    """Return liveness, version and a database round-trip check."""
    try:
        db_ok = await run_bounded(request, request.app.state.user_store.ping)
    except StoreTimeout:
        db_ok = False
    return HealthResponse(
        status="healthy" if db_ok else "degraded",
        version=VERSION,
        components={"app": "ok", "database": "ok" if db_ok else "error"},
    )


# ---------------------------------------------------------------------------
# Cover images (public, read-only)
# ---------------------------------------------------------------------------


@app.get(f"/{PUBLIC_PREFIX}/{{name}}", include_in_schema=False)
async def cover_file(request: Request, name: str) -> FileResponse:
    path = await run_bounded(request, request.app.state.covers.resolve, name)
    if path is None:
        raise HTTPException(status_code=404, detail="Cover not found.")
    return FileResponse(path)

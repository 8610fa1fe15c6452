"""
api/main.py -- FastAPI application factory for authcore.

Run with:      uvicorn asgi:app --reload

create_app(settings) assembles everything from one Settings instance:
  - CookiePolicy, built once and shared by the routes and CSRFMiddleware
  - CredentialStore + PasswordHasher + AuthService, built in lifespan
Passing Settings in (instead of reading globals) lets tests build fully
isolated apps with their own database and cookie flags.

Middleware stack (outermost to innermost):
  1. log_requests    -- method, path, status, latency (sees CSRF 403s too)
  2. CORSMiddleware  -- adds CORS headers for allowed browser origins
  3. CSRFMiddleware  -- Double-Submit-Cookie check on mutating requests

Lifespan handles startup (store, service) and shutdown (close store)
symmetrically.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from auth.cookies import CookiePolicy
from auth.csrf import CSRFMiddleware
from auth.errors import AuthError
from auth.service import AuthService
from auth.store import CredentialStore
from auth.tokens import PasswordHasher
from core.config import Settings, get_settings

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("authcore.api")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the ASGI app. Uses get_settings() when no Settings is given."""
    settings = settings or get_settings()
    cookie_policy = CookiePolicy.from_settings(settings)

    # -----------------------------------------------------------------------
    # Lifespan
    # -----------------------------------------------------------------------

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Open the store and wire the service; close the store on shutdown.

        PasswordHasher precomputes its timing dummy hash here, so the first
        login request is not slower than the rest.
        """
        logger.info("authcore starting up")
        store = CredentialStore(settings.database_url, timeout=settings.db_timeout_seconds)
        app.state.store = store
        app.state.auth_service = AuthService(
            store,
            PasswordHasher(rounds=settings.bcrypt_rounds),
            session_duration=timedelta(seconds=settings.session_duration_seconds),
        )
        logger.info(
            "Auth initialized (bcrypt_rounds=%d, secure_cookies=%s)",
            settings.bcrypt_rounds,
            settings.secure_cookies,
        )

        yield

        store.close()
        logger.info("authcore shutdown complete")

    app = FastAPI(
        title="authcore API",
        description="Account registration, password login, opaque sessions and CSRF protection.",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.cookie_policy = cookie_policy

    # -----------------------------------------------------------------------
    # Middleware stack
    #
    # add_middleware() wraps the current stack, so the last one added is the
    # outermost. Added innermost-first: CSRF, then CORS. CORS must sit outside
    # CSRF so preflight requests and 403 responses still carry CORS headers.
    # -----------------------------------------------------------------------

    app.add_middleware(
        CSRFMiddleware,
        policy=cookie_policy,
        exempt_paths=settings.csrf_exempt_paths,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", settings.csrf_header_name],
        max_age=3600,
    )

    # -----------------------------------------------------------------------
    # Request logging middleware
    # -----------------------------------------------------------------------

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

    # -----------------------------------------------------------------------
    # Routers
    # -----------------------------------------------------------------------

    app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])

    @app.get("/api/v1/health", tags=["Health"])
    def health(request: Request) -> HealthResponse:
        """Return liveness plus a database round trip."""
        try:
            request.app.state.store.ping()
            database = "ok"
        except SQLAlchemyError:
            logger.exception("Health check database ping failed")
            database = "error"
        return HealthResponse(version=VERSION, components={"app": "ok", "database": database})

    _register_exception_handlers(app)
    return app


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
        """Render a domain error using the code/message/status its class carries.

        Server-side failures (5xx) are logged with the chained cause. The
        client never sees driver or SQL detail.
        """
        if exc.status_code >= 500:
            logger.error(
                "%s on %s %s: %r",
                type(exc).__name__,
                request.method,
                request.url.path,
                exc.__cause__,
            )
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(error=ErrorDetail(code=exc.code, message=exc.message)).model_dump(
                exclude_none=True
            ),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Return 422 with structured error when the request body fails validation."""
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

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Return a structured error for all FastAPI/Starlette HTTP exceptions.

        Dependencies raise HTTPException with a dict detail; use it directly
        as the error field rather than stringifying it.
        """
        if isinstance(exc.detail, dict):
            return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(
                error=ErrorDetail(code=f"http_{exc.status_code}", message=str(exc.detail)),
            ).model_dump(exclude_none=True),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all handler for unexpected server errors.

        The raw exception goes to the log only, never to the response body.
        """
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error=ErrorDetail(code="internal_error", message="An unexpected error occurred."),
            ).model_dump(exclude_none=True),
        )

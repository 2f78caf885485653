"""
api/main.py -- FastAPI application factory for the Conduit identity service.

Run with:  uvicorn asgi:app --reload

create_app() is the single startup-initialization step: it loads Settings
(which refuses to load without JWT_SECRET), builds the immutable TokenService
and PasswordHasher from it, and installs the middleware stack. Nothing reads
the signing secret after this point except the TokenService it was handed to.

Middleware stack (outermost to innermost):
  1. CORSMiddleware   -- adds CORS headers, answers preflight before auth
  2. log_requests     -- method, path, status, latency for every request
  3. AuthGate         -- required policy with the configured allow-list

Lifespan opens the UserStore (engine + schema) and wires CredentialService
into app.state on startup; it disposes the engine on shutdown.
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
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.users import router as users_router
from auth.credentials import CredentialService
from auth.gate import AuthGate, AuthPolicy
from auth.passwords import PasswordHasher
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import Settings, get_settings

__version__ = "0.1.0"

logger = logging.getLogger("conduit.api")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when the request body is not the expected shape."""
    fields: dict[str, list[str]] = {}
    for err in exc.errors():
        # loc is ("body", "user", "email") -- keep the last segment as the field name.
        name = str(err["loc"][-1]) if err.get("loc") else "body"
        fields.setdefault(name, []).append(err.get("msg", "is invalid"))
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(code="validation_failed", message="Request validation failed.", fields=fields)
        ).model_dump(),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    Registered on the Starlette base class so the router's own 404 and 405
    responses get the envelope too. Route handlers raise HTTPException with
    detail=Failure.to_dict() (a dict); that dict is used as the error field
    directly rather than stringified. Headers such as Allow are kept.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)
    return JSONResponse(
        status_code=exc.status_code,
        headers=exc.headers,
        content=ErrorResponse(
            error=ErrorDetail(code=f"http_{exc.status_code}", message=str(exc.detail))
        ).model_dump(),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is logged only, never written to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(code="unexpected", message="An unexpected error occurred.")
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


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
# Health endpoint
# ---------------------------------------------------------------------------


async def health(request: Request) -> HealthResponse:
    """Return API liveness, version, and database reachability. Public."""
    components = {"app": "ok", "database": "ok"}
    try:
        request.app.state.user_store.ping()
    except SQLAlchemyError:
        logger.exception("Health check: database unreachable")
        components["database"] = "error"
    status = "healthy" if components["database"] == "ok" else "degraded"
    return HealthResponse(status=status, version=__version__, components=components)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the ASGI app. Raises ValueError (via Settings) if JWT_SECRET is missing."""
    settings = settings or get_settings()
    _configure_logging(settings.log_level)

    tokens = TokenService(settings.jwt_secret, lifetime_seconds=settings.token_expire_seconds)
    hasher = PasswordHasher(rounds=settings.bcrypt_rounds)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Open the store on startup, dispose its engine on shutdown."""
        logger.info("Conduit identity service starting up")
        store = UserStore(settings.database_url)
        app.state.user_store = store
        app.state.credentials = CredentialService(
            store,
            hasher,
            tokens,
            min_password_length=settings.min_password_length,
        )
        logger.info("Auth initialized (exempt paths: %s)", ", ".join(sorted(settings.auth_exempt_paths)))

        yield

        store.close()
        logger.info("Conduit identity service shutdown complete")

    app = FastAPI(
        title="Conduit Identity API",
        description="Registration, login, and session tokens for the Conduit platform.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.tokens = tokens

    # add_middleware() wraps outward: the last one registered sees the request first.
    gate = AuthGate(tokens, AuthPolicy.REQUIRED, exempt_paths=settings.auth_exempt_paths)
    app.add_middleware(BaseHTTPMiddleware, dispatch=gate)
    app.add_middleware(BaseHTTPMiddleware, dispatch=log_requests)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
        max_age=3600,
    )

    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(users_router, prefix="/api", tags=["Users"])
    app.add_api_route("/api/health", health, methods=["GET"], response_model=HealthResponse, tags=["Health"])

    return app

"""
auth/gate.py -- Request-gating middleware for bearer session tokens.

Flow for every request:
  1. Allow-listed path (required policy only) -> pass through untouched.
  2. Extract the token from "Authorization: Token <jwt>" or "Bearer <jwt>".
     Any other scheme, an empty value, or no header means "no token".
  3. No token -> required: 401; optional: continue with identity None.
  4. Verify the token (threadpool -- keeps the event loop free).
     Any TokenError -> 401. The specific reason is logged, never returned.
  5. Attach AuthenticatedIdentity to request.state.identity and continue.

The gate never touches the store: a token for a since-deleted user still gets
through, and the route's service call reports NotFound.

Usage:
    gate = AuthGate(tokens, AuthPolicy.REQUIRED, exempt_paths=["/api/users/login"])
    app.add_middleware(BaseHTTPMiddleware, dispatch=gate)

Layer rule: no imports from api/ or core/. Importing starlette is allowed --
this module is part of the HTTP middleware stack.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from enum import Enum

from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from auth.errors import Failure, FailureKind
from auth.models import AuthenticatedIdentity
from auth.tokens import TokenError, TokenService

logger = logging.getLogger("conduit.gate")

_SCHEMES = ("Token", "Bearer")


class AuthPolicy(str, Enum):
    REQUIRED = "required"
    OPTIONAL = "optional"


def extract_token(header: str | None) -> str | None:
    """Return the token from an Authorization header value, or None.

    Scheme matching is case-sensitive: "bearer abc" yields None.
    """
    if not header:
        return None
    scheme, _, value = header.partition(" ")
    if scheme not in _SCHEMES:
        return None
    value = value.strip()
    return value or None


def _reject() -> Response:
    # One body for every failure reason -- no oracle for token forgers.
    return JSONResponse(
        status_code=401,
        content={"error": Failure(FailureKind.TOKEN_INVALID).to_dict()},
    )


class AuthGate:
    """Callable middleware dispatcher enforcing one AuthPolicy."""

    def __init__(
        self,
        tokens: TokenService,
        policy: AuthPolicy = AuthPolicy.REQUIRED,
        exempt_paths: Iterable[str] = (),
    ) -> None:
        self.tokens = tokens
        self.policy = policy
        self.exempt_paths = frozenset(exempt_paths)

    async def __call__(self, request: Request, call_next) -> Response:
        path = request.url.path
        request.state.identity = None

        if self.policy is AuthPolicy.REQUIRED and path in self.exempt_paths:
            return await call_next(request)

        token = extract_token(request.headers.get("Authorization"))
        if token is None:
            if self.policy is AuthPolicy.OPTIONAL:
                return await call_next(request)
            logger.info("No token on %s %s", request.method, path)
            return _reject()

        result = await run_in_threadpool(self.tokens.verify, token)
        if isinstance(result, TokenError):
            logger.info("Rejected token on %s %s: %s", request.method, path, result.value)
            return _reject()

        request.state.identity = AuthenticatedIdentity.from_claims(result)
        return await call_next(request)

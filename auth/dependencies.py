"""
auth/dependencies.py -- FastAPI Depends() helpers for authenticated routes.

AuthGate (auth/gate.py) has already verified the token by the time a route
runs; these helpers only read what it attached to request.state.

try_get_identity() is the soft variant (returns None when no identity).
get_current_identity() wraps it and raises HTTP 401 if unauthenticated.

Layer rule: no imports from api/ or core/.
  auth/dependencies.py may import from fastapi (for HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.credentials import CredentialService
from auth.errors import Failure, FailureKind
from auth.models import AuthenticatedIdentity


def try_get_identity(request: Request) -> AuthenticatedIdentity | None:
    """Return the identity AuthGate attached, or None. Never raises."""
    return getattr(request.state, "identity", None)


def get_current_identity(request: Request) -> AuthenticatedIdentity:
    """Require authentication. Raises HTTP 401 if the gate attached no identity.

    Use as a FastAPI dependency:
        @router.get("/user")
        def route(identity: AuthenticatedIdentity = Depends(get_current_identity)): ...
    """
    identity = try_get_identity(request)
    if identity is None:
        raise HTTPException(status_code=401, detail=Failure(FailureKind.TOKEN_INVALID).to_dict())
    return identity


def get_credential_service(request: Request) -> CredentialService:
    """Return the CredentialService wired into app.state at startup."""
    return request.app.state.credentials

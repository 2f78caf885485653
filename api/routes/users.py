"""
api/routes/users.py -- Registration, login, and current-user REST endpoints.

Routes (mounted under /api):
  POST   /users               -- register; returns user + token (public)
  POST   /users/login         -- password login; returns user + token (public)
  GET    /user                -- current user, fresh token
  PUT    /user                -- update username and/or bio
  PUT    /user/password       -- change password (current password required)
  PUT    /user/image          -- set profile image URL
  DELETE /user/image          -- clear profile image
  DELETE /user                -- delete account

Auth policy:
  AuthGate (required policy) runs before any of these handlers. /users and
  /users/login are on its allow-list; every /user route additionally declares
  Depends(get_current_identity) so a misconfigured allow-list fails closed.

Handlers are plain `def`, not `async def`: bcrypt is CPU-bound, and FastAPI
runs sync handlers in its threadpool so the event loop keeps serving requests.

Every handler maps a CredentialService Result through _unwrap(); the
FailureKind -> status code table below is the only place that mapping exists.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from api.models import (
    ImageUpdateRequest,
    LoginRequest,
    MessageResponse,
    PasswordUpdateRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    UserEnvelope,
    UserResponse,
)
from auth.credentials import CredentialService
from auth.dependencies import get_credential_service, get_current_identity
from auth.errors import Failure, FailureKind, Result
from auth.models import AuthenticatedIdentity, UserSession

router = APIRouter()

_STATUS: dict[FailureKind, int] = {
    FailureKind.VALIDATION_FAILED: 422,
    FailureKind.CONFLICT: 409,
    FailureKind.INVALID_CREDENTIALS: 401,
    FailureKind.NOT_FOUND: 404,
    FailureKind.TOKEN_INVALID: 401,
    FailureKind.UNEXPECTED: 500,
}


def _unwrap(result: Result):
    """Return the Success value or raise HTTPException carrying the Failure envelope."""
    if isinstance(result, Failure):
        raise HTTPException(status_code=_STATUS[result.kind], detail=result.to_dict())
    return result.value


def _envelope(session: UserSession) -> UserEnvelope:
    return UserEnvelope(user=UserResponse.from_session(session))


def _no_store(envelope: UserEnvelope, status_code: int = 200) -> JSONResponse:
    # Responses carrying a fresh token must not be cached by proxies or browsers.
    resp = JSONResponse(status_code=status_code, content=envelope.model_dump())
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/users", response_model=UserEnvelope, status_code=201)
def register(
    body: RegisterRequest,
    service: CredentialService = Depends(get_credential_service),
) -> JSONResponse:
    """Create an account. Email and username conflicts are reported together."""
    user = body.user
    session = _unwrap(
        service.register(
            email=user.email,
            username=user.username,
            password=user.password,
            bio=user.bio,
            image=user.image,
        )
    )
    return _no_store(_envelope(session), status_code=201)


@router.post("/users/login", response_model=UserEnvelope)
def login(
    body: LoginRequest,
    service: CredentialService = Depends(get_credential_service),
) -> JSONResponse:
    """Authenticate with email and password.

    Returns the same invalid_credentials error for an unknown email and a
    wrong password to avoid leaking account existence.
    """
    session = _unwrap(service.login(body.user.email, body.user.password))
    return _no_store(_envelope(session))


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/user", response_model=UserEnvelope)
def current_user(
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    service: CredentialService = Depends(get_credential_service),
) -> JSONResponse:
    return _no_store(_envelope(_unwrap(service.get_current(identity.subject))))


@router.put("/user", response_model=UserEnvelope)
def update_user(
    body: ProfileUpdateRequest,
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    service: CredentialService = Depends(get_credential_service),
) -> JSONResponse:
    session = _unwrap(service.update_profile(identity.subject, username=body.user.username, bio=body.user.bio))
    return _no_store(_envelope(session))


@router.put("/user/password", response_model=UserEnvelope)
def update_password(
    body: PasswordUpdateRequest,
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    service: CredentialService = Depends(get_credential_service),
) -> JSONResponse:
    """Change password. The stored hash is untouched unless every check passes."""
    session = _unwrap(
        service.update_password(
            identity.subject,
            current_password=body.user.current_password,
            new_password=body.user.new_password,
        )
    )
    return _no_store(_envelope(session))


@router.put("/user/image", response_model=UserEnvelope)
def update_image(
    body: ImageUpdateRequest,
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    service: CredentialService = Depends(get_credential_service),
) -> JSONResponse:
    return _no_store(_envelope(_unwrap(service.update_image(identity.subject, body.user.image))))


@router.delete("/user/image", response_model=UserEnvelope)
def delete_image(
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    service: CredentialService = Depends(get_credential_service),
) -> JSONResponse:
    return _no_store(_envelope(_unwrap(service.delete_image(identity.subject))))


@router.delete("/user", response_model=MessageResponse)
def delete_user(
    identity: AuthenticatedIdentity = Depends(get_current_identity),
    service: CredentialService = Depends(get_credential_service),
) -> MessageResponse:
    """Delete the caller's account. Tokens already issued stay signed but resolve to 404."""
    return MessageResponse(message=_unwrap(service.delete_account(identity.subject)))

"""
API request and response models for the Conduit identity endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Request bodies follow the original Conduit wire shape: every payload is wrapped
in a top-level "user" object. Fields are Optional on purpose -- blank and
missing values are reported by CredentialService as field-scoped
validation_failed errors, not as FastAPI's generic 422.

Separation of concerns: auth/ models = domain truth; api/ models = API contract.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import UserSession

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterUser(BaseModel):
    email: Optional[str] = Field(default=None, max_length=255)
    username: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = Field(default=None, max_length=255)
    bio: Optional[str] = Field(default=None, max_length=1000)
    image: Optional[str] = Field(default=None, max_length=2048)


class RegisterRequest(BaseModel):
    """Request body for POST /api/users."""

    user: RegisterUser


class LoginUser(BaseModel):
    email: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = Field(default=None, max_length=255)


class LoginRequest(BaseModel):
    """Request body for POST /api/users/login."""

    user: LoginUser


class ProfileUpdate(BaseModel):
    """Omitted fields are left untouched; bio="" clears the bio."""

    username: Optional[str] = Field(default=None, max_length=255)
    bio: Optional[str] = Field(default=None, max_length=1000)


class ProfileUpdateRequest(BaseModel):
    """Request body for PUT /api/user."""

    user: ProfileUpdate


class PasswordUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_password: Optional[str] = Field(default=None, alias="currentPassword", max_length=255)
    new_password: Optional[str] = Field(default=None, alias="newPassword", max_length=255)


class PasswordUpdateRequest(BaseModel):
    """Request body for PUT /api/user/password."""

    user: PasswordUpdate


class ImageUpdate(BaseModel):
    image: Optional[str] = Field(default=None, max_length=2048)


class ImageUpdateRequest(BaseModel):
    """Request body for PUT /api/user/image."""

    user: ImageUpdate


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """The caller's public profile plus a fresh token. Never carries a password."""

    model_config = ConfigDict(frozen=True)

    email: str
    username: str
    bio: Optional[str]
    image: Optional[str]
    token: str

    @classmethod
    def from_session(cls, session: UserSession) -> "UserResponse":
        return cls(
            email=session.email,
            username=session.username,
            bio=session.bio,
            image=session.image,
            token=session.token,
        )


class UserEnvelope(BaseModel):
    model_config = ConfigDict(frozen=True)

    user: UserResponse


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Structured error payload.

    code is a FailureKind value, or "http_<status>" for framework errors such as an unknown route.
    fields maps field names to messages for validation and conflict errors;
    it is empty for credential, token and unexpected errors.
    """

    code: str
    message: str
    fields: dict[str, list[str]] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    error: ErrorDetail

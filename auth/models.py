"""
auth/models.py -- Domain dataclasses for identity entities.

Pattern: Data class (pure data container, zero logic). Dataclasses own domain
shape; the store, services, and routes do the work.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A registered account as persisted by UserStore.

    id is the synthetic, immutable key. It is the token subject and the only
    identifier used for lookups after authentication -- username is mutable
    and must never be used as a key.

    hashed_password stays inside auth/: no API response model carries it.
    """

    email: str
    username: str
    hashed_password: str
    id: int | None = None
    bio: str | None = None
    image: str | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class TokenClaims:
    """Decoded, verified claims of a session token.

    issued_at and expires_at are whole Unix seconds.
    """

    subject: int
    email: str
    username: str
    issued_at: int
    expires_at: int


@dataclass(frozen=True)
class AuthenticatedIdentity:
    """The caller resolved from a verified token, scoped to one request."""

    subject: int
    email: str
    username: str

    @classmethod
    def from_claims(cls, claims: TokenClaims) -> AuthenticatedIdentity:
        return cls(subject=claims.subject, email=claims.email, username=claims.username)


@dataclass(frozen=True)
class UserSession:
    """Public snapshot of a user plus a freshly issued token.

    Returned by every successful CredentialService operation that changes or
    reads the caller's identity. Has no id and no password field.
    """

    email: str
    username: str
    bio: str | None
    image: str | None
    token: str

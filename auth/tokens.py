"""
auth/tokens.py -- Session token issuance and verification.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with the process-wide secret
       and carry sub (the user id, as a string), email, username, iat and exp.
       The secret is injected at construction by api/main.create_app(); this
       module never reads configuration itself.

  Verification returns a TokenError value instead of raising, so AuthGate can
       log the precise reason while the client sees one generic 401.

  Expiry: checked here against an injectable clock rather than by python-jose,
       whose check uses its own wall clock. No leeway -- a token is valid iff
       exp > now, so at exactly iat + lifetime it is already expired.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING

from jose import JWTError, jwt
from jose.exceptions import JWTClaimsError

from auth.models import TokenClaims

if TYPE_CHECKING:
    from auth.models import User

_ALGORITHM = "HS256"

DEFAULT_LIFETIME_SECONDS = 60 * 24 * 60 * 60  # 60 days


class TokenError(str, Enum):
    MALFORMED = "malformed"
    SIGNATURE_INVALID = "signature_invalid"
    EXPIRED = "expired"


class TokenService:
    """Issues and verifies signed, self-contained session tokens.

    Usage:
        tokens = TokenService(settings.jwt_secret)
        token = tokens.issue(user)
        result = tokens.verify(token)   # TokenClaims or TokenError
    """

    def __init__(
        self,
        secret: str,
        lifetime_seconds: int = DEFAULT_LIFETIME_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret:
            raise ValueError("TokenService requires a signing secret.")
        self._secret = secret
        self.lifetime_seconds = lifetime_seconds
        self._clock = clock

    def _now(self) -> int:
        return int(self._clock())

    def issue(self, user: User) -> str:
        """Encode a signed token for the given user with fresh iat/exp."""
        now = self._now()
        payload = {
            "sub": str(user.id),
            "email": user.email,
            "username": user.username,
            "iat": now,
            "exp": now + self.lifetime_seconds,
        }
        return jwt.encode(payload, self._secret, algorithm=_ALGORITHM)

    def verify(self, token: str) -> TokenClaims | TokenError:
        """Check structure, signature, claim shape and expiry, in that order."""
        try:
            jwt.get_unverified_claims(token)
        except JWTError:
            return TokenError.MALFORMED

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[_ALGORITHM],
                options={"verify_exp": False},
            )
        except JWTClaimsError:
            return TokenError.MALFORMED
        except JWTError:
            return TokenError.SIGNATURE_INVALID

        claims = _to_claims(payload)
        if claims is None:
            return TokenError.MALFORMED
        if claims.expires_at <= self._now():
            return TokenError.EXPIRED
        return claims


def _to_claims(payload: dict) -> TokenClaims | None:
    """Map a decoded payload to TokenClaims, or None if a claim is missing or ill-typed."""
    try:
        subject = int(payload["sub"])
        email = payload["email"]
        username = payload["username"]
        issued_at = payload["iat"]
        expires_at = payload["exp"]
    except (KeyError, TypeError, ValueError):
        return None
    if not isinstance(email, str) or not isinstance(username, str):
        return None
    # bool is an int subclass; a boolean timestamp is never legitimate.
    for stamp in (issued_at, expires_at):
        if not isinstance(stamp, int) or isinstance(stamp, bool):
            return None
    return TokenClaims(
        subject=subject,
        email=email,
        username=username,
        issued_at=issued_at,
        expires_at=expires_at,
    )

"""
Unit tests for auth/tokens.py -- session token issuance and verification.

Covers:
- issue() -> verify() round trip returns the same subject/email/username
- 60-day verification window with an exclusive upper bound
- Distinct TokenError values for malformed, forged, and expired tokens
"""

from __future__ import annotations

import base64
import json

import pytest
from conftest import TEST_SECRET, FakeClock
from jose import jwt

from auth.models import TokenClaims, User
from auth.tokens import TokenError, TokenService

DAY = 24 * 60 * 60


@pytest.fixture
def user() -> User:
    return User(id=42, email="jake@jake.jake", username="jake", hashed_password="unused")


class TestRoundTrip:
    def test_verify_returns_issued_identity(self, tokens: TokenService, user: User) -> None:
        claims = tokens.verify(tokens.issue(user))
        assert isinstance(claims, TokenClaims)
        assert (claims.subject, claims.email, claims.username) == (42, "jake@jake.jake", "jake")

    def test_claims_use_whole_seconds_and_sixty_day_window(
        self, tokens: TokenService, user: User, clock: FakeClock
    ) -> None:
        claims = tokens.verify(tokens.issue(user))
        assert claims.issued_at == clock.now
        assert claims.expires_at - claims.issued_at == 60 * DAY

    def test_wire_claims(self, tokens: TokenService, user: User) -> None:
        """Decoded payload carries exactly sub/email/username/iat/exp; sub is the id as a string."""
        payload = jwt.get_unverified_claims(tokens.issue(user))
        assert set(payload) == {"sub", "email", "username", "iat", "exp"}
        assert payload["sub"] == "42"

    def test_reissue_refreshes_timestamps(self, tokens: TokenService, user: User, clock: FakeClock) -> None:
        first = tokens.verify(tokens.issue(user))
        clock.advance(10 * DAY)
        second = tokens.verify(tokens.issue(user))
        assert second.issued_at == first.issued_at + 10 * DAY
        assert second.expires_at == first.expires_at + 10 * DAY


class TestExpiryWindow:
    def test_valid_at_59_days(self, tokens: TokenService, user: User, clock: FakeClock) -> None:
        token = tokens.issue(user)
        clock.advance(59 * DAY)
        assert isinstance(tokens.verify(token), TokenClaims)

    def test_valid_one_second_before_expiry(self, tokens: TokenService, user: User, clock: FakeClock) -> None:
        token = tokens.issue(user)
        clock.advance(60 * DAY - 1)
        assert isinstance(tokens.verify(token), TokenClaims)

    def test_expired_exactly_at_60_days(self, tokens: TokenService, user: User, clock: FakeClock) -> None:
        """The window is [iat, exp): at exp itself the token is already expired."""
        token = tokens.issue(user)
        clock.advance(60 * DAY)
        assert tokens.verify(token) is TokenError.EXPIRED

    def test_expired_at_61_days(self, tokens: TokenService, user: User, clock: FakeClock) -> None:
        token = tokens.issue(user)
        clock.advance(61 * DAY)
        assert tokens.verify(token) is TokenError.EXPIRED


class TestRejection:
    def test_garbage_is_malformed(self, tokens: TokenService) -> None:
        assert tokens.verify("not-a-token") is TokenError.MALFORMED
        assert tokens.verify("") is TokenError.MALFORMED

    def test_other_secret_is_signature_invalid(self, user: User, clock: FakeClock) -> None:
        other = TokenService("x" * 40, clock=clock)
        mine = TokenService(TEST_SECRET, clock=clock)
        assert mine.verify(other.issue(user)) is TokenError.SIGNATURE_INVALID

    def test_tampered_payload_is_signature_invalid(self, tokens: TokenService, user: User) -> None:
        header, payload, signature = tokens.issue(user).split(".")
        claims = json.loads(base64.urlsafe_b64decode(payload + "=" * (-len(payload) % 4)))
        claims["sub"] = "1"
        forged = base64.urlsafe_b64encode(json.dumps(claims).encode()).decode().rstrip("=")
        assert tokens.verify(f"{header}.{forged}.{signature}") is TokenError.SIGNATURE_INVALID

    def test_missing_identity_claims_is_malformed(self, tokens: TokenService, clock: FakeClock) -> None:
        token = jwt.encode({"sub": "42", "exp": clock.now + DAY}, TEST_SECRET, algorithm="HS256")
        assert tokens.verify(token) is TokenError.MALFORMED

    def test_non_numeric_subject_is_malformed(self, tokens: TokenService, clock: FakeClock) -> None:
        """Username-as-subject tokens are not accepted -- the subject is always the numeric id."""
        payload = {"sub": "jake", "email": "j@j.j", "username": "jake", "iat": clock.now, "exp": clock.now + DAY}
        token = jwt.encode(payload, TEST_SECRET, algorithm="HS256")
        assert tokens.verify(token) is TokenError.MALFORMED

    def test_empty_secret_refused(self) -> None:
        with pytest.raises(ValueError):
            TokenService("")

"""
auth/passwords.py -- bcrypt password hashing and verification.

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which newer bcrypt
releases reject with an explicit error. Direct bcrypt usage has no
compatibility shim.

Inputs are truncated to 72 bytes before they reach bcrypt. Older bcrypt
releases did this silently; newer ones raise ValueError. Truncating here keeps
hashes created under either release verifiable.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import bcrypt

_BCRYPT_MAX_BYTES = 72


def _encode(plain: str) -> bytes:
    return plain.encode("utf-8")[:_BCRYPT_MAX_BYTES]


class PasswordHasher:
    """Salted one-way hashing with a fixed bcrypt cost factor.

    The hasher does no validation -- CredentialService rejects blank
    passwords before they get here.
    """

    def __init__(self, rounds: int = 10) -> None:
        self.rounds = rounds
        # Timing equalization dummy hash. Computed once so the first login
        # attempt for an unknown email is not measurably slower than later ones.
        self._dummy_hash = self.hash("conduit_timing_dummy")

    def hash(self, plain: str) -> str:
        """Return a bcrypt hash with a fresh salt. Two calls never return the same string."""
        return bcrypt.hashpw(_encode(plain), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, hashed: str) -> bool:
        """Return True if plain matches hashed. Never raises on mismatch or a malformed hash."""
        try:
            return bcrypt.checkpw(_encode(plain), hashed.encode("utf-8"))
        except (ValueError, TypeError):
            return False

    def verify_dummy(self, plain: str) -> None:
        """Spend one verification's worth of work against the dummy hash.

        Called when a login email does not exist, so response time does not
        reveal whether an account exists.
        """
        self.verify(plain, self._dummy_hash)

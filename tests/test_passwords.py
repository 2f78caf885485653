"""Unit tests for auth/passwords.py -- bcrypt hashing and verification."""

from __future__ import annotations

from auth.passwords import PasswordHasher


def test_hash_is_salted(hasher: PasswordHasher) -> None:
    first = hasher.hash("correct horse")
    second = hasher.hash("correct horse")
    assert first != second
    assert "correct horse" not in first


def test_verify_matches_and_mismatches(hasher: PasswordHasher) -> None:
    hashed = hasher.hash("correct horse")
    assert hasher.verify("correct horse", hashed) is True
    assert hasher.verify("battery staple", hashed) is False


def test_verify_malformed_hash_returns_false(hasher: PasswordHasher) -> None:
    assert hasher.verify("anything", "not-a-bcrypt-hash") is False
    assert hasher.verify("anything", "") is False


def test_long_password_does_not_raise(hasher: PasswordHasher) -> None:
    """Inputs past bcrypt's 72-byte limit hash and verify instead of erroring."""
    long_pw = "p" * 100
    hashed = hasher.hash(long_pw)
    assert hasher.verify(long_pw, hashed) is True


def test_default_cost_factor_is_ten() -> None:
    hasher = PasswordHasher()
    assert hasher.rounds == 10
    assert hasher.hash("pw").startswith("$2b$10$")


def test_verify_dummy_returns_nothing(hasher: PasswordHasher) -> None:
    assert hasher.verify_dummy("whatever") is None

"""
auth/errors.py -- Result types returned by CredentialService operations.

Every service operation returns either Success(value) or Failure(kind, fields).
Validation and credential problems are expected outcomes, not exceptions, so
they travel as values; only the HTTP boundary (api/routes) decides which status
code a FailureKind maps to.

Failure.fields maps a field name to a list of messages, e.g.
    {"email": ["has already been taken"], "username": ["has already been taken"]}
so a client can correct several fields in one round trip.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class FailureKind(str, Enum):
    VALIDATION_FAILED = "validation_failed"
    CONFLICT = "conflict"
    INVALID_CREDENTIALS = "invalid_credentials"
    NOT_FOUND = "not_found"
    TOKEN_INVALID = "token_invalid"
    UNEXPECTED = "unexpected"


# One human-readable message per kind. Credential and token failures share a
# deliberately vague wording so the response never reveals which part failed.
_MESSAGES: dict[FailureKind, str] = {
    FailureKind.VALIDATION_FAILED: "Request validation failed.",
    FailureKind.CONFLICT: "Resource already exists.",
    FailureKind.INVALID_CREDENTIALS: "Invalid credentials.",
    FailureKind.NOT_FOUND: "User not found.",
    FailureKind.TOKEN_INVALID: "Authentication required.",
    FailureKind.UNEXPECTED: "An unexpected error occurred.",
}


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T


@dataclass(frozen=True)
class Failure:
    """A typed, structured failure.

    Use the classmethod constructors rather than building field maps by hand.
    """

    kind: FailureKind
    fields: dict[str, list[str]] = field(default_factory=dict)

    @property
    def message(self) -> str:
        return _MESSAGES[self.kind]

    @classmethod
    def validation(cls, fields: dict[str, list[str]]) -> Failure:
        return cls(FailureKind.VALIDATION_FAILED, fields)

    @classmethod
    def blank(cls, *names: str) -> Failure:
        """ValidationFailed with "can't be blank" for each named field."""
        return cls.validation({name: ["can't be blank"] for name in names})

    @classmethod
    def conflict(cls, *names: str) -> Failure:
        return cls(FailureKind.CONFLICT, {name: ["has already been taken"] for name in names})

    @classmethod
    def invalid_credentials(cls, label: str = "email or password") -> Failure:
        return cls(FailureKind.INVALID_CREDENTIALS, {label: ["is invalid"]})

    @classmethod
    def not_found(cls) -> Failure:
        return cls(FailureKind.NOT_FOUND, {"user": ["User not found"]})

    @classmethod
    def unexpected(cls) -> Failure:
        # No fields -- internal detail must never reach the client.
        return cls(FailureKind.UNEXPECTED)

    def to_dict(self) -> dict:
        """Serialize for the HTTP error envelope: {"code", "message", "fields"}."""
        return {"code": self.kind.value, "message": self.message, "fields": self.fields}


Result = Union[Success[T], Failure]

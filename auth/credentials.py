"""
auth/credentials.py -- Registration, login, and self-service account operations.

CredentialService orchestrates UserStore (persistence), PasswordHasher
(verification) and TokenService (issuance). Every public method returns a
Result: Success(UserSession) on the happy path, Failure otherwise. Nothing here
raises for an expected outcome.

Security design decisions:
  [uniqueness] register() looks up email AND username before inserting and
      reports both conflicts in one Failure. The UNIQUE constraints in the
      store remain the final guard; a late IntegrityError is re-checked and
      reported as a Conflict on whichever field collided.

  [enumeration] login() returns the same Failure for an unknown email and a
      wrong password, and runs bcrypt in both cases so response time does
      not distinguish them either.

  [store failures] Any other SQLAlchemyError is logged with its traceback and
      returned as Failure.unexpected() -- driver messages never leave this module.

  [session renewal] Every mutating operation reissues a token with fresh
      iat/exp, so an active user's session never expires.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import functools
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import Failure, Result, Success
from auth.models import User, UserSession
from auth.passwords import PasswordHasher
from auth.store import UserStore
from auth.tokens import TokenService

logger = logging.getLogger("conduit.auth")


def _guard_store(method):
    """Turn an unhandled SQLAlchemyError inside a service method into Failure.unexpected()."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except SQLAlchemyError:
            logger.exception("Store failure in %s", method.__name__)
            return Failure.unexpected()

    return wrapper


def _clean(value: str | None) -> str:
    """Trim an optional input string; None becomes ''."""
    return (value or "").strip()


def _blank_fields(**values: str) -> list[str]:
    """Names of the keyword arguments whose (already trimmed) value is empty."""
    return [name for name, value in values.items() if not value]


class CredentialService:
    """Account lifecycle operations for the authenticated (or registering) caller.

    `subject` arguments are the integer user id taken from a verified token.
    """

    def __init__(
        self,
        store: UserStore,
        hasher: PasswordHasher,
        tokens: TokenService,
        min_password_length: int = 8,
    ) -> None:
        self.store = store
        self.hasher = hasher
        self.tokens = tokens
        self.min_password_length = min_password_length

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _session(self, user: User) -> UserSession:
        return UserSession(
            email=user.email,
            username=user.username,
            bio=user.bio,
            image=user.image,
            token=self.tokens.issue(user),
        )

    def _taken_fields(
        self, email: str | None = None, username: str | None = None, exclude_id: int | None = None
    ) -> list[str]:
        """Return the subset of ["email", "username"] already held by another user.

        Both lookups always run; the result is never short-circuited.
        """
        taken = []
        if email is not None:
            owner = self.store.get_by_email(email)
            if owner is not None and owner.id != exclude_id:
                taken.append("email")
        if username is not None:
            owner = self.store.get_by_username(username)
            if owner is not None and owner.id != exclude_id:
                taken.append("username")
        return taken

    def _reload(self, subject: int) -> Result[UserSession]:
        user = self.store.get_by_id(subject)
        if user is None:
            return Failure.not_found()
        return Success(self._session(user))

    # ------------------------------------------------------------------
    # Unauthenticated operations
    # ------------------------------------------------------------------

    @_guard_store
    def register(
        self,
        email: str | None,
        username: str | None,
        password: str | None,
        bio: str | None = None,
        image: str | None = None,
    ) -> Result[UserSession]:
        email, username, password = _clean(email), _clean(username), _clean(password)
        blank = _blank_fields(email=email, username=username, password=password)
        if blank:
            return Failure.blank(*blank)

        taken = self._taken_fields(email=email, username=username)
        if taken:
            return Failure.conflict(*taken)

        user = User(
            email=email,
            username=username,
            hashed_password=self.hasher.hash(password),
            bio=bio or None,
            image=image or None,
        )
        try:
            user.id = self.store.create_user(user)
        except IntegrityError:
            # Lost a race with a concurrent registration.
            taken = self._taken_fields(email=email, username=username)
            logger.info("Registration hit a uniqueness constraint (%s)", ", ".join(taken) or "unknown")
            return Failure.conflict(*(taken or ["email", "username"]))

        logger.info("Registered user id=%d", user.id)
        return Success(self._session(user))

    @_guard_store
    def login(self, email: str | None, password: str | None) -> Result[UserSession]:
        email, password = _clean(email), _clean(password)
        blank = _blank_fields(email=email, password=password)
        if blank:
            return Failure.blank(*blank)

        user = self.store.get_by_email(email)
        if user is None:
            # Equalize timing -- do NOT return before running bcrypt.
            self.hasher.verify_dummy(password)
            return Failure.invalid_credentials()
        if not self.hasher.verify(password, user.hashed_password):
            return Failure.invalid_credentials()
        return Success(self._session(user))

    # ------------------------------------------------------------------
    # Authenticated operations
    # ------------------------------------------------------------------

    @_guard_store
    def get_current(self, subject: int) -> Result[UserSession]:
        return self._reload(subject)

    @_guard_store
    def update_profile(self, subject: int, username: str | None = None, bio: str | None = None) -> Result[UserSession]:
        """Apply only the fields that were provided. bio="" clears the bio."""
        updates: dict = {}
        if username is not None:
            username = username.strip()
            if not username:
                return Failure.blank("username")
            if self._taken_fields(username=username, exclude_id=subject):
                return Failure.conflict("username")
            updates["username"] = username
        if bio is not None:
            updates["bio"] = bio or None

        try:
            found = self.store.update_user(subject, **updates)
        except IntegrityError:
            logger.info("Profile update for user id=%d hit a uniqueness constraint", subject)
            return Failure.conflict("username")
        if not found:
            return Failure.not_found()
        return self._reload(subject)

    @_guard_store
    def update_password(
        self, subject: int, current_password: str | None, new_password: str | None
    ) -> Result[UserSession]:
        # Trimmed like login input, so the new password is one login() accepts.
        current_password, new_password = _clean(current_password), _clean(new_password)
        if not current_password or not new_password:
            return Failure.validation({"password": ["Current and new password are required"]})
        if len(new_password) < self.min_password_length:
            return Failure.validation(
                {"password": [f"New password must be at least {self.min_password_length} characters long"]}
            )

        user = self.store.get_by_id(subject)
        if user is None:
            return Failure.not_found()
        if not self.hasher.verify(current_password, user.hashed_password):
            return Failure.invalid_credentials("current password")

        if not self.store.update_user(subject, hashed_password=self.hasher.hash(new_password)):
            return Failure.not_found()
        logger.info("Password changed for user id=%d", subject)
        return self._reload(subject)

    @_guard_store
    def update_image(self, subject: int, image: str | None) -> Result[UserSession]:
        image = _clean(image)
        if not image:
            return Failure.blank("image")
        if not self.store.update_user(subject, image=image):
            return Failure.not_found()
        return self._reload(subject)

    @_guard_store
    def delete_image(self, subject: int) -> Result[UserSession]:
        if not self.store.update_user(subject, image=None):
            return Failure.not_found()
        return self._reload(subject)

    @_guard_store
    def delete_account(self, subject: int) -> Result[str]:
        """Delete the caller's record outright. Terminal -- there is no soft delete."""
        if self.store.get_by_id(subject) is None:
            return Failure.not_found()
        if not self.store.delete_user(subject):
            return Failure.not_found()
        logger.info("Deleted user id=%d", subject)
        return Success("User successfully deleted")

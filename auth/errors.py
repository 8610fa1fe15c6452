"""
auth/errors.py -- Closed set of authentication failures.

Every operation in auth/service.py either returns its result or raises one of
the AuthError subclasses below. The HTTP layer renders them through a single
exception handler using the code/message/status_code carried by each class,
so no route has to inspect error identity or message text.

Messages are safe to show to end users. Anything internal (SQL text, driver
errors) stays on the chained __cause__ and in the server log.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for all domain errors raised by the auth service."""

    code: str = "auth_error"
    message: str = "Authentication error."
    status_code: int = 400

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        if message:
            self.message = message


class DuplicateUser(AuthError):
    """An account with this email already exists (pre-check or store conflict)."""

    code = "user_exists"
    message = "User already exists."
    status_code = 409


class InvalidCredentials(AuthError):
    """Unknown email or wrong password. Deliberately one error for both causes."""

    code = "bad_credentials"
    message = "Invalid email or password."
    status_code = 401


class InvalidSession(AuthError):
    """Session token unknown, deleted or expired."""

    code = "invalid_session"
    message = "Invalid or expired session."
    status_code = 401


class StoreError(AuthError):
    """Any persistence failure other than not-found or a uniqueness conflict."""

    code = "internal_error"
    message = "An unexpected error occurred."
    status_code = 500


class RandomnessUnavailable(AuthError):
    """The OS random source failed while producing a token or a salt."""

    code = "internal_error"
    message = "An unexpected error occurred."
    status_code = 500


class PasswordTooLong(AuthError):
    """The UTF-8 encoded password exceeds the 72 bytes bcrypt accepts."""

    code = "password_too_long"
    message = "Password must be at most 72 bytes when UTF-8 encoded."
    status_code = 422

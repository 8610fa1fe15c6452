"""
auth/service.py -- Registration, login, logout and session validation.

AuthService owns every authentication invariant. It is the only translator
from store-level outcomes (None, IntegrityError, other SQLAlchemyError) to the
domain errors in auth/errors.py.

Security:
  [ENUM] Unknown email and wrong password raise the same InvalidCredentials,
         and both paths run exactly one bcrypt verification (the unknown-email
         path verifies against the hasher's dummy hash).
  [EXP]  Session expiry is fixed at login (clock() + session_duration). There
         is no sliding renewal; validate_session() is a pure read.
  [RACE] register() pre-checks the email, but the users.email UNIQUE
         constraint is the real guard. An IntegrityError on insert is the
         same DuplicateUser as a pre-check hit.

The service holds no mutable state beyond its collaborators, so one instance
is shared by every worker thread without locks.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import DuplicateUser, InvalidCredentials, InvalidSession, StoreError
from auth.models import AuthUser, LoginResult
from auth.store import CredentialStore
from auth.tokens import PasswordHasher, generate_token

logger = logging.getLogger("authcore.auth")

SESSION_DURATION = timedelta(days=7)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuthService:
    """Authentication state machine over (credential, session) pairs."""

    def __init__(
        self,
        store: CredentialStore,
        hasher: PasswordHasher,
        session_duration: timedelta = SESSION_DURATION,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.hasher = hasher
        self.session_duration = session_duration
        self._clock = clock

    def register(self, email: str, password: str) -> AuthUser:
        """Create an account. Raises DuplicateUser, PasswordTooLong or StoreError."""
        try:
            existing = self.store.get_user_by_email(email)
        except SQLAlchemyError as exc:
            logger.exception("User lookup failed during registration")
            raise StoreError() from exc
        if existing is not None:
            raise DuplicateUser()

        password_hash = self.hasher.hash(password)
        try:
            user = self.store.create_user(email, password_hash)
        except IntegrityError as exc:
            # [RACE] lost to a concurrent registration for the same email
            raise DuplicateUser() from exc
        except SQLAlchemyError as exc:
            logger.exception("User insert failed during registration")
            raise StoreError() from exc

        logger.info("Registered user %s", user.id)
        return AuthUser.from_user(user)

    def login(self, email: str, password: str) -> LoginResult:
        """Check credentials and open a new session.

        Raises InvalidCredentials, StoreError or RandomnessUnavailable. Both
        tokens are generated before anything is written, so a random source
        failure leaves no orphan session.
        """
        try:
            user = self.store.get_user_by_email(email)
        except SQLAlchemyError as exc:
            logger.exception("User lookup failed during login")
            raise StoreError() from exc

        if user is None:
            self.hasher.verify_dummy(password)  # [ENUM]
            logger.debug("Login rejected: bad credentials")
            raise InvalidCredentials()
        if not self.hasher.verify(user.password_hash, password):
            logger.debug("Login rejected: bad credentials")
            raise InvalidCredentials()

        session_token = generate_token()
        csrf_token = generate_token()
        expires_at = self._clock() + self.session_duration  # [EXP]
        try:
            self.store.create_session(user.id, session_token, expires_at)
        except SQLAlchemyError as exc:
            logger.exception("Session insert failed during login")
            raise StoreError() from exc

        logger.info("User %s logged in", user.id)
        return LoginResult(user=AuthUser.from_user(user), session_token=session_token, csrf_token=csrf_token)

    def logout(self, token: str) -> None:
        """Delete the session for token. Idempotent. Raises StoreError."""
        try:
            self.store.delete_session(token)
        except SQLAlchemyError as exc:
            raise StoreError() from exc

    def validate_session(self, token: str) -> AuthUser:
        """Resolve a session token to its user. Raises InvalidSession or StoreError."""
        if not token:
            raise InvalidSession()
        try:
            found = self.store.get_session_by_token(token)
        except SQLAlchemyError as exc:
            logger.exception("Session lookup failed")
            raise StoreError() from exc
        if found is None:
            raise InvalidSession()
        _session, user = found
        return AuthUser.from_user(user)

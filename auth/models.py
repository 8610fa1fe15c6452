"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, near-zero logic). Dataclasses own
domain shape; the store and the service do the work.

Trust boundary: User carries password_hash and never leaves auth/. Everything
returned to api/ is an AuthUser, which has no credential material at all.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class User:
    """A registered account as stored in the users table."""

    id: str  # UUID4, generated by the store
    email: str
    password_hash: str  # bcrypt digest, self-describing ($2b$<cost>$<salt+hash>)
    created_at: str | None = None


@dataclass
class Session:
    """A login session. The token is the bearer secret sent in the session cookie.

    Expiry is fixed at creation time and never extended. Expired rows may linger
    in the table until deleted, but the store never returns them.
    """

    token: str  # 64 hex chars, 256 bits of randomness
    user_id: str
    expires_at: datetime
    created_at: str | None = None


@dataclass(frozen=True)
class AuthUser:
    """Public identity view. The only user representation that crosses into api/."""

    id: str
    email: str

    @classmethod
    def from_user(cls, user: User) -> AuthUser:
        return cls(id=user.id, email=user.email)

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "email": self.email}


@dataclass(frozen=True)
class LoginResult:
    """Outcome of a successful login: identity plus the two secrets for the cookies."""

    user: AuthUser
    session_token: str
    csrf_token: str

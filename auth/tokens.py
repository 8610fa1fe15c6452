"""
auth/tokens.py -- Password hashing and opaque token generation.

Security design decisions:
  Passwords: bcrypt used directly (no passlib wrapper). The cost factor is a
       constructor argument (Settings.bcrypt_rounds, default 12). verify()
       never uses that constant: bcrypt.checkpw reads algorithm, cost and salt
       from the stored digest, so hashes written under an older cost keep
       verifying after the configured cost is raised. The comparison inside
       checkpw is constant-time.

       A dummy hash is computed once per hasher so that login for an unknown
       email still pays one full bcrypt verification. Response time then does
       not reveal whether an email is registered.

  Tokens: secrets.token_hex(32) gives 256 bits of entropy from the OS CSPRNG.
       Session tokens are opaque bearer values with no embedded claims, stored
       as-is and looked up by exact match. The same generator produces the
       CSRF double-submit value.

  Failure: a broken OS random source raises RandomnessUnavailable. There is
       no fallback generator and no empty-string return.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
import secrets

import bcrypt

from auth.errors import PasswordTooLong, RandomnessUnavailable

logger = logging.getLogger("authcore.auth")

DEFAULT_BCRYPT_ROUNDS = 12
TOKEN_BYTES = 32

# bcrypt reads at most 72 bytes of input.
MAX_PASSWORD_BYTES = 72

_DUMMY_PASSWORD = "authcore_timing_dummy"


# ---------------------------------------------------------------------------
# Token generation
# ---------------------------------------------------------------------------


def generate_token() -> str:
    """Return 32 random bytes as 64 lowercase hex characters."""
    try:
        return secrets.token_hex(TOKEN_BYTES)
    except (OSError, NotImplementedError) as exc:
        logger.error("Secure random source unavailable: %s", exc)
        raise RandomnessUnavailable() from exc


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


class PasswordHasher:
    """bcrypt hash/verify with a configurable work factor.

    Usage:
        hasher = PasswordHasher(rounds=12)
        digest = hasher.hash("secret")
        hasher.verify(digest, "secret")  # True
    """

    def __init__(self, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> None:
        self.rounds = rounds
        self._dummy_hash = self.hash(_DUMMY_PASSWORD)

    def hash(self, password: str) -> str:
        """Return a bcrypt digest of password with a fresh salt.

        Raises PasswordTooLong past MAX_PASSWORD_BYTES. Newer bcrypt releases
        reject such input and older ones truncate it silently.
        """
        secret = password.encode("utf-8")
        if len(secret) > MAX_PASSWORD_BYTES:
            raise PasswordTooLong()
        try:
            salt = bcrypt.gensalt(rounds=self.rounds)
        except OSError as exc:
            logger.error("Secure random source unavailable while salting: %s", exc)
            raise RandomnessUnavailable() from exc
        return bcrypt.hashpw(secret, salt).decode("utf-8")

    def verify(self, digest: str, password: str) -> bool:
        """Return True if password matches digest. Malformed digests return False.

        An over-long password can never match a digest this hasher wrote. It
        still pays one verification so the rejection takes the usual time.
        """
        secret = password.encode("utf-8")
        if len(secret) > MAX_PASSWORD_BYTES:
            bcrypt.checkpw(secret[:MAX_PASSWORD_BYTES], self._dummy_hash.encode("utf-8"))
            return False
        try:
            return bcrypt.checkpw(secret, digest.encode("utf-8"))
        except ValueError:
            return False

    def verify_dummy(self, password: str) -> None:
        """Burn one verification's worth of CPU. Used when there is no digest to check."""
        self.verify(self._dummy_hash, password)

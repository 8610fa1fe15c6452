"""Unit tests for auth/tokens.py -- password hashing and token generation.

Covers:
- hash() output is a self-describing bcrypt digest carrying the configured cost
- verify() accepts the right password, rejects a wrong one
- verify() reads the cost from the digest, not from the hasher's own setting
- verify() returns False for malformed digests instead of raising
- every hash() call uses a fresh salt
- generate_token() returns 64 hex chars and never repeats
- a failing OS random source raises RandomnessUnavailable (tokens and salts)
- the 72-byte limit counts UTF-8 bytes; longer passwords never reach bcrypt
  unchecked, and still cost one verification
"""

import re

import pytest

from auth import tokens
from auth.errors import PasswordTooLong, RandomnessUnavailable
from auth.tokens import MAX_PASSWORD_BYTES, PasswordHasher, generate_token


class TestPasswordHasher:
    def test_digest_is_self_describing(self, hasher: PasswordHasher) -> None:
        digest = hasher.hash("correct horse")
        assert digest.startswith("$2b$04$")
        assert len(digest) == 60

    def test_verify_round_trip(self, hasher: PasswordHasher) -> None:
        digest = hasher.hash("correct horse")
        assert hasher.verify(digest, "correct horse") is True
        assert hasher.verify(digest, "wrong horse") is False

    def test_verify_uses_cost_embedded_in_digest(self) -> None:
        """A digest written at one cost must keep verifying after the configured cost changes."""
        old = PasswordHasher(rounds=4).hash("s3cret-pass")
        newer = PasswordHasher(rounds=5)
        assert newer.verify(old, "s3cret-pass") is True

    def test_salt_differs_per_call(self, hasher: PasswordHasher) -> None:
        assert hasher.hash("same input") != hasher.hash("same input")

    @pytest.mark.parametrize("digest", ["", "not-a-bcrypt-hash", "$2b$04$tooshort"])
    def test_malformed_digest_is_false(self, hasher: PasswordHasher, digest: str) -> None:
        assert hasher.verify(digest, "anything") is False

    def test_verify_dummy_returns_nothing(self, hasher: PasswordHasher) -> None:
        assert hasher.verify_dummy("whatever") is None

    def test_salt_failure_raises_randomness_unavailable(self, hasher: PasswordHasher, monkeypatch) -> None:
        def broken_gensalt(*args, **kwargs):
            raise OSError("urandom unavailable")

        monkeypatch.setattr(tokens.bcrypt, "gensalt", broken_gensalt)
        with pytest.raises(RandomnessUnavailable):
            hasher.hash("password123")


class TestPasswordByteLimit:
    """bcrypt's limit is 72 bytes, not 72 characters. "é" encodes to 2 bytes."""

    def test_exactly_72_bytes_hashes_and_verifies(self, hasher: PasswordHasher) -> None:
        password = "é" * 36
        assert len(password.encode("utf-8")) == MAX_PASSWORD_BYTES
        digest = hasher.hash(password)
        assert hasher.verify(digest, password) is True

    def test_over_72_bytes_is_rejected(self, hasher: PasswordHasher) -> None:
        with pytest.raises(PasswordTooLong):
            hasher.hash("é" * 37)

    def test_over_72_bytes_never_verifies_but_pays_one_check(self, hasher: PasswordHasher, monkeypatch) -> None:
        digest = hasher.hash("é" * 36)
        calls = []
        real_checkpw = tokens.bcrypt.checkpw

        def counting_checkpw(password, hashed):
            calls.append(len(password))
            return real_checkpw(password, hashed)

        monkeypatch.setattr(tokens.bcrypt, "checkpw", counting_checkpw)
        assert hasher.verify(digest, "é" * 36 + "x") is False
        assert calls == [MAX_PASSWORD_BYTES]

    def test_verify_dummy_pays_one_check_for_long_input(self, hasher: PasswordHasher, monkeypatch) -> None:
        calls = []
        real_checkpw = tokens.bcrypt.checkpw

        def counting_checkpw(password, hashed):
            calls.append(password)
            return real_checkpw(password, hashed)

        monkeypatch.setattr(tokens.bcrypt, "checkpw", counting_checkpw)
        hasher.verify_dummy("x" * 200)
        assert len(calls) == 1


class TestGenerateToken:
    def test_token_is_64_hex_chars(self) -> None:
        token = generate_token()
        assert re.fullmatch(r"[0-9a-f]{64}", token)

    def test_tokens_do_not_repeat(self) -> None:
        assert len({generate_token() for _ in range(100)}) == 100

    def test_random_source_failure_raises(self, monkeypatch) -> None:
        """A broken CSPRNG must fail loudly, never hand back an empty or weak token."""

        def broken_token_hex(nbytes=None):
            raise OSError("urandom unavailable")

        monkeypatch.setattr(tokens.secrets, "token_hex", broken_token_hex)
        with pytest.raises(RandomnessUnavailable):
            generate_token()

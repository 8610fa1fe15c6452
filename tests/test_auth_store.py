"""Unit tests for auth/store.py -- CredentialStore queries.

Covers:
- create_user() assigns a UUID id and round-trips through get_user_by_email()
- get_user_by_email() is an exact match and returns None when absent
- duplicate email raises IntegrityError (the store does not interpret it)
- get_session_by_token() joins the owning user
- expired sessions are invisible even before their row is deleted
- delete_session() is idempotent
- a user may hold several concurrent sessions
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from auth.store import CredentialStore


def _count_sessions(store: CredentialStore) -> int:
    with store.engine.connect() as conn:
        return conn.execute(text("SELECT COUNT(*) FROM sessions")).scalar()


@pytest.fixture
def user(store: CredentialStore):
    return store.create_user("owner@test.local", "$2b$04$fakehashfakehashfakehashfakehashfakehashfakehashfakeh")


class TestUsers:
    def test_create_and_lookup(self, store: CredentialStore, user) -> None:
        assert str(uuid.UUID(user.id)) == user.id
        found = store.get_user_by_email("owner@test.local")
        assert found is not None
        assert found.id == user.id
        assert found.password_hash == user.password_hash
        assert found.created_at

    def test_lookup_missing_returns_none(self, store: CredentialStore) -> None:
        assert store.get_user_by_email("nobody@test.local") is None

    def test_lookup_is_exact_match(self, store: CredentialStore, user) -> None:
        assert store.get_user_by_email("OWNER@test.local") is None

    def test_duplicate_email_raises_integrity_error(self, store: CredentialStore, user) -> None:
        with pytest.raises(IntegrityError):
            store.create_user("owner@test.local", "other-hash")


class TestSessions:
    def test_live_session_joins_user(self, store: CredentialStore, user) -> None:
        expires = datetime.now(timezone.utc) + timedelta(days=7)
        store.create_session(user.id, "a" * 64, expires)

        found = store.get_session_by_token("a" * 64)
        assert found is not None
        session, owner = found
        assert session.user_id == user.id
        assert session.expires_at == expires
        assert owner.email == "owner@test.local"

    def test_unknown_token_returns_none(self, store: CredentialStore) -> None:
        assert store.get_session_by_token("f" * 64) is None

    def test_expired_session_is_not_found(self, store: CredentialStore, user) -> None:
        """Expired rows stay in the table but behave exactly like missing ones."""
        store.create_session(user.id, "b" * 64, datetime.now(timezone.utc) - timedelta(seconds=1))
        assert store.get_session_by_token("b" * 64) is None
        assert _count_sessions(store) == 1

    def test_naive_expiry_is_treated_as_utc(self, store: CredentialStore, user) -> None:
        naive_future = datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(hours=1)
        store.create_session(user.id, "c" * 64, naive_future)
        assert store.get_session_by_token("c" * 64) is not None

    def test_delete_is_idempotent(self, store: CredentialStore, user) -> None:
        store.create_session(user.id, "d" * 64, datetime.now(timezone.utc) + timedelta(days=1))
        store.delete_session("d" * 64)
        store.delete_session("d" * 64)
        store.delete_session("never-existed")
        assert store.get_session_by_token("d" * 64) is None

    def test_multiple_sessions_per_user(self, store: CredentialStore, user) -> None:
        expires = datetime.now(timezone.utc) + timedelta(days=1)
        store.create_session(user.id, "1" * 64, expires)
        store.create_session(user.id, "2" * 64, expires)
        assert store.get_session_by_token("1" * 64) is not None
        assert store.get_session_by_token("2" * 64) is not None

    def test_duplicate_token_raises_integrity_error(self, store: CredentialStore, user) -> None:
        expires = datetime.now(timezone.utc) + timedelta(days=1)
        store.create_session(user.id, "e" * 64, expires)
        with pytest.raises(IntegrityError):
            store.create_session(user.id, "e" * 64, expires)

    def test_ping(self, store: CredentialStore) -> None:
        assert store.ping() is True

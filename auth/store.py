"""
auth/store.py -- SQLAlchemy Core persistence layer for users and sessions.

Pattern: Repository + Data Mapper.
CredentialStore is the repository; _row_to_user / _row_to_session are the
mappers. Service and route code never touches SQL directly.

The store interprets no domain meaning:
  - "not found" is a None return,
  - a uniqueness conflict is sqlalchemy.exc.IntegrityError,
  - anything else is whatever SQLAlchemyError the driver raised.
auth/service.py is the only place those outcomes become domain errors.

Expiry:
  get_session_by_token() filters on expires_at > now, so an expired session is
  indistinguishable from a missing one even before its row is deleted.
  Timestamps are stored as UTC ISO 8601 strings with fixed microsecond
  precision; lexical comparison in SQL then matches chronological order.

Atomicity:
  Every write runs inside engine.begin(), one transaction per call. A call that
  is interrupted never leaves a half-written row behind.

Security:
  All queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, ForeignKey, MetaData, String, Table, Text, create_engine, event, select, text
from sqlalchemy.engine import Engine

from auth.models import Session, User

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(36), primary_key=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
)

_sessions = Table(
    "sessions",
    _metadata,
    Column("token", String(64), primary_key=True),
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("expires_at", String(32), nullable=False),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _to_iso(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _now_iso() -> str:
    return _to_iso(datetime.now(timezone.utc))


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class CredentialStore:
    """Repository for User and Session rows.

    Usage:
        store = CredentialStore("sqlite:///authcore.db")
        user = store.create_user("a@example.com", hasher.hash("secret"))
        store.create_session(user.id, token, expires_at)
        store.close()
    """

    def __init__(self, db_url: str, timeout: float | None = None) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
            if timeout is not None:
                connect_args["timeout"] = timeout
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def create_user(self, email: str, password_hash: str) -> User:
        """Insert a new user and return it.

        Raises sqlalchemy.exc.IntegrityError if the email already exists. Two
        concurrent registrations for one email both pass the service pre-check;
        the UNIQUE constraint makes exactly one of them fail here.
        """
        user = User(id=str(uuid.uuid4()), email=email, password_hash=password_hash, created_at=_now_iso())
        with self.engine.begin() as conn:
            conn.execute(
                _users.insert().values(
                    id=user.id,
                    email=user.email,
                    password_hash=user.password_hash,
                    created_at=user.created_at,
                )
            )
        return user

    def get_user_by_email(self, email: str) -> User | None:
        """Look up a user by exact email (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def create_session(self, user_id: str, token: str, expires_at: datetime) -> Session:
        """Insert a session row. Raises IntegrityError on a token collision."""
        session = Session(token=token, user_id=user_id, expires_at=expires_at, created_at=_now_iso())
        with self.engine.begin() as conn:
            conn.execute(
                _sessions.insert().values(
                    token=token,
                    user_id=user_id,
                    expires_at=_to_iso(expires_at),
                    created_at=session.created_at,
                )
            )
        return session

    def get_session_by_token(self, token: str) -> tuple[Session, User] | None:
        """Return the live session for token joined with its owning user.

        Expired sessions are treated exactly like missing ones: None.
        """
        query = (
            select(
                _sessions.c.token,
                _sessions.c.user_id,
                _sessions.c.expires_at,
                _sessions.c.created_at,
                _users.c.id.label("u_id"),
                _users.c.email.label("u_email"),
                _users.c.password_hash.label("u_password_hash"),
                _users.c.created_at.label("u_created_at"),
            )
            .select_from(_sessions.join(_users, _sessions.c.user_id == _users.c.id))
            .where((_sessions.c.token == token) & (_sessions.c.expires_at > _now_iso()))
        )
        with self.engine.connect() as conn:
            row = conn.execute(query).fetchone()
        if row is None:
            return None
        user = User(
            id=row.u_id,
            email=row.u_email,
            password_hash=row.u_password_hash,
            created_at=row.u_created_at,
        )
        return _row_to_session(row), user

    def delete_session(self, token: str) -> None:
        """Delete the session for token. Deleting an unknown token is not an error."""
        with self.engine.begin() as conn:
            conn.execute(_sessions.delete().where(_sessions.c.token == token))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        password_hash=row.password_hash,
        created_at=row.created_at,
    )


def _row_to_session(row) -> Session:
    return Session(
        token=row.token,
        user_id=row.user_id,
        expires_at=datetime.fromisoformat(row.expires_at),
        created_at=row.created_at,
    )

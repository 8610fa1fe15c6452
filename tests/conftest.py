"""
tests/conftest.py -- Shared test fixtures for authcore.

This module provides:
  - settings: isolated Settings pointing at a per-test SQLite file
  - store / hasher / service: the auth core without HTTP, for unit tests
  - app / client: the real FastAPI app built by create_app(settings), driven
    through TestClient so lifespan, middleware and exception handlers all run

Design: a temporary SQLite *file* (not :memory:) backs every test. TestClient
runs sync route handlers in a thread pool and the concurrency tests start
their own threads; a plain :memory: DB is per-connection and would present a
blank schema to each thread.

bcrypt_rounds=4 is the lowest cost bcrypt accepts. It keeps the suite fast
while exercising the exact same code path as production's 12 rounds.
secure_cookies=False because TestClient talks plain http, and an http client
never sends Secure cookies back.
"""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.main import create_app
from auth.service import AuthService
from auth.store import CredentialStore
from auth.tokens import PasswordHasher
from core.config import Settings


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        debug=True,
        database_url=f"sqlite:///{tmp_path / 'auth.db'}",
        bcrypt_rounds=4,
        secure_cookies=False,
    )


# ---------------------------------------------------------------------------
# Core (no HTTP)
# ---------------------------------------------------------------------------


@pytest.fixture
def store(settings: Settings) -> Generator[CredentialStore, None, None]:
    s = CredentialStore(settings.database_url, timeout=settings.db_timeout_seconds)
    yield s
    s.close()


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def service(store: CredentialStore, hasher: PasswordHasher) -> AuthService:
    return AuthService(store, hasher)


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


@pytest.fixture
def app(settings: Settings) -> FastAPI:
    return create_app(settings)


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """TestClient over the real app. Entering the context runs lifespan startup."""
    with TestClient(app, raise_server_exceptions=True) as c:
        yield c


"""
tests/conftest.py -- Shared test fixtures for the account service.

This module provides:
  - InMemoryAccountStore: a dict-backed AccountRepository test double so
    AuthService can be exercised without a database
  - issuer / fake_store / service: unit-test building blocks
  - sqlite_store: a real AccountStore on a private in-memory SQLite DB
  - _patch_lifespan(): wires test components into app.state, bypassing real startup
  - api_client: TestClient over the real FastAPI app and a real AccountStore

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
for the API client because TestClient runs sync route handlers in a thread
pool. Plain :memory: DBs are per-connection and would present a blank schema
to each worker thread.

JWT_SECRET_KEY and DEBUG must be set before any api/ import: api.main reads
get_settings() at import time.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

# CRITICAL: Set before any api/core import so get_settings() succeeds.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-that-is-at-least-32-characters")
os.environ.setdefault("DATABASE_URL", "sqlite:///file:test_accounts_default?mode=memory&cache=shared&uri=true")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.errors import AccountAlreadyExistsError, AccountNotFoundError, RefreshTokenNotFoundError, StoreError
from auth.models import Account, RefreshToken
from auth.service import AuthService
from auth.store import AccountStore
from auth.tokens import TokenIssuer

TEST_SECRET_KEY = "unit-test-signing-key-0123456789abcdef"


# ---------------------------------------------------------------------------
# Repository test double
# ---------------------------------------------------------------------------


class InMemoryAccountStore:
    """Dict-backed AccountRepository with the same error contract as AccountStore.

    fail_on: names of methods that should raise StoreError, to drive the
    service's InternalError paths.
    """

    def __init__(self) -> None:
        self.accounts: dict[str, Account] = {}
        self.refresh_tokens: dict[str, RefreshToken] = {}
        self.fail_on: set[str] = set()

    def _maybe_fail(self, name: str) -> None:
        if name in self.fail_on:
            raise StoreError(f"simulated failure in {name}")

    def create_account(self, email: str, password_hash: str) -> Account:
        self._maybe_fail("create_account")
        if any(a.email == email for a in self.accounts.values()):
            raise AccountAlreadyExistsError()
        now = datetime.now(timezone.utc)
        account = Account(id=str(uuid.uuid4()), email=email, password_hash=password_hash, created_at=now, updated_at=now)
        self.accounts[account.id] = account
        return account

    def get_account_by_email(self, email: str) -> Account:
        self._maybe_fail("get_account_by_email")
        for account in self.accounts.values():
            if account.email == email:
                return account
        raise AccountNotFoundError()

    def create_refresh_token(self, token: str, account_id: str, expires_at: datetime) -> None:
        self._maybe_fail("create_refresh_token")
        if account_id not in self.accounts:
            raise StoreError("error creating refresh token: foreign key violation")
        self.refresh_tokens[token] = RefreshToken(
            token=token,
            account_id=account_id,
            expires_at=expires_at,
            created_at=datetime.now(timezone.utc),
        )

    def get_refresh_token(self, token: str) -> RefreshToken:
        self._maybe_fail("get_refresh_token")
        try:
            return self.refresh_tokens[token]
        except KeyError:
            raise RefreshTokenNotFoundError() from None

    def delete_refresh_tokens_for_account(self, account_id: str) -> int:
        self._maybe_fail("delete_refresh_tokens_for_account")
        doomed = [t for t, row in self.refresh_tokens.items() if row.account_id == account_id]
        for token in doomed:
            del self.refresh_tokens[token]
        return len(doomed)

    def tokens_for(self, account_id: str) -> list[RefreshToken]:
        return [row for row in self.refresh_tokens.values() if row.account_id == account_id]


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def issuer() -> TokenIssuer:
    return TokenIssuer(TEST_SECRET_KEY, access_token_ttl_minutes=15, refresh_token_ttl_minutes=1440)


@pytest.fixture
def fake_store() -> InMemoryAccountStore:
    return InMemoryAccountStore()


@pytest.fixture
def service(fake_store: InMemoryAccountStore, issuer: TokenIssuer) -> AuthService:
    return AuthService(fake_store, issuer)


@pytest.fixture
def sqlite_store() -> Generator[AccountStore, None, None]:
    """A real AccountStore on a private in-memory SQLite database."""
    s = AccountStore("sqlite:///:memory:")
    yield s
    s.close()


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(store: AccountStore, service: AuthService):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test components into app.state so TestClient routes
    see an isolated test DB rather than the configured DATABASE_URL.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.account_store = store
        app.state.auth_service = service
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client() -> Generator[tuple[TestClient, AccountStore], None, None]:
    """Yield (client, store) for API integration tests.

    One TestClient per test module for speed. The named shared-memory DB
    gets a random suffix so modules never see each other's rows; tests in a
    module should use distinct emails.
    """
    db_url = f"sqlite:///file:test_accounts_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
    store = AccountStore(db_url)
    service = AuthService(
        store,
        TokenIssuer(TEST_SECRET_KEY, access_token_ttl_minutes=15, refresh_token_ttl_minutes=1440),
    )

    app.router.lifespan_context = _patch_lifespan(store, service)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, store

    store.close()

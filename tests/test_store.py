"""Unit tests for auth/store.py -- the relational AccountStore.

Runs against in-memory SQLite with foreign keys enabled, so constraint
behavior matches PostgreSQL for everything the service relies on.

Covers:
- create_account / get_account_by_email, exact-match email, duplicate email
- create_refresh_token upsert semantics and the account foreign key
- get_refresh_token returns expired rows untouched
- delete_refresh_tokens_for_account removes all rows, is idempotent
- ON DELETE CASCADE from accounts to refresh_tokens
- delete_expired_refresh_tokens sweep and ping()
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import text

from auth.errors import AccountAlreadyExistsError, AccountNotFoundError, RefreshTokenNotFoundError, StoreError
from auth.store import AccountStore

_HASH = "$2b$12$abcdefghijklmnopqrstuuABCDEFGHIJKLMNOPQRSTUVWXYZ01234"


def _in(minutes: int) -> datetime:
    return datetime.now(timezone.utc) + timedelta(minutes=minutes)


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


class TestAccounts:
    def test_create_and_get(self, sqlite_store: AccountStore) -> None:
        created = sqlite_store.create_account("user@example.com", _HASH)
        assert created.id
        assert created.created_at is not None

        fetched = sqlite_store.get_account_by_email("user@example.com")
        assert fetched.id == created.id
        assert fetched.email == "user@example.com"
        assert fetched.password_hash == _HASH
        assert fetched.created_at.tzinfo is not None
        assert fetched.updated_at == fetched.created_at

    def test_ids_are_unique(self, sqlite_store: AccountStore) -> None:
        first = sqlite_store.create_account("one@example.com", _HASH)
        second = sqlite_store.create_account("two@example.com", _HASH)
        assert first.id != second.id

    def test_duplicate_email(self, sqlite_store: AccountStore) -> None:
        sqlite_store.create_account("dup@example.com", _HASH)
        with pytest.raises(AccountAlreadyExistsError):
            sqlite_store.create_account("dup@example.com", _HASH)

    def test_email_is_exact_match(self, sqlite_store: AccountStore) -> None:
        """No case folding: a differently-cased email is a different account."""
        sqlite_store.create_account("Case@example.com", _HASH)
        with pytest.raises(AccountNotFoundError):
            sqlite_store.get_account_by_email("case@example.com")
        sqlite_store.create_account("case@example.com", _HASH)

    def test_get_missing(self, sqlite_store: AccountStore) -> None:
        with pytest.raises(AccountNotFoundError):
            sqlite_store.get_account_by_email("nobody@example.com")


# ---------------------------------------------------------------------------
# Refresh tokens
# ---------------------------------------------------------------------------


class TestRefreshTokens:
    def test_create_and_get(self, sqlite_store: AccountStore) -> None:
        account = sqlite_store.create_account("rt@example.com", _HASH)
        expires_at = _in(60)
        sqlite_store.create_refresh_token("token-1", account.id, expires_at)

        row = sqlite_store.get_refresh_token("token-1")
        assert row.token == "token-1"
        assert row.account_id == account.id
        assert row.expires_at == expires_at
        assert row.created_at is not None

    def test_get_missing(self, sqlite_store: AccountStore) -> None:
        with pytest.raises(RefreshTokenNotFoundError):
            sqlite_store.get_refresh_token("never-issued")

    def test_upsert_overwrites_expiry(self, sqlite_store: AccountStore) -> None:
        account = sqlite_store.create_account("upsert@example.com", _HASH)
        sqlite_store.create_refresh_token("token-1", account.id, _in(-5))
        later = _in(120)
        sqlite_store.create_refresh_token("token-1", account.id, later)

        assert sqlite_store.get_refresh_token("token-1").expires_at == later
        with sqlite_store.engine.connect() as conn:
            count = conn.execute(text("SELECT COUNT(*) FROM refresh_tokens")).scalar()
        assert count == 1

    def test_unknown_account_fails(self, sqlite_store: AccountStore) -> None:
        with pytest.raises(StoreError):
            sqlite_store.create_refresh_token("orphan", "no-such-account", _in(60))

    def test_several_tokens_per_account(self, sqlite_store: AccountStore) -> None:
        account = sqlite_store.create_account("multi@example.com", _HASH)
        for i in range(3):
            sqlite_store.create_refresh_token(f"token-{i}", account.id, _in(60))
        for i in range(3):
            assert sqlite_store.get_refresh_token(f"token-{i}").account_id == account.id

    def test_expired_row_is_returned(self, sqlite_store: AccountStore) -> None:
        account = sqlite_store.create_account("expired@example.com", _HASH)
        sqlite_store.create_refresh_token("old", account.id, _in(-60))
        row = sqlite_store.get_refresh_token("old")
        assert row.expires_at < datetime.now(timezone.utc)

    def test_delete_all_for_account(self, sqlite_store: AccountStore) -> None:
        mine = sqlite_store.create_account("mine@example.com", _HASH)
        theirs = sqlite_store.create_account("theirs@example.com", _HASH)
        sqlite_store.create_refresh_token("m1", mine.id, _in(60))
        sqlite_store.create_refresh_token("m2", mine.id, _in(-60))
        sqlite_store.create_refresh_token("t1", theirs.id, _in(60))

        assert sqlite_store.delete_refresh_tokens_for_account(mine.id) == 2
        for token in ("m1", "m2"):
            with pytest.raises(RefreshTokenNotFoundError):
                sqlite_store.get_refresh_token(token)
        assert sqlite_store.get_refresh_token("t1").account_id == theirs.id

    def test_delete_is_idempotent(self, sqlite_store: AccountStore) -> None:
        account = sqlite_store.create_account("idem@example.com", _HASH)
        assert sqlite_store.delete_refresh_tokens_for_account(account.id) == 0
        assert sqlite_store.delete_refresh_tokens_for_account("no-such-account") == 0

    def test_cascade_on_account_delete(self, sqlite_store: AccountStore) -> None:
        account = sqlite_store.create_account("cascade@example.com", _HASH)
        sqlite_store.create_refresh_token("c1", account.id, _in(60))
        with sqlite_store.engine.connect() as conn:
            conn.execute(text("DELETE FROM accounts WHERE id = :id"), {"id": account.id})
            conn.commit()
        with pytest.raises(RefreshTokenNotFoundError):
            sqlite_store.get_refresh_token("c1")

    def test_purge_expired(self, sqlite_store: AccountStore) -> None:
        account = sqlite_store.create_account("purge@example.com", _HASH)
        sqlite_store.create_refresh_token("dead", account.id, _in(-1))
        sqlite_store.create_refresh_token("live", account.id, _in(60))

        assert sqlite_store.delete_expired_refresh_tokens() == 1
        with pytest.raises(RefreshTokenNotFoundError):
            sqlite_store.get_refresh_token("dead")
        assert sqlite_store.get_refresh_token("live").token == "live"


def test_ping(sqlite_store: AccountStore) -> None:
    assert sqlite_store.ping() is True


def test_driver_errors_become_store_error() -> None:
    """Driver failures surface as StoreError, never raw SQLAlchemy exceptions."""
    store = AccountStore("sqlite:///:memory:")
    with store.engine.connect() as conn:
        conn.execute(text("DROP TABLE refresh_tokens"))
        conn.commit()
    with pytest.raises(StoreError):
        store.get_refresh_token("anything")
    store.close()


def test_file_backed_sqlite_pragmas(tmp_path) -> None:
    """A file database gets foreign keys and the WAL journal on each connection."""
    store = AccountStore(f"sqlite:///{tmp_path / 'accounts.db'}")
    with store.engine.connect() as conn:
        assert conn.execute(text("PRAGMA foreign_keys")).scalar() == 1
        assert conn.execute(text("PRAGMA journal_mode")).scalar() == "wal"
    store.close()

"""
auth/store.py -- SQLAlchemy Core persistence layer for accounts and sessions.

Pattern: Repository + Data Mapper. AccountRepository is the narrow contract
AuthService consumes; AccountStore is the relational implementation and the
_row_to_* functions are the mappers. The service never touches SQL, and
tests substitute an in-memory double for the whole store.

Security:
  All queries use bound parameters. No f-strings in SQL.

Consistency:
  No explicit transactions span more than one statement. Each call commits
  on its own at the backend's default isolation level, so two concurrent
  refreshes for one account can both persist a new token. Logout's
  delete-all-for-account is what cleans up the strays.

Portability:
  Any SQLAlchemy URL works. PostgreSQL in production; SQLite for local
  development and tests. On SQLite, foreign keys are switched on per
  connection so the account_id constraint and ON DELETE CASCADE behave as
  they do on PostgreSQL.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    MetaData,
    String,
    Table,
    create_engine,
    event,
    text,
)
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import AccountAlreadyExistsError, AccountNotFoundError, RefreshTokenNotFoundError, StoreError
from auth.models import Account, RefreshToken

logger = logging.getLogger("accountmgmt.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_accounts = Table(
    "accounts",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", String(255), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

_refresh_tokens = Table(
    "refresh_tokens",
    metadata,
    Column("token", String(255), primary_key=True),
    Column(
        "account_id",
        String(36),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("expires_at", DateTime(timezone=True), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
)


# ---------------------------------------------------------------------------
# Repository contract
# ---------------------------------------------------------------------------


class AccountRepository(Protocol):
    """Capabilities AuthService needs from persistence.

    Implementations raise the store errors from auth.errors:
    AccountAlreadyExistsError, AccountNotFoundError,
    RefreshTokenNotFoundError, and StoreError for anything unexpected.
    """

    def create_account(self, email: str, password_hash: str) -> Account: ...

    def get_account_by_email(self, email: str) -> Account: ...

    def create_refresh_token(self, token: str, account_id: str, expires_at: datetime) -> None: ...

    def get_refresh_token(self, token: str) -> RefreshToken: ...

    def delete_refresh_tokens_for_account(self, account_id: str) -> int: ...


# ---------------------------------------------------------------------------
# SQLite connection setup
# ---------------------------------------------------------------------------


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable foreign keys and WAL journal mode on every new SQLite connection.

    SQLite PRAGMAs are per-connection and are not inherited by new
    connections from the pool, so this runs on each connect.

    foreign_keys is what the account_id constraint and ON DELETE CASCADE
    depend on. WAL only takes effect on the file-backed development
    database; in-memory databases keep their "memory" journal and ignore it.
    """
    dbapi_conn.execute("PRAGMA foreign_keys=ON")
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; every stored value is UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AccountStore:
    """Relational repository for Account and RefreshToken records.

    Usage:
        store = AccountStore("postgresql+psycopg2://user:pw@host/accounts")
        account = store.create_account("a@b.com", hash_password("Passw0rd!"))
        store.create_refresh_token(token, account.id, expires_at)
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        is_sqlite = db_url.startswith("sqlite")
        if is_sqlite:
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args, pool_pre_ping=not is_sqlite)
        if is_sqlite:
            event.listen(self.engine, "connect", _set_sqlite_pragmas)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def create_account(self, email: str, password_hash: str) -> Account:
        """Insert a new account and return it with its generated ID.

        Raises AccountAlreadyExistsError if the email is already registered.
        The unique constraint is the only duplicate check, so two concurrent
        registrations for one email cannot both succeed.
        """
        now = _now()
        account = Account(
            id=str(uuid.uuid4()),
            email=email,
            password_hash=password_hash,
            created_at=now,
            updated_at=now,
        )
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    _accounts.insert().values(
                        id=account.id,
                        email=account.email,
                        password_hash=account.password_hash,
                        created_at=account.created_at,
                        updated_at=account.updated_at,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            if "email" in str(exc.orig):
                raise AccountAlreadyExistsError() from exc
            raise StoreError(f"error creating account: {exc.orig}") from exc
        except SQLAlchemyError as exc:
            raise StoreError(f"error creating account: {exc}") from exc
        return account

    def get_account_by_email(self, email: str) -> Account:
        """Look up an account by exact email (case-sensitive).

        Raises AccountNotFoundError if no account matches.
        """
        try:
            with self.engine.connect() as conn:
                row = conn.execute(_accounts.select().where(_accounts.c.email == email)).fetchone()
        except SQLAlchemyError as exc:
            raise StoreError(f"error getting account: {exc}") from exc
        if row is None:
            raise AccountNotFoundError()
        return _row_to_account(row)

    # ------------------------------------------------------------------
    # Refresh tokens
    # ------------------------------------------------------------------

    def create_refresh_token(self, token: str, account_id: str, expires_at: datetime) -> None:
        """Persist a refresh token, overwriting expiry and creation time on a token collision.

        Fails with StoreError if account_id does not reference an existing
        account. Existing tokens for the account are left untouched.
        """
        values = {
            "token": token,
            "account_id": account_id,
            "expires_at": expires_at,
            "created_at": _now(),
        }
        try:
            with self.engine.connect() as conn:
                conn.execute(self._upsert_refresh_token(values))
                conn.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"error creating refresh token: {exc}") from exc

    def _upsert_refresh_token(self, values: dict):
        dialect = self.engine.dialect.name
        if dialect == "postgresql":
            stmt = postgresql.insert(_refresh_tokens).values(**values)
        elif dialect == "sqlite":
            stmt = sqlite.insert(_refresh_tokens).values(**values)
        else:
            raise StoreError(f"refresh token upsert is not supported on {dialect!r}")
        return stmt.on_conflict_do_update(
            index_elements=[_refresh_tokens.c.token],
            set_={
                "expires_at": stmt.excluded.expires_at,
                "created_at": stmt.excluded.created_at,
            },
        )

    def get_refresh_token(self, token: str) -> RefreshToken:
        """Look up a refresh token by its raw value.

        Expired rows are returned as-is; deciding validity is the caller's
        job. Raises RefreshTokenNotFoundError if the token is unknown.
        """
        try:
            with self.engine.connect() as conn:
                row = conn.execute(_refresh_tokens.select().where(_refresh_tokens.c.token == token)).fetchone()
        except SQLAlchemyError as exc:
            raise StoreError(f"error getting refresh token: {exc}") from exc
        if row is None:
            raise RefreshTokenNotFoundError()
        return _row_to_refresh_token(row)

    def delete_refresh_tokens_for_account(self, account_id: str) -> int:
        """Delete every refresh token owned by the account. Returns rows removed.

        Idempotent: an account with no tokens is a success returning 0.
        """
        try:
            with self.engine.connect() as conn:
                result = conn.execute(_refresh_tokens.delete().where(_refresh_tokens.c.account_id == account_id))
                conn.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"error deleting refresh tokens: {exc}") from exc
        return result.rowcount

    def delete_expired_refresh_tokens(self, now: datetime | None = None) -> int:
        """Remove dead refresh token rows. Returns rows removed.

        No request path calls this -- expired tokens are otherwise kept until
        logout. Run it from a periodic operational job.
        """
        cutoff = now or _now()
        try:
            with self.engine.connect() as conn:
                result = conn.execute(_refresh_tokens.delete().where(_refresh_tokens.c.expires_at <= cutoff))
                conn.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"error deleting expired refresh tokens: {exc}") from exc
        if result.rowcount:
            logger.info("Purged %d expired refresh tokens", result.rowcount)
        return result.rowcount

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.exception("Database health check failed")
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_account(row) -> Account:
    return Account(
        id=row.id,
        email=row.email,
        password_hash=row.password_hash,
        created_at=_as_utc(row.created_at),
        updated_at=_as_utc(row.updated_at),
    )


def _row_to_refresh_token(row) -> RefreshToken:
    return RefreshToken(
        token=row.token,
        account_id=row.account_id,
        expires_at=_as_utc(row.expires_at),
        created_at=_as_utc(row.created_at),
    )

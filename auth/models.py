"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and the
service do the work; these dataclasses own the domain shape.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Account:
    """An account holder's identity record.

    email is stored exactly as submitted -- no case folding or other
    normalization -- and lookups are exact-match.

    updated_at is set on insert and never bumped: no write path mutates an
    account after registration.
    """

    id: str
    email: str
    password_hash: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class RefreshToken:
    """A persisted session: one opaque refresh token owned by one account.

    An account may hold several live rows at once. Rotation adds a row
    without removing the presented one; only logout deletes them, and it
    deletes every row for the account.
    """

    token: str
    account_id: str
    expires_at: datetime
    created_at: datetime | None = None


@dataclass(frozen=True)
class AccessClaims:
    """Claims carried inside a signed access token. Never persisted."""

    account_id: str
    issuer: str
    issued_at: datetime
    expires_at: datetime
    token_id: str


@dataclass(frozen=True)
class IssuedTokens:
    """The token pair handed to a client after login or refresh."""

    account_id: str
    access_token: str
    refresh_token: str
    expires_in: int  # seconds until the access token expires
    refresh_expires_at: datetime
    token_type: str = "Bearer"

"""
auth/tokens.py -- Access token signing and refresh token minting.

Security design decisions:
  Access tokens: python-jose JWTs signed with HS256 and the configured
       secret. Claims: account_id, iss="account-management", iat, exp, and a
       random jti. They are self-contained and never stored server-side, so
       one cannot be revoked before it expires -- keep the TTL short.

  Refresh tokens: uuid4 strings (122 random bits). Not signed and carry no
       claims; opacity is the only property they need. Their expiry lives in
       the refresh_tokens table, not in the token.

  Verification: this service never verifies its own access tokens. Whoever
       does must use the same key and algorithm; decode_access_token() is the
       reference implementation for them.

TokenIssuer holds only configuration fixed at construction. TTLs are not
validated here -- core.config.Settings rejects non-positive values.

Layer rule: no imports from api/. core/ is only touched by from_settings().
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from jose import JWTError, jwt
from jose.exceptions import JOSEError

from auth.errors import TokenSigningError
from auth.models import AccessClaims

if TYPE_CHECKING:
    from core.config import Settings

logger = logging.getLogger("accountmgmt.auth")

ALGORITHM = "HS256"
ISSUER = "account-management"


class TokenIssuer:
    """Mints access and refresh tokens from a fixed key and TTL configuration.

    Usage:
        issuer = TokenIssuer(secret_key, access_token_ttl_minutes=15, refresh_token_ttl_minutes=1440)
        access, access_expires_at = issuer.mint_access_token(account_id)
        refresh, refresh_expires_at = issuer.mint_refresh_token()
    """

    def __init__(self, secret_key: str, access_token_ttl_minutes: int, refresh_token_ttl_minutes: int) -> None:
        self._secret_key = secret_key
        self._access_ttl = timedelta(minutes=access_token_ttl_minutes)
        self._refresh_ttl = timedelta(minutes=refresh_token_ttl_minutes)

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenIssuer:
        return cls(
            settings.jwt_secret_key,
            access_token_ttl_minutes=settings.access_token_ttl_minutes,
            refresh_token_ttl_minutes=settings.refresh_token_ttl_minutes,
        )

    @property
    def access_token_ttl_seconds(self) -> int:
        return int(self._access_ttl.total_seconds())

    def mint_access_token(self, account_id: str) -> tuple[str, datetime]:
        """Return a signed JWT for account_id and the moment it expires.

        Raises TokenSigningError if signing fails; the caller must treat the
        whole request as failed.
        """
        now = datetime.now(timezone.utc)
        expires_at = now + self._access_ttl
        claims = {
            "account_id": account_id,
            "iss": ISSUER,
            "iat": now,
            "exp": expires_at,
            "jti": str(uuid.uuid4()),
        }
        try:
            token = jwt.encode(claims, self._secret_key, algorithm=ALGORITHM)
        except JOSEError as exc:
            raise TokenSigningError(f"error signing token: {exc}") from exc
        return token, expires_at

    def mint_refresh_token(self) -> tuple[str, datetime]:
        """Return a new opaque refresh token and its expiry."""
        return str(uuid.uuid4()), datetime.now(timezone.utc) + self._refresh_ttl


def decode_access_token(token: str, secret_key: str) -> AccessClaims | None:
    """Verify an access token and return its claims, or None on any failure.

    Checks the signature, the algorithm, exp, and that iss is
    "account-management". Returning None keeps callers simple: any invalid
    token is unauthenticated.
    """
    try:
        payload = jwt.decode(token, secret_key, algorithms=[ALGORITHM], issuer=ISSUER)
    except JWTError:
        return None
    try:
        return AccessClaims(
            account_id=payload["account_id"],
            issuer=payload["iss"],
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            token_id=payload["jti"],
        )
    except (KeyError, TypeError, ValueError):
        logger.warning("Access token with valid signature is missing required claims")
        return None

"""
auth/service.py -- Registration, login, refresh, and logout.

AuthService owns the session policy: when tokens are minted, rotated, and
revoked. It coordinates an AccountRepository (persistence) and a
TokenIssuer (cryptographic material) and holds no mutable state of its own,
so one instance safely serves every concurrent request.

Session model (kept deliberately as-is, see DESIGN.md):
  - Refresh rotates without invalidating: the presented token stays valid
    until it expires or the account logs out.
  - Logout revokes every refresh token of the account, not only the one
    presented.
  Together these behave like multi-session with a global sign-out.

Error contract: only boundary errors (ValidationError, ConflictError,
UnauthorizedError, InternalError) leave this module. Store and signing
errors are logged here with full detail and re-raised as InternalError
with a generic message.

Plaintext passwords are never logged and are dropped as soon as they have
been hashed or checked.

Layer rule: no imports from api/. core/ is only touched by from_settings().
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from auth.errors import (
    ACCOUNT_NOT_FOUND,
    INCORRECT_PASSWORD,
    INVALID_CREDENTIALS,
    INVALID_REFRESH_TOKEN,
    AccountAlreadyExistsError,
    AccountNotFoundError,
    AuthError,
    ConflictError,
    InternalError,
    RefreshTokenNotFoundError,
    UnauthorizedError,
    ValidationError,
)
from auth.models import Account, IssuedTokens
from auth.passwords import hash_password, is_valid_email, verify_password
from auth.store import AccountRepository
from auth.tokens import TokenIssuer

if TYPE_CHECKING:
    from core.config import Settings

logger = logging.getLogger("accountmgmt.auth")

UNEXPECTED_REGISTER_ERROR = "There was an unexpected error creating the account"
UNEXPECTED_LOGIN_ERROR = "There was an unexpected error logging in"
UNEXPECTED_SESSION_ERROR = "There was an unexpected error validating the session"
UNEXPECTED_LOGOUT_ERROR = "There was an unexpected error logging out"

# Timing equalization dummy hash. Computed once at import so the first
# login is not measurably slower. Login for an unknown email still runs
# bcrypt against this hash, so response time does not reveal which emails
# are registered.
_DUMMY_HASH: str = hash_password("Timing-Equalizer-0!")


class AuthService:
    """Stateless coordinator over an AccountRepository and a TokenIssuer.

    Usage:
        service = AuthService(store, TokenIssuer.from_settings(settings))
        account = service.register("a@b.com", "Passw0rd!")
        tokens = service.login("a@b.com", "Passw0rd!")
        tokens = service.refresh(tokens.refresh_token)
        service.logout(tokens.refresh_token)
    """

    def __init__(
        self,
        store: AccountRepository,
        issuer: TokenIssuer,
        distinguish_login_failures: bool = True,
    ) -> None:
        self._store = store
        self._issuer = issuer
        self._distinguish_login_failures = distinguish_login_failures

    @classmethod
    def from_settings(cls, store: AccountRepository, settings: Settings) -> AuthService:
        return cls(
            store,
            TokenIssuer.from_settings(settings),
            distinguish_login_failures=settings.distinguish_login_failures,
        )

    # ------------------------------------------------------------------
    # Register
    # ------------------------------------------------------------------

    def register(self, email: str, password: str) -> Account:
        """Create an account and return it.

        Raises ValidationError for a malformed email or a password that breaks
        the complexity rules, ConflictError if the email is taken, and
        InternalError for anything else.
        """
        if not is_valid_email(email):
            raise ValidationError("The provided email address is invalid")

        password_hash = hash_password(password)
        del password

        try:
            account = self._store.create_account(email, password_hash)
        except AccountAlreadyExistsError as exc:
            raise ConflictError("An account with this email already exists") from exc
        except AuthError as exc:
            logger.error("Error persisting new account: %s", exc)
            raise InternalError(UNEXPECTED_REGISTER_ERROR) from exc

        logger.info("Account registered (account_id=%s)", account.id)
        return account

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    def login(self, email: str, password: str) -> IssuedTokens:
        """Check credentials and issue a fresh token pair.

        Raises UnauthorizedError with code account_not_found or
        incorrect_password (invalid_credentials for both when failures are
        not distinguished) and InternalError on store or signing failure.
        """
        try:
            account = self._store.get_account_by_email(email)
        except AccountNotFoundError:
            verify_password(password, _DUMMY_HASH)
            raise self._login_failure("No account was found matching this email", ACCOUNT_NOT_FOUND) from None
        except AuthError as exc:
            logger.error("Error getting account for login: %s", exc)
            raise InternalError(UNEXPECTED_LOGIN_ERROR) from exc

        matched = verify_password(password, account.password_hash)
        del password
        if not matched:
            raise self._login_failure("Password is incorrect", INCORRECT_PASSWORD)

        return self.issue(account.id)

    def _login_failure(self, message: str, code: str) -> UnauthorizedError:
        logger.info("Login rejected: %s", code)
        if self._distinguish_login_failures:
            return UnauthorizedError(message, code)
        return UnauthorizedError("Invalid email or password", INVALID_CREDENTIALS)

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    def refresh(self, refresh_token: str) -> IssuedTokens:
        """Exchange a live refresh token for a new token pair.

        The presented token is not deleted and stays usable until it expires
        or the account logs out. Unknown and expired tokens both raise
        UnauthorizedError(invalid_refresh_token); expired rows are left in
        place.
        """
        try:
            session = self._store.get_refresh_token(refresh_token)
        except RefreshTokenNotFoundError:
            raise UnauthorizedError("Your session has expired", INVALID_REFRESH_TOKEN) from None
        except AuthError as exc:
            logger.error("Error getting refresh token: %s", exc)
            raise InternalError(UNEXPECTED_SESSION_ERROR) from exc

        if session.expires_at <= datetime.now(timezone.utc):
            logger.info("Refresh rejected: token expired (account_id=%s)", session.account_id)
            raise UnauthorizedError("Your session has expired", INVALID_REFRESH_TOKEN)

        return self.issue(session.account_id)

    # ------------------------------------------------------------------
    # Issue
    # ------------------------------------------------------------------

    def issue(self, account_id: str) -> IssuedTokens:
        """Mint and persist a refresh token, then mint an access token.

        The refresh token write is not transactional with the access token
        mint. If signing fails after the write, the request fails as a whole
        and the persisted refresh token is orphaned -- still valid, but never
        handed to anyone.
        """
        refresh_token, refresh_expires_at = self._issuer.mint_refresh_token()
        try:
            self._store.create_refresh_token(refresh_token, account_id, refresh_expires_at)
        except AuthError as exc:
            logger.error("Error creating refresh token: %s", exc)
            raise InternalError(UNEXPECTED_LOGIN_ERROR) from exc

        try:
            access_token, access_expires_at = self._issuer.mint_access_token(account_id)
        except AuthError as exc:
            logger.error("Error creating new access token: %s", exc)
            raise InternalError(UNEXPECTED_LOGIN_ERROR) from exc

        expires_in = int((access_expires_at - datetime.now(timezone.utc)).total_seconds())
        return IssuedTokens(
            account_id=account_id,
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=expires_in,
            refresh_expires_at=refresh_expires_at,
        )

    # ------------------------------------------------------------------
    # Logout
    # ------------------------------------------------------------------

    def logout(self, refresh_token: str) -> None:
        """Revoke every refresh token of the account owning refresh_token.

        Idempotent: an unknown token is a success, so a client can retry
        freely and learns nothing about whether its session was still valid.
        """
        try:
            session = self._store.get_refresh_token(refresh_token)
        except RefreshTokenNotFoundError:
            return
        except AuthError as exc:
            logger.error("Error getting refresh token for logout: %s", exc)
            raise InternalError(UNEXPECTED_LOGOUT_ERROR) from exc

        try:
            revoked = self._store.delete_refresh_tokens_for_account(session.account_id)
        except AuthError as exc:
            logger.error("Error deleting refresh tokens: %s", exc)
            raise InternalError(UNEXPECTED_LOGOUT_ERROR) from exc

        logger.info("Logged out account_id=%s (%d sessions revoked)", session.account_id, revoked)

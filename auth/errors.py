"""
auth/errors.py -- Error taxonomy for the account service.

Every error carries a stable machine-readable `code` (clients branch on it)
and a human-readable `message`. Errors raised to the API layer also carry the
HTTP status they map to; api/main.py turns any AuthError into the standard
error envelope with a single exception handler.

Two families live here:
  Boundary errors -- ValidationError, ConflictError, UnauthorizedError,
      InternalError. AuthService raises only these.
  Store / crypto errors -- AccountAlreadyExistsError, NotFoundError and its
      subclasses, StoreError, TokenSigningError. Raised by auth/store.py and
      auth/tokens.py; AuthService translates them before they reach a route.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

# Stable error codes. Document and keep these stable -- clients rely on them.
VALIDATION_ERROR = "validation_error"
ACCOUNT_ALREADY_EXISTS = "account_already_exists"
ACCOUNT_NOT_FOUND = "account_not_found"
INCORRECT_PASSWORD = "incorrect_password"
INVALID_CREDENTIALS = "invalid_credentials"
INVALID_REFRESH_TOKEN = "invalid_refresh_token"
NOT_FOUND = "not_found"
INTERNAL_ERROR = "internal_error"


class AuthError(Exception):
    """Base class for all account service errors."""

    status_code: int = 500
    code: str = INTERNAL_ERROR

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Boundary errors
# ---------------------------------------------------------------------------


class ValidationError(AuthError):
    """Client input is malformed. The message is safe to show to the client."""

    status_code = 422
    code = VALIDATION_ERROR


class ConflictError(AuthError):
    """The request collides with existing state (duplicate email)."""

    status_code = 409
    code = ACCOUNT_ALREADY_EXISTS


class UnauthorizedError(AuthError):
    """Bad credentials or an invalid / expired session."""

    status_code = 401

    def __init__(self, message: str, code: str) -> None:
        super().__init__(message, code)


class InternalError(AuthError):
    """Store or crypto failure. The message must never carry internals."""

    status_code = 500
    code = INTERNAL_ERROR


# ---------------------------------------------------------------------------
# Store / crypto errors
# ---------------------------------------------------------------------------


class NotFoundError(AuthError):
    status_code = 404
    code = NOT_FOUND


class AccountNotFoundError(NotFoundError):
    def __init__(self, message: str = "an account with this email was not found") -> None:
        super().__init__(message)


class RefreshTokenNotFoundError(NotFoundError):
    def __init__(self, message: str = "refresh token not found") -> None:
        super().__init__(message)


class AccountAlreadyExistsError(AuthError):
    status_code = 409
    code = ACCOUNT_ALREADY_EXISTS

    def __init__(self, message: str = "account with this email already exists") -> None:
        super().__init__(message)


class StoreError(AuthError):
    """Unexpected persistence failure, wrapped with context by the store."""


class TokenSigningError(AuthError):
    """The access token could not be signed (key-related internal error)."""

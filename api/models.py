"""
API request and response models for the account service REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Request models only check shape (fields present, strings). Email and
password rules are enforced by auth.service so every caller, not only HTTP,
gets the same validation and the same error codes.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict

from auth.models import IssuedTokens

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/accounts/register."""

    email: str
    password: str


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/accounts/login."""

    email: str
    password: str


class RefreshRequest(BaseModel):
    """Request body for POST /api/v1/accounts/refresh."""

    refresh_token: str


class LogoutRequest(BaseModel):
    """Request body for POST /api/v1/accounts/logout."""

    refresh_token: str


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class RegisterResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str
    account_id: str


class TokenResponse(BaseModel):
    """Response for both login and refresh."""

    model_config = ConfigDict(frozen=True)

    message: str
    account_id: str
    access_token: str
    refresh_token: str
    token_type: str
    expires_in: int  # seconds until the access token expires

    @classmethod
    def from_issued(cls, tokens: IssuedTokens, message: str) -> "TokenResponse":
        """Build a TokenResponse from the service's IssuedTokens."""
        return cls(
            message=message,
            account_id=tokens.account_id,
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            token_type=tokens.token_type,
            expires_in=tokens.expires_in,
        )


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]

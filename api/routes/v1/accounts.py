"""
api/routes/v1/accounts.py -- Account registration and session endpoints.

Routes:
  POST /api/v1/accounts/register   -- create an account; 201 {account_id}
  POST /api/v1/accounts/login      -- email + password -> token pair
  POST /api/v1/accounts/refresh    -- refresh token -> new token pair (rotation)
  POST /api/v1/accounts/logout     -- revoke every session of the token's account

All four are public: they are how a client obtains credentials.

Handlers are plain `def`, not `async def`. Starlette runs them on its worker
thread pool, so bcrypt and blocking database calls never stall the event
loop and each request is handled independently of the others.

Errors: AuthService raises typed AuthError subclasses. They propagate out of
the handler and api/main.py's exception handler renders them into the
standard error envelope with the status each class carries.

Security:
  Cache-Control: no-store on every response that carries tokens.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from api.models import (
    LoginRequest,
    LogoutRequest,
    MessageResponse,
    RefreshRequest,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
)
from auth.service import AuthService

router = APIRouter(prefix="/accounts")


def _token_response(body: TokenResponse) -> JSONResponse:
    resp = JSONResponse(status_code=200, content=body.model_dump())
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/register", response_model=RegisterResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> RegisterResponse:
    """Create an account. Returns 409 if the email is taken, 422 on bad input."""
    service: AuthService = request.app.state.auth_service
    account = service.register(body.email, body.password)
    return RegisterResponse(message="Account created successfully", account_id=account.id)


@router.post("/login", response_model=TokenResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password and issue a token pair."""
    service: AuthService = request.app.state.auth_service
    tokens = service.login(body.email, body.password)
    return _token_response(TokenResponse.from_issued(tokens, "Login successful"))


@router.post("/refresh", response_model=TokenResponse)
def refresh(request: Request, body: RefreshRequest) -> JSONResponse:
    """Exchange a live refresh token for a new token pair.

    The presented refresh token stays valid; only logout revokes it.
    """
    service: AuthService = request.app.state.auth_service
    tokens = service.refresh(body.refresh_token)
    return _token_response(TokenResponse.from_issued(tokens, "Token refreshed successfully"))


@router.post("/logout", response_model=MessageResponse)
def logout(request: Request, body: LogoutRequest) -> MessageResponse:
    """Revoke all sessions of the account. Always 200 unless the store fails."""
    service: AuthService = request.app.state.auth_service
    service.logout(body.refresh_token)
    return MessageResponse(message="Logged out successfully")

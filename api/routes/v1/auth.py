"""
api/routes/v1/auth.py -- Account, session and administration REST endpoints.

Routes:
  POST   /api/v1/auth/register                   -- create account (public)
  POST   /api/v1/auth/authenticate               -- username/password -> bearer token (public)
  POST   /api/v1/auth/logout                     -- revoke current token
  GET    /api/v1/auth/validate                   -- check current token
  POST   /api/v1/auth/renew                      -- swap current token for a short-lived one
  POST   /api/v1/auth/password                   -- change own password
  GET    /api/v1/auth/me                         -- own profile
  PUT    /api/v1/auth/me                         -- overwrite own profile
  POST   /api/v1/auth/users/{username}/disable   -- admin only
  POST   /api/v1/auth/users/{username}/enable    -- admin only
  DELETE /api/v1/auth/users/{username}           -- admin only
  POST   /api/v1/auth/users/{username}/password  -- admin password reset

Handlers only bind parameters and translate outcomes. Authorization is
decided inside AccountService by the shared gate, never here: a handler that
receives a token passes it straight to the service.

Security:
  Cache-Control: no-store on every response that carries a token.
"""

from __future__ import annotations

from typing import TypeVar

from fastapi import APIRouter, Depends, Response

from api.errors import http_error
from api.models import (
    ChangePasswordRequest,
    CredentialsRequest,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
    TokenResponse,
    UserInfoResponse,
    UserInfoUpdate,
)
from auth.dependencies import get_account_service, get_bearer_token
from auth.errors import Outcome
from auth.models import IssuedToken
from auth.service import AccountService

T = TypeVar("T")

router = APIRouter()


def _unwrap(outcome: Outcome[T]) -> T:
    """Return the success value or raise the mapped HTTPException."""
    if not outcome.ok:
        raise http_error(outcome.error)
    return outcome.value


def _token_response(response: Response, issued: IssuedToken) -> TokenResponse:
    response.headers["Cache-Control"] = "no-store"
    return TokenResponse(token=issued.token, expires_at=issued.expires_at)


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/register", response_model=MessageResponse, status_code=201)
def register(body: RegisterRequest, service: AccountService = Depends(get_account_service)) -> MessageResponse:
    """Create a new account. Duplicate usernames return 409."""
    message = _unwrap(
        service.register(
            body.username,
            body.password,
            body.first_name,
            body.last_name,
            email=body.email,
            phone=body.phone_number,
            is_admin=body.is_admin,
            is_disabled=body.is_disabled,
        )
    )
    return MessageResponse(message=message)


@router.post("/auth/authenticate", response_model=TokenResponse)
def authenticate(
    body: CredentialsRequest,
    response: Response,
    service: AccountService = Depends(get_account_service),
) -> TokenResponse:
    """Exchange username and password for a bearer token.

    Wrong username and wrong password produce the same 401 so the response
    does not reveal which usernames exist.
    """
    issued = _unwrap(service.authenticate(body.username, body.password))
    return _token_response(response, issued)


# ---------------------------------------------------------------------------
# Session endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/logout", response_model=MessageResponse)
def logout(
    token: str = Depends(get_bearer_token),
    service: AccountService = Depends(get_account_service),
) -> MessageResponse:
    return MessageResponse(message=_unwrap(service.logout(token)))


@router.get("/auth/validate", response_model=MessageResponse)
def validate(
    token: str = Depends(get_bearer_token),
    service: AccountService = Depends(get_account_service),
) -> MessageResponse:
    return MessageResponse(message=_unwrap(service.validate_token(token)))


@router.post("/auth/renew", response_model=TokenResponse)
def renew(
    response: Response,
    token: str = Depends(get_bearer_token),
    service: AccountService = Depends(get_account_service),
) -> TokenResponse:
    """Replace the current token with a new, short-lived one. The old token stops working."""
    issued = _unwrap(service.renew_token(token))
    return _token_response(response, issued)


# ---------------------------------------------------------------------------
# Self-service endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/password", response_model=MessageResponse)
def change_password(
    body: ChangePasswordRequest,
    token: str = Depends(get_bearer_token),
    service: AccountService = Depends(get_account_service),
) -> MessageResponse:
    outcome = service.change_password(token, body.username, body.old_password, body.new_password)
    return MessageResponse(message=_unwrap(outcome))


@router.get("/auth/me", response_model=UserInfoResponse)
def get_me(
    token: str = Depends(get_bearer_token),
    service: AccountService = Depends(get_account_service),
) -> UserInfoResponse:
    return UserInfoResponse.from_user_info(_unwrap(service.get_user_info(token)))


@router.put("/auth/me", response_model=MessageResponse)
def update_me(
    body: UserInfoUpdate,
    token: str = Depends(get_bearer_token),
    service: AccountService = Depends(get_account_service),
) -> MessageResponse:
    outcome = service.update_user_info(token, body.first_name, body.last_name, body.email, body.phone_number)
    return MessageResponse(message=_unwrap(outcome))


# ---------------------------------------------------------------------------
# Administration (admin flag checked by the service gate)
# ---------------------------------------------------------------------------


@router.post("/auth/users/{username}/disable", response_model=MessageResponse)
def disable_user(
    username: str,
    token: str = Depends(get_bearer_token),
    service: AccountService = Depends(get_account_service),
) -> MessageResponse:
    return MessageResponse(message=_unwrap(service.disable_user(token, username)))


@router.post("/auth/users/{username}/enable", response_model=MessageResponse)
def enable_user(
    username: str,
    token: str = Depends(get_bearer_token),
    service: AccountService = Depends(get_account_service),
) -> MessageResponse:
    return MessageResponse(message=_unwrap(service.enable_user(token, username)))


@router.delete("/auth/users/{username}", response_model=MessageResponse)
def delete_user(
    username: str,
    token: str = Depends(get_bearer_token),
    service: AccountService = Depends(get_account_service),
) -> MessageResponse:
    return MessageResponse(message=_unwrap(service.delete_user(token, username)))


@router.post("/auth/users/{username}/password", response_model=MessageResponse)
def reset_password(
    username: str,
    body: ResetPasswordRequest,
    token: str = Depends(get_bearer_token),
    service: AccountService = Depends(get_account_service),
) -> MessageResponse:
    return MessageResponse(message=_unwrap(service.reset_password(token, username, body.new_password)))

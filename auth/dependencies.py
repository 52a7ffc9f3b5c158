"""
auth/dependencies.py -- FastAPI Depends() helpers for the account routes.

get_bearer_token() extracts the raw token from "Authorization: Bearer <token>".
It does NOT validate it -- validation belongs to AuthorizationGate, which
every AccountService operation runs. Keeping the two apart means a route can
never authorize a request on its own.

get_account_service() returns the AccountService wired up in the app lifespan.

Layer rule: auth/dependencies.py may import from fastapi (for Request /
HTTPException) because this module is part of the FastAPI dependency
injection system. It must not import from api/.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.errors import ErrorKind
from auth.service import AccountService


def try_get_bearer_token(request: Request) -> str | None:
    """Return the bearer token from the Authorization header, or None."""
    auth_header = request.headers.get("Authorization", "")
    scheme, _, credentials = auth_header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    token = credentials.strip()
    return token or None


def get_bearer_token(request: Request) -> str:
    """Require a bearer token. Raises HTTP 401 (token_required) if absent.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(token: str = Depends(get_bearer_token)): ...
    """
    token = try_get_bearer_token(request)
    if token is None:
        raise HTTPException(
            status_code=401,
            detail={
                "code": ErrorKind.TOKEN_REQUIRED.value,
                "message": ErrorKind.TOKEN_REQUIRED.message,
                "status": ErrorKind.TOKEN_REQUIRED.status,
            },
            headers={"WWW-Authenticate": "Bearer"},
        )
    return token


def get_account_service(request: Request) -> AccountService:
    return request.app.state.accounts

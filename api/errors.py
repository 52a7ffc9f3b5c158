"""
api/errors.py -- Map service ErrorKinds onto HTTP responses.

The service layer reports failures as ErrorKind values and knows nothing about
HTTP. This module is the single place that decides which HTTP status each kind
becomes, and builds the shared ErrorResponse envelope.
"""

from __future__ import annotations

from fastapi import HTTPException

from api.models import ErrorDetail
from auth.errors import ErrorKind

HTTP_STATUS: dict[ErrorKind, int] = {
    ErrorKind.INTERNAL: 500,
    ErrorKind.BAD_REQUEST: 422,
    ErrorKind.INVALID_CREDENTIALS: 401,
    ErrorKind.TOKEN_EXPIRED: 401,
    ErrorKind.TOKEN_INVALID: 401,
    ErrorKind.TOKEN_REQUIRED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.ACCOUNT_DISABLED: 403,
    ErrorKind.USER_NOT_FOUND: 404,
    ErrorKind.USER_EXISTS: 409,
}


def error_detail(kind: ErrorKind) -> dict:
    return ErrorDetail(code=kind.value, message=kind.message, status=kind.status).model_dump()


def http_error(kind: ErrorKind) -> HTTPException:
    """Build the HTTPException for a failed outcome. Callers raise it.

    401s carry WWW-Authenticate so standards-aware clients know to re-authenticate.
    """
    status_code = HTTP_STATUS[kind]
    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    return HTTPException(status_code=status_code, detail=error_detail(kind), headers=headers)

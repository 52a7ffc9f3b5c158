"""
auth/errors.py -- Error taxonomy and the tagged outcome returned by AccountService.

Every service operation returns an Outcome: either a success value or exactly
one ErrorKind. The service never raises across its own boundary; the transport
layer (api/errors.py) maps each kind to an HTTP status.

The numeric status codes are part of the public contract -- clients written
against earlier releases branch on them.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Named failure kinds. The value is the machine-readable error code."""

    INTERNAL = "internal_error"
    BAD_REQUEST = "bad_request"
    INVALID_CREDENTIALS = "invalid_credentials"
    TOKEN_EXPIRED = "token_expired"
    TOKEN_INVALID = "token_invalid"
    TOKEN_REQUIRED = "token_required"
    FORBIDDEN = "forbidden"
    USER_NOT_FOUND = "user_not_found"
    USER_EXISTS = "user_exists"
    ACCOUNT_DISABLED = "account_disabled"

    @property
    def status(self) -> int:
        """Numeric status code (1000s general, 2000s authn, 3000s authz, 4000s user)."""
        return _STATUS_CODES[self]

    @property
    def message(self) -> str:
        """Client-safe description. Never includes internal detail."""
        return _MESSAGES[self]


_STATUS_CODES: dict[ErrorKind, int] = {
    ErrorKind.INTERNAL: 1000,
    ErrorKind.BAD_REQUEST: 1001,
    ErrorKind.INVALID_CREDENTIALS: 2001,
    ErrorKind.TOKEN_EXPIRED: 2003,
    ErrorKind.TOKEN_INVALID: 2004,
    ErrorKind.TOKEN_REQUIRED: 2005,
    ErrorKind.FORBIDDEN: 3000,
    ErrorKind.USER_NOT_FOUND: 4000,
    ErrorKind.USER_EXISTS: 4001,
    ErrorKind.ACCOUNT_DISABLED: 4002,
}

_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.INTERNAL: "An error occurred while processing your request. Please try again later.",
    ErrorKind.BAD_REQUEST: "The request was invalid or could not be understood by the server.",
    ErrorKind.INVALID_CREDENTIALS: "The username or password is incorrect. Please try again.",
    ErrorKind.TOKEN_EXPIRED: "Token has expired. Please authenticate again.",
    ErrorKind.TOKEN_INVALID: "The token is invalid. Please authenticate again.",
    ErrorKind.TOKEN_REQUIRED: "An authentication token is required to access this resource.",
    ErrorKind.FORBIDDEN: "You don't have permission to perform this action.",
    ErrorKind.USER_NOT_FOUND: "The user was not found.",
    ErrorKind.USER_EXISTS: "The username already exists. Please choose a different username.",
    ErrorKind.ACCOUNT_DISABLED: "User account is disabled. Please contact the administrator for further assistance.",
}


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Tagged result of a service operation.

    Exactly one of value / error is meaningful: error is None on success.
    Use Outcome.success(...) / Outcome.failure(...) rather than the constructor.
    """

    value: T | None = None
    error: ErrorKind | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T | None = None) -> Outcome[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, error: ErrorKind) -> Outcome[T]:
        return cls(error=error)

"""
auth/models.py -- Domain dataclasses for credential and identity records.

Pattern: Data class (pure data container, zero logic). The store maps rows to
these classes; the token engine, gate and service do the work.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Credential:
    """Secret material and session state for one account.

    user_id is the join key to UserInfo and is never reassigned after
    registration.

    password holds a bcrypt hash, never the plaintext secret.

    token has three meaningful shapes:
      None -- no token was ever issued
      ""   -- the token was revoked by logout (never matches a lookup)
      hex  -- the single live or expired token for this account

    is_admin / is_disabled are tri-state: None and False both mean "no".
    """

    user_id: str
    username: str
    password: str
    created_at: datetime
    last_login: datetime | None = None
    last_password_change: datetime | None = None
    token: str | None = None
    token_expires: datetime | None = None
    is_admin: bool | None = None
    is_disabled: bool | None = None


@dataclass
class UserInfo:
    """Profile data paired one-to-one with a Credential by user_id."""

    user_id: str
    first_name: str
    last_name: str
    email: str | None = None
    phone_number: str | None = None


@dataclass(frozen=True)
class IssuedToken:
    """A freshly minted bearer token and the instant it stops being valid."""

    token: str
    expires_at: datetime

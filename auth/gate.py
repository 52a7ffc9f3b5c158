"""
auth/gate.py -- Authorization gate shared by every token-bearing operation.

resolve() turns a bearer token into a Credential. authorize() decides whether
that credential may act at the requested Role. check() does both and converts
any refusal into an ErrorKind -- AccountService calls check() and nothing else,
so the Disabled -> Expired -> Forbidden order is defined in exactly one place.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from auth.errors import ErrorKind
from auth.models import Credential
from auth.tokens import TokenLifecycle, TokenState

if TYPE_CHECKING:
    from auth.store import CredentialStore


class Role(str, Enum):
    """Privilege an operation requires of its caller."""

    SELF = "self"  # any resolved account acting on itself
    ADMIN = "admin"  # account whose is_admin flag is True


class Decision(str, Enum):
    AUTHORIZED = "authorized"
    DISABLED = "disabled"
    EXPIRED = "expired"
    FORBIDDEN = "forbidden"


_DECISION_ERRORS: dict[Decision, ErrorKind] = {
    Decision.DISABLED: ErrorKind.ACCOUNT_DISABLED,
    Decision.EXPIRED: ErrorKind.TOKEN_EXPIRED,
    Decision.FORBIDDEN: ErrorKind.FORBIDDEN,
}


@dataclass(frozen=True)
class GateResult:
    """caller is set only when error is None."""

    caller: Credential | None = None
    error: ErrorKind | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class AuthorizationGate:
    def __init__(self, store: CredentialStore, tokens: TokenLifecycle) -> None:
        self._store = store
        self._tokens = tokens

    def resolve(self, token: str | None) -> Credential | None:
        """Return the account holding exactly this token, or None."""
        if not token:
            return None
        return self._store.get_by_token(token)

    def authorize(self, record: Credential, role: Role) -> Decision:
        state = self._tokens.validate(record)
        if state is TokenState.DISABLED:
            return Decision.DISABLED
        if state is TokenState.EXPIRED:
            return Decision.EXPIRED
        if role is Role.ADMIN and record.is_admin is not True:
            return Decision.FORBIDDEN
        return Decision.AUTHORIZED

    def check(self, token: str | None, role: Role) -> GateResult:
        """Resolve and authorize in one step.

        Failure kinds: TOKEN_INVALID (no match), ACCOUNT_DISABLED,
        TOKEN_EXPIRED, FORBIDDEN.
        """
        record = self.resolve(token)
        if record is None:
            return GateResult(error=ErrorKind.TOKEN_INVALID)
        decision = self.authorize(record, role)
        if decision is not Decision.AUTHORIZED:
            return GateResult(error=_DECISION_ERRORS[decision])
        return GateResult(caller=record)

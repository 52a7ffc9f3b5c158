"""
auth/tokens.py -- Token lifecycle: issue, validate, revoke.

Per-account token phases:

    NO_TOKEN --issue--> ACTIVE --time passes--> EXPIRED
                          |                        |
                        revoke                  issue
                          v                        |
                       REVOKED --issue--> ACTIVE <-+

An account holds at most one token. issue() overwrites whatever was there,
so the previous token stops resolving the moment a new one is written.

Validation order matters: a disabled account reports DISABLED even when its
token has also expired. Expiry is strict -- a token whose expiry equals "now"
is still valid.

revoke() writes "" (not NULL) and sets the expiry to now. The store never
matches "" on lookup, so a revoked token can never validate again.

Design decisions:
  Tokens are derived with auth.hashing.derive() from username + stored secret
  hash + the issue instant. They are opaque to clients; the store is the only
  source of truth for validity.

  The clock is injected (clock=...) so the TTL boundary is testable without
  sleeping. It must return timezone-aware UTC datetimes.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import TYPE_CHECKING, Callable

from auth.hashing import derive
from auth.models import Credential, IssuedToken

if TYPE_CHECKING:
    from auth.store import CredentialStore


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenState(str, Enum):
    """Result of validate(): why a resolved token does or does not authorize."""

    VALID = "valid"
    EXPIRED = "expired"
    DISABLED = "disabled"


class TokenPhase(str, Enum):
    """Where an account sits in the token lifecycle (informational)."""

    NO_TOKEN = "no_token"
    ACTIVE = "active"
    EXPIRED = "expired"
    REVOKED = "revoked"


class TokenLifecycle:
    """Mints, checks and revokes the single bearer token of an account.

    Usage:
        tokens = TokenLifecycle(store, algorithm="sha256")
        issued = tokens.issue(credential, ttl_seconds=3600)
        tokens.validate(credential)   # TokenState.VALID
        tokens.revoke(credential)
    """

    def __init__(
        self,
        store: CredentialStore,
        algorithm: str = "sha256",
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._algorithm = algorithm
        self._clock = clock

    @property
    def algorithm(self) -> str:
        return self._algorithm

    def now(self) -> datetime:
        return self._clock()

    def issue(
        self,
        record: Credential,
        ttl_seconds: int,
        expected_token: str | None = None,
        **fields,
    ) -> IssuedToken | None:
        """Mint a token valid for ttl_seconds and persist it on the record.

        With expected_token, the write is a compare-and-swap against the
        token the caller resolved; None is returned if it no longer matches.
        Without it, the write is an unconditional overwrite (login), and any
        extra credential fields (e.g. last_login) go into the same UPDATE.

        Store exceptions propagate to the caller.
        """
        now = self.now()
        token = derive(self._algorithm, record.username, record.password, at=now)
        expires = now + timedelta(seconds=ttl_seconds)

        if expected_token is None:
            self._store.update_credential(record.user_id, token=token, token_expires=expires, **fields)
        elif fields:
            raise ValueError("extra fields are only written by an unconditional issue")
        elif not self._store.swap_token(record.user_id, expected_token, token, expires):
            return None

        record.token = token
        record.token_expires = expires
        for name, value in fields.items():
            setattr(record, name, value)
        return IssuedToken(token=token, expires_at=expires)

    def validate(self, record: Credential) -> TokenState:
        if record.is_disabled is True:
            return TokenState.DISABLED
        # A token without an expiry was never issued by issue(); do not trust it.
        if record.token_expires is None or record.token_expires < self.now():
            return TokenState.EXPIRED
        return TokenState.VALID

    def revoke(self, record: Credential) -> bool:
        """Clear the token to "" and stamp the expiry to now.

        Returns False if the token changed since the record was resolved.
        """
        if not record.token:
            return False
        now = self.now()
        if not self._store.swap_token(record.user_id, record.token, "", now):
            return False
        record.token = ""
        record.token_expires = now
        return True

    def phase(self, record: Credential) -> TokenPhase:
        if record.token is None:
            return TokenPhase.NO_TOKEN
        if record.token == "":
            return TokenPhase.REVOKED
        if record.token_expires is None or record.token_expires < self.now():
            return TokenPhase.EXPIRED
        return TokenPhase.ACTIVE

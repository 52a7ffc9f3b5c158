"""
auth/service.py -- Account operations built on the token lifecycle and the gate.

Every public method returns an Outcome and never raises. Unexpected failures
(store errors, driver errors) are logged with a traceback and reported as
ErrorKind.INTERNAL, so no internal detail reaches the caller. Nothing is
retried.

Operations and the Role they require:
  register, authenticate                       -- public (credentials, no token)
  logout, validate_token, renew_token          -- SELF
  change_password, get_user_info,
  update_user_info                             -- SELF
  disable_user, enable_user, delete_user,
  reset_password                               -- ADMIN

Every token-bearing operation starts with self._gate.check(token, role). Do
NOT re-derive the disabled / expired / admin checks inline.

Security:
  Secrets are bcrypt-hashed before storage. authenticate() always runs bcrypt,
  against DUMMY_HASH when the username is unknown, so response time does not
  reveal which usernames exist.
  Secrets and tokens are never logged.
"""

from __future__ import annotations

import functools
import logging
from typing import Callable

from sqlalchemy.exc import IntegrityError

from auth.errors import ErrorKind, Outcome
from auth.gate import AuthorizationGate, Role
from auth.hashing import DUMMY_HASH, derive, hash_secret, secret_too_long, verify_secret
from auth.models import Credential, IssuedToken, UserInfo
from auth.store import CredentialStore
from auth.tokens import TokenLifecycle, utcnow
from core.config import Settings, get_settings

logger = logging.getLogger("authengine.service")


def _boundary(method: Callable[..., Outcome]) -> Callable[..., Outcome]:
    """Convert any exception escaping a service method into an INTERNAL outcome."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs) -> Outcome:
        try:
            return method(self, *args, **kwargs)
        except Exception:
            logger.exception("Unhandled error in %s", method.__name__)
            return Outcome.failure(ErrorKind.INTERNAL)

    return wrapper


class AccountService:
    """Registration, authentication, session and account administration.

    Usage:
        service = AccountService(CredentialStore())
        service.register("alice", "pw1", "Alice", "A")
        outcome = service.authenticate("alice", "pw1")
        if outcome.ok:
            token = outcome.value.token
    """

    def __init__(
        self,
        store: CredentialStore,
        settings: Settings | None = None,
        clock: Callable | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._store = store
        self._tokens = TokenLifecycle(store, algorithm=self._settings.hash_algorithm, clock=clock or utcnow)
        self._gate = AuthorizationGate(store, self._tokens)

    @property
    def tokens(self) -> TokenLifecycle:
        return self._tokens

    @property
    def gate(self) -> AuthorizationGate:
        return self._gate

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    @_boundary
    def register(
        self,
        username: str,
        secret: str,
        first_name: str,
        last_name: str,
        email: str | None = None,
        phone: str | None = None,
        is_admin: bool = False,
        is_disabled: bool = False,
    ) -> Outcome[str]:
        """Create the paired credential and identity records.

        The username check here is only a fast path; the UNIQUE constraint
        in the store decides races between concurrent registrations.
        """
        if not username or not secret or secret_too_long(secret):
            return Outcome.failure(ErrorKind.BAD_REQUEST)
        if self._store.get_by_username(username) is not None:
            logger.info("Registration rejected: username %r already exists", username)
            return Outcome.failure(ErrorKind.USER_EXISTS)

        now = self._tokens.now()
        hashed = hash_secret(secret, self._settings.bcrypt_rounds)
        user_id = derive(self._tokens.algorithm, username, hashed, at=now)
        credential = Credential(
            user_id=user_id,
            username=username,
            password=hashed,
            created_at=now,
            is_admin=is_admin,
            is_disabled=is_disabled,
        )
        info = UserInfo(
            user_id=user_id,
            first_name=first_name,
            last_name=last_name,
            email=email,
            phone_number=phone,
        )
        try:
            self._store.create_account(credential, info)
        except IntegrityError:
            if self._store.get_by_username(username) is not None:
                logger.info("Registration lost race: username %r already exists", username)
                return Outcome.failure(ErrorKind.USER_EXISTS)
            raise

        logger.info("Registered user %r (admin=%s, disabled=%s)", username, is_admin, is_disabled)
        return Outcome.success("User registered successfully")

    @_boundary
    def authenticate(self, username: str, secret: str) -> Outcome[IssuedToken]:
        if not username or not secret or secret_too_long(secret):
            return Outcome.failure(ErrorKind.BAD_REQUEST)

        record = self._store.get_by_username(username)
        if record is None:
            # Equalize timing -- do NOT return before running bcrypt.
            verify_secret(secret, DUMMY_HASH)
            return Outcome.failure(ErrorKind.INVALID_CREDENTIALS)
        if not verify_secret(secret, record.password):
            return Outcome.failure(ErrorKind.INVALID_CREDENTIALS)
        if record.is_disabled is True:
            logger.info("Login refused for disabled account %r", username)
            return Outcome.failure(ErrorKind.ACCOUNT_DISABLED)

        issued = self._tokens.issue(record, self._settings.login_token_ttl_seconds, last_login=self._tokens.now())
        logger.info("User %r authenticated", username)
        return Outcome.success(issued)

    # ------------------------------------------------------------------
    # Session operations (Role.SELF)
    # ------------------------------------------------------------------

    @_boundary
    def logout(self, token: str | None) -> Outcome[str]:
        gate = self._gate.check(token, Role.SELF)
        if not gate.ok:
            return Outcome.failure(gate.error)
        if not self._tokens.revoke(gate.caller):
            return Outcome.failure(ErrorKind.TOKEN_INVALID)
        logger.info("User %r logged out", gate.caller.username)
        return Outcome.success("User logged out successfully")

    @_boundary
    def validate_token(self, token: str | None) -> Outcome[str]:
        gate = self._gate.check(token, Role.SELF)
        if not gate.ok:
            return Outcome.failure(gate.error)
        return Outcome.success("Token is valid")

    @_boundary
    def renew_token(self, token: str | None) -> Outcome[IssuedToken]:
        gate = self._gate.check(token, Role.SELF)
        if not gate.ok:
            return Outcome.failure(gate.error)
        issued = self._tokens.issue(
            gate.caller,
            self._settings.renewed_token_ttl_seconds,
            expected_token=gate.caller.token,
        )
        if issued is None:
            return Outcome.failure(ErrorKind.TOKEN_INVALID)
        return Outcome.success(issued)

    # ------------------------------------------------------------------
    # Self-service account operations (Role.SELF)
    # ------------------------------------------------------------------

    @_boundary
    def change_password(self, token: str | None, username: str, old_secret: str, new_secret: str) -> Outcome[str]:
        gate = self._gate.check(token, Role.SELF)
        if not gate.ok:
            return Outcome.failure(gate.error)
        if not new_secret or secret_too_long(new_secret):
            return Outcome.failure(ErrorKind.BAD_REQUEST)
        caller = gate.caller
        if caller.username != username or not verify_secret(old_secret or "", caller.password):
            logger.info("Password change refused for %r: credentials mismatch", caller.username)
            return Outcome.failure(ErrorKind.INVALID_CREDENTIALS)
        self._store.update_credential(
            caller.user_id,
            password=hash_secret(new_secret, self._settings.bcrypt_rounds),
            last_password_change=self._tokens.now(),
        )
        logger.info("User %r changed password", caller.username)
        return Outcome.success("Password changed successfully")

    @_boundary
    def get_user_info(self, token: str | None) -> Outcome[UserInfo]:
        gate = self._gate.check(token, Role.SELF)
        if not gate.ok:
            return Outcome.failure(gate.error)
        info = self._store.get_user_info(gate.caller.user_id)
        if info is None:
            logger.warning("Credential %r has no identity record", gate.caller.username)
            return Outcome.failure(ErrorKind.USER_NOT_FOUND)
        return Outcome.success(info)

    @_boundary
    def update_user_info(
        self,
        token: str | None,
        first_name: str,
        last_name: str,
        email: str | None,
        phone: str | None,
    ) -> Outcome[str]:
        gate = self._gate.check(token, Role.SELF)
        if not gate.ok:
            return Outcome.failure(gate.error)
        updated = self._store.update_user_info(
            gate.caller.user_id,
            first_name=first_name,
            last_name=last_name,
            email=email,
            phone_number=phone,
        )
        if not updated:
            logger.warning("Credential %r has no identity record", gate.caller.username)
            return Outcome.failure(ErrorKind.USER_NOT_FOUND)
        return Outcome.success("User information updated successfully")

    # ------------------------------------------------------------------
    # Administration (Role.ADMIN)
    # ------------------------------------------------------------------

    @_boundary
    def disable_user(self, token: str | None, target_username: str) -> Outcome[str]:
        return self._set_disabled(token, target_username, True)

    @_boundary
    def enable_user(self, token: str | None, target_username: str) -> Outcome[str]:
        return self._set_disabled(token, target_username, False)

    @_boundary
    def delete_user(self, token: str | None, target_username: str) -> Outcome[str]:
        gate = self._gate.check(token, Role.ADMIN)
        if not gate.ok:
            return self._refused(gate.error, target_username)
        target = self._store.get_by_username(target_username)
        if target is None or not self._store.delete_account(target.user_id):
            return Outcome.failure(ErrorKind.USER_NOT_FOUND)
        logger.info("Admin %r deleted user %r", gate.caller.username, target_username)
        return Outcome.success("User deleted successfully")

    @_boundary
    def reset_password(self, token: str | None, target_username: str, new_secret: str) -> Outcome[str]:
        gate = self._gate.check(token, Role.ADMIN)
        if not gate.ok:
            return self._refused(gate.error, target_username)
        if not new_secret or secret_too_long(new_secret):
            return Outcome.failure(ErrorKind.BAD_REQUEST)
        target = self._store.get_by_username(target_username)
        if target is None:
            return Outcome.failure(ErrorKind.USER_NOT_FOUND)
        updated = self._store.update_credential(
            target.user_id,
            password=hash_secret(new_secret, self._settings.bcrypt_rounds),
            last_password_change=self._tokens.now(),
        )
        if not updated:
            return Outcome.failure(ErrorKind.USER_NOT_FOUND)
        logger.info("Admin %r reset password for %r", gate.caller.username, target_username)
        return Outcome.success("Password reset successfully")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _set_disabled(self, token: str | None, target_username: str, disabled: bool) -> Outcome[str]:
        gate = self._gate.check(token, Role.ADMIN)
        if not gate.ok:
            return self._refused(gate.error, target_username)
        target = self._store.get_by_username(target_username)
        if target is None or not self._store.update_credential(target.user_id, is_disabled=disabled):
            return Outcome.failure(ErrorKind.USER_NOT_FOUND)
        action = "disabled" if disabled else "enabled"
        logger.info("Admin %r %s user %r", gate.caller.username, action, target_username)
        return Outcome.success(f"User {action} successfully")

    @staticmethod
    def _refused(error: ErrorKind, target_username: str) -> Outcome:
        if error is ErrorKind.FORBIDDEN:
            logger.warning("Non-admin attempted an admin operation on %r", target_username)
        return Outcome.failure(error)

"""
auth/store.py -- SQLAlchemy Core persistence layer for credential and identity records.

Pattern: Repository + Data Mapper.
CredentialStore is the repository; _row_to_credential / _row_to_user_info are
the mappers. Service and route code never touches SQL directly.

Schema:
  credentials  -- one row per account; user_id primary key, UNIQUE(username)
  user_info    -- one row per account; user_id primary key and foreign key to
                  credentials.user_id with ON DELETE CASCADE

Concurrency:
  UNIQUE(username) is the enforcement point for username uniqueness. The
  service's look-before-insert check is only a fast path; a concurrent
  duplicate surfaces here as sqlalchemy.exc.IntegrityError.

  swap_token() is a compare-and-swap: the UPDATE only matches while the token
  column still holds the value the caller resolved. Logout and renewal use it
  so two requests racing on one token cannot both succeed.

Security:
  All queries use bound parameters. No f-strings in SQL.
  An empty or missing token never matches a lookup, so revoked tokens ("")
  can never resolve to an account.

Timestamps are stored as ISO 8601 text (UTC, with offset) and mapped back to
aware datetimes.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import Boolean, Column, ForeignKey, MetaData, String, Table, Text, create_engine, event, text
from sqlalchemy.engine import Engine

from auth.models import Credential, UserInfo
from core.config import get_settings

logger = logging.getLogger("authengine.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_credentials = Table(
    "credentials",
    _metadata,
    Column("user_id", String(128), primary_key=True),  # derived hex digest
    Column("username", String(255), nullable=False, unique=True),
    Column("password", Text, nullable=False),  # bcrypt hash
    Column("created_at", String(40), nullable=False),
    Column("last_login", String(40)),
    Column("last_password_change", String(40)),
    Column("token", String(128), index=True),  # NULL = never issued, "" = revoked
    Column("token_expires", String(40)),
    Column("is_admin", Boolean),
    Column("is_disabled", Boolean),
)

_user_info = Table(
    "user_info",
    _metadata,
    Column(
        "user_id",
        String(128),
        ForeignKey("credentials.user_id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("first_name", Text, nullable=False),
    Column("last_name", Text, nullable=False),
    Column("email", Text),
    Column("phone_number", Text),
)

_DATETIME_FIELDS = {"created_at", "last_login", "last_password_change", "token_expires"}


# ---------------------------------------------------------------------------
# SQLite connection setup
# ---------------------------------------------------------------------------


def _configure_sqlite(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode and foreign key enforcement.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool. foreign_keys=ON is what makes the user_info
    ON DELETE CASCADE fire.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _to_text(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _from_text(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _column_values(fields: dict) -> dict:
    return {k: (_to_text(v) if k in _DATETIME_FIELDS else v) for k, v in fields.items()}


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class CredentialStore:
    """Repository for Credential and UserInfo records.

    Usage:
        store = CredentialStore()
        store.create_account(credential, info)
        cred = store.get_by_username("alice")
        store.close()
    """

    # Columns callers may change through update_credential(). user_id and
    # username are immutable; token writes that must not race go through
    # swap_token().
    _MUTABLE_CREDENTIAL_FIELDS: set = {
        "password",
        "last_login",
        "last_password_change",
        "token",
        "token_expires",
        "is_admin",
        "is_disabled",
    }
    _MUTABLE_INFO_FIELDS: set = {"first_name", "last_name", "email", "phone_number"}

    def __init__(self, db_url: str | None = None) -> None:
        db_url = db_url or get_settings().database_url
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _configure_sqlite)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception:
            logger.exception("Credential store ping failed")
            return False
        return True

    def has_users(self) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(text("SELECT COUNT(*) FROM credentials")).scalar()
        return (result or 0) > 0

    # ------------------------------------------------------------------
    # Account creation / removal
    # ------------------------------------------------------------------

    def create_account(self, credential: Credential, info: UserInfo) -> None:
        """Insert the paired credential and identity rows in one transaction.

        Raises sqlalchemy.exc.IntegrityError if the username (or the derived
        user_id) already exists. Nothing is written in that case.
        """
        with self.engine.connect() as conn:
            conn.execute(
                _credentials.insert().values(
                    user_id=credential.user_id,
                    username=credential.username,
                    password=credential.password,
                    created_at=_to_text(credential.created_at),
                    last_login=_to_text(credential.last_login),
                    last_password_change=_to_text(credential.last_password_change),
                    token=credential.token,
                    token_expires=_to_text(credential.token_expires),
                    is_admin=credential.is_admin,
                    is_disabled=credential.is_disabled,
                )
            )
            conn.execute(
                _user_info.insert().values(
                    user_id=info.user_id,
                    first_name=info.first_name,
                    last_name=info.last_name,
                    email=info.email,
                    phone_number=info.phone_number,
                )
            )
            conn.commit()

    def delete_account(self, user_id: str) -> bool:
        """Delete the identity and credential rows for user_id together.

        The identity row is removed explicitly as well as by the cascade so
        the pair goes away even on engines where foreign keys are not enforced.
        Returns True if a credential row was deleted, False if not found.
        """
        with self.engine.connect() as conn:
            conn.execute(_user_info.delete().where(_user_info.c.user_id == user_id))
            result = conn.execute(_credentials.delete().where(_credentials.c.user_id == user_id))
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Credential queries
    # ------------------------------------------------------------------

    def get_by_username(self, username: str) -> Credential | None:
        """Look up a credential by exact username (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_credentials.select().where(_credentials.c.username == username)).fetchone()
        return _row_to_credential(row) if row is not None else None

    def get_by_id(self, user_id: str) -> Credential | None:
        with self.engine.connect() as conn:
            row = conn.execute(_credentials.select().where(_credentials.c.user_id == user_id)).fetchone()
        return _row_to_credential(row) if row is not None else None

    def get_by_token(self, token: str | None) -> Credential | None:
        """Look up a credential by exact token match.

        Empty and missing tokens short-circuit to None: "" is what logout
        writes, and it must never resolve to an account.
        """
        if not token:
            return None
        with self.engine.connect() as conn:
            row = conn.execute(_credentials.select().where(_credentials.c.token == token)).fetchone()
        return _row_to_credential(row) if row is not None else None

    def update_credential(self, user_id: str, /, **fields) -> bool:
        """Update mutable fields on a credential row.

        datetime values are converted to ISO text. Unknown or immutable field
        names raise ValueError.

        Returns True if a row was updated, False if user_id was not found.
        """
        unknown = set(fields) - self._MUTABLE_CREDENTIAL_FIELDS
        if unknown:
            raise ValueError(f"Unknown credential fields: {unknown!r}")
        if not fields:
            return False
        with self.engine.connect() as conn:
            result = conn.execute(
                _credentials.update().where(_credentials.c.user_id == user_id).values(**_column_values(fields))
            )
            conn.commit()
        return result.rowcount > 0

    def swap_token(self, user_id: str, expected: str, token: str, expires: datetime) -> bool:
        """Replace the token only if it still equals `expected`.

        Returns False when another request changed (or cleared) the token
        between the caller's lookup and this write.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _credentials.update()
                .where((_credentials.c.user_id == user_id) & (_credentials.c.token == expected))
                .values(token=token, token_expires=_to_text(expires))
            )
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Identity queries
    # ------------------------------------------------------------------

    def get_user_info(self, user_id: str) -> UserInfo | None:
        with self.engine.connect() as conn:
            row = conn.execute(_user_info.select().where(_user_info.c.user_id == user_id)).fetchone()
        return _row_to_user_info(row) if row is not None else None

    def update_user_info(self, user_id: str, /, **fields) -> bool:
        """Overwrite profile fields. Returns False if no identity row exists for user_id."""
        unknown = set(fields) - self._MUTABLE_INFO_FIELDS
        if unknown:
            raise ValueError(f"Unknown user_info fields: {unknown!r}")
        if not fields:
            return False
        with self.engine.connect() as conn:
            result = conn.execute(_user_info.update().where(_user_info.c.user_id == user_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_credential(row) -> Credential:
    return Credential(
        user_id=row.user_id,
        username=row.username,
        password=row.password,
        created_at=_from_text(row.created_at),
        last_login=_from_text(row.last_login),
        last_password_change=_from_text(row.last_password_change),
        token=row.token,
        token_expires=_from_text(row.token_expires),
        is_admin=row.is_admin,
        is_disabled=row.is_disabled,
    )


def _row_to_user_info(row) -> UserInfo:
    return UserInfo(
        user_id=row.user_id,
        first_name=row.first_name,
        last_name=row.last_name,
        email=row.email,
        phone_number=row.phone_number,
    )

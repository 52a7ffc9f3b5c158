"""
auth/hashing.py -- Digest derivation and secret hashing.

Two different jobs live here because both are "hash providers":

  Digests: deterministic hex digests (hashlib) used to derive account
       identifiers and bearer tokens from username + secret material + a
       time salt. Output is uppercase hex. Two derivations in the same clock
       tick with the same inputs collide; nothing here guarantees uniqueness.

  Secrets: bcrypt, used directly (no passlib wrapper). Secrets are stored
       only as bcrypt hashes. DUMMY_HASH enables timing equalization in
       AccountService.authenticate() so response time does not reveal whether
       a username exists.

The secret material fed into derive() is always the stored bcrypt hash, never
the plaintext. Identifiers are not secret, so a fast unsalted digest over the
plaintext would hand out an offline guessing oracle.

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

import hashlib
from datetime import datetime

import bcrypt

from core.config import SUPPORTED_HASH_ALGORITHMS, get_settings

_settings = get_settings()

# bcrypt only looks at the first 72 bytes. Longer secrets are rejected by the
# service instead of being silently truncated.
MAX_SECRET_BYTES = 72


# ---------------------------------------------------------------------------
# Digests
# ---------------------------------------------------------------------------


def digest(algorithm: str, value: str) -> str:
    """Return the uppercase hex digest of value under the named algorithm."""
    name = algorithm.lower()
    if name not in SUPPORTED_HASH_ALGORITHMS:
        raise ValueError(f"Unsupported digest algorithm: {algorithm!r}")
    return hashlib.new(name, value.encode("utf-8")).hexdigest().upper()


def derive(algorithm: str, *parts: str, at: datetime) -> str:
    """Digest the concatenated parts salted with the ISO timestamp `at`."""
    return digest(algorithm, "".join(parts) + at.isoformat())


# ---------------------------------------------------------------------------
# Secret hashing (bcrypt)
# ---------------------------------------------------------------------------


def secret_too_long(plain: str) -> bool:
    return len(plain.encode("utf-8")) > MAX_SECRET_BYTES


def hash_secret(plain: str, rounds: int | None = None) -> str:
    """Return a bcrypt hash of the given plaintext secret.

    rounds defaults to the process-wide BCRYPT_ROUNDS setting.
    """
    salt = bcrypt.gensalt(rounds=rounds or _settings.bcrypt_rounds)
    return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")


def verify_secret(plain: str, hashed: str) -> bool:
    """Return True if the plaintext secret matches the bcrypt hash.

    Any bcrypt error (malformed hash, over-long input) counts as a mismatch.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Computed once at module load so the first failed login is not measurably
# slower than later ones.
DUMMY_HASH: str = hash_secret("authengine_timing_dummy")

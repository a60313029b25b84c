"""
auth/passwords.py -- Password hashing, credential checks, and reset tokens.

Security design decisions:
  Passwords: bcrypt used directly (no passlib wrapper). Its cost factor makes
       brute-forcing low-entropy secrets expensive. The _DUMMY_HASH constant
       enables timing equalization in authenticate_user() so response time
       does not reveal whether an email is registered.

  Reset tokens: secrets.token_hex(32) gives 256 bits of entropy. Only the
       SHA-256 digest is persisted, so lookup is an exact match on an indexed
       column and the raw token exists only in the email. bcrypt's slowness
       is unnecessary for a value this long.

Layer rule: no imports from api/ or notify/.
"""

from __future__ import annotations

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt truncates input at 72 bytes. The API layer caps password length
    (Pydantic max_length) well below that.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed hash in the DB -- treat as a mismatch, never as a match.
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("gatekeeper_timing_dummy")


def authenticate_user(store: UserStore, email: str, password: str) -> User | None:
    """Check an email/password pair with timing equalization.

    Always runs bcrypt whether or not the account exists:
    - Unknown email: bcrypt runs against _DUMMY_HASH (same cost as real check)
    - Wrong password: bcrypt runs against the real hash (same cost)

    Returns the User on success, None on any failure.
    """
    user = store.get_by_email(email)
    if user is None or not user.hashed_password:
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.hashed_password):
        return None
    if not user.active:
        return None
    return user


# ---------------------------------------------------------------------------
# Password reset tokens
# ---------------------------------------------------------------------------


def hash_reset_token(raw_token: str) -> str:
    """Return the SHA-256 hex digest stored in place of the raw reset token."""
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


def create_password_reset_token(expire_minutes: int, now: datetime | None = None) -> tuple[str, str, datetime]:
    """Generate a one-time reset token.

    Returns (raw_token, token_hash, expires_at). The raw token goes into the
    email; token_hash and expires_at go into the store.
    """
    now = now or datetime.now(timezone.utc)
    raw_token = secrets.token_hex(32)
    return raw_token, hash_reset_token(raw_token), now + timedelta(minutes=expire_minutes)

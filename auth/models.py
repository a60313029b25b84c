"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and routes do
the work; these types only own the domain shape.

Layer rule: no imports from api/, core/, or notify/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    user = "user"
    guide = "guide"
    lead_guide = "lead-guide"
    admin = "admin"


@dataclass
class User:
    """Represents an account that can sign in to the API.

    email is stored lower-cased and is the login identifier.

    hashed_password is a bcrypt hash and must never be serialized to clients;
    api/models.UserPublic is the outward shape.

    password_changed_at is None until the first password reset. Tokens issued
    before it are rejected by protect().

    password_reset_token holds the SHA-256 hex digest of the emailed reset
    token, never the raw value. Both reset fields are None outside an active
    forgot-password flow.
    """

    name: str
    email: str
    role: str = Role.user.value
    id: int | None = None
    hashed_password: str | None = None
    password_changed_at: str | None = None  # ISO 8601, UTC
    password_reset_token: str | None = None  # SHA-256 hex
    password_reset_expires: str | None = None  # ISO 8601, UTC
    active: bool = True
    created_at: str | None = None

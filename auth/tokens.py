"""
auth/tokens.py -- Signed identity tokens (JWT).

Security design decisions:
  JWT: python-jose with HS256. A token carries the user id ("id"), the
       issued-at time ("iat") and the expiry ("exp"). Nothing else -- role and
       email are re-read from the store on every request so a demotion or
       deletion takes effect immediately.

  TokenService is constructed with an explicit TokenConfig instead of reading
       module-level globals. The API builds one in its lifespan from
       Settings; tests build their own with short expiries.

  verify() raises rather than returning None so protect() can tell the client
       whether to log in again because the token expired or because it was
       tampered with. Both errors are 401 AppErrors.

Layer rule: no imports from api/ or notify/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from jose import ExpiredSignatureError, JWTError, jwt

from core.errors import UnauthorizedError

if TYPE_CHECKING:
    from auth.models import User
    from core.config import Settings

logger = logging.getLogger("gatekeeper.auth")


class InvalidTokenError(UnauthorizedError):
    code = "invalid_token"

    def __init__(self, message: str = "Invalid token. Please log in again!") -> None:
        super().__init__(message)


class ExpiredTokenError(UnauthorizedError):
    code = "token_expired"

    def __init__(self, message: str = "Your token has expired! Please log in again.") -> None:
        super().__init__(message)


@dataclass(frozen=True)
class TokenConfig:
    secret_key: str
    expire_seconds: int
    algorithm: str = "HS256"

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenConfig:
        return cls(secret_key=settings.secret_key, expire_seconds=settings.token_expire_seconds)


@dataclass(frozen=True)
class TokenClaims:
    user_id: int
    issued_at: int  # seconds since epoch


class TokenService:
    """Issues and verifies signed, time-limited identity tokens.

    Usage:
        service = TokenService(TokenConfig(secret_key=..., expire_seconds=3600))
        token = service.issue(user.id)
        claims = service.verify(token)   # TokenClaims or raises
    """

    def __init__(self, config: TokenConfig) -> None:
        self.config = config

    def issue(self, user_id: int, issued_at: datetime | None = None) -> str:
        """Encode a signed JWT for user_id.

        issued_at defaults to now; the expiry is issued_at + expire_seconds.
        """
        issued_at = issued_at or datetime.now(timezone.utc)
        payload = {
            "id": user_id,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + timedelta(seconds=self.config.expire_seconds)).timestamp()),
        }
        return jwt.encode(payload, self.config.secret_key, algorithm=self.config.algorithm)

    def verify(self, token: str) -> TokenClaims:
        """Check signature and expiry and return the token's claims.

        Raises ExpiredTokenError if exp has passed, InvalidTokenError for any
        other defect (bad signature, garbage input, missing claims).
        """
        try:
            payload = jwt.decode(token, self.config.secret_key, algorithms=[self.config.algorithm])
        except ExpiredSignatureError as exc:
            raise ExpiredTokenError() from exc
        except JWTError as exc:
            logger.info("Rejected token: %s", exc)
            raise InvalidTokenError() from exc
        user_id = payload.get("id")
        issued_at = payload.get("iat")
        if not isinstance(user_id, int) or not isinstance(issued_at, int):
            raise InvalidTokenError()
        return TokenClaims(user_id=user_id, issued_at=issued_at)


def password_changed_after(user: User, issued_at: int) -> bool:
    """Return True if the user's password changed after the token's iat.

    Compared at whole-second granularity, matching the JWT claim.
    """
    if not user.password_changed_at:
        return False
    changed = datetime.fromisoformat(user.password_changed_at)
    return int(changed.timestamp()) > issued_at

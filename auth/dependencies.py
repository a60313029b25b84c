"""
auth/dependencies.py -- FastAPI Depends() helpers for route protection.

protect() authenticates the request from an "Authorization: Bearer <token>"
header and resolves the User. It runs four checks in order, each with its
own 401 message so clients know why they must log in again:
  1. Header present and well-formed.
  2. Token signature and expiry (TokenService.verify).
  3. The user the token refers to still exists.
  4. The user's password has not changed since the token was issued.

restrict_to(*roles) builds a dependency on top of protect() that raises 403
unless the resolved user's role is one of roles.

Failures are raised as AppError subclasses and rendered by the single
exception handler in api/main.py.

Layer rule: no imports from api/ or notify/.
  auth/dependencies.py may import from fastapi (for Depends/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from fastapi import Depends, Request

from auth.models import Role, User
from auth.tokens import TokenService, password_changed_after
from core.errors import ForbiddenError, UnauthorizedError

_BEARER_PREFIX = "Bearer "


def get_bearer_token(request: Request) -> str | None:
    """Return the token from "Authorization: Bearer <token>", or None."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith(_BEARER_PREFIX):
        return None
    token = auth_header[len(_BEARER_PREFIX) :].strip()
    return token or None


def protect(request: Request) -> User:
    """Require a valid bearer token. Attaches the user to request.state.user.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(user: User = Depends(protect)): ...
    """
    token = get_bearer_token(request)
    if token is None:
        raise UnauthorizedError("You are not logged in! Please log in to get access.")

    token_service: TokenService = request.app.state.token_service
    claims = token_service.verify(token)

    user = request.app.state.user_store.get_by_id(claims.user_id)
    if user is None or not user.active:
        raise UnauthorizedError("The user belonging to this token does no longer exist.")

    if password_changed_after(user, claims.issued_at):
        raise UnauthorizedError("User recently changed password! Please log in again.")

    request.state.user = user
    return user


def restrict_to(*roles: str | Role | Iterable[str | Role]) -> Callable[[User], User]:
    """Return a dependency that allows only users whose role is in roles.

    Roles may be passed one per argument or as a single list:
        Depends(restrict_to("admin", "lead-guide"))
        Depends(restrict_to(["admin", "lead-guide"]))
    """
    flat: list[str | Role] = []
    for r in roles:
        if isinstance(r, (str, Role)):
            flat.append(r)
        else:
            flat.extend(r)
    allowed = frozenset(r.value if isinstance(r, Role) else r for r in flat)

    def _gate(user: User = Depends(protect)) -> User:
        if user.role not in allowed:
            raise ForbiddenError("You do not have permission to perform this action")
        return user

    return _gate

"""
core/errors.py -- Operational error hierarchy.

An AppError is an expected failure (bad credentials, missing token, forbidden
role, ...) that carries the HTTP status and the message shown to the client.
Handlers raise them and never build error responses themselves; api/main.py
registers the one exception handler that renders them.

Anything that is not an AppError is treated as a programming or infrastructure
fault and rendered as a generic 500 by the catch-all handler.

Layer rule: core/ is the kernel. No imports from api/, auth/, or notify/.
"""

from __future__ import annotations


class AppError(Exception):
    """Base class for operational errors rendered verbatim to the client."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str, status_code: int | None = None, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code

    @property
    def status(self) -> str:
        """Envelope status: fail for client errors (4xx), error for server errors (5xx)."""
        return "fail" if 400 <= self.status_code < 500 else "error"


class BadRequestError(AppError):
    status_code = 400
    code = "bad_request"


class UnauthorizedError(AppError):
    status_code = 401
    code = "unauthorized"


class ForbiddenError(AppError):
    status_code = 403
    code = "forbidden"


class NotFoundError(AppError):
    status_code = 404
    code = "not_found"


class InternalError(AppError):
    """A server-side failure whose partial state has already been cleaned up."""

    status_code = 500
    code = "internal_error"

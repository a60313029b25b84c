"""
tests/test_errors.py -- Unit tests for core/errors.py.

Covers:
  - each subclass carries its HTTP status and code
  - status is "fail" for 4xx and "error" for 5xx
  - per-instance status_code and code overrides
"""

from __future__ import annotations

import pytest

from core.errors import (
    AppError,
    BadRequestError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    UnauthorizedError,
)


@pytest.mark.parametrize(
    "cls,status_code,status",
    [
        (BadRequestError, 400, "fail"),
        (UnauthorizedError, 401, "fail"),
        (ForbiddenError, 403, "fail"),
        (NotFoundError, 404, "fail"),
        (InternalError, 500, "error"),
    ],
)
def test_subclass_status(cls, status_code: int, status: str):
    exc = cls("boom")
    assert exc.status_code == status_code
    assert exc.status == status
    assert exc.message == "boom"
    assert str(exc) == "boom"


def test_overrides_are_per_instance():
    exc = UnauthorizedError("Incorrect email or password", code="bad_credentials")
    assert exc.code == "bad_credentials"
    assert UnauthorizedError("x").code == "unauthorized"

    teapot = AppError("short and stout", status_code=418)
    assert teapot.status == "fail"
    assert AppError("x").status_code == 500

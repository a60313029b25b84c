"""
API request and response models for Gatekeeper REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Field names follow the JSON the web frontend already sends (passwordConfirm);
Python attributes stay snake_case through aliases.
"""

from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, model_validator

from auth.models import User

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Deliberately loose: one "@", a dot in the domain, no whitespace. Deliverability
# is proven by the reset email, not by a regex.
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

# bcrypt only looks at the first 72 bytes.
_PASSWORD_MIN = 8
_PASSWORD_MAX = 72

# Only identity fields are trimmed. Passwords are compared byte for byte.
Trimmed = Annotated[str, StringConstraints(strip_whitespace=True)]


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class SignupRequest(BaseModel):
    """Request body for POST /api/v1/users/signup.

    role is not accepted here: every self-registered account starts as "user".
    """

    model_config = ConfigDict(populate_by_name=True)

    name: Trimmed = Field(min_length=1, max_length=255)
    email: Trimmed = Field(pattern=EMAIL_PATTERN, max_length=255)
    password: str = Field(min_length=_PASSWORD_MIN, max_length=_PASSWORD_MAX)
    password_confirm: str = Field(alias="passwordConfirm", max_length=_PASSWORD_MAX)

    @model_validator(mode="after")
    def passwords_match(self) -> "SignupRequest":
        if self.password != self.password_confirm:
            raise ValueError("Passwords are not the same!")
        return self


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/users/login.

    Both fields are optional at the schema level so a missing one produces the
    route's 400 "Please provide email and password!" rather than a 422.
    """

    email: Optional[Trimmed] = Field(default=None, max_length=255)
    password: Optional[str] = Field(default=None, max_length=_PASSWORD_MAX)


class ForgotPasswordRequest(BaseModel):
    """Request body for POST /api/v1/users/forgotPassword."""

    email: Trimmed = Field(min_length=1, max_length=255)


class ResetPasswordRequest(BaseModel):
    """Request body for PATCH /api/v1/users/resetPassword/{token}."""

    model_config = ConfigDict(populate_by_name=True)

    password: str = Field(min_length=_PASSWORD_MIN, max_length=_PASSWORD_MAX)
    password_confirm: str = Field(alias="passwordConfirm", max_length=_PASSWORD_MAX)

    @model_validator(mode="after")
    def passwords_match(self) -> "ResetPasswordRequest":
        if self.password != self.password_confirm:
            raise ValueError("Passwords are not the same!")
        return self


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserPublic(BaseModel):
    """Outward view of a user. Never carries the password hash or reset fields."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: str
    role: str
    created_at: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "UserPublic":
        """Build a UserPublic from the auth User dataclass."""
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            created_at=user.created_at,
        )


class UserData(BaseModel):
    model_config = ConfigDict(frozen=True)

    user: UserPublic


class SignupResponse(BaseModel):
    """Response body for POST /api/v1/users/signup (201)."""

    model_config = ConfigDict(frozen=True)

    status: str = "success"
    token: str
    data: UserData


class TokenResponse(BaseModel):
    """Response body for login and resetPassword."""

    model_config = ConfigDict(frozen=True)

    status: str = "success"
    token: str


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: str = "success"
    message: str


class UserResponse(BaseModel):
    """Response body for GET /api/v1/users/me."""

    model_config = ConfigDict(frozen=True)

    status: str = "success"
    data: UserData


class UserListResponse(BaseModel):
    """Response body for GET /api/v1/users."""

    model_config = ConfigDict(frozen=True)

    status: str = "success"
    results: int
    data: dict[str, list[UserPublic]]


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses.

    status is "fail" for client errors and "error" for server errors.
    """

    model_config = ConfigDict(frozen=True)

    status: str
    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)

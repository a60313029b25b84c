"""
api/routes/v1/auth.py -- Authentication REST endpoints.

Routes:
  POST  /api/v1/users/signup                -- create account; returns token + user
  POST  /api/v1/users/login                 -- email/password login; returns token
  POST  /api/v1/users/forgotPassword        -- email a one-time reset link
  PATCH /api/v1/users/resetPassword/{token} -- set a new password; returns token
  GET   /api/v1/users/me                    -- current user (requires auth)
  GET   /api/v1/users                       -- list users (admin only)

Security:
  POST /login and POST /forgotPassword are rate-limited per IP (LOGIN_RATE_LIMIT).
  authenticate_user() provides timing equalization -- use it, never inline.
  Cache-Control: no-store on every response that carries a token.
  Login returns the same message for unknown email and wrong password.

Errors are raised, never rendered here. api/main.py owns the responses.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import (
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    ResetPasswordRequest,
    SignupRequest,
    SignupResponse,
    TokenResponse,
    UserData,
    UserListResponse,
    UserPublic,
    UserResponse,
)
from auth.dependencies import protect, restrict_to
from auth.models import Role, User
from auth.passwords import authenticate_user, create_password_reset_token, hash_password, hash_reset_token
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import get_settings
from core.errors import BadRequestError, InternalError, NotFoundError, UnauthorizedError
from notify.mailer import Mailer, MailerError

logger = logging.getLogger("gatekeeper.api.auth")

# Auth policy:
# - POST  /users/signup:                public
# - POST  /users/login:                 public, rate limited
# - POST  /users/forgotPassword:        public, rate limited
# - PATCH /users/resetPassword/{token}: public -- the reset token is the credential
# - GET   /users/me:                    requires auth (protect)
# - GET   /users:                       requires admin (restrict_to)
router = APIRouter()

_settings = get_settings()


def _token_response(status_code: int, content: dict) -> JSONResponse:
    resp = JSONResponse(status_code=status_code, content=content)
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/users/signup", response_model=SignupResponse, status_code=201)
def signup(request: Request, body: SignupRequest) -> JSONResponse:
    """Create a "user"-role account and log it in.

    A duplicate email raises IntegrityError from the store; it propagates to
    the exception handler in api/main.py, which answers 409.
    """
    user_store: UserStore = request.app.state.user_store
    token_service: TokenService = request.app.state.token_service

    new_user = User(
        name=body.name,
        email=body.email,
        role=Role.user.value,
        hashed_password=hash_password(body.password),
    )
    user_id = user_store.create_user(new_user)
    created = user_store.get_by_id(user_id)
    if created is None:
        raise InternalError("User not found after write.")

    logger.info("New account created (user_id=%d)", user_id)
    token = token_service.issue(user_id)
    return _token_response(
        201,
        SignupResponse(token=token, data=UserData(user=UserPublic.from_user(created))).model_dump(),
    )


@limiter.limit(_settings.login_rate_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/users/login", response_model=TokenResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password and return a token.

    Uses authenticate_user() which includes timing equalization. Do NOT
    inline get_by_email() + verify_password() -- that re-introduces the
    timing attack.
    """
    if not body.email or not body.password:
        raise BadRequestError("Please provide email and password!")

    user_store: UserStore = request.app.state.user_store
    user = authenticate_user(user_store, body.email, body.password)
    if user is None:
        logger.info("Failed login attempt")
        raise UnauthorizedError("Incorrect email or password", code="bad_credentials")

    token_service: TokenService = request.app.state.token_service
    token = token_service.issue(user.id)
    return _token_response(200, TokenResponse(token=token).model_dump())


@limiter.limit(_settings.login_rate_limit)
@router.post("/users/forgotPassword", response_model=MessageResponse)
def forgot_password(request: Request, body: ForgotPasswordRequest) -> MessageResponse:
    """Email a one-time password reset link to the account owner.

    The reset token and its expiry are written before the email goes out.
    If the mail server refuses the message both fields are cleared again so
    no usable token is left behind, and the client gets a 500.
    """
    user_store: UserStore = request.app.state.user_store
    mailer: Mailer = request.app.state.mailer

    user = user_store.get_by_email(body.email)
    if user is None or not user.active:
        raise NotFoundError("There is no user with email address.")

    expire_minutes = _settings.password_reset_expire_minutes
    raw_token, token_hash, expires_at = create_password_reset_token(expire_minutes)
    user_store.set_password_reset(user.id, token_hash, expires_at)

    base_url = _settings.public_base_url or str(request.base_url)
    reset_url = base_url.rstrip("/") + request.app.url_path_for("reset_password", token=raw_token)
    message = (
        f"Forgot your password? Submit a PATCH request with your new password and "
        f"passwordConfirm to: {reset_url}.\n"
        f"If you didn't forget your password, please ignore this email!"
    )

    try:
        mailer.send(
            to=user.email,
            subject=f"Your password reset token (valid for {expire_minutes} min)",
            body=message,
        )
    except MailerError as exc:
        user_store.clear_password_reset(user.id)
        logger.warning("Reset email failed for user_id=%d; reset token cleared", user.id)
        raise InternalError("There was an error sending the email. Try again later!") from exc

    return MessageResponse(message="Token sent to email!")


@router.patch("/users/resetPassword/{token}", response_model=TokenResponse, name="reset_password")
def reset_password(request: Request, token: str, body: ResetPasswordRequest) -> JSONResponse:
    """Set a new password using the emailed reset token, then log the user in.

    The token is single use: update_password() clears it together with its
    expiry. password_changed_at is stamped one second in the past so the
    token issued below (iat = now) survives protect()'s changed-password check
    while every earlier session is revoked.
    """
    user_store: UserStore = request.app.state.user_store
    token_service: TokenService = request.app.state.token_service

    now = datetime.now(timezone.utc)
    user = user_store.get_by_reset_token(hash_reset_token(token), now=now)
    if user is None:
        raise BadRequestError("Token is invalid or has expired", code="invalid_reset_token")

    user_store.update_password(user.id, hash_password(body.password), changed_at=now - timedelta(seconds=1))
    logger.info("Password reset completed (user_id=%d)", user.id)

    new_token = token_service.issue(user.id, issued_at=now)
    return _token_response(200, TokenResponse(token=new_token).model_dump())


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/users/me", response_model=UserResponse)
def me(current_user: User = Depends(protect)) -> UserResponse:
    """Return the currently authenticated user."""
    return UserResponse(data=UserData(user=UserPublic.from_user(current_user)))


@router.get("/users", response_model=UserListResponse)
def list_users(request: Request, current_user: User = Depends(restrict_to(Role.admin))) -> UserListResponse:
    """List all accounts. Admin only."""
    user_store: UserStore = request.app.state.user_store
    users = [UserPublic.from_user(u) for u in user_store.list_users()]
    return UserListResponse(results=len(users), data={"users": users})

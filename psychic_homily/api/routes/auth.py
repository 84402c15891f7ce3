"""Authentication routes: password login, magic links and account upkeep.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: API (FastAPI route handlers).
#
# Endpoints:
#   POST /api/v1/auth/register             Create account, start session
#   POST /api/v1/auth/login                Email + password
#   POST /api/v1/auth/logout               Clear the session cookie
#   POST /api/v1/auth/refresh              Re-issue a recently expired JWT
#   POST /api/v1/auth/magic-link           Request a login link
#   POST /api/v1/auth/magic-link/verify    Exchange link token for session
#   POST /api/v1/auth/verify-email/send    Issue a verification token
#   POST /api/v1/auth/verify-email         Confirm the address
#   GET  /api/v1/auth/me                   Current user
#   POST /api/v1/auth/change-password      Requires current password
#   POST /api/v1/auth/recover/request      Request an account recovery token
#   POST /api/v1/auth/recover              Set a new password from it
#
# Sessions are returned both in the JSON body and as an HttpOnly cookie
# so browser clients and API clients use the same endpoints.  Nothing
# here sends email: tokens are logged and, in development only, echoed
# back in the response.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from datetime import timedelta

import structlog
from fastapi import APIRouter, Request, Response

from psychic_homily.api.dependencies import (
    AuthServiceDep,
    CurrentUserDep,
    JWTServiceDep,
    cookie_name,
    extract_token,
)
from psychic_homily.api.schemas import (
    AuthResponse,
    ChangePasswordRequest,
    LoginRequest,
    MagicLinkRequest,
    MessageResponse,
    RecoverAccountRequest,
    RegisterRequest,
    TokenIssuedResponse,
    TokenRequest,
    UserResponse,
)
from psychic_homily.config.settings import Settings
from psychic_homily.models.user import User
from psychic_homily.utils.errors import AuthenticationError

logger = structlog.get_logger(logger_name=__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])

_MAGIC_LINK_SENT = "If an account exists for that email, a login link has been sent."
_RECOVERY_SENT = "If an account exists for that email, a recovery link has been sent."


def _settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or Settings()


def _start_session(request: Request, response: Response, user: User, token: str) -> AuthResponse:
    settings = _settings(request)
    response.set_cookie(
        key=cookie_name(request),
        value=token,
        max_age=settings.jwt_expiry_hours * 3600,
        httponly=True,
        secure=not settings.is_development,
        samesite="lax",
        path="/",
    )
    return AuthResponse(user=user, token=token, expires_in_hours=settings.jwt_expiry_hours)


def _issued(request: Request, message: str, token: str | None) -> TokenIssuedResponse:
    # Identical bodies for known and unknown emails outside development.
    echoed = token if _settings(request).is_development else None
    return TokenIssuedResponse(message=message, token=echoed)


# ── Password auth ─────────────────────────────────────────────────────
@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    request: Request, response: Response, body: RegisterRequest, auth: AuthServiceDep
) -> AuthResponse:
    user, token = await auth.register(
        body.email, body.password, first_name=body.first_name, last_name=body.last_name
    )
    return _start_session(request, response, user, token)


@router.post("/login", response_model=AuthResponse)
async def login(
    request: Request, response: Response, body: LoginRequest, auth: AuthServiceDep
) -> AuthResponse:
    user, token = await auth.login(body.email, body.password)
    return _start_session(request, response, user, token)


@router.post("/logout", response_model=MessageResponse)
async def logout(request: Request, response: Response) -> MessageResponse:
    response.delete_cookie(key=cookie_name(request), path="/")
    return MessageResponse(message="Logged out")


@router.post("/refresh", response_model=AuthResponse)
async def refresh(
    request: Request, response: Response, jwt_service: JWTServiceDep
) -> AuthResponse:
    token = extract_token(request)
    if token is None:
        raise AuthenticationError("Authentication required", code="AUTH_REQUIRED")
    grace = timedelta(hours=_settings(request).jwt_refresh_grace_hours)
    user, new_token = await jwt_service.refresh_token(token, grace)
    return _start_session(request, response, user, new_token)


# ── Magic link ────────────────────────────────────────────────────────
@router.post("/magic-link", response_model=TokenIssuedResponse)
async def request_magic_link(
    request: Request, body: MagicLinkRequest, auth: AuthServiceDep
) -> TokenIssuedResponse:
    token = await auth.request_magic_link(body.email)
    return _issued(request, _MAGIC_LINK_SENT, token)


@router.post("/magic-link/verify", response_model=AuthResponse)
async def verify_magic_link(
    request: Request, response: Response, body: TokenRequest, auth: AuthServiceDep
) -> AuthResponse:
    user, token = await auth.verify_magic_link(body.token)
    return _start_session(request, response, user, token)


# ── Email verification ────────────────────────────────────────────────
@router.post("/verify-email/send", response_model=TokenIssuedResponse)
async def send_verification_email(
    request: Request, user: CurrentUserDep, auth: AuthServiceDep
) -> TokenIssuedResponse:
    token = await auth.request_email_verification(user)
    if token is None:
        return TokenIssuedResponse(message="Email is already verified")
    return _issued(request, "Verification email sent", token)


@router.post("/verify-email", response_model=UserResponse)
async def verify_email(body: TokenRequest, auth: AuthServiceDep) -> UserResponse:
    return UserResponse(user=await auth.verify_email(body.token))


# ── Account ───────────────────────────────────────────────────────────
@router.get("/me", response_model=UserResponse)
async def me(user: CurrentUserDep) -> UserResponse:
    return UserResponse(user=user)


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    body: ChangePasswordRequest, user: CurrentUserDep, auth: AuthServiceDep
) -> MessageResponse:
    await auth.change_password(user.id, body.current_password, body.new_password)
    return MessageResponse(message="Password updated")


@router.post("/recover/request", response_model=TokenIssuedResponse)
async def request_account_recovery(
    request: Request, body: MagicLinkRequest, auth: AuthServiceDep
) -> TokenIssuedResponse:
    token = await auth.request_account_recovery(body.email)
    return _issued(request, _RECOVERY_SENT, token)


@router.post("/recover", response_model=AuthResponse)
async def recover_account(
    request: Request, response: Response, body: RecoverAccountRequest, auth: AuthServiceDep
) -> AuthResponse:
    user, token = await auth.recover_account(body.token, body.new_password)
    return _start_session(request, response, user, token)

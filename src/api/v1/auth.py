"""
API v1 authentication routes.

Admin sessions travel in the `adminToken` cookie, user sessions in the
`Authorization: Bearer` header. Recovery requests always answer with the
same message so usernames cannot be enumerated.
"""

from fastapi import APIRouter, Depends, Response

from src.api.dependencies import (
    ADMIN_COOKIE_NAME,
    get_auth_service,
    require_admin,
    require_user,
)
from src.api.errors import to_http_exception
from src.api.models import (
    AuthCheckResponse,
    ErrorResponse,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    ResetPasswordRequest,
    TokenResponse,
)
from src.config.settings import get_settings
from src.domain.auth import AuthService
from src.domain.exceptions import OnboardingError

router = APIRouter(tags=["auth"])

RECOVERY_SENT_MESSAGE = (
    "If an account exists with that username, a recovery code has been sent "
    "to the associated email."
)

_login_responses = {
    401: {"model": ErrorResponse, "description": "Invalid credentials"},
    422: {"description": "Validation error"},
}
_reset_responses = {
    404: {"model": ErrorResponse, "description": "Invalid recovery code"},
    410: {"model": ErrorResponse, "description": "Recovery code has expired"},
}


# Admin namespace


@router.post(
    "/admin/login",
    response_model=TokenResponse,
    responses=_login_responses,
    summary="Admin login",
    description="Returns an admin token and sets it as the `adminToken` cookie.",
)
async def admin_login(
    request_data: LoginRequest,
    response: Response,
    service: AuthService = Depends(get_auth_service),
) -> TokenResponse:
    try:
        token = service.admin_login(request_data.username, request_data.password)
    except OnboardingError as exc:
        raise to_http_exception(exc) from None

    settings = get_settings()
    response.set_cookie(
        ADMIN_COOKIE_NAME,
        token,
        httponly=True,
        secure=settings.admin_cookie_secure,
        max_age=settings.admin_token_ttl_seconds,
        path="/",
    )
    return TokenResponse(token=token, expires_in_seconds=settings.admin_token_ttl_seconds)


@router.get(
    "/admin/check-auth",
    response_model=AuthCheckResponse,
    responses={401: {"model": ErrorResponse, "description": "Not authenticated"}},
    summary="Check admin session",
    description="Verifies the `adminToken` cookie and that its administrator still exists.",
)
async def admin_check_auth(
    admin_id: str = Depends(require_admin),
    service: AuthService = Depends(get_auth_service),
) -> AuthCheckResponse:
    try:
        admin = service.current_admin(admin_id)
    except OnboardingError as exc:
        raise to_http_exception(exc) from None
    return AuthCheckResponse(authenticated=True, principal_id=admin.id)


@router.post(
    "/admin/forgot-password",
    response_model=MessageResponse,
    summary="Request admin recovery code",
)
async def admin_forgot_password(
    request_data: ForgotPasswordRequest,
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    try:
        service.request_admin_recovery(request_data.username)
    except OnboardingError as exc:
        raise to_http_exception(exc) from None
    return MessageResponse(message=RECOVERY_SENT_MESSAGE)


@router.post(
    "/admin/reset-password",
    response_model=MessageResponse,
    responses=_reset_responses,
    summary="Reset admin password with a recovery code",
)
async def admin_reset_password(
    request_data: ResetPasswordRequest,
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    try:
        service.reset_admin_password(request_data.code, request_data.new_password)
    except OnboardingError as exc:
        raise to_http_exception(exc) from None
    return MessageResponse(message="Password has been reset successfully.")


# User namespace


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={
        **_login_responses,
        403: {"model": ErrorResponse, "description": "Account is not active"},
    },
    summary="User login",
)
async def user_login(
    request_data: LoginRequest,
    service: AuthService = Depends(get_auth_service),
) -> TokenResponse:
    try:
        token = service.user_login(request_data.username, request_data.password)
    except OnboardingError as exc:
        raise to_http_exception(exc) from None
    return TokenResponse(token=token, expires_in_seconds=get_settings().user_token_ttl_seconds)


@router.get(
    "/check-auth",
    response_model=AuthCheckResponse,
    responses={401: {"model": ErrorResponse, "description": "Not authenticated"}},
    summary="Check user session",
)
async def user_check_auth(account_id: str = Depends(require_user)) -> AuthCheckResponse:
    return AuthCheckResponse(authenticated=True, principal_id=account_id)


@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    summary="Request user recovery code",
)
async def user_forgot_password(
    request_data: ForgotPasswordRequest,
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    try:
        service.request_user_recovery(request_data.username)
    except OnboardingError as exc:
        raise to_http_exception(exc) from None
    return MessageResponse(message=RECOVERY_SENT_MESSAGE)


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    responses=_reset_responses,
    summary="Reset user password with a recovery code",
)
async def user_reset_password(
    request_data: ResetPasswordRequest,
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    try:
        service.reset_user_password(request_data.code, request_data.new_password)
    except OnboardingError as exc:
        raise to_http_exception(exc) from None
    return MessageResponse(message="Password has been reset successfully.")

"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services, infrastructure adapters and session guards into routes.
"""

from datetime import timedelta
from functools import lru_cache

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import APIKeyCookie, HTTPAuthorizationCredentials, HTTPBearer
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import (
    PostgresAccountRepository,
    PostgresAdminRepository,
    PostgresApplicantRepository,
    PostgresRecoveryCodeRepository,
)
from src.adapters.smtp.console import ConsoleEmailSender
from src.adapters.tokens.jwt_tokens import JwtTokenService
from src.api.errors import NOT_AUTHENTICATED
from src.config.settings import get_settings
from src.domain.accounts import AccountAdminService
from src.domain.applicants import ApplicantService
from src.domain.auth import AuthService
from src.domain.exceptions import Unauthorized
from src.domain.ports import TokenNamespace
from src.domain.recovery import RecoveryCodeService
from src.domain.sessions import SessionGuard

ADMIN_COOKIE_NAME = "adminToken"

# Module-level singleton - ConsoleEmailSender is stateless
_email_sender = ConsoleEmailSender()


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


def get_email_sender() -> ConsoleEmailSender:
    """Get console email sender (singleton)."""
    return _email_sender


@lru_cache
def get_token_service() -> JwtTokenService:
    """Build the JWT token service from settings (cached)."""
    settings = get_settings()
    return JwtTokenService(
        {
            TokenNamespace.ADMIN: settings.admin_jwt_secret,
            TokenNamespace.USER: settings.user_jwt_secret,
        },
        algorithm=settings.jwt_algorithm,
    )


def get_applicant_service(request: Request) -> ApplicantService:
    """
    Create applicant service with injected dependencies.

    Wires together the applicant and account repositories and the email sender.
    """
    pool = get_pool(request)
    return ApplicantService(
        applicants=PostgresApplicantRepository(pool),
        accounts=PostgresAccountRepository(pool),
        email_sender=get_email_sender(),
        bcrypt_rounds=get_settings().bcrypt_cost,
    )


def get_account_admin_service(request: Request) -> AccountAdminService:
    """Create account administration service."""
    return AccountAdminService(
        accounts=PostgresAccountRepository(get_pool(request)),
        bcrypt_rounds=get_settings().bcrypt_cost,
    )


def get_recovery_code_service(request: Request) -> RecoveryCodeService:
    """Create recovery code service."""
    settings = get_settings()
    return RecoveryCodeService(
        repository=PostgresRecoveryCodeRepository(get_pool(request)),
        user_validity=timedelta(seconds=settings.user_recovery_ttl_seconds),
    )


def get_auth_service(
    request: Request,
    token_service: JwtTokenService = Depends(get_token_service),
) -> AuthService:
    """Create authentication service for logins and password recovery."""
    settings = get_settings()
    pool = get_pool(request)
    return AuthService(
        admins=PostgresAdminRepository(pool),
        accounts=PostgresAccountRepository(pool),
        recovery_codes=get_recovery_code_service(request),
        token_service=token_service,
        email_sender=get_email_sender(),
        admin_token_ttl=timedelta(seconds=settings.admin_token_ttl_seconds),
        user_token_ttl=timedelta(seconds=settings.user_token_ttl_seconds),
        bcrypt_rounds=settings.bcrypt_cost,
    )


def get_admin_guard(token_service: JwtTokenService = Depends(get_token_service)) -> SessionGuard:
    return SessionGuard(token_service=token_service, namespace=TokenNamespace.ADMIN)


def get_user_guard(token_service: JwtTokenService = Depends(get_token_service)) -> SessionGuard:
    return SessionGuard(token_service=token_service, namespace=TokenNamespace.USER)


# Credential transports, declared as security schemes for OpenAPI documentation
admin_cookie = APIKeyCookie(name=ADMIN_COOKIE_NAME, auto_error=False)
user_bearer = HTTPBearer(auto_error=False)


def require_admin(
    token: str | None = Depends(admin_cookie),
    guard: SessionGuard = Depends(get_admin_guard),
) -> str:
    """
    Authenticate the admin session cookie.

    Returns:
        Admin principal id

    Raises:
        HTTPException: 401 for any missing or invalid token
    """
    try:
        return guard.authenticate(token)
    except Unauthorized:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail=NOT_AUTHENTICATED
        ) from None


def require_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(user_bearer),
    guard: SessionGuard = Depends(get_user_guard),
) -> str:
    """
    Authenticate the `Authorization: Bearer` header.

    Returns:
        Account principal id
    """
    token = credentials.credentials if credentials is not None else None
    try:
        return guard.authenticate(token)
    except Unauthorized:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=NOT_AUTHENTICATED,
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

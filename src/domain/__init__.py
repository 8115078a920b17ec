"""
Domain layer - Pure business logic with zero framework imports.

This package contains the applicant lifecycle state machine, account
administration, recovery codes and session guards. It defines its own
port interfaces for infrastructure abstraction, ensuring true hexagonal
architecture decoupling.
"""

from .accounts import AccountAdminService
from .applicants import ApplicantService
from .auth import AuthService
from .exceptions import (
    Conflict,
    Expired,
    InvalidInput,
    NotFound,
    OnboardingError,
    PartialFailure,
    Unauthorized,
    Unavailable,
)
from .ports import (
    AccountRepository,
    AccountStatus,
    AdminRepository,
    ApplicantIdentity,
    ApplicantRepository,
    EmailSender,
    RecoveryCodeRepository,
    RecoveryScope,
    ReviewState,
    TokenNamespace,
    TokenService,
)
from .recovery import RecoveryCodeService
from .sessions import SessionGuard

__all__ = [
    "AccountAdminService",
    "AccountRepository",
    "AccountStatus",
    "AdminRepository",
    "ApplicantIdentity",
    "ApplicantRepository",
    "ApplicantService",
    "AuthService",
    "Conflict",
    "EmailSender",
    "Expired",
    "InvalidInput",
    "NotFound",
    "OnboardingError",
    "PartialFailure",
    "RecoveryCodeRepository",
    "RecoveryCodeService",
    "RecoveryScope",
    "ReviewState",
    "SessionGuard",
    "TokenNamespace",
    "TokenService",
    "Unauthorized",
    "Unavailable",
]

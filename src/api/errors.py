"""
Domain error translation - maps domain exceptions onto HTTP responses.

The first matching entry wins, so specific exceptions are listed before
their families. Authentication failures share one generic detail so the
response never reveals whether a token was missing, malformed, expired
or minted for the other namespace.
"""

from fastapi import HTTPException, status

from src.domain.exceptions import (
    AccountNotActive,
    AccountNotFound,
    ApplicantNotFound,
    CodeMismatch,
    ContactNotVerified,
    DuplicateContact,
    DuplicateRecoveryCode,
    EmptySelection,
    InvalidCredentials,
    InvalidInput,
    NotFound,
    NotReviewEligible,
    NothingDeleted,
    OnboardingError,
    PartialPromotion,
    RecoveryCodeExpired,
    RecoveryCodeNotFound,
    Unauthorized,
    Unavailable,
    UsernameTaken,
)

NOT_AUTHENTICATED = "Not authenticated"

_RESPONSES: tuple[tuple[type[OnboardingError], int, str], ...] = (
    (ApplicantNotFound, status.HTTP_404_NOT_FOUND, "Applicant not found"),
    (AccountNotFound, status.HTTP_404_NOT_FOUND, "Account not found"),
    (RecoveryCodeNotFound, status.HTTP_404_NOT_FOUND, "Invalid recovery code"),
    (NotFound, status.HTTP_404_NOT_FOUND, "Not found"),
    (DuplicateContact, status.HTTP_409_CONFLICT, "Email already registered"),
    (UsernameTaken, status.HTTP_409_CONFLICT, "Username already taken"),
    (DuplicateRecoveryCode, status.HTTP_409_CONFLICT, "Could not issue recovery code"),
    (EmptySelection, status.HTTP_400_BAD_REQUEST, "No account ids provided"),
    (CodeMismatch, status.HTTP_400_BAD_REQUEST, "Invalid verification code"),
    (ContactNotVerified, status.HTTP_400_BAD_REQUEST, "Email not verified"),
    (NotReviewEligible, status.HTTP_400_BAD_REQUEST, "Applicant has not completed registration"),
    (InvalidInput, status.HTTP_400_BAD_REQUEST, "Invalid input"),
    (AccountNotActive, status.HTTP_403_FORBIDDEN, "Account is not active"),
    (InvalidCredentials, status.HTTP_401_UNAUTHORIZED, "Invalid credentials"),
    (Unauthorized, status.HTTP_401_UNAUTHORIZED, NOT_AUTHENTICATED),
    (RecoveryCodeExpired, status.HTTP_410_GONE, "Recovery code has expired"),
    (NothingDeleted, status.HTTP_404_NOT_FOUND, "No accounts found to delete"),
    (
        PartialPromotion,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Account created but applicant cleanup is pending",
    ),
    (Unavailable, status.HTTP_503_SERVICE_UNAVAILABLE, "Service temporarily unavailable"),
)


def to_http_exception(exc: OnboardingError) -> HTTPException:
    """Build the HTTPException for a domain error."""
    for error_type, status_code, detail in _RESPONSES:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=detail)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error"
    )

"""
Domain exceptions - Semantic error types for onboarding and approval.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.

Families map one-to-one onto the error taxonomy the API exposes:
NotFound, Conflict, InvalidInput, Unauthorized, Expired,
PartialFailure and Unavailable.
"""


class OnboardingError(Exception):
    """Base class for onboarding domain errors."""

    pass


# NotFound family


class NotFound(OnboardingError):
    """No record matches a keyed lookup."""

    pass


class ApplicantNotFound(NotFound):
    """Pending applicant does not exist (or has already been decided)."""

    pass


class AccountNotFound(NotFound):
    """Active account does not exist."""

    pass


class RecoveryCodeNotFound(NotFound):
    """No recovery code matches in the requested scope."""

    pass


# Conflict family


class Conflict(OnboardingError):
    """Uniqueness violation."""

    pass


class DuplicateContact(Conflict):
    """Email is already held by an account or a verified applicant."""

    pass


class UsernameTaken(Conflict):
    """Username is already held by another applicant or account."""

    pass


class DuplicateRecoveryCode(Conflict):
    """Recovery code value already exists within its scope."""

    pass


# InvalidInput family


class InvalidInput(OnboardingError):
    """Missing or malformed input."""

    pass


class EmptySelection(InvalidInput):
    """Bulk operation received an empty id selection."""

    pass


class CodeMismatch(InvalidInput):
    """Submitted contact verification code does not match."""

    pass


class ContactNotVerified(InvalidInput):
    """Credential step attempted before contact verification."""

    pass


class NotReviewEligible(InvalidInput):
    """Applicant has not finished the steps required for review."""

    pass


# Unauthorized family


class Unauthorized(OnboardingError):
    """Missing, invalid or expired credentials."""

    pass


class MissingToken(Unauthorized):
    """No session token was presented."""

    pass


class InvalidToken(Unauthorized):
    """Session token failed signature, expiry or namespace checks."""

    pass


class InvalidCredentials(Unauthorized):
    """Username/password pair did not match."""

    pass


class AccountNotActive(Unauthorized):
    """Account exists but has not been admitted yet."""

    pass


# Expired family


class Expired(OnboardingError):
    """Time-bounded value used past its validity window."""

    pass


class RecoveryCodeExpired(Expired):
    """Recovery code was found but its expires_at has passed."""

    pass


# PartialFailure family


class PartialFailure(OnboardingError):
    """Operation affected fewer records than requested."""

    pass


class NothingDeleted(PartialFailure):
    """Bulk delete matched no records."""

    pass


class PartialPromotion(PartialFailure):
    """
    Account was created but the pending applicant could not be removed.

    The applicant row keeps its terminal APPROVED tag and is reclaimed
    by ApplicantService.purge_decided().
    """

    def __init__(self, applicant_id: str, account_id: str) -> None:
        super().__init__(f"applicant {applicant_id} promoted to {account_id} but not removed")
        self.applicant_id = applicant_id
        self.account_id = account_id


# Unavailable family


class Unavailable(OnboardingError):
    """A collaborator did not answer in time."""

    pass


class StoreUnavailable(Unavailable):
    """Record store timed out or refused the connection."""

    pass

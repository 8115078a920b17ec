"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, StrictBool

from src.domain.ports import Account, ApplicantIdentity, ReviewQueueEntry

# Applicant lifecycle


class ApplicantCreateRequest(BaseModel):
    """Request model for step 1: identity submission."""

    full_name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    phone: str = Field(..., min_length=5, max_length=32)
    national_id: str = Field(..., min_length=1, max_length=32)
    street_address: str = Field(..., min_length=1, max_length=200)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    zip_code: str = Field(..., min_length=1, max_length=20)

    def to_identity(self) -> ApplicantIdentity:
        return ApplicantIdentity(
            full_name=self.full_name.strip(),
            email=str(self.email),
            phone=self.phone.strip(),
            national_id=self.national_id.strip(),
            street_address=self.street_address.strip(),
            city=self.city.strip(),
            state=self.state.strip(),
            zip_code=self.zip_code.strip(),
        )


class ApplicantCreateResponse(BaseModel):
    """Response model for a started application."""

    message: str
    applicant_id: str


class VerifyContactRequest(BaseModel):
    """Request model for step 2: contact verification."""

    code: str = Field(..., min_length=1, max_length=32, description="Code sent to the email")


class CompleteCredentialsRequest(BaseModel):
    """Request model for step 3: credential completion."""

    username: str = Field(..., min_length=3, max_length=64)
    password: str = Field(..., min_length=8, description="Password (min 8 characters)")


class DuplicateCheckRequest(BaseModel):
    """Request model for the email/username availability check."""

    email: EmailStr | None = None
    username: str | None = Field(default=None, max_length=64)


class ApplicantView(BaseModel):
    """Reviewer-facing applicant projection (never includes the credential hash)."""

    id: str
    full_name: str
    email: str
    phone: str
    national_id: str
    street_address: str
    city: str
    state: str
    zip_code: str
    username: str
    created_at: datetime

    @classmethod
    def from_entry(cls, entry: ReviewQueueEntry) -> "ApplicantView":
        identity = entry.identity
        return cls(
            id=entry.id,
            full_name=identity.full_name,
            email=identity.email,
            phone=identity.phone,
            national_id=identity.national_id,
            street_address=identity.street_address,
            city=identity.city,
            state=identity.state,
            zip_code=identity.zip_code,
            username=entry.username,
            created_at=entry.created_at,
        )


class ReviewQueueResponse(BaseModel):
    """Response model for the admin review queue."""

    applicants: list[ApplicantView]


class ApproveResponse(BaseModel):
    """Response model for a successful promotion."""

    message: str
    account_id: str


# Account administration


class BulkSelectionRequest(BaseModel):
    """Request model for bulk account operations."""

    account_ids: list[str]


class BulkApproveResponse(BaseModel):
    """Response model for bulk approve; matched may be below requested."""

    message: str
    requested: int
    matched: int


class BulkDeleteResponse(BaseModel):
    """Response model for bulk delete."""

    message: str
    deleted: int


class TwoFactorRequest(BaseModel):
    """Request model for the 2FA toggle."""

    two_factor_enabled: StrictBool


class AccountView(BaseModel):
    """Admin-facing account projection."""

    id: str
    full_name: str
    username: str
    email: str
    phone: str
    status: str
    two_factor_enabled: bool
    created_at: datetime

    @classmethod
    def from_account(cls, account: Account) -> "AccountView":
        return cls(
            id=account.id,
            full_name=account.identity.full_name,
            username=account.username,
            email=account.identity.email,
            phone=account.identity.phone,
            status=account.status.value,
            two_factor_enabled=account.two_factor_enabled,
            created_at=account.created_at,
        )


class AccountListResponse(BaseModel):
    """Response model for the account listing."""

    accounts: list[AccountView]


class AdminPasswordResetRequest(BaseModel):
    """Request model for an administrator setting an account's password."""

    new_password: str = Field(..., min_length=8, description="New password (min 8 characters)")


# Authentication


class LoginRequest(BaseModel):
    """Request model for admin and user login."""

    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    """Response model for a successful login."""

    token: str
    token_type: str = "bearer"
    expires_in_seconds: int


class AuthCheckResponse(BaseModel):
    """Response model for session checks."""

    authenticated: bool
    principal_id: str


class ForgotPasswordRequest(BaseModel):
    """Request model for starting password recovery."""

    username: str = Field(..., min_length=1)


class ResetPasswordRequest(BaseModel):
    """Request model for redeeming a recovery code."""

    code: str = Field(..., min_length=1, max_length=32)
    new_password: str = Field(..., min_length=8, description="New password (min 8 characters)")


class MessageResponse(BaseModel):
    """Generic acknowledgement."""

    message: str


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str

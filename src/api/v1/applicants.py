"""
API v1 applicant routes.

Public endpoints for the three applicant steps and the availability check.
"""

from fastapi import APIRouter, Depends, status

from src.api.dependencies import get_applicant_service
from src.api.errors import to_http_exception
from src.api.models import (
    ApplicantCreateRequest,
    ApplicantCreateResponse,
    CompleteCredentialsRequest,
    DuplicateCheckRequest,
    ErrorResponse,
    MessageResponse,
    VerifyContactRequest,
)
from src.domain.applicants import ApplicantService
from src.domain.exceptions import OnboardingError

router = APIRouter(prefix="/applicants", tags=["applicants"])


@router.post(
    "",
    response_model=ApplicantCreateResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        409: {"model": ErrorResponse, "description": "Email already registered"},
        422: {"description": "Validation error"},
    },
    summary="Start an application",
    description="Submit identity details. A 6-digit verification code is sent to the email. "
    "Submitting again for an unverified email re-sends a new code.",
)
async def create_applicant(
    request_data: ApplicantCreateRequest,
    service: ApplicantService = Depends(get_applicant_service),
) -> ApplicantCreateResponse:
    try:
        applicant_id = service.create_applicant(request_data.to_identity())
    except OnboardingError as exc:
        raise to_http_exception(exc) from None
    return ApplicantCreateResponse(
        message="Verification code sent to your email", applicant_id=applicant_id
    )


@router.post(
    "/check-duplicate",
    response_model=MessageResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Neither email nor username given"},
        409: {"model": ErrorResponse, "description": "Email or username in use"},
    },
    summary="Check email/username availability",
)
async def check_duplicate(
    request_data: DuplicateCheckRequest,
    service: ApplicantService = Depends(get_applicant_service),
) -> MessageResponse:
    try:
        service.check_duplicate(
            email=str(request_data.email) if request_data.email else None,
            username=request_data.username,
        )
    except OnboardingError as exc:
        raise to_http_exception(exc) from None
    return MessageResponse(message="No duplicates found")


@router.post(
    "/{applicant_id}/verify",
    response_model=MessageResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid verification code"},
        404: {"model": ErrorResponse, "description": "Applicant not found"},
    },
    summary="Verify contact email",
)
async def verify_contact(
    applicant_id: str,
    request_data: VerifyContactRequest,
    service: ApplicantService = Depends(get_applicant_service),
) -> MessageResponse:
    try:
        service.verify_contact(applicant_id, request_data.code)
    except OnboardingError as exc:
        raise to_http_exception(exc) from None
    return MessageResponse(message="Email verified successfully")


@router.post(
    "/{applicant_id}/credentials",
    response_model=MessageResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Email not verified"},
        404: {"model": ErrorResponse, "description": "Applicant not found"},
        409: {"model": ErrorResponse, "description": "Username already taken"},
    },
    summary="Choose username and password",
    description="Final applicant step. The application then waits for admin approval.",
)
async def complete_credentials(
    applicant_id: str,
    request_data: CompleteCredentialsRequest,
    service: ApplicantService = Depends(get_applicant_service),
) -> MessageResponse:
    try:
        service.complete_credentials(applicant_id, request_data.username, request_data.password)
    except OnboardingError as exc:
        raise to_http_exception(exc) from None
    return MessageResponse(message="Registration completed, awaiting admin approval")

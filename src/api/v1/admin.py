"""
API v1 admin routes.

Every endpoint here requires a valid `adminToken` cookie. The guard is a
router-level dependency, so it runs before any service (and therefore any
store access) is resolved.
"""

from fastapi import APIRouter, Depends, Query, Response, status

from src.api.dependencies import get_account_admin_service, get_applicant_service, require_admin
from src.api.errors import to_http_exception
from src.api.models import (
    AccountListResponse,
    AccountView,
    AdminPasswordResetRequest,
    ApplicantView,
    ApproveResponse,
    BulkApproveResponse,
    BulkDeleteResponse,
    BulkSelectionRequest,
    ErrorResponse,
    MessageResponse,
    ReviewQueueResponse,
    TwoFactorRequest,
)
from src.domain.accounts import AccountAdminService
from src.domain.applicants import ApplicantService
from src.domain.exceptions import OnboardingError
from src.domain.ports import AccountStatus

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
    responses={401: {"model": ErrorResponse, "description": "Not authenticated"}},
)


@router.get(
    "/applicants",
    response_model=ReviewQueueResponse,
    summary="List applicants awaiting review",
    description="Applicants with a verified email and completed credentials, oldest first.",
)
async def list_review_queue(
    service: ApplicantService = Depends(get_applicant_service),
) -> ReviewQueueResponse:
    try:
        entries = service.list_review_queue()
    except OnboardingError as exc:
        raise to_http_exception(exc) from None
    return ReviewQueueResponse(applicants=[ApplicantView.from_entry(entry) for entry in entries])


@router.post(
    "/applicants/{applicant_id}/approve",
    response_model=ApproveResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Applicant not review-eligible"},
        404: {"model": ErrorResponse, "description": "Applicant not found"},
        409: {"model": ErrorResponse, "description": "Email or username already in use"},
        500: {"model": ErrorResponse, "description": "Account created, cleanup pending"},
    },
    summary="Approve an applicant",
)
async def approve_applicant(
    applicant_id: str,
    service: ApplicantService = Depends(get_applicant_service),
) -> ApproveResponse:
    try:
        account_id = service.approve(applicant_id)
    except OnboardingError as exc:
        raise to_http_exception(exc) from None
    return ApproveResponse(message="Applicant approved", account_id=account_id)


@router.post(
    "/applicants/{applicant_id}/reject",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse, "description": "Applicant not found"}},
    summary="Reject an applicant",
)
async def reject_applicant(
    applicant_id: str,
    service: ApplicantService = Depends(get_applicant_service),
) -> MessageResponse:
    try:
        service.reject(applicant_id)
    except OnboardingError as exc:
        raise to_http_exception(exc) from None
    return MessageResponse(message="Applicant rejected")


@router.post(
    "/accounts/bulk-approve",
    response_model=BulkApproveResponse,
    responses={400: {"model": ErrorResponse, "description": "No account ids provided"}},
    summary="Admit pending accounts",
    description="Flips every selected account still in status pending to active. "
    "Accounts that are not pending are skipped; `matched` reports how many changed.",
)
async def bulk_approve(
    request_data: BulkSelectionRequest,
    service: AccountAdminService = Depends(get_account_admin_service),
) -> BulkApproveResponse:
    try:
        matched = service.bulk_approve(request_data.account_ids)
    except OnboardingError as exc:
        raise to_http_exception(exc) from None
    return BulkApproveResponse(
        message=f"Approved {matched} account(s)",
        requested=len(set(request_data.account_ids)),
        matched=matched,
    )


@router.post(
    "/accounts/bulk-delete",
    response_model=BulkDeleteResponse,
    responses={
        400: {"model": ErrorResponse, "description": "No account ids provided"},
        404: {"model": ErrorResponse, "description": "No accounts found to delete"},
    },
    summary="Delete accounts",
)
async def bulk_delete(
    request_data: BulkSelectionRequest,
    service: AccountAdminService = Depends(get_account_admin_service),
) -> BulkDeleteResponse:
    try:
        deleted = service.bulk_delete(request_data.account_ids)
    except OnboardingError as exc:
        raise to_http_exception(exc) from None
    return BulkDeleteResponse(message=f"Successfully deleted {deleted} account(s)", deleted=deleted)


@router.get(
    "/accounts",
    response_model=AccountListResponse,
    summary="List accounts",
    description="All accounts oldest first. Pass `status=pending` to find accounts "
    "awaiting bulk approval.",
)
async def list_accounts(
    status_filter: AccountStatus | None = Query(default=None, alias="status"),
    service: AccountAdminService = Depends(get_account_admin_service),
) -> AccountListResponse:
    try:
        accounts = service.list_accounts(status_filter)
    except OnboardingError as exc:
        raise to_http_exception(exc) from None
    return AccountListResponse(accounts=[AccountView.from_account(a) for a in accounts])


@router.get(
    "/accounts/{account_id}",
    response_model=AccountView,
    responses={404: {"model": ErrorResponse, "description": "Account not found"}},
    summary="Get an account",
)
async def get_account(
    account_id: str,
    service: AccountAdminService = Depends(get_account_admin_service),
) -> AccountView:
    try:
        account = service.get_account(account_id)
    except OnboardingError as exc:
        raise to_http_exception(exc) from None
    return AccountView.from_account(account)


@router.put(
    "/accounts/{account_id}/2fa",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse, "description": "Account not found"}},
    summary="Enable or disable 2FA",
)
async def set_two_factor(
    account_id: str,
    request_data: TwoFactorRequest,
    service: AccountAdminService = Depends(get_account_admin_service),
) -> MessageResponse:
    try:
        service.set_two_factor(account_id, request_data.two_factor_enabled)
    except OnboardingError as exc:
        raise to_http_exception(exc) from None
    state = "enabled" if request_data.two_factor_enabled else "disabled"
    return MessageResponse(message=f"2FA {state} successfully")


@router.delete(
    "/accounts/{account_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse, "description": "Account not found"}},
    summary="Delete an account",
)
async def delete_account(
    account_id: str,
    service: AccountAdminService = Depends(get_account_admin_service),
) -> Response:
    try:
        service.delete_account(account_id)
    except OnboardingError as exc:
        raise to_http_exception(exc) from None
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/accounts/{account_id}/reset-password",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse, "description": "Account not found"}},
    summary="Set an account's password",
)
async def reset_account_password(
    account_id: str,
    request_data: AdminPasswordResetRequest,
    service: AccountAdminService = Depends(get_account_admin_service),
) -> MessageResponse:
    try:
        service.reset_password(account_id, request_data.new_password)
    except OnboardingError as exc:
        raise to_http_exception(exc) from None
    return MessageResponse(message="Password reset successfully")

"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure, together with the records that cross them.
Adapters implement these protocols via structural subtyping.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Protocol

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


class ReviewState(str, Enum):
    """
    Admin decision tag for a pending applicant.

    State Transitions (forward-only):
    - UNREVIEWED -> APPROVED (promotion to an active account)
    - UNREVIEWED -> REJECTED (application discarded)

    Terminal States:
    - APPROVED, REJECTED: the row only awaits physical removal

    Legacy rows without a stored tag are read as UNREVIEWED by the
    repository; the domain never sees a missing value.
    """

    UNREVIEWED = "UNREVIEWED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class AccountStatus(str, Enum):
    """Admission status of an account."""

    PENDING = "pending"
    ACTIVE = "active"


class RecoveryScope(str, Enum):
    """Principal namespace a recovery code is valid within."""

    ADMIN = "admin"
    USER = "user"


class TokenNamespace(str, Enum):
    """Principal namespace a session token is valid within."""

    ADMIN = "admin"
    USER = "user"


@dataclass(frozen=True)
class ApplicantIdentity:
    """Identity fields captured at step 1, immutable afterwards."""

    full_name: str
    email: str
    phone: str
    national_id: str
    street_address: str
    city: str
    state: str
    zip_code: str


@dataclass(frozen=True)
class PendingApplicant:
    """Applicant record as stored in the pending collection."""

    id: str
    identity: ApplicantIdentity
    contact_verification_code: str | None
    is_contact_verified: bool
    username: str
    credential_hash: str
    review_state: ReviewState
    created_at: datetime
    decided_at: datetime | None = None

    @property
    def is_review_eligible(self) -> bool:
        """Contact verified and both credential fields set."""
        return self.is_contact_verified and self.username != "" and self.credential_hash != ""


@dataclass(frozen=True)
class ReviewQueueEntry:
    """Reviewer-facing projection of an applicant (no credential hash)."""

    id: str
    identity: ApplicantIdentity
    username: str
    created_at: datetime


@dataclass(frozen=True)
class Account:
    """Active account record."""

    id: str
    identity: ApplicantIdentity
    username: str
    credential_hash: str
    status: AccountStatus
    two_factor_enabled: bool
    created_at: datetime


@dataclass(frozen=True)
class Administrator:
    """Administrator principal."""

    id: str
    username: str
    email: str
    credential_hash: str


@dataclass(frozen=True)
class ScopePolicy:
    """
    Expiry rules for a recovery-code scope.

    physical_expiry_enforced means rows older than `validity` are
    deleted by the background sweep whether or not they were consumed.
    """

    validity: timedelta
    physical_expiry_enforced: bool


@dataclass(frozen=True)
class RecoveryCode:
    """One-time recovery code bound to a principal within a scope."""

    scope: RecoveryScope
    principal_id: str
    code: str
    created_at: datetime
    expires_at: datetime


class ApplicantRepository(Protocol):
    """Port interface for pending applicant persistence."""

    def insert(self, identity: ApplicantIdentity, code: str, created_at: datetime) -> str:
        """
        Insert a new UNREVIEWED applicant.

        Returns:
            Store-assigned applicant id

        Raises:
            DuplicateContact: If the email is already present
        """
        ...

    def get(self, applicant_id: str) -> PendingApplicant | None:
        """Fetch an applicant by id (None for unknown or malformed ids)."""
        ...

    def find_by_email(self, email: str) -> PendingApplicant | None:
        """Fetch an applicant by normalized email."""
        ...

    def username_exists(self, username: str, exclude_id: str | None = None) -> bool:
        """True if any applicant other than `exclude_id` holds the username."""
        ...

    def reissue_code(self, applicant_id: str, code: str) -> bool:
        """
        Replace the verification code of an unverified, unreviewed applicant.

        Returns:
            False if the applicant is gone, verified or decided
        """
        ...

    def mark_contact_verified(self, applicant_id: str) -> bool:
        """Set is_contact_verified on an UNREVIEWED applicant."""
        ...

    def set_credentials(self, applicant_id: str, username: str, credential_hash: str) -> bool:
        """Store username and hash on a verified, UNREVIEWED applicant."""
        ...

    def transition_review(
        self, applicant_id: str, expected: ReviewState, new: ReviewState, at: datetime
    ) -> bool:
        """
        Compare-and-set the review tag in a single atomic statement.

        Moving to a terminal tag stamps decided_at with `at`; moving back to
        UNREVIEWED clears it.

        Returns:
            True only if the stored tag equalled `expected`
        """
        ...

    def delete(self, applicant_id: str) -> bool:
        """Delete an applicant; True if a row was removed."""
        ...

    def list_review_queue(self) -> list[ReviewQueueEntry]:
        """All review-eligible UNREVIEWED applicants, oldest first."""
        ...

    def list_decided(self, decided_before: datetime) -> list[PendingApplicant]:
        """APPROVED or REJECTED applicants decided before the cutoff."""
        ...

    def delete_decided(self, applicant_ids: Sequence[str], decided_before: datetime) -> int:
        """
        Delete the selected applicants that are still decided before the cutoff.

        Returns:
            Number of rows removed
        """
        ...


class AccountRepository(Protocol):
    """Port interface for account persistence."""

    def insert(
        self,
        identity: ApplicantIdentity,
        username: str,
        credential_hash: str,
        status: AccountStatus,
        created_at: datetime,
    ) -> str:
        """
        Insert an account.

        Raises:
            DuplicateContact: Email already used by an account
            UsernameTaken: Username already used by an account
        """
        ...

    def get(self, account_id: str) -> Account | None: ...

    def list_accounts(self, status: AccountStatus | None = None) -> list[Account]:
        """Accounts oldest first, optionally restricted to one status."""
        ...

    def find_by_username(self, username: str) -> Account | None: ...

    def contact_exists(self, email: str) -> bool: ...

    def username_exists(self, username: str) -> bool: ...

    def set_two_factor(self, account_id: str, enabled: bool) -> bool: ...

    def update_password(self, account_id: str, credential_hash: str) -> bool: ...

    def activate_pending(self, account_ids: Sequence[str]) -> int:
        """
        Flip status pending -> active for the selected ids in one statement.

        Returns:
            Number of rows whose status was pending at update time
        """
        ...

    def delete(self, account_id: str) -> bool: ...

    def delete_many(self, account_ids: Sequence[str]) -> int:
        """Delete the selected ids in one statement; returns deleted count."""
        ...


class AdminRepository(Protocol):
    """Port interface for administrator persistence."""

    def find_by_username(self, username: str) -> Administrator | None: ...

    def get(self, admin_id: str) -> Administrator | None: ...

    def update_password(self, admin_id: str, credential_hash: str) -> bool: ...


class RecoveryCodeRepository(Protocol):
    """Port interface for recovery code persistence."""

    def insert(self, code: RecoveryCode) -> None:
        """
        Persist a recovery code.

        Raises:
            DuplicateRecoveryCode: Code value already present in the scope
        """
        ...

    def delete_for_principal(self, scope: RecoveryScope, principal_id: str) -> int:
        """Remove every code a principal holds in the scope."""
        ...

    def consume(self, scope: RecoveryScope, code: str) -> RecoveryCode | None:
        """
        Atomically delete and return the matching code.

        Returns:
            The removed record, or None if nothing matched
        """
        ...

    def delete_created_before(self, scope: RecoveryScope, cutoff: datetime) -> int:
        """Physically remove codes in the scope created before `cutoff`."""
        ...


class TokenService(Protocol):
    """Port interface for signed session tokens."""

    def sign(self, principal_id: str, namespace: TokenNamespace, expires_in: timedelta) -> str:
        """Issue a token embedding the principal id and an expiry claim."""
        ...

    def verify(self, token: str, namespace: TokenNamespace) -> str:
        """
        Check signature, expiry and namespace.

        Returns:
            Embedded principal id

        Raises:
            InvalidToken: On any verification failure
        """
        ...


class EmailSender(Protocol):
    """Port interface for email delivery."""

    def send_verification_code(self, email: str, code: str) -> None:
        """
        Send contact verification code to email address.

        Args:
            email: Recipient email address
            code: 6-digit verification code
        """
        ...

    def send_recovery_code(self, email: str, code: str, expires_in_minutes: int) -> None:
        """Send a password recovery code to email address."""
        ...

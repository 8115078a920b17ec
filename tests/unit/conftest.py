"""
Shared fixtures for unit tests.

Provides in-memory implementations of the repository ports. Each method
holds a lock for its whole body, mirroring the single-statement atomicity
the PostgreSQL adapters rely on.
"""

import threading
import uuid
from collections.abc import Sequence
from dataclasses import replace
from datetime import UTC, datetime, timedelta

import pytest

from src.domain.exceptions import DuplicateContact, DuplicateRecoveryCode, UsernameTaken
from src.domain.ports import (
    Account,
    AccountStatus,
    Administrator,
    ApplicantIdentity,
    PendingApplicant,
    RecoveryCode,
    RecoveryScope,
    ReviewQueueEntry,
    ReviewState,
)


class InMemoryApplicantRepository:
    """ApplicantRepository backed by a dict."""

    def __init__(self) -> None:
        self.rows: dict[str, PendingApplicant] = {}
        self._lock = threading.Lock()

    def insert(self, identity: ApplicantIdentity, code: str, created_at: datetime) -> str:
        with self._lock:
            if any(row.identity.email == identity.email for row in self.rows.values()):
                raise DuplicateContact(identity.email)
            applicant_id = str(uuid.uuid4())
            self.rows[applicant_id] = PendingApplicant(
                id=applicant_id,
                identity=identity,
                contact_verification_code=code,
                is_contact_verified=False,
                username="",
                credential_hash="",
                review_state=ReviewState.UNREVIEWED,
                created_at=created_at,
            )
            return applicant_id

    def get(self, applicant_id: str) -> PendingApplicant | None:
        with self._lock:
            return self.rows.get(applicant_id)

    def find_by_email(self, email: str) -> PendingApplicant | None:
        with self._lock:
            return next((r for r in self.rows.values() if r.identity.email == email), None)

    def username_exists(self, username: str, exclude_id: str | None = None) -> bool:
        with self._lock:
            return any(
                r.username == username and r.id != exclude_id for r in self.rows.values()
            )

    def reissue_code(self, applicant_id: str, code: str) -> bool:
        with self._lock:
            row = self.rows.get(applicant_id)
            if (
                row is None
                or row.is_contact_verified
                or row.review_state is not ReviewState.UNREVIEWED
            ):
                return False
            self.rows[applicant_id] = replace(row, contact_verification_code=code)
            return True

    def mark_contact_verified(self, applicant_id: str) -> bool:
        with self._lock:
            row = self.rows.get(applicant_id)
            if row is None or row.review_state is not ReviewState.UNREVIEWED:
                return False
            self.rows[applicant_id] = replace(row, is_contact_verified=True)
            return True

    def set_credentials(self, applicant_id: str, username: str, credential_hash: str) -> bool:
        with self._lock:
            row = self.rows.get(applicant_id)
            if (
                row is None
                or not row.is_contact_verified
                or row.review_state is not ReviewState.UNREVIEWED
            ):
                return False
            self.rows[applicant_id] = replace(
                row, username=username, credential_hash=credential_hash
            )
            return True

    def transition_review(
        self, applicant_id: str, expected: ReviewState, new: ReviewState, at: datetime
    ) -> bool:
        with self._lock:
            row = self.rows.get(applicant_id)
            if row is None or row.review_state is not expected:
                return False
            decided_at = None if new is ReviewState.UNREVIEWED else at
            self.rows[applicant_id] = replace(row, review_state=new, decided_at=decided_at)
            return True

    def delete(self, applicant_id: str) -> bool:
        with self._lock:
            return self.rows.pop(applicant_id, None) is not None

    def list_review_queue(self) -> list[ReviewQueueEntry]:
        with self._lock:
            return [
                ReviewQueueEntry(
                    id=r.id, identity=r.identity, username=r.username, created_at=r.created_at
                )
                for r in sorted(self.rows.values(), key=lambda r: r.created_at)
                if r.is_review_eligible and r.review_state is ReviewState.UNREVIEWED
            ]

    def list_decided(self, decided_before: datetime) -> list[PendingApplicant]:
        with self._lock:
            return [r for r in self.rows.values() if self._decided_before(r, decided_before)]

    def delete_decided(self, applicant_ids: Sequence[str], decided_before: datetime) -> int:
        with self._lock:
            keys = [
                key
                for key in applicant_ids
                if key in self.rows and self._decided_before(self.rows[key], decided_before)
            ]
            for key in keys:
                del self.rows[key]
            return len(keys)

    @staticmethod
    def _decided_before(row: PendingApplicant, cutoff: datetime) -> bool:
        if row.review_state is ReviewState.UNREVIEWED:
            return False
        return row.decided_at is None or row.decided_at < cutoff


class InMemoryAccountRepository:
    """AccountRepository backed by a dict."""

    def __init__(self) -> None:
        self.rows: dict[str, Account] = {}
        self._lock = threading.Lock()

    def insert(
        self,
        identity: ApplicantIdentity,
        username: str,
        credential_hash: str,
        status: AccountStatus,
        created_at: datetime,
    ) -> str:
        with self._lock:
            if any(r.identity.email == identity.email for r in self.rows.values()):
                raise DuplicateContact(identity.email)
            if any(r.username == username for r in self.rows.values()):
                raise UsernameTaken(username)
            account_id = str(uuid.uuid4())
            self.rows[account_id] = Account(
                id=account_id,
                identity=identity,
                username=username,
                credential_hash=credential_hash,
                status=status,
                two_factor_enabled=False,
                created_at=created_at,
            )
            return account_id

    def get(self, account_id: str) -> Account | None:
        with self._lock:
            return self.rows.get(account_id)

    def list_accounts(self, status: AccountStatus | None = None) -> list[Account]:
        with self._lock:
            return [
                r
                for r in sorted(self.rows.values(), key=lambda r: r.created_at)
                if status is None or r.status is status
            ]

    def find_by_username(self, username: str) -> Account | None:
        with self._lock:
            return next((r for r in self.rows.values() if r.username == username), None)

    def contact_exists(self, email: str) -> bool:
        with self._lock:
            return any(r.identity.email == email for r in self.rows.values())

    def username_exists(self, username: str) -> bool:
        with self._lock:
            return any(r.username == username for r in self.rows.values())

    def set_two_factor(self, account_id: str, enabled: bool) -> bool:
        with self._lock:
            row = self.rows.get(account_id)
            if row is None:
                return False
            self.rows[account_id] = replace(row, two_factor_enabled=enabled)
            return True

    def update_password(self, account_id: str, credential_hash: str) -> bool:
        with self._lock:
            row = self.rows.get(account_id)
            if row is None:
                return False
            self.rows[account_id] = replace(row, credential_hash=credential_hash)
            return True

    def activate_pending(self, account_ids: Sequence[str]) -> int:
        with self._lock:
            matched = 0
            for account_id in account_ids:
                row = self.rows.get(account_id)
                if row is not None and row.status is AccountStatus.PENDING:
                    self.rows[account_id] = replace(row, status=AccountStatus.ACTIVE)
                    matched += 1
            return matched

    def delete(self, account_id: str) -> bool:
        with self._lock:
            return self.rows.pop(account_id, None) is not None

    def delete_many(self, account_ids: Sequence[str]) -> int:
        with self._lock:
            return sum(1 for key in account_ids if self.rows.pop(key, None) is not None)

    def add(self, username: str, status: AccountStatus, email: str | None = None) -> str:
        """Test helper: insert an account directly."""
        identity = make_identity(email=email or f"{username}@example.com")
        return self.insert(identity, username, "$2b$04$unused", status, datetime.now(UTC))


class InMemoryAdminRepository:
    """AdminRepository backed by a dict."""

    def __init__(self) -> None:
        self.rows: dict[str, Administrator] = {}

    def add(self, username: str, email: str, credential_hash: str) -> str:
        admin_id = str(uuid.uuid4())
        self.rows[admin_id] = Administrator(
            id=admin_id, username=username, email=email, credential_hash=credential_hash
        )
        return admin_id

    def find_by_username(self, username: str) -> Administrator | None:
        return next((r for r in self.rows.values() if r.username == username), None)

    def get(self, admin_id: str) -> Administrator | None:
        return self.rows.get(admin_id)

    def update_password(self, admin_id: str, credential_hash: str) -> bool:
        row = self.rows.get(admin_id)
        if row is None:
            return False
        self.rows[admin_id] = replace(row, credential_hash=credential_hash)
        return True


class InMemoryRecoveryCodeRepository:
    """RecoveryCodeRepository backed by a dict keyed by (scope, code)."""

    def __init__(self) -> None:
        self.rows: dict[tuple[RecoveryScope, str], RecoveryCode] = {}
        self._lock = threading.Lock()

    def insert(self, code: RecoveryCode) -> None:
        with self._lock:
            key = (code.scope, code.code)
            if key in self.rows:
                raise DuplicateRecoveryCode(code.scope.value)
            self.rows[key] = code

    def delete_for_principal(self, scope: RecoveryScope, principal_id: str) -> int:
        with self._lock:
            keys = [
                key
                for key, r in self.rows.items()
                if r.scope is scope and r.principal_id == principal_id
            ]
            for key in keys:
                del self.rows[key]
            return len(keys)

    def consume(self, scope: RecoveryScope, code: str) -> RecoveryCode | None:
        with self._lock:
            return self.rows.pop((scope, code), None)

    def delete_created_before(self, scope: RecoveryScope, cutoff: datetime) -> int:
        with self._lock:
            keys = [
                key for key, r in self.rows.items() if r.scope is scope and r.created_at < cutoff
            ]
            for key in keys:
                del self.rows[key]
            return len(keys)


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


def make_identity(email: str = "applicant@example.com", **overrides: str) -> ApplicantIdentity:
    """Build a complete ApplicantIdentity with sensible defaults."""
    fields = {
        "full_name": "Jordan Avery",
        "email": email,
        "phone": "+15555550100",
        "national_id": "123-45-6789",
        "street_address": "1 Main St",
        "city": "Springfield",
        "state": "IL",
        "zip_code": "62701",
    }
    fields.update(overrides)
    return ApplicantIdentity(**fields)


@pytest.fixture
def applicant_repo() -> InMemoryApplicantRepository:
    return InMemoryApplicantRepository()


@pytest.fixture
def account_repo() -> InMemoryAccountRepository:
    return InMemoryAccountRepository()


@pytest.fixture
def admin_repo() -> InMemoryAdminRepository:
    return InMemoryAdminRepository()


@pytest.fixture
def recovery_repo() -> InMemoryRecoveryCodeRepository:
    return InMemoryRecoveryCodeRepository()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def identity() -> ApplicantIdentity:
    return make_identity()

"""
Adversarial tests for race condition attack prevention.

Verifies that concurrent admin decisions, bulk operations and recovery
code redemptions are resolved by single-statement atomicity, preventing:
- Duplicate accounts from concurrent approvals of one applicant
- Over-counted bulk approvals from overlapping selections
- Double redemption of one recovery code

Security rationale:
- Two admins clicking approve at once must produce one account
- Compare-and-set on the review tag and DELETE ... RETURNING on codes
  leave exactly one winner per record
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime, timedelta

import pytest
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import PostgresRecoveryCodeRepository
from src.domain.accounts import AccountAdminService
from src.domain.applicants import ApplicantService
from src.domain.exceptions import (
    ApplicantNotFound,
    DuplicateContact,
    RecoveryCodeExpired,
    RecoveryCodeNotFound,
    UsernameTaken,
)
from src.domain.ports import ApplicantIdentity, RecoveryScope
from src.domain.recovery import RecoveryCodeService

# Apply adversarial marker to all tests in this module
pytestmark = [pytest.mark.adversarial, pytest.mark.usefixtures("clean_database")]

ADMIN_ID = "11111111-1111-1111-1111-111111111111"


def identity(email: str) -> ApplicantIdentity:
    return ApplicantIdentity(
        full_name="Race Tester",
        email=email,
        phone="+15555550100",
        national_id="123-45-6789",
        street_address="1 Main St",
        city="Springfield",
        state="IL",
        zip_code="62701",
    )


def eligible_applicant(service: ApplicantService, email: str, username: str) -> str:
    """Create an applicant and complete steps 2 and 3 through the repository."""
    applicant_id = service.create_applicant(identity(email))
    code = service.applicants.get(applicant_id).contact_verification_code
    service.verify_contact(applicant_id, code)
    service.complete_credentials(applicant_id, username, "password123")
    return applicant_id


def insert_pending_accounts(pool: ConnectionPool, count: int) -> list[str]:
    with pool.connection() as conn:
        rows = conn.execute(
            """
            INSERT INTO accounts (full_name, email, phone, national_id, street_address,
                                  city, state, zip_code, username, credential_hash, status)
            SELECT 'N', 'u' || i || '@example.com', '5555', '1', 'st', 'c', 's', 'z',
                   'user' || i, 'h', 'pending'
            FROM generate_series(1, %s::int) AS i
            RETURNING id::text
            """,
            (count,),
        ).fetchall()
    return [row[0] for row in rows]


class TestConcurrentApproval:
    """Adversarial tests for concurrent admin decisions."""

    def test_concurrent_approve_creates_exactly_one_account(
        self, pool: ConnectionPool, applicant_service: ApplicantService
    ) -> None:
        """
        Simulate several admins approving the same applicant at once.

        Expected defense: the UNREVIEWED -> APPROVED compare-and-set admits
        one winner; every other attempt observes ApplicantNotFound or a
        conflict on the account it would have duplicated.
        """
        applicant_id = eligible_applicant(applicant_service, "race@example.com", "racer")
        results: list[str] = []
        errors: list[Exception] = []
        lock = threading.Lock()
        num_admins = 8

        def approve() -> None:
            try:
                account_id = applicant_service.approve(applicant_id)
            except (ApplicantNotFound, DuplicateContact, UsernameTaken) as e:
                with lock:
                    errors.append(e)
            else:
                with lock:
                    results.append(account_id)

        with ThreadPoolExecutor(max_workers=num_admins) as executor:
            for f in [executor.submit(approve) for _ in range(num_admins)]:
                f.result()

        assert len(results) == 1, f"{len(results)} approvals succeeded (expected exactly 1)"
        assert len(errors) == num_admins - 1

        with pool.connection() as conn:
            accounts = conn.execute("SELECT COUNT(*) FROM accounts").fetchone()[0]
            pending = conn.execute("SELECT COUNT(*) FROM pending_applicants").fetchone()[0]
        assert accounts == 1
        assert pending == 0

    def test_approve_and_reject_race_has_one_outcome(
        self, pool: ConnectionPool, applicant_service: ApplicantService
    ) -> None:
        """
        Simulate one admin approving while another rejects.

        Expected defense: exactly one decision applies.
        """
        applicant_id = eligible_applicant(applicant_service, "race@example.com", "racer")
        outcomes: list[str] = []
        lock = threading.Lock()
        barrier = threading.Barrier(2)

        def decide(action: str) -> None:
            barrier.wait()
            try:
                if action == "approve":
                    applicant_service.approve(applicant_id)
                else:
                    applicant_service.reject(applicant_id)
            except ApplicantNotFound:
                return
            with lock:
                outcomes.append(action)

        with ThreadPoolExecutor(max_workers=2) as executor:
            for f in [executor.submit(decide, a) for a in ("approve", "reject")]:
                f.result()

        assert len(outcomes) == 1
        with pool.connection() as conn:
            accounts = conn.execute("SELECT COUNT(*) FROM accounts").fetchone()[0]
        assert accounts == (1 if outcomes == ["approve"] else 0)


class TestConcurrentBulkApprove:
    """Adversarial tests for overlapping bulk approvals."""

    def test_overlapping_selections_never_over_count(
        self, pool: ConnectionPool, account_service: AccountAdminService
    ) -> None:
        """
        Simulate admins bulk-approving overlapping selections concurrently.

        Expected defense: the conditional UPDATE counts each pending
        account at most once across all callers.
        """
        ids = insert_pending_accounts(pool, 20)
        selections = [ids[0:12], ids[8:20], ids[4:16], ids]
        totals: list[int] = []
        lock = threading.Lock()

        def bulk(selection: list[str]) -> None:
            matched = account_service.bulk_approve(selection)
            with lock:
                totals.append(matched)

        with ThreadPoolExecutor(max_workers=len(selections)) as executor:
            for f in [executor.submit(bulk, s) for s in selections]:
                f.result()

        assert sum(totals) == 20, f"Counted {sum(totals)} approvals for 20 pending accounts"
        with pool.connection() as conn:
            still_pending = conn.execute(
                "SELECT COUNT(*) FROM accounts WHERE status = 'pending'"
            ).fetchone()[0]
        assert still_pending == 0


class TestConcurrentRecoveryCodes:
    """Adversarial tests for recovery code redemption."""

    def test_concurrent_consume_single_winner(
        self, recovery_service: RecoveryCodeService
    ) -> None:
        """
        Simulate a stolen code being replayed concurrently.

        Expected defense: DELETE ... RETURNING hands the record to one caller.
        """
        record = recovery_service.issue(ADMIN_ID, RecoveryScope.ADMIN)
        winners: list[str] = []
        losers: list[Exception] = []
        lock = threading.Lock()
        attempts = 10

        def redeem() -> None:
            try:
                principal = recovery_service.consume(RecoveryScope.ADMIN, record.code)
            except RecoveryCodeNotFound as e:
                with lock:
                    losers.append(e)
            else:
                with lock:
                    winners.append(principal)

        with ThreadPoolExecutor(max_workers=attempts) as executor:
            for f in [executor.submit(redeem) for _ in range(attempts)]:
                f.result()

        assert winners == [ADMIN_ID]
        assert len(losers) == attempts - 1

    def test_consume_racing_sweep(self, pool: ConnectionPool) -> None:
        """
        Redemption of a stale code racing the sweep never succeeds.

        Expected defense: whichever runs first removes the row; the
        redemption then sees NotFound or Expired, never success.
        """
        def stale_clock() -> datetime:
            return datetime.now(UTC) - timedelta(minutes=20)

        repository = PostgresRecoveryCodeRepository(pool)
        issuer = RecoveryCodeService(repository=repository, clock=stale_clock)
        service = RecoveryCodeService(repository=repository)
        record = issuer.issue(ADMIN_ID, RecoveryScope.ADMIN)
        outcome: list[str] = []

        def redeem() -> None:
            try:
                service.consume(RecoveryScope.ADMIN, record.code)
            except (RecoveryCodeNotFound, RecoveryCodeExpired) as e:
                outcome.append(type(e).__name__)
            else:
                outcome.append("redeemed")

        with ThreadPoolExecutor(max_workers=2) as executor:
            futures = [executor.submit(redeem), executor.submit(service.sweep_expired)]
            for f in futures:
                f.result()

        assert outcome and outcome[0] != "redeemed"

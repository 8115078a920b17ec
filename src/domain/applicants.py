"""
Applicant domain service - pending applicant lifecycle.

Lifecycle (forward-only)
========================

Steps:
1. created            create_applicant()       code sent to the email
2. contact verified   verify_contact()         code checked, flag set
3. credentials set    complete_credentials()   applicant becomes review-eligible
4. decided            approve() / reject()     terminal, row removed

Admin decisions use the ReviewState tag as a single-row compare-and-set
claim (UNREVIEWED -> APPROVED | REJECTED). Only one decision can win; a
concurrent second attempt observes ApplicantNotFound.

Promotion strategy
==================

approve() spans two collections, so it runs as a compensating sequence:

    claim    UNREVIEWED -> APPROVED        (atomic, single row)
    insert   account with status=active    (failure: claim released, error raised)
    delete   pending row                   (failure: PartialPromotion raised)

After a PartialPromotion the pending row still exists but carries the
terminal APPROVED tag: it is hidden from the review queue and cannot be
approved or rejected again.

Reconciliation
==============

purge_decided() only looks at rows decided more than `decided_grace` ago,
so it never races an approve() that is still running. An APPROVED row
whose account exists is deleted. An APPROVED row with no account means
the claim was never released after a failed insert; it is reopened
(APPROVED -> UNREVIEWED) and returns to the review queue.
"""

import logging
from dataclasses import dataclass, replace
from datetime import timedelta

from .credentials import (
    DEFAULT_BCRYPT_ROUNDS,
    codes_match,
    generate_numeric_code,
    hash_password,
    normalize_email,
)
from .exceptions import (
    ApplicantNotFound,
    CodeMismatch,
    ContactNotVerified,
    DuplicateContact,
    InvalidInput,
    NotReviewEligible,
    PartialPromotion,
    StoreUnavailable,
    UsernameTaken,
)
from .ports import (
    AccountRepository,
    AccountStatus,
    ApplicantIdentity,
    ApplicantRepository,
    Clock,
    EmailSender,
    PendingApplicant,
    ReviewQueueEntry,
    ReviewState,
    utc_now,
)

logger = logging.getLogger(__name__)

CONTACT_CODE_LENGTH = 6

# Far above any store timeout, so a decision older than this is no longer in flight
DECIDED_GRACE = timedelta(hours=1)


@dataclass
class ApplicantService:
    """
    Domain service for the pending applicant state machine.

    Orchestrates creation, contact verification, credential completion,
    the review queue and admin decisions.
    """

    applicants: ApplicantRepository
    accounts: AccountRepository
    email_sender: EmailSender
    clock: Clock = utc_now
    bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS
    decided_grace: timedelta = DECIDED_GRACE

    def create_applicant(self, identity: ApplicantIdentity) -> str:
        """
        Start an application and send a contact verification code.

        An unverified applicant registering again with the same email
        gets a fresh code on the existing record.

        Args:
            identity: Identity fields (email will be normalized)

        Returns:
            Applicant id

        Raises:
            DuplicateContact: Email held by an account or a verified applicant
        """
        identity = replace(identity, email=normalize_email(identity.email))

        if self.accounts.contact_exists(identity.email):
            raise DuplicateContact(identity.email)

        code = generate_numeric_code(CONTACT_CODE_LENGTH)
        existing = self.applicants.find_by_email(identity.email)

        if existing is None:
            applicant_id = self.applicants.insert(identity, code, self.clock())
            logger.info("Applicant %s created", applicant_id)
        else:
            if existing.is_contact_verified or existing.review_state is not ReviewState.UNREVIEWED:
                raise DuplicateContact(identity.email)
            if not self.applicants.reissue_code(existing.id, code):
                # verified or decided between the read and the write
                raise DuplicateContact(identity.email)
            applicant_id = existing.id
            logger.info("Verification code reissued for applicant %s", applicant_id)

        self.email_sender.send_verification_code(identity.email, code)
        return applicant_id

    def verify_contact(self, applicant_id: str, submitted_code: str) -> None:
        """
        Check the submitted code and mark the contact channel verified.

        The code is compared on every call, including for applicants that
        are already verified.

        Raises:
            ApplicantNotFound: Unknown or decided applicant
            CodeMismatch: Submitted code differs from the stored one
        """
        applicant = self._get_open(applicant_id)

        if not codes_match(applicant.contact_verification_code, submitted_code):
            raise CodeMismatch(applicant_id)

        if not self.applicants.mark_contact_verified(applicant_id):
            raise ApplicantNotFound(applicant_id)

    def complete_credentials(self, applicant_id: str, username: str, password: str) -> None:
        """
        Set username and password (step 3).

        Raises:
            InvalidInput: Blank username or password
            ApplicantNotFound: Unknown or already decided applicant
            ContactNotVerified: Step 2 not completed
            UsernameTaken: Username held by another applicant or an account
        """
        username = username.strip()
        if not username or not password:
            raise InvalidInput("username and password are required")

        applicant = self._get_open(applicant_id)
        if not applicant.is_contact_verified:
            raise ContactNotVerified(applicant_id)

        if self.applicants.username_exists(
            username, exclude_id=applicant_id
        ) or self.accounts.username_exists(username):
            raise UsernameTaken(username)

        credential_hash = hash_password(password, self.bcrypt_rounds)
        if not self.applicants.set_credentials(applicant_id, username, credential_hash):
            raise ApplicantNotFound(applicant_id)

    def list_review_queue(self) -> list[ReviewQueueEntry]:
        """Applicants awaiting an admin decision."""
        return self.applicants.list_review_queue()

    def approve(self, applicant_id: str) -> str:
        """
        Promote a review-eligible applicant to an active account.

        Returns:
            Id of the created account

        Raises:
            ApplicantNotFound: Unknown, already decided, or lost a concurrent claim
            NotReviewEligible: Applicant has not finished steps 2 and 3
            DuplicateContact / UsernameTaken: Account already uses the email/username
            PartialPromotion: Account created but pending row not removed
        """
        applicant = self._get_open(applicant_id)
        if not applicant.is_review_eligible:
            raise NotReviewEligible(applicant_id)

        if self.accounts.contact_exists(applicant.identity.email):
            raise DuplicateContact(applicant.identity.email)
        if self.accounts.username_exists(applicant.username):
            raise UsernameTaken(applicant.username)

        now = self.clock()
        if not self.applicants.transition_review(
            applicant_id, ReviewState.UNREVIEWED, ReviewState.APPROVED, now
        ):
            raise ApplicantNotFound(applicant_id)

        try:
            account_id = self.accounts.insert(
                applicant.identity,
                applicant.username,
                applicant.credential_hash,
                AccountStatus.ACTIVE,
                now,
            )
        except Exception:
            self._release_claim(applicant_id)
            raise

        try:
            removed = self.applicants.delete(applicant_id)
        except StoreUnavailable as exc:
            logger.warning(
                "Applicant %s promoted to account %s but removal failed", applicant_id, account_id
            )
            raise PartialPromotion(applicant_id, account_id) from exc

        if not removed:
            logger.warning(
                "Applicant %s promoted to account %s but row was already gone",
                applicant_id,
                account_id,
            )

        logger.info("Applicant %s approved as account %s", applicant_id, account_id)
        return account_id

    def reject(self, applicant_id: str) -> None:
        """
        Discard an applicant without creating an account.

        Raises:
            ApplicantNotFound: Unknown or already decided applicant
        """
        if not self.applicants.transition_review(
            applicant_id, ReviewState.UNREVIEWED, ReviewState.REJECTED, self.clock()
        ):
            raise ApplicantNotFound(applicant_id)

        # a REJECTED row left behind is reclaimed by purge_decided()
        self.applicants.delete(applicant_id)
        logger.info("Applicant %s rejected", applicant_id)

    def purge_decided(self) -> int:
        """
        Reconcile applicants left behind with a terminal review tag.

        Only rows decided more than `decided_grace` ago are considered.
        Settled rows are deleted; APPROVED rows without an account are
        reopened for review.

        Returns:
            Number of rows deleted
        """
        now = self.clock()
        cutoff = now - self.decided_grace
        settled: list[str] = []
        for applicant in self.applicants.list_decided(cutoff):
            orphaned = applicant.review_state is ReviewState.APPROVED and not (
                self.accounts.contact_exists(applicant.identity.email)
            )
            if not orphaned:
                settled.append(applicant.id)
            elif self.applicants.transition_review(
                applicant.id, ReviewState.APPROVED, ReviewState.UNREVIEWED, now
            ):
                logger.warning(
                    "Reopened applicant %s: approval never produced an account", applicant.id
                )

        purged = self.applicants.delete_decided(settled, cutoff) if settled else 0
        if purged:
            logger.info("Purged %d decided applicant(s)", purged)
        return purged

    def check_duplicate(self, email: str | None = None, username: str | None = None) -> None:
        """
        Report whether an email or username is already in use.

        Raises:
            InvalidInput: Neither value supplied
            DuplicateContact: Email in use by an applicant or account
            UsernameTaken: Username in use by an applicant or account
        """
        email = normalize_email(email) if email else ""
        username = username.strip() if username else ""
        if not email and not username:
            raise InvalidInput("email or username is required")

        if email and (
            self.accounts.contact_exists(email) or self.applicants.find_by_email(email) is not None
        ):
            raise DuplicateContact(email)

        if username and (
            self.applicants.username_exists(username) or self.accounts.username_exists(username)
        ):
            raise UsernameTaken(username)

    def _get_open(self, applicant_id: str) -> PendingApplicant:
        """Fetch an applicant that has not been decided yet."""
        applicant = self.applicants.get(applicant_id)
        if applicant is None or applicant.review_state is not ReviewState.UNREVIEWED:
            raise ApplicantNotFound(applicant_id)
        return applicant

    def _release_claim(self, applicant_id: str) -> None:
        """
        Undo an APPROVED claim after account creation failed.

        A release that cannot reach the store leaves the claim in place;
        purge_decided() reopens it once the grace period has passed.
        """
        try:
            released = self.applicants.transition_review(
                applicant_id, ReviewState.APPROVED, ReviewState.UNREVIEWED, self.clock()
            )
        except StoreUnavailable:
            logger.warning("Approval claim on applicant %s left for reconciliation", applicant_id)
            return
        if released:
            logger.warning("Released approval claim on applicant %s", applicant_id)
        else:
            logger.warning("Approval claim on applicant %s could not be released", applicant_id)

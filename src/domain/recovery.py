"""
Recovery code domain service - one-time, time-bounded recovery codes.

One generic entity serves both principal namespaces; the difference
between them is carried by ScopePolicy:

- ADMIN: fixed 15-minute window, physically removed by sweep_expired()
  once older than the window, whether consumed or not.
- USER: configurable window, expiry checked at consumption time only.

Codes are deleted on consumption in both scopes.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta

from .credentials import generate_numeric_code
from .exceptions import DuplicateRecoveryCode, RecoveryCodeExpired, RecoveryCodeNotFound
from .ports import Clock, RecoveryCode, RecoveryCodeRepository, RecoveryScope, ScopePolicy, utc_now

logger = logging.getLogger(__name__)

RECOVERY_CODE_LENGTH = 6
MAX_ISSUE_ATTEMPTS = 5

ADMIN_CODE_VALIDITY = timedelta(minutes=15)
ADMIN_POLICY = ScopePolicy(validity=ADMIN_CODE_VALIDITY, physical_expiry_enforced=True)


@dataclass
class RecoveryCodeService:
    """Issues, consumes and sweeps recovery codes."""

    repository: RecoveryCodeRepository
    user_validity: timedelta = timedelta(minutes=15)
    clock: Clock = utc_now

    def policy(self, scope: RecoveryScope) -> ScopePolicy:
        if scope is RecoveryScope.ADMIN:
            return ADMIN_POLICY
        return ScopePolicy(validity=self.user_validity, physical_expiry_enforced=False)

    def issue(self, principal_id: str, scope: RecoveryScope) -> RecoveryCode:
        """
        Issue a fresh code for the principal, replacing any earlier ones.

        A collision with an existing code value is retried with a newly
        generated value up to MAX_ISSUE_ATTEMPTS times.

        Raises:
            DuplicateRecoveryCode: Every attempt collided
        """
        policy = self.policy(scope)
        self.repository.delete_for_principal(scope, principal_id)

        for attempt in range(1, MAX_ISSUE_ATTEMPTS + 1):
            now = self.clock()
            record = RecoveryCode(
                scope=scope,
                principal_id=principal_id,
                code=generate_numeric_code(RECOVERY_CODE_LENGTH),
                created_at=now,
                expires_at=now + policy.validity,
            )
            try:
                self.repository.insert(record)
            except DuplicateRecoveryCode:
                logger.debug(
                    "Recovery code collision in %s scope (attempt %d)", scope.value, attempt
                )
                continue
            logger.info("Recovery code issued in %s scope for %s", scope.value, principal_id)
            return record

        raise DuplicateRecoveryCode(
            f"no unique {scope.value} code after {MAX_ISSUE_ATTEMPTS} attempts"
        )

    def consume(self, scope: RecoveryScope, submitted_code: str) -> str:
        """
        Redeem a code once.

        The record is removed before its expiry is checked, so an expired
        code is also gone afterwards.

        Returns:
            Principal id the code was issued to

        Raises:
            RecoveryCodeNotFound: No code matched (never issued, used, or swept)
            RecoveryCodeExpired: Code matched but its window has passed
        """
        record = self.repository.consume(scope, submitted_code.strip())
        if record is None:
            raise RecoveryCodeNotFound(scope.value)
        if self.clock() > record.expires_at:
            raise RecoveryCodeExpired(scope.value)
        return record.principal_id

    def sweep_expired(self) -> int:
        """Physically remove stale codes in scopes that enforce it."""
        removed = 0
        for scope in RecoveryScope:
            policy = self.policy(scope)
            if not policy.physical_expiry_enforced:
                continue
            removed += self.repository.delete_created_before(scope, self.clock() - policy.validity)
        return removed

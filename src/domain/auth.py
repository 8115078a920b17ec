"""
Authentication domain service - logins and password recovery.

Admins and account holders authenticate in separate token namespaces.
Password recovery goes through RecoveryCodeService in the matching scope.

Unknown usernames never produce a distinguishable outcome: login always
spends one bcrypt comparison, and recovery requests for unknown users
return silently.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta

from .credentials import DEFAULT_BCRYPT_ROUNDS, hash_password, verify_password
from .exceptions import (
    AccountNotActive,
    InvalidCredentials,
    InvalidInput,
    InvalidToken,
    RecoveryCodeNotFound,
)
from .ports import (
    AccountRepository,
    AccountStatus,
    Administrator,
    AdminRepository,
    EmailSender,
    RecoveryScope,
    TokenNamespace,
    TokenService,
)
from .recovery import RecoveryCodeService

logger = logging.getLogger(__name__)


@dataclass
class AuthService:
    """Domain service for admin and user authentication flows."""

    admins: AdminRepository
    accounts: AccountRepository
    recovery_codes: RecoveryCodeService
    token_service: TokenService
    email_sender: EmailSender
    admin_token_ttl: timedelta = timedelta(hours=1)
    user_token_ttl: timedelta = timedelta(hours=1)
    bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS

    def admin_login(self, username: str, password: str) -> str:
        """
        Exchange admin credentials for an admin-namespace token.

        Raises:
            InvalidCredentials: Unknown username or wrong password
        """
        admin = self.admins.find_by_username(username.strip())
        # verify_password runs bcrypt against a dummy hash when admin is None
        if not verify_password(password, admin.credential_hash if admin else None) or admin is None:
            raise InvalidCredentials("admin")
        logger.info("Admin %s logged in", admin.id)
        return self.token_service.sign(admin.id, TokenNamespace.ADMIN, self.admin_token_ttl)

    def current_admin(self, admin_id: str) -> Administrator:
        """
        Resolve the administrator behind a verified admin token.

        Tokens outlive deleted administrators, so a valid signature alone
        does not prove the principal still exists.

        Raises:
            InvalidToken: The administrator no longer exists
        """
        admin = self.admins.get(admin_id)
        if admin is None:
            logger.warning("Admin token presented for unknown administrator %s", admin_id)
            raise InvalidToken("admin")
        return admin

    def user_login(self, username: str, password: str) -> str:
        """
        Exchange account credentials for a user-namespace token.

        Raises:
            InvalidCredentials: Unknown username or wrong password
            AccountNotActive: Credentials valid but account still pending
        """
        account = self.accounts.find_by_username(username.strip())
        if (
            not verify_password(password, account.credential_hash if account else None)
            or account is None
        ):
            raise InvalidCredentials("user")
        if account.status is not AccountStatus.ACTIVE:
            raise AccountNotActive(account.id)
        return self.token_service.sign(account.id, TokenNamespace.USER, self.user_token_ttl)

    def request_admin_recovery(self, username: str) -> None:
        """Email a recovery code to the admin if the username exists."""
        admin = self.admins.find_by_username(username.strip())
        if admin is None or not admin.email.strip():
            logger.info("Admin recovery requested for unknown username")
            return
        record = self.recovery_codes.issue(admin.id, RecoveryScope.ADMIN)
        self.email_sender.send_recovery_code(
            admin.email, record.code, self._minutes(RecoveryScope.ADMIN)
        )

    def request_user_recovery(self, username: str) -> None:
        """Email a recovery code to an active account holder if the username exists."""
        account = self.accounts.find_by_username(username.strip())
        if account is None or account.status is not AccountStatus.ACTIVE:
            logger.info("User recovery requested for unknown or inactive username")
            return
        record = self.recovery_codes.issue(account.id, RecoveryScope.USER)
        self.email_sender.send_recovery_code(
            account.identity.email, record.code, self._minutes(RecoveryScope.USER)
        )

    def reset_admin_password(self, code: str, new_password: str) -> None:
        """
        Redeem an admin recovery code and set a new password.

        Raises:
            InvalidInput: Blank new password
            RecoveryCodeNotFound: Unknown/used code, or the admin no longer exists
            RecoveryCodeExpired: Code past its window
        """
        self._require_password(new_password)
        admin_id = self.recovery_codes.consume(RecoveryScope.ADMIN, code)
        if not self.admins.update_password(
            admin_id, hash_password(new_password, self.bcrypt_rounds)
        ):
            raise RecoveryCodeNotFound(RecoveryScope.ADMIN.value)
        logger.info("Admin %s password reset", admin_id)

    def reset_user_password(self, code: str, new_password: str) -> None:
        """Redeem a user recovery code and set a new password."""
        self._require_password(new_password)
        account_id = self.recovery_codes.consume(RecoveryScope.USER, code)
        if not self.accounts.update_password(
            account_id, hash_password(new_password, self.bcrypt_rounds)
        ):
            raise RecoveryCodeNotFound(RecoveryScope.USER.value)
        logger.info("Account %s password reset", account_id)

    def _minutes(self, scope: RecoveryScope) -> int:
        return int(self.recovery_codes.policy(scope).validity.total_seconds() // 60)

    @staticmethod
    def _require_password(password: str) -> None:
        if not password:
            raise InvalidInput("new password is required")

"""
Account administration - bulk and single-record operations over accounts.

Bulk operations are single batched store calls. They are not
all-or-nothing across the selection: ids that do not match the store
predicate are skipped and the caller receives a count, never a
per-record error list.

Every bulk entry point rejects an empty selection before touching the
store, so an empty filter can never reach an unscoped update or delete.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from .credentials import DEFAULT_BCRYPT_ROUNDS, hash_password
from .exceptions import AccountNotFound, EmptySelection, InvalidInput, NothingDeleted
from .ports import Account, AccountRepository, AccountStatus

logger = logging.getLogger(__name__)


@dataclass
class AccountAdminService:
    """Domain service for admin operations over accounts."""

    accounts: AccountRepository
    bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS

    def bulk_approve(self, account_ids: Iterable[str]) -> int:
        """
        Admit every selected account currently in status pending.

        Already active or unknown ids are silently skipped.

        Returns:
            Number of accounts flipped to active (may be below the selection size)

        Raises:
            EmptySelection: No ids supplied
        """
        selection = self._selection(account_ids)
        matched = self.accounts.activate_pending(selection)
        logger.info("Bulk approve matched %d of %d account(s)", matched, len(selection))
        return matched

    def bulk_delete(self, account_ids: Iterable[str]) -> int:
        """
        Delete every selected account.

        Returns:
            Number of deleted accounts

        Raises:
            EmptySelection: No ids supplied
            NothingDeleted: None of the ids matched an account
        """
        selection = self._selection(account_ids)
        deleted = self.accounts.delete_many(selection)
        if deleted == 0:
            raise NothingDeleted(f"none of {len(selection)} account(s) found")
        logger.info("Bulk delete removed %d of %d account(s)", deleted, len(selection))
        return deleted

    def list_accounts(self, status: AccountStatus | None = None) -> list[Account]:
        """All accounts, or only those in `status`, oldest first."""
        return self.accounts.list_accounts(status)

    def get_account(self, account_id: str) -> Account:
        account = self.accounts.get(account_id)
        if account is None:
            raise AccountNotFound(account_id)
        return account

    def set_two_factor(self, account_id: str, enabled: bool) -> None:
        """Enable or disable 2FA; setting the current value again is a no-op success."""
        if not isinstance(enabled, bool):
            raise InvalidInput("two_factor_enabled must be a boolean")
        if not self.accounts.set_two_factor(account_id, enabled):
            raise AccountNotFound(account_id)

    def delete_account(self, account_id: str) -> None:
        if not self.accounts.delete(account_id):
            raise AccountNotFound(account_id)
        logger.info("Account %s deleted", account_id)

    def reset_password(self, account_id: str, new_password: str) -> None:
        """
        Set an account's password on an administrator's behalf.

        Raises:
            InvalidInput: Blank password
            AccountNotFound: Unknown account
        """
        if not new_password:
            raise InvalidInput("new password is required")
        credential_hash = hash_password(new_password, self.bcrypt_rounds)
        if not self.accounts.update_password(account_id, credential_hash):
            raise AccountNotFound(account_id)
        logger.info("Password of account %s reset by an administrator", account_id)

    @staticmethod
    def _selection(account_ids: Iterable[str]) -> list[str]:
        """De-duplicate ids and drop blanks; refuse an empty result."""
        selection = sorted({account_id for account_id in account_ids if account_id})
        if not selection:
            raise EmptySelection("at least one account id is required")
        return selection

"""
PostgreSQL repository adapters - Implement the domain repository protocols.

This module provides the PostgreSQL implementations of the domain's
repository ports using psycopg3 with raw SQL.

Concurrency Design:
-------------------
Every state change is a single SQL statement, so correctness rests on
PostgreSQL's per-row atomicity and the declared UNIQUE constraints:

1. **Review claims**: `transition_review` is an UPDATE guarded by the
   expected tag. Two concurrent approvals cannot both match.

2. **Bulk approve**: one UPDATE with `status = 'pending'` in the WHERE
   clause. PostgreSQL re-checks the predicate after acquiring each row
   lock, so overlapping calls never activate (or count) a row twice.

3. **Recovery codes**: `consume` is `DELETE ... RETURNING`, so a code can
   be redeemed once even when requests and the sweep race.

Error Translation:
------------------
Pool checkout timeouts and server errors such as statement timeouts
surface as StoreUnavailable. Unique violations surface as the matching
Conflict exception. Malformed ids are treated as unknown ids.
"""

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any
from uuid import UUID

import psycopg
from psycopg.errors import UniqueViolation
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool, PoolTimeout

from src.domain.exceptions import (
    DuplicateContact,
    DuplicateRecoveryCode,
    StoreUnavailable,
    UsernameTaken,
)
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

logger = logging.getLogger(__name__)

_IDENTITY_COLUMNS = (
    "full_name, email, phone, national_id, street_address, city, state, zip_code"
)

# Legacy rows may carry no review tag; they are unreviewed.
_REVIEW_STATE = "COALESCE(review_state, 'UNREVIEWED')"

_APPLICANT_COLUMNS = f"""
    id, {_IDENTITY_COLUMNS}, contact_verification_code, is_contact_verified,
    username, credential_hash, {_REVIEW_STATE} AS review_state, created_at, decided_at
"""

# Terminal rows written before decided_at existed count as long decided.
_DECIDED_BEFORE = "(decided_at IS NULL OR decided_at < %s)"


def _as_uuid(value: str) -> UUID | None:
    """Parse an opaque id; None for anything that is not a UUID."""
    try:
        return UUID(str(value))
    except ValueError:
        return None


def _as_uuids(values: Sequence[str]) -> list[UUID]:
    return [parsed for parsed in (_as_uuid(value) for value in values) if parsed is not None]


def _identity(row: dict[str, Any]) -> ApplicantIdentity:
    return ApplicantIdentity(
        full_name=row["full_name"],
        email=row["email"],
        phone=row["phone"],
        national_id=row["national_id"],
        street_address=row["street_address"],
        city=row["city"],
        state=row["state"],
        zip_code=row["zip_code"],
    )


def _identity_params(identity: ApplicantIdentity) -> tuple[str, ...]:
    return (
        identity.full_name,
        identity.email,
        identity.phone,
        identity.national_id,
        identity.street_address,
        identity.city,
        identity.state,
        identity.zip_code,
    )


def _applicant(row: dict[str, Any]) -> PendingApplicant:
    return PendingApplicant(
        id=str(row["id"]),
        identity=_identity(row),
        contact_verification_code=row["contact_verification_code"],
        is_contact_verified=row["is_contact_verified"],
        username=row["username"],
        credential_hash=row["credential_hash"],
        review_state=ReviewState(row["review_state"]),
        created_at=row["created_at"],
        decided_at=row["decided_at"],
    )


def _account(row: dict[str, Any]) -> Account:
    return Account(
        id=str(row["id"]),
        identity=_identity(row),
        username=row["username"],
        credential_hash=row["credential_hash"],
        status=AccountStatus(row["status"]),
        two_factor_enabled=row["two_factor_enabled"],
        created_at=row["created_at"],
    )


class _PostgresRepository:
    """Shared pool handling and error translation."""

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    @contextmanager
    def _cursor(self) -> Iterator[psycopg.Cursor[dict[str, Any]]]:
        """
        Yield a dict-row cursor inside a transaction.

        The pool connection commits on clean exit and rolls back when
        an exception escapes the block.
        """
        try:
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                yield cursor
        except PoolTimeout as e:
            logger.warning("Connection pool checkout timed out")
            raise StoreUnavailable("connection pool timeout") from e
        except psycopg.OperationalError as e:
            logger.warning(f"Database unavailable: {e}")
            raise StoreUnavailable(str(e)) from e


class PostgresApplicantRepository(_PostgresRepository):
    """
    Implements ApplicantRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def insert(self, identity: ApplicantIdentity, code: str, created_at: datetime) -> str:
        sql = f"""
            INSERT INTO pending_applicants ({_IDENTITY_COLUMNS},
                contact_verification_code, is_contact_verified,
                username, credential_hash, review_state, created_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, FALSE, '', '', 'UNREVIEWED', %s)
            RETURNING id
        """
        try:
            with self._cursor() as cursor:
                cursor.execute(sql, (*_identity_params(identity), code, created_at))
                row = cursor.fetchone()
        except UniqueViolation as e:
            raise DuplicateContact(identity.email) from e
        return str(row["id"])

    def get(self, applicant_id: str) -> PendingApplicant | None:
        key = _as_uuid(applicant_id)
        if key is None:
            return None
        return self._fetch_one("id = %s", key)

    def find_by_email(self, email: str) -> PendingApplicant | None:
        return self._fetch_one("email = %s", email)

    def username_exists(self, username: str, exclude_id: str | None = None) -> bool:
        exclude = _as_uuid(exclude_id) if exclude_id is not None else None
        sql = """
            SELECT 1 FROM pending_applicants
            WHERE username = %s AND (%s::uuid IS NULL OR id <> %s::uuid)
        """
        with self._cursor() as cursor:
            cursor.execute(sql, (username, exclude, exclude))
            return cursor.fetchone() is not None

    def reissue_code(self, applicant_id: str, code: str) -> bool:
        sql = f"""
            UPDATE pending_applicants
            SET contact_verification_code = %s
            WHERE id = %s AND NOT is_contact_verified AND {_REVIEW_STATE} = 'UNREVIEWED'
        """
        return self._update_one(sql, code, applicant_id)

    def mark_contact_verified(self, applicant_id: str) -> bool:
        sql = f"""
            UPDATE pending_applicants
            SET is_contact_verified = TRUE
            WHERE id = %s AND {_REVIEW_STATE} = 'UNREVIEWED'
        """
        return self._update_one(sql, applicant_id)

    def set_credentials(self, applicant_id: str, username: str, credential_hash: str) -> bool:
        sql = f"""
            UPDATE pending_applicants
            SET username = %s, credential_hash = %s
            WHERE id = %s AND is_contact_verified AND {_REVIEW_STATE} = 'UNREVIEWED'
        """
        return self._update_one(sql, username, credential_hash, applicant_id)

    def transition_review(
        self, applicant_id: str, expected: ReviewState, new: ReviewState, at: datetime
    ) -> bool:
        sql = f"""
            UPDATE pending_applicants
            SET review_state = %s, decided_at = %s
            WHERE id = %s AND {_REVIEW_STATE} = %s
        """
        key = _as_uuid(applicant_id)
        if key is None:
            return False
        decided_at = None if new is ReviewState.UNREVIEWED else at
        with self._cursor() as cursor:
            cursor.execute(sql, (new.value, decided_at, key, expected.value))
            return cursor.rowcount == 1

    def delete(self, applicant_id: str) -> bool:
        key = _as_uuid(applicant_id)
        if key is None:
            return False
        with self._cursor() as cursor:
            cursor.execute("DELETE FROM pending_applicants WHERE id = %s", (key,))
            return cursor.rowcount == 1

    def list_review_queue(self) -> list[ReviewQueueEntry]:
        sql = f"""
            SELECT id, {_IDENTITY_COLUMNS}, username, created_at
            FROM pending_applicants
            WHERE is_contact_verified
              AND username <> ''
              AND credential_hash <> ''
              AND {_REVIEW_STATE} = 'UNREVIEWED'
            ORDER BY created_at
        """
        with self._cursor() as cursor:
            cursor.execute(sql)
            rows = cursor.fetchall()
        return [
            ReviewQueueEntry(
                id=str(row["id"]),
                identity=_identity(row),
                username=row["username"],
                created_at=row["created_at"],
            )
            for row in rows
        ]

    def list_decided(self, decided_before: datetime) -> list[PendingApplicant]:
        sql = f"""
            SELECT {_APPLICANT_COLUMNS}
            FROM pending_applicants
            WHERE review_state IN ('APPROVED', 'REJECTED') AND {_DECIDED_BEFORE}
            ORDER BY decided_at NULLS FIRST
        """
        with self._cursor() as cursor:
            cursor.execute(sql, (decided_before,))
            return [_applicant(row) for row in cursor.fetchall()]

    def delete_decided(self, applicant_ids: Sequence[str], decided_before: datetime) -> int:
        keys = _as_uuids(applicant_ids)
        if not keys:
            return 0
        sql = f"""
            DELETE FROM pending_applicants
            WHERE id = ANY(%s)
              AND review_state IN ('APPROVED', 'REJECTED')
              AND {_DECIDED_BEFORE}
        """
        with self._cursor() as cursor:
            cursor.execute(sql, (keys, decided_before))
            return cursor.rowcount

    def _fetch_one(self, predicate: str, value: Any) -> PendingApplicant | None:
        sql = f"SELECT {_APPLICANT_COLUMNS} FROM pending_applicants WHERE {predicate}"
        with self._cursor() as cursor:
            cursor.execute(sql, (value,))
            row = cursor.fetchone()
        return None if row is None else _applicant(row)

    def _update_one(self, sql: str, *params: Any) -> bool:
        """Run a single-row UPDATE whose last parameter is the id."""
        *values, raw_id = params
        key = _as_uuid(raw_id)
        if key is None:
            return False
        with self._cursor() as cursor:
            cursor.execute(sql, (*values, key))
            return cursor.rowcount == 1


class PostgresAccountRepository(_PostgresRepository):
    """Implements AccountRepository protocol via psycopg3."""

    _SELECT = f"""
        SELECT id, {_IDENTITY_COLUMNS}, username, credential_hash, status,
               two_factor_enabled, created_at
        FROM accounts
    """

    def insert(
        self,
        identity: ApplicantIdentity,
        username: str,
        credential_hash: str,
        status: AccountStatus,
        created_at: datetime,
    ) -> str:
        sql = f"""
            INSERT INTO accounts ({_IDENTITY_COLUMNS},
                username, credential_hash, status, two_factor_enabled, created_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, FALSE, %s)
            RETURNING id
        """
        params = (*_identity_params(identity), username, credential_hash, status.value, created_at)
        try:
            with self._cursor() as cursor:
                cursor.execute(sql, params)
                row = cursor.fetchone()
        except UniqueViolation as e:
            if e.diag.constraint_name == "accounts_username_key":
                raise UsernameTaken(username) from e
            raise DuplicateContact(identity.email) from e
        return str(row["id"])

    def get(self, account_id: str) -> Account | None:
        key = _as_uuid(account_id)
        if key is None:
            return None
        return self._fetch_one("id = %s", key)

    def list_accounts(self, status: AccountStatus | None = None) -> list[Account]:
        sql = f"{self._SELECT} WHERE (%s::text IS NULL OR status = %s) ORDER BY created_at"
        value = status.value if status is not None else None
        with self._cursor() as cursor:
            cursor.execute(sql, (value, value))
            return [_account(row) for row in cursor.fetchall()]

    def find_by_username(self, username: str) -> Account | None:
        return self._fetch_one("username = %s", username)

    def contact_exists(self, email: str) -> bool:
        return self._exists("email = %s", email)

    def username_exists(self, username: str) -> bool:
        return self._exists("username = %s", username)

    def set_two_factor(self, account_id: str, enabled: bool) -> bool:
        key = _as_uuid(account_id)
        if key is None:
            return False
        with self._cursor() as cursor:
            cursor.execute(
                "UPDATE accounts SET two_factor_enabled = %s WHERE id = %s", (enabled, key)
            )
            return cursor.rowcount == 1

    def update_password(self, account_id: str, credential_hash: str) -> bool:
        key = _as_uuid(account_id)
        if key is None:
            return False
        with self._cursor() as cursor:
            cursor.execute(
                "UPDATE accounts SET credential_hash = %s WHERE id = %s", (credential_hash, key)
            )
            return cursor.rowcount == 1

    def activate_pending(self, account_ids: Sequence[str]) -> int:
        keys = _as_uuids(account_ids)
        if not keys:
            return 0
        sql = """
            UPDATE accounts
            SET status = 'active'
            WHERE id = ANY(%s) AND status = 'pending'
        """
        with self._cursor() as cursor:
            cursor.execute(sql, (keys,))
            return cursor.rowcount

    def delete(self, account_id: str) -> bool:
        key = _as_uuid(account_id)
        if key is None:
            return False
        with self._cursor() as cursor:
            cursor.execute("DELETE FROM accounts WHERE id = %s", (key,))
            return cursor.rowcount == 1

    def delete_many(self, account_ids: Sequence[str]) -> int:
        keys = _as_uuids(account_ids)
        if not keys:
            return 0
        with self._cursor() as cursor:
            cursor.execute("DELETE FROM accounts WHERE id = ANY(%s)", (keys,))
            return cursor.rowcount

    def _exists(self, predicate: str, value: Any) -> bool:
        with self._cursor() as cursor:
            cursor.execute(f"SELECT 1 FROM accounts WHERE {predicate}", (value,))
            return cursor.fetchone() is not None

    def _fetch_one(self, predicate: str, value: Any) -> Account | None:
        with self._cursor() as cursor:
            cursor.execute(f"{self._SELECT} WHERE {predicate}", (value,))
            row = cursor.fetchone()
        return None if row is None else _account(row)


class PostgresAdminRepository(_PostgresRepository):
    """Implements AdminRepository protocol via psycopg3."""

    def find_by_username(self, username: str) -> Administrator | None:
        return self._fetch_one("username = %s", username)

    def get(self, admin_id: str) -> Administrator | None:
        key = _as_uuid(admin_id)
        if key is None:
            return None
        return self._fetch_one("id = %s", key)

    def update_password(self, admin_id: str, credential_hash: str) -> bool:
        key = _as_uuid(admin_id)
        if key is None:
            return False
        with self._cursor() as cursor:
            cursor.execute(
                "UPDATE administrators SET credential_hash = %s WHERE id = %s",
                (credential_hash, key),
            )
            return cursor.rowcount == 1

    def _fetch_one(self, predicate: str, value: Any) -> Administrator | None:
        sql = f"SELECT id, username, email, credential_hash FROM administrators WHERE {predicate}"
        with self._cursor() as cursor:
            cursor.execute(sql, (value,))
            row = cursor.fetchone()
        if row is None:
            return None
        return Administrator(
            id=str(row["id"]),
            username=row["username"],
            email=row["email"],
            credential_hash=row["credential_hash"],
        )


class PostgresRecoveryCodeRepository(_PostgresRepository):
    """
    Implements RecoveryCodeRepository protocol via psycopg3.

    Both scopes live in one table partitioned by the `scope` column,
    with UNIQUE (scope, code).
    """

    def insert(self, code: RecoveryCode) -> None:
        sql = """
            INSERT INTO recovery_codes (scope, principal_id, code, created_at, expires_at)
            VALUES (%s, %s, %s, %s, %s)
        """
        principal = _as_uuid(code.principal_id)
        if principal is None:
            raise ValueError(f"principal id is not a UUID: {code.principal_id!r}")
        try:
            with self._cursor() as cursor:
                cursor.execute(
                    sql,
                    (code.scope.value, principal, code.code, code.created_at, code.expires_at),
                )
        except UniqueViolation as e:
            raise DuplicateRecoveryCode(code.scope.value) from e

    def delete_for_principal(self, scope: RecoveryScope, principal_id: str) -> int:
        principal = _as_uuid(principal_id)
        if principal is None:
            return 0
        with self._cursor() as cursor:
            cursor.execute(
                "DELETE FROM recovery_codes WHERE scope = %s AND principal_id = %s",
                (scope.value, principal),
            )
            return cursor.rowcount

    def consume(self, scope: RecoveryScope, code: str) -> RecoveryCode | None:
        sql = """
            DELETE FROM recovery_codes
            WHERE scope = %s AND code = %s
            RETURNING principal_id, code, created_at, expires_at
        """
        with self._cursor() as cursor:
            cursor.execute(sql, (scope.value, code))
            row = cursor.fetchone()
        if row is None:
            return None
        return RecoveryCode(
            scope=scope,
            principal_id=str(row["principal_id"]),
            code=row["code"],
            created_at=row["created_at"],
            expires_at=row["expires_at"],
        )

    def delete_created_before(self, scope: RecoveryScope, cutoff: datetime) -> int:
        with self._cursor() as cursor:
            cursor.execute(
                "DELETE FROM recovery_codes WHERE scope = %s AND created_at < %s",
                (scope.value, cutoff),
            )
            return cursor.rowcount


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {sql_file.name}")
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info(f"Migration complete: {sql_file.name}")
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e

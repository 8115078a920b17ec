"""Repository adapters - Database implementations."""

from .postgres import (
    PostgresAccountRepository,
    PostgresAdminRepository,
    PostgresApplicantRepository,
    PostgresRecoveryCodeRepository,
    run_migrations,
)

__all__ = [
    "PostgresAccountRepository",
    "PostgresAdminRepository",
    "PostgresApplicantRepository",
    "PostgresRecoveryCodeRepository",
    "run_migrations",
]

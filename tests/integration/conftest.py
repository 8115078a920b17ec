"""
Shared fixtures for integration tests.

Repositories and services wired to the session PostgreSQL pool.
"""

import pytest
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import (
    PostgresAccountRepository,
    PostgresAdminRepository,
    PostgresApplicantRepository,
    PostgresRecoveryCodeRepository,
)


@pytest.fixture
def applicant_repo(pool: ConnectionPool) -> PostgresApplicantRepository:
    return PostgresApplicantRepository(pool)


@pytest.fixture
def account_repo(pool: ConnectionPool) -> PostgresAccountRepository:
    return PostgresAccountRepository(pool)


@pytest.fixture
def admin_repo(pool: ConnectionPool) -> PostgresAdminRepository:
    return PostgresAdminRepository(pool)


@pytest.fixture
def recovery_repo(pool: ConnectionPool) -> PostgresRecoveryCodeRepository:
    return PostgresRecoveryCodeRepository(pool)

"""
Shared fixtures for adversarial tests.

Provides services over the real PostgreSQL adapters so that concurrent
attacks exercise the database's row-level atomicity.
"""

from unittest.mock import Mock

import pytest
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import (
    PostgresAccountRepository,
    PostgresApplicantRepository,
    PostgresRecoveryCodeRepository,
)
from src.domain.accounts import AccountAdminService
from src.domain.applicants import ApplicantService
from src.domain.recovery import RecoveryCodeService


@pytest.fixture
def applicant_repo(pool: ConnectionPool) -> PostgresApplicantRepository:
    return PostgresApplicantRepository(pool)


@pytest.fixture
def account_repo(pool: ConnectionPool) -> PostgresAccountRepository:
    return PostgresAccountRepository(pool)


@pytest.fixture
def applicant_service(applicant_repo, account_repo) -> ApplicantService:
    """Applicant service with a mocked email sender and cheap hashing."""
    return ApplicantService(
        applicants=applicant_repo,
        accounts=account_repo,
        email_sender=Mock(),
        bcrypt_rounds=4,
    )


@pytest.fixture
def account_service(account_repo) -> AccountAdminService:
    return AccountAdminService(accounts=account_repo)


@pytest.fixture
def recovery_service(pool: ConnectionPool) -> RecoveryCodeService:
    return RecoveryCodeService(repository=PostgresRecoveryCodeRepository(pool))

"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A PostgreSQL connection pool with migrations applied
- Table cleanup between database-backed tests

Database-backed tests are skipped when PostgreSQL is not reachable at
DATABASE_URL.
"""

from collections.abc import Generator

import pytest
from psycopg_pool import ConnectionPool, PoolTimeout

from src.adapters.repository.postgres import run_migrations
from src.config.settings import get_settings

TABLES = ("recovery_codes", "pending_applicants", "accounts", "administrators")


@pytest.fixture(scope="session")
def pool() -> Generator[ConnectionPool, None, None]:
    """Create connection pool for database-backed tests."""
    settings = get_settings()
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=1,
        max_size=10,
        timeout=10.0,
        open=False,
    )
    try:
        pool.open(wait=True, timeout=5.0)
    except PoolTimeout:
        pool.close()
        pytest.skip(f"PostgreSQL not reachable at {settings.database_url}")

    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def clean_database(pool: ConnectionPool) -> Generator[None, None, None]:
    """Delete every row from the onboarding tables before the test."""
    with pool.connection() as conn:
        for table in TABLES:
            conn.execute(f"DELETE FROM {table}")
        conn.commit()
    yield

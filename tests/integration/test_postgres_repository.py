"""
Integration tests for PostgresIdentityRepository.

Tests repository operations against a real PostgreSQL database.
Requires PostgreSQL to be running (via docker-compose); the module is
skipped when the configured database is unreachable.
"""

from collections.abc import Generator
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

import psycopg
import pytest
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import PostgresIdentityRepository, run_migrations
from src.config.settings import get_settings
from src.domain.exceptions import IdentityConflict
from src.domain.roles import Role

pytestmark = pytest.mark.integration

NOW = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="module")
def pool() -> Generator[ConnectionPool, None, None]:
    """Create connection pool for integration tests and apply migrations."""
    settings = get_settings()
    try:
        psycopg.connect(settings.database_url, connect_timeout=2).close()
    except psycopg.OperationalError:
        pytest.skip("PostgreSQL is not reachable")

    pool = ConnectionPool(conninfo=settings.database_url, min_size=1, max_size=10)
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def repository(pool: ConnectionPool) -> PostgresIdentityRepository:
    return PostgresIdentityRepository(pool)


@pytest.fixture(autouse=True)
def clean_database(pool: ConnectionPool) -> Generator[None, None, None]:
    """Clean identity tables before each test."""
    with pool.connection() as conn:
        conn.execute("TRUNCATE users, companies")
        conn.commit()
    yield


def _create(repository: PostgresIdentityRepository, email: str = "test@example.com") -> tuple[str, str]:
    return repository.create_pending(
        email=email,
        name="Test",
        password_hash="$2b$10$hashedpasswordvalue",
        role=Role.MANAGER,
        otp=123456,
        otp_created_at=NOW,
        company_name="Acme",
    )


class TestCreatePending:
    def test_identity_and_company_linked(self, repository: PostgresIdentityRepository) -> None:
        identity_id, company_id = _create(repository)

        identity = repository.get_by_email("test@example.com")
        company = repository.get_company(company_id)

        assert identity.id == identity_id
        assert identity.company_id == company_id
        assert identity.role == Role.MANAGER
        assert identity.is_verified is False
        assert identity.otp == 123456
        assert identity.otp_created_at == NOW
        assert company.owner_id == identity_id
        assert company.is_approved is True

    def test_duplicate_email_raises_conflict(self, repository: PostgresIdentityRepository) -> None:
        _create(repository)
        with pytest.raises(IdentityConflict):
            _create(repository)

    def test_conflict_leaves_no_orphan_company(
        self, repository: PostgresIdentityRepository, pool: ConnectionPool
    ) -> None:
        _create(repository)
        with pytest.raises(IdentityConflict):
            _create(repository)

        with pool.connection() as conn:
            count = conn.execute("SELECT COUNT(*) FROM companies").fetchone()[0]
        assert count == 1

    def test_concurrent_creates_exactly_one_succeeds(self, pool: ConnectionPool) -> None:
        def attempt(_: int) -> bool:
            try:
                _create(PostgresIdentityRepository(pool), "race@example.com")
            except IdentityConflict:
                return False
            return True

        with ThreadPoolExecutor(max_workers=5) as executor:
            results = list(executor.map(attempt, range(5)))

        assert results.count(True) == 1


class TestPendingUpdates:
    def test_update_pending(self, repository: PostgresIdentityRepository) -> None:
        identity_id, _ = _create(repository)

        assert repository.update_pending(identity_id, "Renamed", "$2b$10$other", Role.MANAGER, 654321, NOW)

        identity = repository.get_by_id(identity_id)
        assert identity.name == "Renamed"
        assert identity.otp == 654321

    def test_update_pending_refused_after_verification(
        self, repository: PostgresIdentityRepository
    ) -> None:
        identity_id, _ = _create(repository)
        repository.mark_verified(identity_id, 123456, NOW)

        assert repository.update_pending(identity_id, "X", "h", Role.USER, 111111, NOW) is False

    def test_upsert_company_renames(self, repository: PostgresIdentityRepository) -> None:
        identity_id, company_id = _create(repository)

        assert repository.upsert_company(identity_id, "Acme Ltd") == company_id
        assert repository.get_company(company_id).name == "Acme Ltd"


class TestVerification:
    def test_mark_verified_clears_otp(self, repository: PostgresIdentityRepository) -> None:
        identity_id, _ = _create(repository)

        identity = repository.mark_verified(identity_id, 123456, NOW)

        assert identity.is_verified is True
        assert identity.otp is None
        assert identity.otp_created_at is None

    def test_mark_verified_refused_for_replaced_otp(self, repository: PostgresIdentityRepository) -> None:
        identity_id, _ = _create(repository)
        repository.update_pending(identity_id, "Other", "$2b$10$other", Role.MANAGER, 654321, NOW)

        assert repository.mark_verified(identity_id, 123456, NOW) is None
        assert repository.get_by_id(identity_id).is_verified is False

    def test_concurrent_verification_exactly_one_wins(
        self, repository: PostgresIdentityRepository, pool: ConnectionPool
    ) -> None:
        identity_id, _ = _create(repository)

        def attempt(_: int) -> bool:
            return PostgresIdentityRepository(pool).mark_verified(identity_id, 123456, NOW) is not None

        with ThreadPoolExecutor(max_workers=5) as executor:
            results = list(executor.map(attempt, range(5)))

        assert results.count(True) == 1


class TestLoginAndPassword:
    def test_record_login(self, repository: PostgresIdentityRepository) -> None:
        identity_id, _ = _create(repository)

        identity = repository.record_login(identity_id, "token-1", NOW)

        assert identity.session_token == "token-1"
        assert identity.last_login_at == NOW

    def test_update_password_hash(self, repository: PostgresIdentityRepository) -> None:
        identity_id, _ = _create(repository)

        repository.update_password_hash(identity_id, "$2b$10$newhash")

        assert repository.get_by_id(identity_id).password_hash == "$2b$10$newhash"

    def test_unknown_identity(self, repository: PostgresIdentityRepository) -> None:
        assert repository.get_by_id("00000000-0000-0000-0000-000000000000") is None
        assert repository.get_by_email("nobody@example.com") is None

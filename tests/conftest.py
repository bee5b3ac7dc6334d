"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A controllable clock
- A fast bcrypt hasher (low cost factor, tests only)
- In-memory identity repository
- Token service with a test secret
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

from src.adapters.repository.memory import InMemoryIdentityRepository
from src.domain.credentials import CredentialHasher
from src.domain.tokens import TokenService

TEST_SECRET = "test-signing-secret"


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def hasher() -> CredentialHasher:
    """bcrypt at cost 4 keeps the suite fast."""
    return CredentialHasher(rounds=4)


@pytest.fixture
def repository() -> InMemoryIdentityRepository:
    return InMemoryIdentityRepository()


@pytest.fixture
def email_sender() -> Mock:
    return Mock()


@pytest.fixture
def token_service() -> TokenService:
    return TokenService(secret=TEST_SECRET, ttl=timedelta(days=1))

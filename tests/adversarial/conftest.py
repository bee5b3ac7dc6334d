"""
Shared fixtures for adversarial tests.

Services are wired on the in-memory store so concurrency attacks run
without a database; the store's lock gives the same atomicity as the
guarded SQL statements.
"""

from unittest.mock import Mock

import pytest

from src.adapters.repository.memory import InMemoryIdentityRepository
from src.domain.credentials import CredentialHasher
from src.domain.registration import RegistrationService

# Module-level marker for all adversarial tests
pytestmark = pytest.mark.adversarial

ATTACK_OTP = 424242


@pytest.fixture
def attack_otp() -> int:
    return ATTACK_OTP


@pytest.fixture
def registration_service(
    repository: InMemoryIdentityRepository, hasher: CredentialHasher, clock
) -> RegistrationService:
    """Registration service with a fixed OTP and a silent mailer."""
    return RegistrationService(
        repository=repository,
        email_sender=Mock(),
        hasher=hasher,
        clock=clock,
        otp_generator=lambda: ATTACK_OTP,
    )

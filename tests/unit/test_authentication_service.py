"""
Unit tests for AuthenticationService (login).

Covers scenarios C and D: login before verification is refused, login
after verification issues a token whose claims include the role.
"""

from unittest.mock import Mock

import pytest

from src.adapters.repository.memory import InMemoryIdentityRepository
from src.domain.authentication import AuthenticationService
from src.domain.exceptions import IdentityNotFound, InvalidCredentials, NotVerified
from src.domain.registration import RegistrationService
from src.domain.roles import Role
from src.domain.tokens import TokenService

OTP = 654321


@pytest.fixture
def registration(repository, hasher, clock) -> RegistrationService:
    return RegistrationService(
        repository=repository,
        email_sender=Mock(),
        hasher=hasher,
        clock=clock,
        otp_generator=lambda: OTP,
    )


@pytest.fixture
def auth(repository, token_service, hasher, clock) -> AuthenticationService:
    return AuthenticationService(
        repository=repository, token_service=token_service, hasher=hasher, clock=clock
    )


class TestLogin:
    def test_unknown_email_not_found(self, auth: AuthenticationService) -> None:
        with pytest.raises(IdentityNotFound):
            auth.login("nobody@x.com", "pass12")

    def test_login_before_verification_refused(
        self, auth: AuthenticationService, registration: RegistrationService
    ) -> None:
        """Scenario C."""
        registration.register("j@x.com", "John", "pass12", "Acme")
        with pytest.raises(NotVerified):
            auth.login("j@x.com", "pass12")

    def test_wrong_password_refused(
        self, auth: AuthenticationService, registration: RegistrationService
    ) -> None:
        registration.register("j@x.com", "John", "pass12", "Acme")
        registration.verify_otp("j@x.com", OTP)
        with pytest.raises(InvalidCredentials):
            auth.login("j@x.com", "wrong1")

    def test_login_after_verification_issues_token(
        self,
        auth: AuthenticationService,
        registration: RegistrationService,
        token_service: TokenService,
    ) -> None:
        """Scenario D: decoded claims include role."""
        result = registration.register("j@x.com", "John", "pass12", "Acme")
        registration.verify_otp("j@x.com", OTP)

        login = auth.login("j@x.com", "pass12")

        claims = token_service.verify(login.access_token)
        assert claims.role is Role.MANAGER
        assert claims.subject == result.identity_id
        assert claims.email == "j@x.com"
        assert claims.company_id == result.company_id

    def test_login_records_last_login_and_session_token(
        self,
        auth: AuthenticationService,
        registration: RegistrationService,
        repository: InMemoryIdentityRepository,
        clock,
    ) -> None:
        result = registration.register("j@x.com", "John", "pass12", "Acme")
        registration.verify_otp("j@x.com", OTP)

        login = auth.login("j@x.com", "pass12")

        stored = repository.get_by_id(result.identity_id)
        assert stored.last_login_at == clock.now
        assert stored.session_token == login.access_token
        assert login.identity == stored

    def test_refused_login_does_not_touch_identity(
        self,
        auth: AuthenticationService,
        registration: RegistrationService,
        repository: InMemoryIdentityRepository,
    ) -> None:
        result = registration.register("j@x.com", "John", "pass12", "Acme")
        registration.verify_otp("j@x.com", OTP)
        before = repository.get_by_id(result.identity_id)

        with pytest.raises(InvalidCredentials):
            auth.login("j@x.com", "wrong1")

        assert repository.get_by_id(result.identity_id) == before

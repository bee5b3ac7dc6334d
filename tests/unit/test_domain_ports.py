"""
Unit tests for domain ports and exceptions.

Tests verify:
- Records and enums are properly defined
- Exceptions are properly structured
- Domain purity (zero framework imports)
"""

from dataclasses import FrozenInstanceError
from enum import Enum
from pathlib import Path

import pytest

from src.domain import exceptions
from src.domain.exceptions import IdentityError
from src.domain.ports import (
    EmailSender,
    Identity,
    IdentityRepository,
    RegistrationState,
    RegistrationStatus,
    SessionClaims,
)
from src.domain.roles import Role

DOMAIN_DIR = Path(__file__).resolve().parents[2] / "src" / "domain"


class TestRegistrationStateEnum:
    def test_is_str_enum(self) -> None:
        assert issubclass(RegistrationState, Enum)
        assert issubclass(RegistrationState, str)

    def test_states(self) -> None:
        assert [s.value for s in RegistrationState] == ["NEW", "PENDING", "VERIFIED"]

    def test_status_values(self) -> None:
        assert RegistrationStatus.CREATED.value == "created"
        assert RegistrationStatus.UPDATED.value == "updated"


class TestIdentityRecord:
    def test_defaults_are_unverified(self) -> None:
        identity = Identity(id="1", email="a@x.com", name="A", password_hash="h", role=Role.USER)
        assert identity.is_verified is False
        assert identity.otp is None
        assert identity.company_id is None
        assert identity.state == RegistrationState.PENDING

    def test_verified_state(self) -> None:
        identity = Identity(
            id="1", email="a@x.com", name="A", password_hash="h", role=Role.USER, is_verified=True
        )
        assert identity.state == RegistrationState.VERIFIED

    def test_identity_is_immutable(self) -> None:
        identity = Identity(id="1", email="a@x.com", name="A", password_hash="h", role=Role.USER)
        with pytest.raises(FrozenInstanceError):
            identity.name = "B"  # type: ignore[misc]

    def test_claims_equality(self) -> None:
        assert SessionClaims("1", "a@x.com", Role.USER) == SessionClaims("1", "a@x.com", Role.USER, None)


class TestProtocols:
    def test_repository_methods(self) -> None:
        for name in (
            "get_by_email",
            "get_by_id",
            "get_company",
            "create_pending",
            "update_pending",
            "upsert_company",
            "mark_verified",
            "record_login",
            "update_password_hash",
        ):
            assert hasattr(IdentityRepository, name)

    def test_email_sender_methods(self) -> None:
        assert hasattr(EmailSender, "send_verification_otp")
        assert hasattr(EmailSender, "send_welcome")


class TestDomainExceptions:
    @pytest.mark.parametrize(
        "name",
        [
            "IdentityNotFound",
            "AlreadyRegistered",
            "AlreadyVerified",
            "InvalidOrExpiredOtp",
            "InvalidCredentials",
            "NotVerified",
            "IncorrectOldPassword",
            "PasswordMismatch",
            "InvalidToken",
            "IdentityConflict",
            "DeliveryFailed",
        ],
    )
    def test_inherits_identity_error(self, name: str) -> None:
        assert issubclass(getattr(exceptions, name), IdentityError)

    def test_identity_error_is_exception(self) -> None:
        assert issubclass(IdentityError, Exception)


class TestDomainPurity:
    """Domain layer has zero web/database framework imports."""

    @pytest.mark.parametrize("module", ["fastapi", "pydantic", "psycopg", "starlette"])
    def test_no_framework_imports(self, module: str) -> None:
        offenders = [
            path.name
            for path in DOMAIN_DIR.glob("*.py")
            if f"from {module}" in path.read_text() or f"import {module}" in path.read_text()
        ]
        assert offenders == [], f"{module} import found in {offenders}"

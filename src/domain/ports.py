"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the records the domain works with and the interfaces
(ports) it requires from infrastructure. Adapters implement these protocols.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Protocol

from .roles import Role


class RegistrationState(str, Enum):
    """
    Registration State Machine states, derived from the stored identity.

    State Transitions:
    - NEW -> PENDING (first registration attempt)
    - PENDING -> PENDING (re-registration overwrites name/password/OTP)
    - PENDING -> VERIFIED (successful OTP verification)

    Terminal State:
    - VERIFIED: re-registration is rejected
    """

    NEW = "NEW"
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"


class RegistrationStatus(str, Enum):
    """Outcome of a successful registration call."""

    CREATED = "created"
    UPDATED = "updated"


@dataclass(frozen=True)
class Identity:
    """A user account row."""

    id: str
    email: str
    name: str
    password_hash: str
    role: Role
    is_verified: bool = False
    otp: int | None = None
    otp_created_at: datetime | None = None
    last_login_at: datetime | None = None
    session_token: str | None = None
    company_id: str | None = None

    @property
    def state(self) -> RegistrationState:
        return RegistrationState.VERIFIED if self.is_verified else RegistrationState.PENDING


@dataclass(frozen=True)
class Company:
    """A company row owned by the identity that created it."""

    id: str
    name: str
    owner_id: str
    is_approved: bool = True


@dataclass(frozen=True)
class SessionClaims:
    """Identity attributes embedded in a signed session token."""

    subject: str
    email: str
    role: Role
    company_id: str | None = None


@dataclass(frozen=True)
class RegistrationResult:
    """Identifiers returned by a successful registration."""

    identity_id: str
    company_id: str
    status: RegistrationStatus


class IdentityRepository(Protocol):
    """Port interface for identity and company persistence."""

    def get_by_email(self, email: str) -> Identity | None:
        """Return the identity with this exact email, or None."""
        ...

    def get_by_id(self, identity_id: str) -> Identity | None:
        """Return the identity with this id, or None."""
        ...

    def get_company(self, company_id: str) -> Company | None:
        """Return the company with this id, or None."""
        ...

    def create_pending(
        self,
        email: str,
        name: str,
        password_hash: str,
        role: Role,
        otp: int,
        otp_created_at: datetime,
        company_name: str,
    ) -> tuple[str, str]:
        """
        Create an unverified identity and the company it owns.

        The identity insert, the company insert and the company_id backfill
        happen in one transaction.

        Returns:
            Tuple of (identity_id, company_id)

        Raises:
            IdentityConflict: If the email is already taken
        """
        ...

    def update_pending(
        self,
        identity_id: str,
        name: str,
        password_hash: str,
        role: Role,
        otp: int,
        otp_created_at: datetime,
    ) -> bool:
        """
        Overwrite a pending identity's registration data.

        Returns:
            True if updated, False if the identity is verified or missing
        """
        ...

    def upsert_company(self, identity_id: str, company_name: str) -> str:
        """
        Rename the identity's company, or create and link one if absent.

        Returns:
            Company id
        """
        ...

    def mark_verified(self, identity_id: str, otp: int, otp_created_at: datetime) -> Identity | None:
        """
        Set is_verified and clear OTP fields, only if not yet verified and
        the stored OTP is still the one that was checked.

        Returns:
            Updated identity, or None if it was already verified, missing,
            or its OTP was replaced
        """
        ...

    def record_login(self, identity_id: str, session_token: str, logged_in_at: datetime) -> Identity:
        """Persist last_login_at and the most recently issued session token."""
        ...

    def update_password_hash(self, identity_id: str, password_hash: str) -> None:
        """Replace the stored password hash."""
        ...


class EmailSender(Protocol):
    """Port interface for email delivery."""

    def send_verification_otp(self, email: str, otp: int, name: str) -> None:
        """
        Send the registration OTP to an email address.

        Raises:
            DeliveryFailed: If the message could not be dispatched
        """
        ...

    def send_welcome(self, email: str, name: str) -> None:
        """
        Send the welcome message after verification.

        Raises:
            DeliveryFailed: If the message could not be dispatched
        """
        ...

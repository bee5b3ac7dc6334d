"""
Registration domain service - Registration State Machine implementation.

This module contains the core business logic for user registration,
tying account creation to one-time-password (OTP) email verification.

Registration State Machine
==========================

States (derived from the stored identity):
- NEW: No identity row for the email
- PENDING: Identity exists with is_verified=False and an OTP set
- VERIFIED: Terminal state, is_verified=True and OTP fields cleared

Valid Transitions:
    NEW -> PENDING       (first registration, identity + company created)
    PENDING -> PENDING   (re-registration overwrites name/password/OTP)
    PENDING -> VERIFIED  (correct OTP within the validity window)

Rejected:
    VERIFIED -> register     (AlreadyRegistered)
    VERIFIED -> verify_otp   (AlreadyVerified)

Emails are compared exactly as submitted; the store does no case folding.
"""

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from .credentials import CredentialHasher, generate_otp
from .exceptions import (
    AlreadyRegistered,
    AlreadyVerified,
    DeliveryFailed,
    IdentityConflict,
    IdentityNotFound,
    InvalidOrExpiredOtp,
)
from .ports import (
    EmailSender,
    Identity,
    IdentityRepository,
    RegistrationResult,
    RegistrationState,
    RegistrationStatus,
)
from .roles import RegistrationContext, role_for

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RegistrationService:
    """
    Domain service for user registration and OTP verification.

    Orchestrates the registration flow: state lookup, password hashing,
    OTP generation, identity/company persistence and OTP dispatch.
    """

    repository: IdentityRepository
    email_sender: EmailSender
    hasher: CredentialHasher = field(default_factory=CredentialHasher)
    otp_ttl: timedelta = timedelta(minutes=15)
    clock: Callable[[], datetime] = _utcnow
    otp_generator: Callable[[], int] = generate_otp

    def state_of(self, email: str) -> RegistrationState:
        """Current registration state for an email."""
        identity = self.repository.get_by_email(email)
        return RegistrationState.NEW if identity is None else identity.state

    def register(self, email: str, name: str, password: str, company_name: str) -> RegistrationResult:
        """
        Register a user, or refresh a pending registration.

        Args:
            email: User's email address (compared exactly)
            name: Display name
            password: Plaintext password (hashed immediately)
            company_name: Name of the company the user owns

        Returns:
            RegistrationResult with identity id, company id and status

        Raises:
            AlreadyRegistered: If the email belongs to a verified identity
            DeliveryFailed: If the OTP email could not be sent
        """
        password_hash = self.hasher.hash(password)
        otp = self.otp_generator()
        otp_created_at = self.clock()

        existing = self.repository.get_by_email(email)
        if existing is None:
            try:
                result = self._create(email, name, password_hash, otp, otp_created_at, company_name)
            except IdentityConflict:
                # Lost a race against a concurrent registration; re-read once
                logger.info("Registration conflict on create, retrying through lookup")
                existing = self.repository.get_by_email(email)
                if existing is None:
                    raise AlreadyRegistered(email) from None
                result = self._refresh(existing, name, password_hash, otp, otp_created_at, company_name)
        else:
            result = self._refresh(existing, name, password_hash, otp, otp_created_at, company_name)

        self._send_otp(email, otp, name)
        return result

    def verify_otp(self, email: str, otp: int) -> Identity:
        """
        Close the registration state machine with a submitted OTP.

        The OTP is valid only if it equals the stored code AND was issued
        no longer than the validity window ago. Both failures raise the
        same error.

        Returns:
            The verified identity

        Raises:
            IdentityNotFound: If no identity has this email
            AlreadyVerified: If the identity is already verified
            InvalidOrExpiredOtp: On code mismatch or expiry
        """
        identity = self.repository.get_by_email(email)
        if identity is None:
            raise IdentityNotFound(email)
        if identity.is_verified:
            raise AlreadyVerified(email)

        if not self._otp_is_valid(identity, otp):
            raise InvalidOrExpiredOtp(email)

        verified = self.repository.mark_verified(identity.id, identity.otp, identity.otp_created_at)
        if verified is None:
            # The row changed after the check: verified by a concurrent
            # submission, or its OTP replaced by a re-registration
            current = self.repository.get_by_email(email)
            if current is not None and current.is_verified:
                raise AlreadyVerified(email)
            raise InvalidOrExpiredOtp(email)

        logger.info("Identity %s verified", verified.id)

        try:
            self.email_sender.send_welcome(verified.email, verified.name)
        except DeliveryFailed:
            logger.warning("Welcome email to identity %s could not be sent", verified.id)

        return verified

    def _create(
        self,
        email: str,
        name: str,
        password_hash: str,
        otp: int,
        otp_created_at: datetime,
        company_name: str,
    ) -> RegistrationResult:
        role = role_for(RegistrationContext.COMPANY_OWNER)
        identity_id, company_id = self.repository.create_pending(
            email=email,
            name=name,
            password_hash=password_hash,
            role=role,
            otp=otp,
            otp_created_at=otp_created_at,
            company_name=company_name,
        )
        logger.info("Identity %s created with company %s, pending verification", identity_id, company_id)
        return RegistrationResult(identity_id, company_id, RegistrationStatus.CREATED)

    def _refresh(
        self,
        identity: Identity,
        name: str,
        password_hash: str,
        otp: int,
        otp_created_at: datetime,
        company_name: str,
    ) -> RegistrationResult:
        if identity.is_verified:
            raise AlreadyRegistered(identity.email)

        role = role_for(RegistrationContext.COMPANY_OWNER, existing=identity.role)
        updated = self.repository.update_pending(
            identity.id,
            name=name,
            password_hash=password_hash,
            role=role,
            otp=otp,
            otp_created_at=otp_created_at,
        )
        if not updated:
            # Verified between lookup and update
            raise AlreadyRegistered(identity.email)

        company_id = self.repository.upsert_company(identity.id, company_name)
        logger.info("Identity %s updated, pending verification", identity.id)
        return RegistrationResult(identity.id, company_id, RegistrationStatus.UPDATED)

    def _otp_is_valid(self, identity: Identity, otp: int) -> bool:
        if identity.otp is None or identity.otp_created_at is None:
            return False
        code_matches = secrets.compare_digest(str(identity.otp).encode(), str(otp).encode())
        within_window = self.clock() - identity.otp_created_at <= self.otp_ttl
        return code_matches and within_window

    def _send_otp(self, email: str, otp: int, name: str) -> None:
        try:
            self.email_sender.send_verification_otp(email, otp, name)
        except DeliveryFailed:
            logger.error("OTP email could not be sent for a registration")
            raise

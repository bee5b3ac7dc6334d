"""
Authentication domain service - login and session issuance.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .credentials import CredentialHasher
from .exceptions import IdentityNotFound, InvalidCredentials, NotVerified
from .ports import Identity, IdentityRepository, SessionClaims
from .tokens import TokenService

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class LoginResult:
    """Issued access token and the identity it belongs to."""

    access_token: str
    identity: Identity


@dataclass
class AuthenticationService:
    """Checks credentials and issues session tokens."""

    repository: IdentityRepository
    token_service: TokenService
    hasher: CredentialHasher = field(default_factory=CredentialHasher)
    clock: Callable[[], datetime] = _utcnow

    def login(self, email: str, password: str) -> LoginResult:
        """
        Authenticate a verified identity and issue a session token.

        The token is mirrored on the identity for audit; it is not used
        for revocation.

        Raises:
            IdentityNotFound: If no identity has this email
            NotVerified: If OTP verification is still pending
            InvalidCredentials: If the password does not match
        """
        identity = self.repository.get_by_email(email)
        if identity is None:
            raise IdentityNotFound(email)
        if not identity.is_verified:
            raise NotVerified(email)
        if not self.hasher.verify(password, identity.password_hash):
            raise InvalidCredentials(email)

        token = self.token_service.issue(self.claims_for(identity))
        updated = self.repository.record_login(identity.id, token, self.clock())
        logger.info("Identity %s logged in", identity.id)
        return LoginResult(access_token=token, identity=updated)

    @staticmethod
    def claims_for(identity: Identity) -> SessionClaims:
        return SessionClaims(
            subject=identity.id,
            email=identity.email,
            role=identity.role,
            company_id=identity.company_id,
        )

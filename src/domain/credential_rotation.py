"""
Credential rotation - authenticated password change.

Two entry points are kept apart on purpose: some callers confirm the
new password client-side, others send a confirmation for the server
to check.
"""

import logging
from dataclasses import dataclass, field

from .credentials import CredentialHasher
from .exceptions import IdentityNotFound, IncorrectOldPassword, PasswordMismatch
from .ports import Identity, IdentityRepository

logger = logging.getLogger(__name__)


@dataclass
class PasswordService:
    """Domain service for password changes."""

    repository: IdentityRepository
    hasher: CredentialHasher = field(default_factory=CredentialHasher)

    def change_password(self, identity_id: str, old_password: str, new_password: str) -> None:
        """
        Replace the password after verifying the old one.

        Raises:
            IdentityNotFound: If the identity does not exist
            IncorrectOldPassword: If old_password does not match
        """
        self._authenticate(identity_id, old_password)
        self._commit(identity_id, new_password)

    def change_password_with_confirmation(
        self,
        identity_id: str,
        old_password: str,
        new_password: str,
        confirm_password: str,
    ) -> None:
        """
        Replace the password after verifying the old one and the confirmation.

        The old password is checked before the confirmation.

        Raises:
            IdentityNotFound: If the identity does not exist
            IncorrectOldPassword: If old_password does not match
            PasswordMismatch: If new_password != confirm_password
        """
        self._authenticate(identity_id, old_password)
        if new_password != confirm_password:
            raise PasswordMismatch(identity_id)
        self._commit(identity_id, new_password)

    def _authenticate(self, identity_id: str, old_password: str) -> Identity:
        identity = self.repository.get_by_id(identity_id)
        if identity is None:
            raise IdentityNotFound(identity_id)
        if not self.hasher.verify(old_password, identity.password_hash):
            raise IncorrectOldPassword(identity_id)
        return identity

    def _commit(self, identity_id: str, new_password: str) -> None:
        self.repository.update_password_hash(identity_id, self.hasher.hash(new_password))
        logger.info("Password updated for identity %s", identity_id)

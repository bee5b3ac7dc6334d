"""
Credential primitives - password hashing and OTP generation.

bcrypt provides salting, a fixed work factor and a constant-time
comparison. OTPs come from the secrets module.
"""

import logging
import secrets
from dataclasses import dataclass

import bcrypt

logger = logging.getLogger(__name__)

OTP_MIN = 100000
OTP_MAX = 999999


@dataclass(frozen=True)
class CredentialHasher:
    """One-way password hashing with bcrypt."""

    rounds: int = 10

    def hash(self, password: str) -> str:
        """Hash password using bcrypt with the configured cost factor."""
        return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=self.rounds)).decode()

    def verify(self, password: str, password_hash: str) -> bool:
        """
        Check a plaintext password against a stored bcrypt hash.

        Malformed stored hashes never match.
        """
        try:
            return bcrypt.checkpw(password.encode(), password_hash.encode())
        except ValueError:
            logger.warning("Stored password hash is not a valid bcrypt hash")
            return False


def generate_otp() -> int:
    """
    Generate a cryptographically secure 6-digit OTP.

    Uniform over [100000, 999999].
    """
    return OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1)

"""
Token service - signed session tokens (JWT, HS256).

Tokens carry subject id, email, role and company id. Verification
failures of any kind (malformed, bad signature, expired, missing
claims) surface as a single InvalidToken error.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from .exceptions import InvalidToken
from .ports import SessionClaims
from .roles import Role


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TokenService:
    """Issues and verifies signed session tokens."""

    secret: str
    ttl: timedelta = timedelta(days=1)
    algorithm: str = "HS256"
    clock: Callable[[], datetime] = field(default=_utcnow, compare=False)

    def __post_init__(self) -> None:
        if not self.secret:
            raise ValueError("Token signing secret must not be empty")

    def issue(self, claims: SessionClaims, ttl: timedelta | None = None) -> str:
        """
        Create a signed token for the given claims.

        Args:
            claims: Identity claims to embed
            ttl: Token lifetime, defaults to the configured lifetime

        Returns:
            Encoded JWT string
        """
        lifetime = self.ttl if ttl is None else ttl
        if lifetime <= timedelta(0):
            raise ValueError("Token lifetime must be positive")

        issued_at = self.clock()
        payload: dict[str, Any] = {
            "sub": claims.subject,
            "email": claims.email,
            "role": claims.role.value,
            "company_id": claims.company_id,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + lifetime).timestamp()),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> SessionClaims:
        """
        Decode and validate a token.

        Raises:
            InvalidToken: On any decoding, signature, expiry or claim error
        """
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
            return SessionClaims(
                subject=payload["sub"],
                email=payload["email"],
                role=Role(payload["role"]),
                company_id=payload.get("company_id"),
            )
        except (JWTError, KeyError, ValueError) as e:
            raise InvalidToken("Invalid or expired token") from e

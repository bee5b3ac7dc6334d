"""
Domain exceptions - Semantic error types for identity and access.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
The API layer maps each of them to a status code and a fixed message.
"""


class IdentityError(Exception):
    """Base class for identity domain errors."""

    pass


class IdentityNotFound(IdentityError):
    """No identity matches the given email or id."""

    pass


class AlreadyRegistered(IdentityError):
    """Email belongs to a verified identity."""

    pass


class AlreadyVerified(IdentityError):
    """Identity has already completed OTP verification."""

    pass


class InvalidOrExpiredOtp(IdentityError):
    """OTP mismatch or validity window exceeded (deliberately undifferentiated)."""

    pass


class InvalidCredentials(IdentityError):
    """Password does not match the stored hash at login."""

    pass


class NotVerified(IdentityError):
    """Login attempted before OTP verification."""

    pass


class IncorrectOldPassword(IdentityError):
    """Old password does not match during credential rotation."""

    pass


class PasswordMismatch(IdentityError):
    """New password and confirmation differ."""

    pass


class InvalidToken(IdentityError):
    """Session token is malformed, forged, or expired."""

    pass


class IdentityConflict(IdentityError):
    """Store-level unique constraint violation on email."""

    pass


class DeliveryFailed(IdentityError):
    """Outbound email could not be dispatched."""

    pass

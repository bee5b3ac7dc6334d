"""
Domain layer - Pure business logic with zero framework imports.

This package contains the core business logic for account identity and
access: registration with OTP verification, session tokens, login and
password rotation. It defines its own port interfaces for infrastructure
abstraction.
"""

from .authentication import AuthenticationService, LoginResult
from .credential_rotation import PasswordService
from .credentials import CredentialHasher, generate_otp
from .exceptions import (
    AlreadyRegistered,
    AlreadyVerified,
    DeliveryFailed,
    IdentityConflict,
    IdentityError,
    IdentityNotFound,
    IncorrectOldPassword,
    InvalidCredentials,
    InvalidOrExpiredOtp,
    InvalidToken,
    NotVerified,
    PasswordMismatch,
)
from .ports import (
    Company,
    EmailSender,
    Identity,
    IdentityRepository,
    RegistrationResult,
    RegistrationState,
    RegistrationStatus,
    SessionClaims,
)
from .registration import RegistrationService
from .roles import RegistrationContext, Role, role_for
from .tokens import TokenService

__all__ = [
    "AlreadyRegistered",
    "AlreadyVerified",
    "AuthenticationService",
    "Company",
    "CredentialHasher",
    "DeliveryFailed",
    "EmailSender",
    "Identity",
    "IdentityConflict",
    "IdentityError",
    "IdentityNotFound",
    "IdentityRepository",
    "IncorrectOldPassword",
    "InvalidCredentials",
    "InvalidOrExpiredOtp",
    "InvalidToken",
    "LoginResult",
    "NotVerified",
    "PasswordMismatch",
    "PasswordService",
    "RegistrationContext",
    "RegistrationResult",
    "RegistrationService",
    "RegistrationState",
    "RegistrationStatus",
    "Role",
    "SessionClaims",
    "TokenService",
    "generate_otp",
    "role_for",
]

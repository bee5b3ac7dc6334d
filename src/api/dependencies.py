"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting domain services
and infrastructure adapters into routes, plus the session and role guards.

Adapters and the token service are built once in the application
lifespan and kept on app.state.
"""

import logging
from collections.abc import Callable
from datetime import timedelta

from fastapi import Depends, Header, HTTPException, Request, status

from src.adapters.repository import InMemoryIdentityRepository, PostgresIdentityRepository
from src.adapters.smtp.console import ConsoleEmailSender
from src.adapters.smtp.sender import SmtpEmailSender
from src.config.settings import Settings
from src.domain.authentication import AuthenticationService
from src.domain.credential_rotation import PasswordService
from src.domain.credentials import CredentialHasher
from src.domain.exceptions import InvalidToken
from src.domain.ports import EmailSender, IdentityRepository, SessionClaims
from src.domain.registration import RegistrationService
from src.domain.roles import Role
from src.domain.tokens import TokenService

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def build_email_sender(settings: Settings) -> EmailSender:
    """SMTP when a host is configured, console otherwise."""
    if settings.smtp_host:
        return SmtpEmailSender(settings)
    logger.warning("SMTP host not configured - OTP emails are logged to console")
    return ConsoleEmailSender()


def build_token_service(settings: Settings) -> TokenService:
    return TokenService(
        secret=settings.jwt_secret,
        ttl=timedelta(seconds=settings.token_ttl_seconds),
        algorithm=settings.jwt_algorithm,
    )


def get_settings_from_state(request: Request) -> Settings:
    return request.app.state.settings


def get_repository(request: Request) -> IdentityRepository:
    """
    Get identity repository from app state.

    PostgreSQL repositories are created per request around the shared pool.
    """
    pool = getattr(request.app.state, "pool", None)
    if pool is not None:
        return PostgresIdentityRepository(pool)
    repository: InMemoryIdentityRepository = request.app.state.repository
    return repository


def get_email_sender(request: Request) -> EmailSender:
    return request.app.state.email_sender


def get_hasher(request: Request) -> CredentialHasher:
    return request.app.state.hasher


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_registration_service(
    repository: IdentityRepository = Depends(get_repository),
    email_sender: EmailSender = Depends(get_email_sender),
    hasher: CredentialHasher = Depends(get_hasher),
    settings: Settings = Depends(get_settings_from_state),
) -> RegistrationService:
    """Wire the repository, mail sender and hasher into the registration service."""
    return RegistrationService(
        repository=repository,
        email_sender=email_sender,
        hasher=hasher,
        otp_ttl=timedelta(seconds=settings.otp_ttl_seconds),
    )


def get_authentication_service(
    repository: IdentityRepository = Depends(get_repository),
    token_service: TokenService = Depends(get_token_service),
    hasher: CredentialHasher = Depends(get_hasher),
) -> AuthenticationService:
    return AuthenticationService(repository=repository, token_service=token_service, hasher=hasher)


def get_password_service(
    repository: IdentityRepository = Depends(get_repository),
    hasher: CredentialHasher = Depends(get_hasher),
) -> PasswordService:
    return PasswordService(repository=repository, hasher=hasher)


def get_current_claims(
    request: Request,
    authorization: str | None = Header(default=None),
    token_service: TokenService = Depends(get_token_service),
) -> SessionClaims:
    """
    Session guard: validate the bearer token and attach its claims.

    Claims are stored on request.state.claims for downstream handlers.
    The guard never touches identity state.

    Raises:
        HTTPException 401: Header missing/malformed or token invalid
    """
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header missing or malformed",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = authorization[len(BEARER_PREFIX) :].strip()
    try:
        claims = token_service.verify(token)
    except InvalidToken:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    request.state.claims = claims
    return claims


def require_roles(*roles: Role) -> Callable[..., SessionClaims]:
    """
    Role guard factory: allow only the given roles on a route.

    Usage:
        @router.get("/x", dependencies=[Depends(require_roles(Role.ADMIN))])
    """
    allowed = frozenset(roles)

    def role_guard(claims: SessionClaims = Depends(get_current_claims)) -> SessionClaims:
        if claims.role not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden resource")
        return claims

    return role_guard

"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
JSON keys are camelCase on the wire; every response uses the same envelope
(success flag, status code, message, data or errors).
"""

import re
from datetime import datetime
from typing import Annotated, Any, Generic, TypeVar

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    StringConstraints,
    model_validator,
)
from pydantic.alias_generators import to_camel

from src.domain.ports import Company, Identity, SessionClaims
from src.domain.roles import Role

_PASSWORD_CHARSET = re.compile(r"^[A-Za-z\d@$!%*#?&]+$")


def check_password_strength(value: str) -> str:
    """Require at least one letter and one digit from the allowed charset."""
    if (
        not _PASSWORD_CHARSET.match(value)
        or not re.search(r"[A-Za-z]", value)
        or not re.search(r"\d", value)
    ):
        raise ValueError("Password must contain at least one letter and one number")
    return value


# bcrypt only reads the first 72 bytes
Password = Annotated[
    str,
    StringConstraints(min_length=6, max_length=72),
    AfterValidator(check_password_strength),
]


class CamelModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CompanyIn(CamelModel):
    """Nested company payload."""

    company_name: str = Field(..., min_length=2, description="Company name")


class RegisterRequest(CamelModel):
    """Request model for user registration."""

    name: str = Field(..., min_length=2)
    email: EmailStr
    password: Password
    company_name: str | None = Field(default=None, min_length=2)
    company: CompanyIn | None = None

    @model_validator(mode="after")
    def require_company_name(self) -> "RegisterRequest":
        if self.company_name is None and self.company is None:
            raise ValueError("companyName or company.companyName is required")
        return self

    @property
    def resolved_company_name(self) -> str:
        """Top-level companyName wins over the nested form."""
        if self.company_name is not None:
            return self.company_name
        return self.company.company_name  # type: ignore[union-attr]


class VerifyOtpRequest(CamelModel):
    """Request model for OTP verification."""

    email: EmailStr
    otp: int = Field(..., ge=100000, le=999999, description="6-digit one-time password")


class LoginRequest(CamelModel):
    """Request model for login."""

    email: EmailStr
    password: str = Field(..., min_length=6)


class UpdatePasswordRequest(CamelModel):
    """Request model for password change; confirmPassword is optional."""

    old_password: Password
    new_password: Password
    confirm_password: Password | None = None


class RegisterData(CamelModel):
    user_id: str
    company_id: str


class IdentitySummary(CamelModel):
    """Public view of an identity; never carries hashes, OTPs or tokens."""

    id: str
    email: str
    name: str
    role: Role
    is_verified: bool
    company_id: str | None = None
    last_login_at: datetime | None = None

    @classmethod
    def from_identity(cls, identity: Identity) -> "IdentitySummary":
        return cls(
            id=identity.id,
            email=identity.email,
            name=identity.name,
            role=identity.role,
            is_verified=identity.is_verified,
            company_id=identity.company_id,
            last_login_at=identity.last_login_at,
        )


class LoginData(CamelModel):
    access_token: str = Field(..., alias="access_token")
    user: IdentitySummary


class ClaimsOut(CamelModel):
    user_id: str
    email: str
    role: Role
    company_id: str | None = None

    @classmethod
    def from_claims(cls, claims: SessionClaims) -> "ClaimsOut":
        return cls(
            user_id=claims.subject,
            email=claims.email,
            role=claims.role,
            company_id=claims.company_id,
        )


class CompanyOut(CamelModel):
    id: str
    name: str
    owner_id: str
    is_approved: bool

    @classmethod
    def from_company(cls, company: Company) -> "CompanyOut":
        return cls(
            id=company.id,
            name=company.name,
            owner_id=company.owner_id,
            is_approved=company.is_approved,
        )


class EmptyData(CamelModel):
    pass


DataT = TypeVar("DataT")


class ApiResponse(CamelModel, Generic[DataT]):
    """Success envelope."""

    success: bool = True
    status_code: int
    message: str
    data: DataT


class ErrorResponse(CamelModel):
    """Standard error envelope."""

    success: bool = False
    status_code: int
    message: str
    errors: Any | None = None

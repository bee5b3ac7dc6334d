"""
API v1 routes.

Defines REST endpoints for registration, OTP verification, login,
session introspection and password rotation.

Routes are plain `def` so FastAPI runs the blocking bcrypt and
database work in its threadpool.
"""

from fastapi import APIRouter, Depends, HTTPException, Response, status

from src.api.dependencies import (
    get_authentication_service,
    get_current_claims,
    get_password_service,
    get_registration_service,
    get_repository,
    require_roles,
)
from src.api.models import (
    ApiResponse,
    ClaimsOut,
    CompanyOut,
    EmptyData,
    ErrorResponse,
    IdentitySummary,
    LoginData,
    LoginRequest,
    RegisterData,
    RegisterRequest,
    UpdatePasswordRequest,
    VerifyOtpRequest,
)
from src.domain.authentication import AuthenticationService
from src.domain.credential_rotation import PasswordService
from src.domain.exceptions import (
    AlreadyRegistered,
    AlreadyVerified,
    DeliveryFailed,
    IdentityNotFound,
    IncorrectOldPassword,
    InvalidCredentials,
    InvalidOrExpiredOtp,
    NotVerified,
    PasswordMismatch,
)
from src.domain.ports import IdentityRepository, RegistrationStatus, SessionClaims
from src.domain.registration import RegistrationService
from src.domain.roles import Role

user_router = APIRouter(prefix="/user", tags=["user"])
auth_router = APIRouter(prefix="/auth", tags=["auth"])


@user_router.post(
    "/register",
    response_model=ApiResponse[RegisterData],
    status_code=status.HTTP_201_CREATED,
    responses={
        200: {"model": ApiResponse[RegisterData], "description": "Pending registration updated"},
        400: {"model": ErrorResponse, "description": "Email already registered"},
        422: {"model": ErrorResponse, "description": "Validation error"},
        500: {"model": ErrorResponse, "description": "Store or mail failure"},
    },
    summary="Register a new user",
    description="Create an unverified account and its company, or refresh a pending one. "
    "A 6-digit OTP is sent to the provided email.",
)
def register(
    request_data: RegisterRequest,
    response: Response,
    service: RegistrationService = Depends(get_registration_service),
) -> ApiResponse[RegisterData]:
    """
    Register a user and send an OTP.

    - **name**: Display name
    - **email**: Email address to verify
    - **password**: Password (letters and digits, at least 6 characters)
    - **companyName** or **company.companyName**: Company to create
    """
    try:
        result = service.register(
            request_data.email,
            request_data.name,
            request_data.password,
            request_data.resolved_company_name,
        )
    except AlreadyRegistered:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already Registered",
        ) from None
    except DeliveryFailed:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create user",
        ) from None

    if result.status == RegistrationStatus.UPDATED:
        status_code = status.HTTP_200_OK
        message = "Otp Sent Successfully"
    else:
        status_code = status.HTTP_201_CREATED
        message = "Otp sent successfully"
    response.status_code = status_code

    return ApiResponse[RegisterData](
        status_code=status_code,
        message=message,
        data=RegisterData(user_id=result.identity_id, company_id=result.company_id),
    )


@user_router.post(
    "/verify-otp",
    response_model=ApiResponse[IdentitySummary],
    responses={
        400: {"model": ErrorResponse, "description": "Invalid or expired OTP, or already verified"},
        404: {"model": ErrorResponse, "description": "User not found"},
        422: {"model": ErrorResponse, "description": "Validation error"},
    },
    summary="Verify email with OTP",
)
def verify_otp(
    request_data: VerifyOtpRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> ApiResponse[IdentitySummary]:
    """Close registration with the OTP received by email."""
    try:
        identity = service.verify_otp(request_data.email, request_data.otp)
    except IdentityNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found") from None
    except AlreadyVerified:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="User already verified"
        ) from None
    except InvalidOrExpiredOtp:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid or expired OTP"
        ) from None

    return ApiResponse[IdentitySummary](
        status_code=status.HTTP_200_OK,
        message="Email verified successfully. Welcome email sent!",
        data=IdentitySummary.from_identity(identity),
    )


@user_router.patch(
    "/update-password",
    response_model=ApiResponse[EmptyData],
    responses={
        400: {"model": ErrorResponse, "description": "Old password incorrect or confirmation mismatch"},
        401: {"model": ErrorResponse, "description": "Missing or invalid bearer token"},
        404: {"model": ErrorResponse, "description": "User not found"},
    },
    summary="Change password (requires Bearer token)",
)
def update_password(
    request_data: UpdatePasswordRequest,
    claims: SessionClaims = Depends(get_current_claims),
    service: PasswordService = Depends(get_password_service),
) -> ApiResponse[EmptyData]:
    """
    Change the caller's password.

    When **confirmPassword** is sent, it must equal **newPassword**.
    """
    try:
        if request_data.confirm_password is None:
            service.change_password(claims.subject, request_data.old_password, request_data.new_password)
        else:
            service.change_password_with_confirmation(
                claims.subject,
                request_data.old_password,
                request_data.new_password,
                request_data.confirm_password,
            )
    except IdentityNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found") from None
    except IncorrectOldPassword:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Old password is incorrect"
        ) from None
    except PasswordMismatch:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="New password and confirm password do not match",
        ) from None

    return ApiResponse[EmptyData](
        status_code=status.HTTP_200_OK,
        message="Password updated successfully",
        data=EmptyData(),
    )


@user_router.get(
    "/company",
    response_model=ApiResponse[CompanyOut],
    responses={
        401: {"model": ErrorResponse, "description": "Missing or invalid bearer token"},
        403: {"model": ErrorResponse, "description": "Role not allowed"},
        404: {"model": ErrorResponse, "description": "Company not found"},
    },
    summary="Get the caller's company (managers and admins)",
)
def get_company(
    claims: SessionClaims = Depends(require_roles(Role.ADMIN, Role.MANAGER)),
    repository: IdentityRepository = Depends(get_repository),
) -> ApiResponse[CompanyOut]:
    company = repository.get_company(claims.company_id) if claims.company_id else None
    if company is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")

    return ApiResponse[CompanyOut](
        status_code=status.HTTP_200_OK,
        message="Company fetched successfully",
        data=CompanyOut.from_company(company),
    )


@auth_router.post(
    "/login",
    response_model=ApiResponse[LoginData],
    responses={
        400: {"model": ErrorResponse, "description": "User not found"},
        401: {"model": ErrorResponse, "description": "Invalid credentials or email not verified"},
        422: {"model": ErrorResponse, "description": "Validation error"},
    },
    summary="Log in and receive a JWT",
)
def login(
    request_data: LoginRequest,
    service: AuthenticationService = Depends(get_authentication_service),
) -> ApiResponse[LoginData]:
    """Exchange email and password for a Bearer token."""
    try:
        result = service.login(request_data.email, request_data.password)
    except IdentityNotFound:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User not found") from None
    except NotVerified:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Email not verified. Please verify your email before logging in.",
        ) from None
    except InvalidCredentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials"
        ) from None

    return ApiResponse[LoginData](
        status_code=status.HTTP_200_OK,
        message="Login successful",
        data=LoginData(
            access_token=result.access_token,
            user=IdentitySummary.from_identity(result.identity),
        ),
    )


@auth_router.get(
    "/profile",
    response_model=ApiResponse[ClaimsOut],
    responses={401: {"model": ErrorResponse, "description": "Unauthorized"}},
    summary="Get current user profile (requires JWT Bearer token)",
)
def profile(claims: SessionClaims = Depends(get_current_claims)) -> ApiResponse[ClaimsOut]:
    return ApiResponse[ClaimsOut](
        status_code=status.HTTP_200_OK,
        message="Token is valid",
        data=ClaimsOut.from_claims(claims),
    )


router = APIRouter()
router.include_router(user_router)
router.include_router(auth_router)

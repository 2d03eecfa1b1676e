"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

from pydantic import BaseModel, EmailStr, Field

from src.domain.models import UserProfile
from src.domain.ports import ResultKind

_OTP_FIELD = Field(
    default=None,
    max_length=12,
    description="One-time passcode; omit to have one sent",
)


class RegisterRequest(BaseModel):
    """Request model for user registration."""

    username: str = Field(..., min_length=3, max_length=64)
    email: EmailStr
    password: str = Field(..., min_length=8, description="User password (min 8 characters)")
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    gender: str | None = None
    accepted_terms: bool = False
    otp_code: str | None = _OTP_FIELD


class LoginRequest(BaseModel):
    """Request model for login."""

    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    otp_code: str | None = _OTP_FIELD


class ChangePasswordRequest(BaseModel):
    """Request model for changing the caller's password."""

    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, description="New password (min 8 characters)")


class ForgotPasswordRequest(BaseModel):
    """Request model for a passcode-backed password reset."""

    username: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, description="New password (min 8 characters)")
    otp_code: str | None = _OTP_FIELD


class VerifyEmailRequest(BaseModel):
    """Request model for email verification."""

    username: str = Field(..., min_length=1)
    otp_code: str | None = _OTP_FIELD


class UpdateProfileRequest(BaseModel):
    """Request model for profile updates."""

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    gender: str | None = None
    handle: str | None = Field(default=None, min_length=3, max_length=120)


class ProfileResponse(BaseModel):
    """User profile with a freshly issued token."""

    username: str
    email: str
    first_name: str
    last_name: str
    handle: str
    gender: str | None
    email_confirmed: bool
    roles: list[str]
    token: str

    @classmethod
    def from_profile(cls, profile: UserProfile) -> "ProfileResponse":
        return cls(
            username=profile.username,
            email=profile.email,
            first_name=profile.first_name,
            last_name=profile.last_name,
            handle=profile.handle,
            gender=profile.gender,
            email_confirmed=profile.email_confirmed,
            roles=list(profile.roles),
            token=profile.token,
        )


class AuthResponse(BaseModel):
    """Response model for every auth flow that did not fail."""

    result: ResultKind
    message: str
    profile: ProfileResponse | None = None


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str

"""User-related Pydantic schemas."""

import re
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from inkwell.models.user import UserRole

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _normalize_email(value: str) -> str:
    value = value.strip().lower()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Please provide a valid email")
    return value


def _check_password_strength(value: str) -> str:
    if not (re.search(r"[a-z]", value) and re.search(r"[A-Z]", value) and re.search(r"\d", value)):
        raise ValueError(
            "Password must contain at least one lowercase, one uppercase, and one number"
        )
    return value


class RegisterRequest(BaseModel):
    """Schema for local account registration."""

    name: str = Field(..., min_length=2, max_length=50)
    email: str = Field(..., max_length=255)
    password: str = Field(..., min_length=8, max_length=128)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Strip surrounding whitespace from the display name."""
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Name must be between 2 and 50 characters")
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        """Normalize the email to lower case and check its shape."""
        return _normalize_email(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        """Require lower case, upper case and a digit."""
        return _check_password_strength(v)


class LoginRequest(BaseModel):
    """Schema for login submissions."""

    email: str = Field(..., max_length=255)
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        """Normalize the email to lower case and check its shape."""
        return _normalize_email(v)


class ForgotPasswordRequest(BaseModel):
    """Request for a password reset link and code."""

    email: str = Field(..., max_length=255)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _normalize_email(v)


class ResetPasswordRequest(BaseModel):
    """New password submitted with a reset link token."""

    password: str = Field(..., min_length=8, max_length=128)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_password_strength(v)


class OtpResetRequest(ResetPasswordRequest):
    """New password submitted with the six-digit reset code."""

    email: str = Field(..., max_length=255)
    otp: str = Field(..., pattern=r"^\d{6}$")

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _normalize_email(v)


class FederatedLoginRequest(BaseModel):
    """Identity assertion issued by the federated login gateway."""

    assertion: str = Field(..., min_length=1)


class LastLoginDetails(BaseModel):
    """Recent sign-in activity for the account owner."""

    last_login: datetime | None = None
    last_failed_login: datetime | None = None
    total_logins: int


class UserSummary(BaseModel):
    """Public view of a user embedded in posts and comments."""

    id: int
    name: str
    role: UserRole
    avatar: str | None = None

    model_config = ConfigDict(from_attributes=True)


class UserResponse(UserSummary):
    """Account details returned to the account owner."""

    email: str
    bio: str | None = None
    is_active: bool
    last_login: datetime | None = None
    created_at: datetime


class LoginResponse(BaseModel):
    """Response returned after successful login or registration."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field("bearer", description="Token type")
    user: UserResponse


class ProfileUpdateRequest(BaseModel):
    """Schema for updating user profile information."""

    name: str | None = Field(None, min_length=2, max_length=50)
    bio: str | None = Field(None, max_length=500)
    avatar: str | None = Field(None, max_length=2048)


class RoleUpdateRequest(BaseModel):
    """Admin request to change a user's role."""

    user_id: int = Field(..., alias="userId")
    role: UserRole

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: UserRole) -> UserRole:
        """Reject the reserved anonymous role."""
        if v == UserRole.ANONYMOUS:
            raise ValueError("The anonymous role cannot be assigned")
        return v

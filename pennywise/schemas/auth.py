"""Schemas for authentication endpoints."""

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

# bcrypt refuses input longer than 72 bytes
PASSWORD_MAX_LENGTH = 72


def check_password_confirmation(password: str | None, confirmation: str | None) -> None:
    """Shared password checks: encoded length and confirmation."""
    if password is None:
        return
    if len(password.encode("utf-8")) > PASSWORD_MAX_LENGTH:
        raise ValueError(f"The password may not be greater than {PASSWORD_MAX_LENGTH} bytes.")
    if password != confirmation:
        raise ValueError("The password field confirmation does not match.")


def normalize_email(email: str) -> str:
    """Normalize an address the way ``EmailStr`` stores it. Unparseable input is kept as-is."""
    try:
        return validate_email(email, check_deliverability=False).normalized
    except EmailNotValidError:
        return email


class UserRegister(BaseModel):
    """Schema for user registration."""

    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(min_length=8, max_length=PASSWORD_MAX_LENGTH)
    password_confirmation: str

    @model_validator(mode="after")
    def passwords_match(self) -> "UserRegister":
        check_password_confirmation(self.password, self.password_confirmation)
        return self


class UserLogin(BaseModel):
    """Schema for user login."""

    email: str = Field(min_length=1)
    password: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def normalize_login_email(cls, value: str) -> str:
        return normalize_email(value)


class UserInfo(BaseModel):
    """Schema for user info in auth responses. Never carries the password hash."""

    id: int
    name: str
    email: str
    role: str
    two_factor_enabled: bool = False

    model_config = {"from_attributes": True}


class TokenResponse(BaseModel):
    """Schema for a completed sign-in."""

    message: str
    user: UserInfo
    role: str
    token: str
    token_type: str = "bearer"


class TwoFactorChallengeResponse(BaseModel):
    """Schema for a login that still needs the emailed code."""

    message: str
    two_factor_required: bool = True
    user_id: int


class VerifyOtpRequest(BaseModel):
    """Schema for submitting an emailed code."""

    user_id: int
    otp: str = Field(min_length=6, max_length=6, pattern=r"^\d{6}$")


class ResendOtpRequest(BaseModel):
    """Schema for requesting a fresh code."""

    user_id: int


class MessageResponse(BaseModel):
    """Schema for simple message response."""

    message: str


class TwoFactorStatusResponse(BaseModel):
    """Schema for the enable/disable 2FA responses."""

    message: str
    two_factor_enabled: bool


class ForgotPasswordRequest(BaseModel):
    """Schema for requesting password reset."""

    email: EmailStr


class ResetPasswordRequest(BaseModel):
    """Schema for resetting password with token."""

    token: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=8, max_length=PASSWORD_MAX_LENGTH)
    password_confirmation: str

    @model_validator(mode="after")
    def passwords_match(self) -> "ResetPasswordRequest":
        check_password_confirmation(self.password, self.password_confirmation)
        return self


class GoogleRedirectResponse(BaseModel):
    """Schema for the Google consent URL."""

    message: str
    redirect_url: str

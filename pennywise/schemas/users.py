"""Schemas for user management endpoints.

Each write operation has its own input type with its own allowed fields:
students edit themselves through ``OwnProfileUpdate`` (no role), admins edit
anyone through ``AdminUserUpdate``.
"""

from pydantic import BaseModel, EmailStr, Field, model_validator

from pennywise.constants import UserRole
from pennywise.schemas.auth import PASSWORD_MAX_LENGTH, UserInfo, check_password_confirmation

ROLE_PATTERN = f"^({'|'.join(UserRole.ALL)})$"


class AdminUserCreate(BaseModel):
    """Admin creates a user with an explicit role."""

    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(min_length=8, max_length=PASSWORD_MAX_LENGTH)
    password_confirmation: str
    role: str = Field(pattern=ROLE_PATTERN)

    @model_validator(mode="after")
    def passwords_match(self) -> "AdminUserCreate":
        check_password_confirmation(self.password, self.password_confirmation)
        return self


class OwnProfileUpdate(BaseModel):
    """Fields a user may change on their own record."""

    name: str | None = Field(None, min_length=1, max_length=255)
    email: EmailStr | None = None
    password: str | None = Field(None, min_length=8, max_length=PASSWORD_MAX_LENGTH)
    password_confirmation: str | None = None
    two_factor_enabled: bool | None = None

    @model_validator(mode="after")
    def passwords_match(self):
        check_password_confirmation(self.password, self.password_confirmation)
        return self


class AdminUserUpdate(OwnProfileUpdate):
    """Fields an admin may change on any record."""

    role: str | None = Field(None, pattern=ROLE_PATTERN)


class UserResponse(BaseModel):
    """Single user wrapped with a message."""

    message: str
    data: UserInfo


class UserPage(BaseModel):
    """One page of users."""

    message: str
    items: list[UserInfo]
    total: int = Field(..., description="Total number of users")
    page: int
    per_page: int
    has_more: bool = Field(..., description="Whether more pages exist")

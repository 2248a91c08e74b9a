"""User model for authentication."""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, CheckConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from pennywise.constants import UserRole
from pennywise.database import Base

if TYPE_CHECKING:
    from pennywise.models.auth_token import AuthToken
    from pennywise.models.password_reset_token import PasswordResetToken
    from pennywise.models.user_otp import UserOtp


class User(Base):
    """User model representing admins and students."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            f"role IN ('{UserRole.ADMIN}', '{UserRole.STUDENT}')", name="ck_users_role"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255))
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    role: Mapped[str] = mapped_column(
        String(20), default=UserRole.STUDENT, server_default=UserRole.STUDENT
    )
    # Nullable for legacy rows; OAuth-created users get a random, never-communicated hash
    password_hash: Mapped[str | None] = mapped_column(String(255))
    two_factor_enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    google_id: Mapped[str | None] = mapped_column(String(255), unique=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    otps: Mapped[list["UserOtp"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )
    auth_tokens: Mapped[list["AuthToken"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )
    password_reset_tokens: Mapped[list["PasswordResetToken"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"

"""SQLAlchemy ORM models."""

from pennywise.models.auth_token import AuthToken
from pennywise.models.password_reset_token import PasswordResetToken
from pennywise.models.security_audit_log import SecurityAuditLog
from pennywise.models.user import User
from pennywise.models.user_otp import UserOtp

__all__ = [
    "AuthToken",
    "PasswordResetToken",
    "SecurityAuditLog",
    "User",
    "UserOtp",
]

"""Service for logging security events."""

import json
import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from pennywise.models.security_audit_log import SecurityAuditLog

logger = logging.getLogger(__name__)


class SecurityEventType:
    """Constants for security event types."""

    REGISTERED = "registered"
    LOGIN_SUCCESS = "login_success"
    LOGIN_FAILED = "login_failed"
    LOGIN_CHALLENGED = "login_challenged"
    LOGOUT = "logout"
    OTP_SENT = "otp_sent"
    OTP_VERIFIED = "otp_verified"
    OTP_FAILED = "otp_failed"
    TWO_FACTOR_ENABLED = "two_factor_enabled"
    TWO_FACTOR_DISABLED = "two_factor_disabled"
    OAUTH_LOGIN = "oauth_login"
    OAUTH_FAILED = "oauth_failed"
    PASSWORD_RESET_REQUESTED = "password_reset_requested"
    PASSWORD_RESET_COMPLETED = "password_reset_completed"
    USER_CREATED = "user_created"
    USER_UPDATED = "user_updated"
    USER_DELETED = "user_deleted"


@dataclass(frozen=True)
class RequestContext:
    """Where a request came from, for the audit trail."""

    ip_address: str | None = None
    user_agent: str | None = None

    @classmethod
    def from_request(cls, request) -> "RequestContext":
        """Build from a FastAPI request, preferring X-Forwarded-For behind a proxy."""
        if request is None:
            return cls()

        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            ip_address = forwarded_for.split(",")[0].strip()
        elif request.client:
            ip_address = request.client.host
        else:
            ip_address = None

        return cls(ip_address=ip_address, user_agent=request.headers.get("User-Agent", "")[:500])


class SecurityAuditService:
    """Service for recording security audit events."""

    @staticmethod
    def log_event(
        db: Session,
        event_type: str,
        user_id: int | None = None,
        context: RequestContext | None = None,
        details: dict | None = None,
    ) -> None:
        """Add a security event to the session.

        The caller commits, so the event lands in the same transaction as the
        change it describes.
        """
        context = context or RequestContext()
        db.add(
            SecurityAuditLog(
                user_id=user_id,
                event_type=event_type,
                ip_address=context.ip_address,
                user_agent=context.user_agent,
                details=json.dumps(details) if details else None,
            )
        )
        logger.info(
            f"Security event: {event_type} | user_id={user_id} | ip={context.ip_address}"
        )

"""Authentication orchestration: registration, login, two-factor, OAuth and password reset.

Every operation takes the request's database session, commits its own unit
of work, and reports failures with the exceptions in ``pennywise.exceptions``.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pennywise.config import settings
from pennywise.constants import TwoFactorPolicy, UserRole
from pennywise.exceptions import AuthenticationError, BusinessRuleError, ValidationError
from pennywise.models.password_reset_token import PasswordResetToken
from pennywise.models.user import User
from pennywise.schemas.auth import UserRegister
from pennywise.services.email_service import EmailService
from pennywise.services.google_oauth_client import GoogleProfile
from pennywise.services.otp_service import OtpService
from pennywise.services.password_service import PasswordService
from pennywise.services.repositories import UserRepository
from pennywise.services.security_audit_service import (
    RequestContext,
    SecurityAuditService,
    SecurityEventType,
)
from pennywise.services.shared import is_past
from pennywise.services.token_service import TokenService

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Incorrect email or password."
EMAIL_TAKEN_MESSAGE = "The email has already been taken."
INVALID_RESET_TOKEN_MESSAGE = "This password reset token is invalid."
TWO_FACTOR_NOT_ENABLED_MESSAGE = "2FA is not enabled for this account."
OTP_SENT_MESSAGE = "OTP sent to your email. Please verify to continue."


@dataclass(frozen=True)
class TokenResult:
    """A signed-in user and their freshly issued bearer token."""

    user: User
    token: str
    message: str

    @property
    def role(self) -> str:
        return self.user.role


@dataclass(frozen=True)
class OtpChallenge:
    """Password accepted; the emailed code is still required."""

    user_id: int
    message: str = OTP_SENT_MESSAGE


def requires_two_factor(user: User) -> bool:
    """Whether a password login for ``user`` must pass the OTP step."""
    if settings.two_factor_policy == TwoFactorPolicy.MANDATORY:
        return True
    return user.two_factor_enabled


class AuthenticationService:
    """Service for identity operations on top of the credential store."""

    @staticmethod
    def _complete_sign_in(
        db: Session,
        user: User,
        event_type: str,
        message: str,
        context: RequestContext | None,
        details: dict | None = None,
    ) -> TokenResult:
        token = TokenService.issue(db, user)
        SecurityAuditService.log_event(db, event_type, user_id=user.id, context=context, details=details)
        db.commit()
        return TokenResult(user=user, token=token, message=message)

    @staticmethod
    def register(
        db: Session, data: UserRegister, context: RequestContext | None = None
    ) -> TokenResult:
        """Create a student account and sign it in straight away (no OTP step).

        Raises:
            ValidationError: If the email is already taken.
        """
        repo = UserRepository(db)
        if repo.email_taken(data.email):
            raise ValidationError.for_field("email", EMAIL_TAKEN_MESSAGE)

        user = User(
            name=data.name,
            email=data.email,
            role=UserRole.STUDENT,
            password_hash=PasswordService.hash_password(data.password),
            two_factor_enabled=False,
        )
        try:
            repo.add(user)
            result = AuthenticationService._complete_sign_in(
                db, user, SecurityEventType.REGISTERED, "User registered successfully.", context
            )
        except IntegrityError:
            # Lost a race with a concurrent registration for the same email
            db.rollback()
            raise ValidationError.for_field("email", EMAIL_TAKEN_MESSAGE)

        logger.info(f"User registered: user_id={user.id}")
        return result

    @staticmethod
    def login(
        db: Session, email: str, password: str, context: RequestContext | None = None
    ) -> TokenResult | OtpChallenge:
        """Check a password and either sign in or start the OTP challenge.

        Unknown email and wrong password fail identically.

        Raises:
            AuthenticationError: On bad credentials.
            ExternalServiceError: If the challenge email could not be sent.
        """
        user = UserRepository(db).find_by_email(email)
        if user is None:
            # Same bcrypt cost as a real check so timing does not reveal accounts
            PasswordService.verify_password(password, PasswordService.get_dummy_hash())
        if user is None or not PasswordService.verify_password(password, user.password_hash):
            SecurityAuditService.log_event(
                db,
                SecurityEventType.LOGIN_FAILED,
                user_id=user.id if user else None,
                context=context,
                details={"reason": "invalid_password" if user else "user_not_found"},
            )
            db.commit()
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

        if requires_two_factor(user):
            OtpService.generate(db, user)
            SecurityAuditService.log_event(
                db, SecurityEventType.LOGIN_CHALLENGED, user_id=user.id, context=context
            )
            db.commit()
            logger.info(f"Two-factor challenge issued for user_id={user.id}")
            return OtpChallenge(user_id=user.id)

        return AuthenticationService._complete_sign_in(
            db, user, SecurityEventType.LOGIN_SUCCESS, "Login successful.", context
        )

    @staticmethod
    def verify_otp(
        db: Session, user_id: int, code: str, context: RequestContext | None = None
    ) -> TokenResult:
        """Finish a challenged login with the emailed code.

        Raises:
            NotFoundError: If the user does not exist.
            AuthenticationError: With "Invalid OTP code." or "OTP code has expired.".
        """
        user = UserRepository(db).get_by_id(user_id)

        verification = OtpService.verify(db, user, code)
        if not verification.valid:
            SecurityAuditService.log_event(
                db,
                SecurityEventType.OTP_FAILED,
                user_id=user.id,
                context=context,
                details={"reason": verification.message},
            )
            db.commit()
            raise AuthenticationError(verification.message)

        return AuthenticationService._complete_sign_in(
            db, user, SecurityEventType.OTP_VERIFIED, "Login successful.", context
        )

    @staticmethod
    def resend_otp(db: Session, user_id: int, context: RequestContext | None = None) -> None:
        """Replace the pending code with a new one and email it.

        Raises:
            NotFoundError: If the user does not exist.
            BusinessRuleError: Under the opt-in policy, if the user has no 2FA.
            ExternalServiceError: If the email could not be sent.
        """
        user = UserRepository(db).get_by_id(user_id)

        if settings.two_factor_policy == TwoFactorPolicy.OPT_IN and not user.two_factor_enabled:
            raise BusinessRuleError(TWO_FACTOR_NOT_ENABLED_MESSAGE)

        OtpService.generate(db, user)
        SecurityAuditService.log_event(db, SecurityEventType.OTP_SENT, user_id=user.id, context=context)
        db.commit()

    @staticmethod
    def logout(db: Session, user: User, context: RequestContext | None = None) -> int:
        """Revoke every token the user holds, on every device. Idempotent."""
        revoked = TokenService.revoke_all(db, user.id)
        SecurityAuditService.log_event(
            db, SecurityEventType.LOGOUT, user_id=user.id, context=context, details={"revoked": revoked}
        )
        db.commit()
        logger.info(f"User logged out: user_id={user.id}, tokens revoked={revoked}")
        return revoked

    @staticmethod
    def set_two_factor(
        db: Session, user: User, enabled: bool, context: RequestContext | None = None
    ) -> User:
        """Switch the caller's own two-factor flag. Tokens are left alone."""
        was_enabled = user.two_factor_enabled
        user.two_factor_enabled = enabled
        SecurityAuditService.log_event(
            db,
            SecurityEventType.TWO_FACTOR_ENABLED if enabled else SecurityEventType.TWO_FACTOR_DISABLED,
            user_id=user.id,
            context=context,
        )
        db.commit()

        if was_enabled and not enabled:
            EmailService.send_two_factor_disabled_notification(user.email)
        return user

    @staticmethod
    def oauth_login(
        db: Session, profile: GoogleProfile, context: RequestContext | None = None
    ) -> TokenResult:
        """Sign in with a verified Google profile, linking or creating the account by email.

        OAuth identities skip the OTP step.
        """
        try:
            return AuthenticationService._sign_in_google_profile(db, profile, context)
        except IntegrityError:
            # A concurrent first sign-in created the same user; link to it instead
            db.rollback()
            return AuthenticationService._sign_in_google_profile(db, profile, context)

    @staticmethod
    def _sign_in_google_profile(
        db: Session, profile: GoogleProfile, context: RequestContext | None
    ) -> TokenResult:
        repo = UserRepository(db)
        user = repo.find_by_email(profile.email)
        created = user is None

        # A Google account can back only one user
        stale_link = db.query(User).filter(User.google_id == profile.google_id)
        if user is not None:
            stale_link = stale_link.filter(User.id != user.id)
        stale_link.update({User.google_id: None})

        if user is None:
            user = repo.add(
                User(
                    name=profile.name,
                    email=profile.email,
                    role=UserRole.STUDENT,
                    password_hash=PasswordService.hash_password(
                        PasswordService.generate_unusable_password()
                    ),
                    google_id=profile.google_id,
                )
            )
        else:
            user.google_id = profile.google_id
            user.name = profile.name
            if not user.password_hash:
                user.password_hash = PasswordService.hash_password(
                    PasswordService.generate_unusable_password()
                )

        result = AuthenticationService._complete_sign_in(
            db,
            user,
            SecurityEventType.OAUTH_LOGIN,
            "Login successful.",
            context,
            details={"provider": "google", "created": created},
        )
        logger.info(f"Google sign-in for user_id={user.id} (created={created})")
        return result

    @staticmethod
    def request_password_reset(
        db: Session, email: str, context: RequestContext | None = None
    ) -> None:
        """Email a reset link if the account exists. Silent otherwise."""
        user = UserRepository(db).find_by_email(email)
        if user is None:
            return

        db.query(PasswordResetToken).filter(PasswordResetToken.user_id == user.id).delete()

        token = secrets.token_urlsafe(32)
        db.add(
            PasswordResetToken(
                user_id=user.id,
                token_hash=PasswordService.hash_token(token),
                expires_at=datetime.now(UTC)
                + timedelta(minutes=settings.password_reset_expire_minutes),
            )
        )
        SecurityAuditService.log_event(
            db, SecurityEventType.PASSWORD_RESET_REQUESTED, user_id=user.id, context=context
        )
        db.commit()

        if not EmailService.send_password_reset_email(user.email, token):
            # Not surfaced: the response must not reveal whether the account exists
            logger.error(f"Password reset email could not be delivered to user_id={user.id}")
            return
        logger.info(f"Password reset email sent to user_id={user.id}")

    @staticmethod
    def reset_password(
        db: Session,
        email: str,
        token: str,
        password: str,
        context: RequestContext | None = None,
    ) -> None:
        """Set a new password from a reset link and sign the user out everywhere.

        Raises:
            ValidationError: If the email/token pair is unknown, used or expired.
        """
        user = UserRepository(db).find_by_email(email)
        reset_token = None
        if user is not None:
            reset_token = (
                db.query(PasswordResetToken)
                .filter(
                    PasswordResetToken.user_id == user.id,
                    PasswordResetToken.token_hash == PasswordService.hash_token(token),
                    PasswordResetToken.used_at.is_(None),
                )
                .first()
            )
        if reset_token is None or is_past(reset_token.expires_at):
            raise ValidationError.for_field("email", INVALID_RESET_TOKEN_MESSAGE)

        user.password_hash = PasswordService.hash_password(password)
        reset_token.used_at = datetime.now(UTC)
        TokenService.revoke_all(db, user.id)
        SecurityAuditService.log_event(
            db, SecurityEventType.PASSWORD_RESET_COMPLETED, user_id=user.id, context=context
        )
        db.commit()

        EmailService.send_password_changed_notification(user.email)
        logger.info(f"Password reset for user_id={user.id}")

"""Email one-time passcode ledger.

A user has at most one authoritative code: ``generate`` deletes every unused
code of the user before inserting the new one, in the same transaction.
Expiry is never stored as a state change; ``verify`` computes it.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sqlalchemy import update
from sqlalchemy.orm import Session

from pennywise.config import settings
from pennywise.exceptions import ExternalServiceError
from pennywise.models.user import User
from pennywise.models.user_otp import UserOtp
from pennywise.services.email_service import EmailService
from pennywise.services.repositories import UserRepository

logger = logging.getLogger(__name__)

OTP_LENGTH = 6

INVALID_OTP_MESSAGE = "Invalid OTP code."
EXPIRED_OTP_MESSAGE = "OTP code has expired."
VERIFIED_OTP_MESSAGE = "OTP verified successfully."


@dataclass(frozen=True)
class OtpVerification:
    """Outcome of checking a submitted code."""

    valid: bool
    message: str


class OtpService:
    """Service for generating, dispatching and verifying email OTP codes."""

    @staticmethod
    def generate_code() -> str:
        """Generate a zero-padded 6-digit code from a CSPRNG."""
        return f"{secrets.randbelow(10**OTP_LENGTH):0{OTP_LENGTH}d}"

    @staticmethod
    def generate(db: Session, user: User) -> str:
        """Replace the user's pending code with a fresh one and email it.

        Raises:
            ExternalServiceError: If the email could not be sent. The new code
                is already stored; a resend will replace it.
        """
        # Serialise concurrent generations for the same user
        UserRepository(db).find_by_id_for_update(user.id)

        db.query(UserOtp).filter(
            UserOtp.user_id == user.id,
            UserOtp.is_used == False,  # noqa: E712
        ).delete()

        code = OtpService.generate_code()
        db.add(
            UserOtp(
                user_id=user.id,
                code=code,
                expires_at=datetime.now(UTC) + timedelta(minutes=settings.otp_expire_minutes),
                is_used=False,
            )
        )
        db.commit()

        if not EmailService.send_otp_email(user.email, code):
            logger.error(f"OTP email could not be delivered to user_id={user.id}")
            raise ExternalServiceError(
                "We could not send your verification code. Please try again shortly."
            )

        logger.info(f"OTP issued for user_id={user.id}")
        return code

    @staticmethod
    def verify(db: Session, user: User, code: str) -> OtpVerification:
        """Check ``code`` against the user's unused codes and consume it on success.

        Lookup is by value: only a stored code equal to the submission can
        match, never "the latest code".
        """
        user_otp = (
            db.query(UserOtp)
            .filter(
                UserOtp.user_id == user.id,
                UserOtp.code == code,
                UserOtp.is_used == False,  # noqa: E712
            )
            .order_by(UserOtp.created_at.desc(), UserOtp.id.desc())
            .first()
        )

        if user_otp is None:
            return OtpVerification(valid=False, message=INVALID_OTP_MESSAGE)

        if user_otp.is_expired():
            # Expired codes are left unused; only time retires them
            return OtpVerification(valid=False, message=EXPIRED_OTP_MESSAGE)

        # Conditional update so two concurrent submissions cannot both win
        result = db.execute(
            update(UserOtp)
            .where(UserOtp.id == user_otp.id, UserOtp.is_used == False)  # noqa: E712
            .values(is_used=True)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.rollback()
            return OtpVerification(valid=False, message=INVALID_OTP_MESSAGE)

        db.commit()
        db.refresh(user_otp)
        return OtpVerification(valid=True, message=VERIFIED_OTP_MESSAGE)

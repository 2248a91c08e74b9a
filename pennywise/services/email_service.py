"""Email service using SendGrid."""

import logging
from urllib.parse import urlencode

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from pennywise.config import settings

logger = logging.getLogger(__name__)


class EmailService:
    """Service for sending transactional emails via SendGrid."""

    @staticmethod
    def _send_email(to_email: str, subject: str, html_content: str) -> bool:
        """Send email via SendGrid. Returns True if successful."""
        if not settings.sendgrid_api_key:
            logger.warning("SendGrid API key not configured, skipping email send")
            return False

        message = Mail(
            from_email=(settings.email_from_address, settings.email_from_name),
            to_emails=to_email,
            subject=subject,
            html_content=html_content,
        )

        try:
            sg = SendGridAPIClient(settings.sendgrid_api_key)
            response = sg.send(message)
            logger.info(f"Email sent to {to_email}, status: {response.status_code}")
            return response.status_code in (200, 201, 202)
        except Exception:
            logger.exception(f"Failed to send email to {to_email}")
            return False

    @classmethod
    def send_otp_email(cls, email: str, code: str) -> bool:
        """Send the login verification code."""
        html = f"""
        <h2>Your PennyWise Login Code</h2>
        <p>Your verification code is:</p>
        <h1 style="font-size: 32px; letter-spacing: 8px; font-family: monospace;">{code}</h1>
        <p>This code expires in {settings.otp_expire_minutes} minutes.</p>
        <p>If you didn't try to log in, please change your password immediately.</p>
        """
        return cls._send_email(email, "Your PennyWise Verification Code", html)

    @classmethod
    def send_password_reset_email(cls, email: str, token: str) -> bool:
        """Send password reset link."""
        query = urlencode({"token": token, "email": email})
        reset_url = f"{settings.frontend_url}/reset-password?{query}"
        html = f"""
        <h2>Reset Your Password</h2>
        <p>Click the link below to reset your password:</p>
        <p><a href="{reset_url}">{reset_url}</a></p>
        <p>This link expires in {settings.password_reset_expire_minutes} minutes.</p>
        <p>If you didn't request this, you can ignore this email.</p>
        """
        return cls._send_email(email, "Reset Your Password - PennyWise", html)

    @classmethod
    def send_password_changed_notification(cls, email: str) -> bool:
        """Notify user their password was changed."""
        html = """
        <h2>Password Changed</h2>
        <p>Your password was successfully changed and you were signed out everywhere.</p>
        <p>If you didn't make this change, please contact support immediately.</p>
        """
        return cls._send_email(email, "Your Password Was Changed - PennyWise", html)

    @classmethod
    def send_two_factor_disabled_notification(cls, email: str) -> bool:
        """Notify user their two-factor authentication was switched off."""
        html = """
        <h2>Two-Factor Authentication Disabled</h2>
        <p>Two-factor authentication has been disabled on your account.</p>
        <p>If you didn't make this change, please contact support immediately.</p>
        """
        return cls._send_email(email, "2FA Disabled - PennyWise", html)

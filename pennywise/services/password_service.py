"""Password and secret hashing."""

import hashlib
import logging
import secrets
from functools import lru_cache

import bcrypt

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return bcrypt.hashpw(b"pennywise-timing-equaliser", bcrypt.gensalt()).decode("utf-8")


class PasswordService:
    """Service for hashing and checking secrets."""

    @staticmethod
    def get_dummy_hash() -> str:
        """Get a dummy password hash for timing-consistent verification.

        Used when the user doesn't exist so a missing account costs the same
        bcrypt round as a wrong password.
        """
        return _dummy_hash()

    @staticmethod
    def hash_password(password: str) -> str:
        """Hash a password using bcrypt."""
        salt = bcrypt.gensalt()
        hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
        return hashed.decode("utf-8")

    @staticmethod
    def verify_password(password: str, hashed: str | None) -> bool:
        """Verify a password against its hash."""
        if not hashed:
            return False
        try:
            return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
        except ValueError as e:
            logger.error(f"Password verification error: {e}")
            return False

    @staticmethod
    def generate_unusable_password() -> str:
        """Random secret for accounts created through OAuth; never shown to anyone."""
        return secrets.token_urlsafe(32)

    @staticmethod
    def hash_token(token: str) -> str:
        """Hash a token using SHA-256 (reset tokens are long and looked up by hash)."""
        return hashlib.sha256(token.encode("utf-8")).hexdigest()

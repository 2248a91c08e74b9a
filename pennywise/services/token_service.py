"""Bearer token issuance and revocation.

Tokens are HS256 JWTs whose ``jti`` points at an ``auth_tokens`` row. The row
is what makes a token revocable: a JWT that decodes fine is still rejected
once its row is revoked or gone.
"""

import logging
from datetime import UTC, datetime, timedelta

import jwt
from sqlalchemy.orm import Session

from pennywise.config import settings
from pennywise.models.auth_token import AuthToken
from pennywise.models.user import User
from pennywise.services.shared import is_past

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"


class TokenService:
    """Service for minting, resolving and revoking bearer tokens."""

    @staticmethod
    def issue(
        db: Session,
        user: User,
        name: str | None = None,
        expires_delta: timedelta | None = None,
    ) -> str:
        """Create a token row for ``user`` and return the signed JWT.

        The row is added to the session; the caller commits.
        """
        if expires_delta is None:
            expires_delta = timedelta(minutes=settings.access_token_expire_minutes)

        now = datetime.now(UTC)
        record = AuthToken(
            user_id=user.id,
            name=(name or user.name)[:255],
            expires_at=now + expires_delta,
        )
        db.add(record)
        db.flush()

        payload = {
            "sub": str(user.id),
            "jti": record.id,
            "exp": record.expires_at,
            "iat": now,
            "type": ACCESS_TOKEN_TYPE,
        }
        return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)

    @staticmethod
    def decode(token: str) -> dict | None:
        """Decode and validate a JWT token."""
        try:
            return jwt.decode(
                token,
                settings.jwt_secret_key,
                algorithms=[settings.jwt_algorithm],
            )
        except jwt.ExpiredSignatureError:
            logger.debug("Token expired")
            return None
        except jwt.InvalidTokenError as e:
            logger.debug(f"Invalid token: {e}")
            return None

    @staticmethod
    def resolve(db: Session, token: str) -> User | None:
        """Return the user a live token belongs to, or None."""
        payload = TokenService.decode(token)
        if not payload or payload.get("type") != ACCESS_TOKEN_TYPE:
            return None

        token_id = payload.get("jti")
        try:
            user_id = int(payload.get("sub"))
        except (TypeError, ValueError):
            return None

        record = db.get(AuthToken, token_id) if token_id else None
        if record is None or record.user_id != user_id or record.is_revoked:
            return None

        now = datetime.now(UTC)
        if is_past(record.expires_at, now):
            return None

        record.last_used_at = now
        db.commit()
        return record.user

    @staticmethod
    def revoke_all(db: Session, user_id: int) -> int:
        """Revoke every active token of a user. Returns how many were revoked.

        The caller commits.
        """
        return (
            db.query(AuthToken)
            .filter(
                AuthToken.user_id == user_id,
                AuthToken.is_revoked == False,  # noqa: E712
            )
            .update({AuthToken.is_revoked: True})
        )

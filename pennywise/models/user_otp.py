"""One-time passcode model for email two-factor verification."""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from pennywise.database import Base
from pennywise.services.shared import is_past

if TYPE_CHECKING:
    from pennywise.models.user import User


class UserOtp(Base):
    """A single-use, time-boxed 6-digit code tied to a user."""

    __tablename__ = "user_otps"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    code: Mapped[str] = mapped_column(String(6))
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    is_used: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    user: Mapped["User"] = relationship(back_populates="otps")

    def is_expired(self, now: datetime | None = None) -> bool:
        """Whether the code is past its expiry (expiry is computed, never stored)."""
        return is_past(self.expires_at, now)

    def __repr__(self) -> str:
        return f"<UserOtp(id={self.id}, user_id={self.user_id}, used={self.is_used})>"

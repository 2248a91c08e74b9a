"""User data access layer (the credential store)."""

import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from pennywise.exceptions import NotFoundError
from pennywise.models import User

logger = logging.getLogger(__name__)


class UserRepository:
    """Centralized user data access.

    Naming conventions:
    - find_* : Query that may return None
    - get_* : Query that raises exception if missing
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def find_by_id(self, user_id: int) -> User | None:
        """Find user by primary key."""
        return self._db.get(User, user_id)

    def get_by_id(self, user_id: int) -> User:
        """Get user by primary key or raise NotFoundError."""
        user = self.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    def find_by_email(self, email: str) -> User | None:
        """Find user by email, compared as stored."""
        return self._db.query(User).filter(User.email == email).first()

    def find_by_id_for_update(self, user_id: int) -> User | None:
        """Find user and lock the row until the transaction ends (no-op on SQLite)."""
        return self._db.execute(
            select(User).where(User.id == user_id).with_for_update()
        ).scalar_one_or_none()

    def email_taken(self, email: str, exclude_user_id: int | None = None) -> bool:
        """Whether another user already owns ``email``."""
        query = self._db.query(User.id).filter(User.email == email)
        if exclude_user_id is not None:
            query = query.filter(User.id != exclude_user_id)
        return query.first() is not None

    def paginate(self, page: int, per_page: int) -> tuple[list[User], int]:
        """Return one page of users ordered by id, plus the total count."""
        total = self._db.query(func.count(User.id)).scalar() or 0
        users = (
            self._db.query(User)
            .order_by(User.id)
            .offset((page - 1) * per_page)
            .limit(per_page)
            .all()
        )
        return users, total

    def add(self, user: User) -> User:
        """Stage a new user and flush so it gets an id."""
        self._db.add(user)
        self._db.flush()
        return user

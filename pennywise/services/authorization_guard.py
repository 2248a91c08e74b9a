"""Capability checks shared by every controller that touches user-owned data.

Rules live here once instead of as ``if role == admin`` branches per handler.
"""

from pennywise.exceptions import AuthorizationError
from pennywise.models.user import User


class AuthorizationGuard:
    """Decides what an authenticated user may do to a target user."""

    @staticmethod
    def is_admin(actor: User) -> bool:
        return actor.is_admin

    @staticmethod
    def is_self(actor: User, target_id: int) -> bool:
        return actor.id == target_id

    @classmethod
    def can_list_users(cls, actor: User) -> bool:
        return cls.is_admin(actor)

    @classmethod
    def can_create_user(cls, actor: User) -> bool:
        return cls.is_admin(actor)

    @classmethod
    def can_view_user(cls, actor: User, target_id: int) -> bool:
        return cls.is_admin(actor) or cls.is_self(actor, target_id)

    @classmethod
    def can_update_user(cls, actor: User, target_id: int) -> bool:
        return cls.is_admin(actor) or cls.is_self(actor, target_id)

    @classmethod
    def can_change_role(cls, actor: User) -> bool:
        return cls.is_admin(actor)

    @classmethod
    def can_delete_user(cls, actor: User, target_id: int) -> bool:
        return cls.is_admin(actor) and not cls.is_self(actor, target_id)

    @staticmethod
    def ensure(allowed: bool, message: str = "This action is unauthorized.") -> None:
        """Raise AuthorizationError unless ``allowed``."""
        if not allowed:
            raise AuthorizationError(message)

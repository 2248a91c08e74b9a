"""Admin authentication dependency."""

from fastapi import Depends

from pennywise.dependencies.auth import get_current_user
from pennywise.models.user import User
from pennywise.services.authorization_guard import AuthorizationGuard


def get_admin_user(current_user: User = Depends(get_current_user)) -> User:
    """Require admin privileges.

    Args:
        current_user: The authenticated user from get_current_user dependency.

    Returns:
        The user if they are an admin.

    Raises:
        AuthorizationError: If the user is not an admin.
    """
    AuthorizationGuard.ensure(
        AuthorizationGuard.is_admin(current_user), "Unauthorized. Admin access required."
    )
    return current_user

"""User management for admins and for students editing themselves."""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pennywise.exceptions import ValidationError
from pennywise.models.user import User
from pennywise.schemas.users import AdminUserCreate, AdminUserUpdate, OwnProfileUpdate
from pennywise.services.authentication_service import EMAIL_TAKEN_MESSAGE
from pennywise.services.authorization_guard import AuthorizationGuard
from pennywise.services.password_service import PasswordService
from pennywise.services.repositories import UserRepository
from pennywise.services.security_audit_service import (
    RequestContext,
    SecurityAuditService,
    SecurityEventType,
)
from pennywise.services.token_service import TokenService

logger = logging.getLogger(__name__)


class UserService:
    """Service for listing, creating, updating and deleting users."""

    @staticmethod
    def list_users(db: Session, actor: User, page: int, per_page: int) -> tuple[list[User], int]:
        AuthorizationGuard.ensure(
            AuthorizationGuard.can_list_users(actor), "Unauthorized. Only admins can view all users."
        )
        return UserRepository(db).paginate(page, per_page)

    @staticmethod
    def get_user(db: Session, actor: User, user_id: int) -> User:
        target = UserRepository(db).get_by_id(user_id)
        AuthorizationGuard.ensure(
            AuthorizationGuard.can_view_user(actor, target.id),
            "Unauthorized. Students can only view their own profile.",
        )
        return target

    @staticmethod
    def create_user(
        db: Session, actor: User, data: AdminUserCreate, context: RequestContext | None = None
    ) -> User:
        AuthorizationGuard.ensure(
            AuthorizationGuard.can_create_user(actor), "Unauthorized. Only admins can create users."
        )
        repo = UserRepository(db)
        if repo.email_taken(data.email):
            raise ValidationError.for_field("email", EMAIL_TAKEN_MESSAGE)

        user = User(
            name=data.name,
            email=data.email,
            role=data.role,
            password_hash=PasswordService.hash_password(data.password),
        )
        try:
            repo.add(user)
            SecurityAuditService.log_event(
                db,
                SecurityEventType.USER_CREATED,
                user_id=user.id,
                context=context,
                details={"by": actor.id, "role": user.role},
            )
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ValidationError.for_field("email", EMAIL_TAKEN_MESSAGE)

        logger.info(f"Admin {actor.id} created user_id={user.id} with role={user.role}")
        return user

    @staticmethod
    def update_own_profile(
        db: Session, actor: User, data: OwnProfileUpdate, context: RequestContext | None = None
    ) -> User:
        """A user edits their own name, email, password or 2FA flag."""
        return UserService._apply_update(db, actor, actor, data, context)

    @staticmethod
    def update_any_user(
        db: Session,
        actor: User,
        user_id: int,
        data: AdminUserUpdate,
        context: RequestContext | None = None,
    ) -> User:
        """An admin edits any user, including their role."""
        AuthorizationGuard.ensure(
            AuthorizationGuard.can_change_role(actor), "Unauthorized. Only admins can update other users."
        )
        target = UserRepository(db).get_by_id(user_id)
        AuthorizationGuard.ensure(AuthorizationGuard.can_update_user(actor, target.id))
        return UserService._apply_update(db, actor, target, data, context)

    @staticmethod
    def _apply_update(
        db: Session,
        actor: User,
        target: User,
        data: OwnProfileUpdate,
        context: RequestContext | None,
    ) -> User:
        changes = data.model_dump(exclude_unset=True, exclude={"password", "password_confirmation"})

        email = changes.pop("email", None)
        if email is not None and email != target.email:
            if UserRepository(db).email_taken(email, exclude_user_id=target.id):
                raise ValidationError.for_field("email", EMAIL_TAKEN_MESSAGE)
            target.email = email

        if "name" in changes and changes["name"] is not None:
            target.name = changes["name"]
        if "two_factor_enabled" in changes and changes["two_factor_enabled"] is not None:
            target.two_factor_enabled = changes["two_factor_enabled"]
        if changes.get("role") is not None:
            target.role = changes["role"]

        if data.password is not None:
            target.password_hash = PasswordService.hash_password(data.password)
            # Other devices must sign in again with the new password
            if target.id != actor.id:
                TokenService.revoke_all(db, target.id)

        SecurityAuditService.log_event(
            db,
            SecurityEventType.USER_UPDATED,
            user_id=target.id,
            context=context,
            details={"by": actor.id, "fields": sorted(data.model_fields_set - {"password_confirmation"})},
        )
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ValidationError.for_field("email", EMAIL_TAKEN_MESSAGE)

        db.refresh(target)
        return target

    @staticmethod
    def delete_user(
        db: Session, actor: User, user_id: int, context: RequestContext | None = None
    ) -> None:
        AuthorizationGuard.ensure(
            AuthorizationGuard.can_list_users(actor), "Unauthorized. Only admins can delete users."
        )
        target = UserRepository(db).get_by_id(user_id)
        AuthorizationGuard.ensure(
            AuthorizationGuard.can_delete_user(actor, target.id), "You cannot delete your own account"
        )

        db.delete(target)
        SecurityAuditService.log_event(
            db,
            SecurityEventType.USER_DELETED,
            user_id=None,
            context=context,
            details={"by": actor.id, "deleted_user_id": user_id},
        )
        db.commit()
        logger.info(f"Admin {actor.id} deleted user_id={user_id}")

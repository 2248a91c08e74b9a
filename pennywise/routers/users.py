"""User management router."""

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from pennywise.database import get_db
from pennywise.dependencies.admin import get_admin_user
from pennywise.dependencies.auth import get_current_user
from pennywise.models.user import User
from pennywise.schemas.auth import MessageResponse, UserInfo
from pennywise.schemas.users import (
    AdminUserCreate,
    AdminUserUpdate,
    OwnProfileUpdate,
    UserPage,
    UserResponse,
)
from pennywise.services.security_audit_service import RequestContext
from pennywise.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=UserPage)
def list_users(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_admin_user),
    db: Session = Depends(get_db),
) -> dict:
    """List all users (admin only)."""
    users, total = UserService.list_users(db, current_user, page, per_page)
    return {
        "message": "Users retrieved successfully",
        "items": [UserInfo.model_validate(u) for u in users],
        "total": total,
        "page": page,
        "per_page": per_page,
        "has_more": page * per_page < total,
    }


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    request: Request,
    data: AdminUserCreate,
    current_user: User = Depends(get_admin_user),
    db: Session = Depends(get_db),
) -> dict:
    """Create a user with any role (admin only)."""
    user = UserService.create_user(db, current_user, data, RequestContext.from_request(request))
    return {"message": "User created successfully", "data": user}


@router.put("/me", response_model=UserResponse)
def update_own_profile(
    request: Request,
    data: OwnProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    """Update the caller's own profile."""
    user = UserService.update_own_profile(
        db, current_user, data, RequestContext.from_request(request)
    )
    return {"message": "Profile updated successfully", "data": user}


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    """Get a user. Students may only fetch themselves."""
    user = UserService.get_user(db, current_user, user_id)
    return {"message": "User retrieved successfully", "data": user}


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    request: Request,
    user_id: int,
    data: AdminUserUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    """Update any user, including their role (admin only)."""
    user = UserService.update_any_user(
        db, current_user, user_id, data, RequestContext.from_request(request)
    )
    return {"message": "User updated successfully", "data": user}


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(
    request: Request,
    user_id: int,
    current_user: User = Depends(get_admin_user),
    db: Session = Depends(get_db),
) -> dict:
    """Delete a user (admin only, never yourself)."""
    UserService.delete_user(db, current_user, user_id, RequestContext.from_request(request))
    return {"message": "User deleted successfully"}

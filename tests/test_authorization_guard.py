"""Tests for the authorization guard."""

import pytest

from pennywise.constants import UserRole
from pennywise.exceptions import AuthorizationError
from pennywise.models.user import User
from pennywise.services.authorization_guard import AuthorizationGuard


@pytest.fixture
def admin() -> User:
    return User(id=1, name="Admin", email="admin@example.com", role=UserRole.ADMIN)


@pytest.fixture
def student() -> User:
    return User(id=2, name="Student", email="student@example.com", role=UserRole.STUDENT)


def test_admin_only_capabilities(admin, student):
    assert AuthorizationGuard.can_list_users(admin) is True
    assert AuthorizationGuard.can_create_user(admin) is True
    assert AuthorizationGuard.can_change_role(admin) is True

    assert AuthorizationGuard.can_list_users(student) is False
    assert AuthorizationGuard.can_create_user(student) is False
    assert AuthorizationGuard.can_change_role(student) is False


def test_view_and_update_self_or_admin(admin, student):
    assert AuthorizationGuard.can_view_user(student, student.id) is True
    assert AuthorizationGuard.can_update_user(student, student.id) is True
    assert AuthorizationGuard.can_view_user(student, admin.id) is False
    assert AuthorizationGuard.can_update_user(student, admin.id) is False

    assert AuthorizationGuard.can_view_user(admin, student.id) is True
    assert AuthorizationGuard.can_update_user(admin, student.id) is True


def test_nobody_deletes_themselves(admin, student):
    assert AuthorizationGuard.can_delete_user(admin, student.id) is True
    assert AuthorizationGuard.can_delete_user(admin, admin.id) is False
    assert AuthorizationGuard.can_delete_user(student, student.id) is False
    assert AuthorizationGuard.can_delete_user(student, admin.id) is False


def test_ensure():
    AuthorizationGuard.ensure(True)

    with pytest.raises(AuthorizationError) as exc_info:
        AuthorizationGuard.ensure(False, "No.")

    assert exc_info.value.message == "No."
    assert exc_info.value.status_code == 403

"""Tests for user management endpoints."""

import pytest

from pennywise.constants import UserRole
from pennywise.models.security_audit_log import SecurityAuditLog
from pennywise.models.user import User
from pennywise.services.password_service import PasswordService
from tests.conftest import auth_header, create_user, login_user


@pytest.fixture
def admin(auth_client) -> tuple[int, str]:
    """(user_id, token) of a signed-in admin."""
    test_client, db_session_maker = auth_client
    user_id = create_user(db_session_maker, "admin@example.com", role=UserRole.ADMIN)
    return user_id, login_user(test_client, "admin@example.com")


@pytest.fixture
def student(auth_client) -> tuple[int, str]:
    """(user_id, token) of a signed-in student."""
    test_client, db_session_maker = auth_client
    user_id = create_user(db_session_maker, "student@example.com")
    return user_id, login_user(test_client, "student@example.com")


class TestListAndShow:
    def test_admin_lists_users(self, auth_client, admin, student):
        test_client, _ = auth_client

        response = test_client.get("/api/users", headers=auth_header(admin[1]))

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert {u["email"] for u in data["items"]} == {"admin@example.com", "student@example.com"}
        assert data["has_more"] is False

    def test_pagination(self, auth_client, admin, student):
        test_client, _ = auth_client

        response = test_client.get(
            "/api/users", params={"page": 1, "per_page": 1}, headers=auth_header(admin[1])
        )

        data = response.json()
        assert len(data["items"]) == 1
        assert data["has_more"] is True

    def test_student_cannot_list(self, auth_client, student):
        test_client, _ = auth_client

        response = test_client.get("/api/users", headers=auth_header(student[1]))

        assert response.status_code == 403

    def test_student_views_self(self, auth_client, student):
        test_client, _ = auth_client

        response = test_client.get(f"/api/users/{student[0]}", headers=auth_header(student[1]))

        assert response.status_code == 200
        assert response.json()["data"]["email"] == "student@example.com"

    def test_student_cannot_view_others(self, auth_client, admin, student):
        test_client, _ = auth_client

        response = test_client.get(f"/api/users/{admin[0]}", headers=auth_header(student[1]))

        assert response.status_code == 403

    def test_missing_user_is_404(self, auth_client, admin):
        test_client, _ = auth_client

        response = test_client.get("/api/users/999", headers=auth_header(admin[1]))

        assert response.status_code == 404
        assert response.json()["detail"] == "User not found"


class TestCreate:
    def test_admin_creates_admin(self, auth_client, admin):
        test_client, db_session_maker = auth_client

        response = test_client.post(
            "/api/users",
            json={
                "name": "Second Admin",
                "email": "admin2@example.com",
                "password": "Password123",
                "password_confirmation": "Password123",
                "role": "admin",
            },
            headers=auth_header(admin[1]),
        )

        assert response.status_code == 201
        assert response.json()["data"]["role"] == "admin"
        db = db_session_maker()
        events = [e.event_type for e in db.query(SecurityAuditLog).all()]
        db.close()
        assert "user_created" in events

    def test_invalid_role_rejected(self, auth_client, admin):
        test_client, _ = auth_client

        response = test_client.post(
            "/api/users",
            json={
                "name": "Auditor",
                "email": "auditor@example.com",
                "password": "Password123",
                "password_confirmation": "Password123",
                "role": "auditor",
            },
            headers=auth_header(admin[1]),
        )

        assert response.status_code == 422

    def test_duplicate_email_rejected(self, auth_client, admin, student):
        test_client, _ = auth_client

        response = test_client.post(
            "/api/users",
            json={
                "name": "Copy",
                "email": "student@example.com",
                "password": "Password123",
                "password_confirmation": "Password123",
                "role": "student",
            },
            headers=auth_header(admin[1]),
        )

        assert response.status_code == 422
        assert response.json()["errors"] == {"email": ["The email has already been taken."]}

    def test_student_cannot_create(self, auth_client, student):
        test_client, _ = auth_client

        response = test_client.post(
            "/api/users",
            json={
                "name": "Sneaky",
                "email": "sneaky@example.com",
                "password": "Password123",
                "password_confirmation": "Password123",
                "role": "admin",
            },
            headers=auth_header(student[1]),
        )

        assert response.status_code == 403


class TestUpdate:
    def test_student_updates_own_profile(self, auth_client, student):
        test_client, db_session_maker = auth_client

        response = test_client.put(
            "/api/users/me",
            json={"name": "Renamed", "two_factor_enabled": True},
            headers=auth_header(student[1]),
        )

        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Renamed"
        db = db_session_maker()
        user = db.get(User, student[0])
        db.close()
        assert user.two_factor_enabled is True

    def test_student_cannot_promote_self(self, auth_client, student):
        test_client, db_session_maker = auth_client

        response = test_client.put(
            "/api/users/me", json={"role": "admin"}, headers=auth_header(student[1])
        )

        # Unknown fields are ignored; role never changes through this route
        assert response.status_code == 200
        db = db_session_maker()
        assert db.get(User, student[0]).role == "student"
        db.close()

    def test_student_cannot_update_by_id(self, auth_client, student):
        test_client, _ = auth_client

        response = test_client.put(
            f"/api/users/{student[0]}", json={"role": "admin"}, headers=auth_header(student[1])
        )

        assert response.status_code == 403

    def test_email_change_rechecks_uniqueness(self, auth_client, admin, student):
        test_client, _ = auth_client

        response = test_client.put(
            "/api/users/me", json={"email": "admin@example.com"}, headers=auth_header(student[1])
        )

        assert response.status_code == 422

    def test_password_change_needs_confirmation(self, auth_client, student):
        test_client, _ = auth_client

        response = test_client.put(
            "/api/users/me",
            json={"password": "NewPassword456", "password_confirmation": "Nope45678"},
            headers=auth_header(student[1]),
        )

        assert response.status_code == 422

    def test_multibyte_password_over_72_bytes_rejected(self, auth_client, student):
        test_client, _ = auth_client
        password = "\u00e9" * 72

        response = test_client.put(
            "/api/users/me",
            json={"password": password, "password_confirmation": password},
            headers=auth_header(student[1]),
        )

        assert response.status_code == 422

    def test_admin_changes_role_and_password(self, auth_client, admin, student):
        test_client, db_session_maker = auth_client

        response = test_client.put(
            f"/api/users/{student[0]}",
            json={
                "role": "admin",
                "password": "NewPassword456",
                "password_confirmation": "NewPassword456",
            },
            headers=auth_header(admin[1]),
        )

        assert response.status_code == 200
        assert response.json()["data"]["role"] == "admin"
        db = db_session_maker()
        user = db.get(User, student[0])
        db.close()
        assert PasswordService.verify_password("NewPassword456", user.password_hash)
        # Sessions of the edited user are ended
        assert test_client.get("/api/me", headers=auth_header(student[1])).status_code == 401

    def test_admin_update_missing_user(self, auth_client, admin):
        test_client, _ = auth_client

        response = test_client.put(
            "/api/users/999", json={"name": "Ghost"}, headers=auth_header(admin[1])
        )

        assert response.status_code == 404


class TestDelete:
    def test_admin_deletes_student(self, auth_client, admin, student):
        test_client, db_session_maker = auth_client

        response = test_client.delete(f"/api/users/{student[0]}", headers=auth_header(admin[1]))

        assert response.status_code == 200
        db = db_session_maker()
        assert db.get(User, student[0]) is None
        db.close()

    def test_admin_cannot_delete_self(self, auth_client, admin):
        test_client, _ = auth_client

        response = test_client.delete(f"/api/users/{admin[0]}", headers=auth_header(admin[1]))

        assert response.status_code == 403

    def test_student_cannot_delete(self, auth_client, admin, student):
        test_client, _ = auth_client

        response = test_client.delete(f"/api/users/{admin[0]}", headers=auth_header(student[1]))

        assert response.status_code == 403

    def test_delete_missing_user(self, auth_client, admin):
        test_client, _ = auth_client

        response = test_client.delete("/api/users/999", headers=auth_header(admin[1]))

        assert response.status_code == 404

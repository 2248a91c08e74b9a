"""Tests for the forgot/reset password flow."""

from datetime import UTC, datetime, timedelta
from unittest.mock import patch

from pennywise.models.password_reset_token import PasswordResetToken
from pennywise.routers.auth import FORGOT_PASSWORD_MESSAGE
from pennywise.services.password_service import PasswordService
from tests.conftest import auth_header, create_user, login_user, request_otp

RESET_EMAIL = "pennywise.services.authentication_service.EmailService.send_password_reset_email"
CHANGED_EMAIL = (
    "pennywise.services.authentication_service.EmailService.send_password_changed_notification"
)


def _request_reset(test_client, email: str) -> tuple:
    with patch(RESET_EMAIL, return_value=True) as mock_send:
        response = test_client.post("/api/forgot-password", json={"email": email})
    token = mock_send.call_args.args[1] if mock_send.called else None
    return response, token


def _reset(test_client, email: str, token: str, password: str = "NewPassword456"):
    with patch(CHANGED_EMAIL, return_value=True):
        return test_client.post(
            "/api/reset-password",
            json={
                "token": token,
                "email": email,
                "password": password,
                "password_confirmation": password,
            },
        )


class TestForgotPassword:
    def test_known_email_gets_link(self, auth_client):
        test_client, db_session_maker = auth_client
        user_id = create_user(db_session_maker, "student@example.com")

        response, token = _request_reset(test_client, "student@example.com")

        assert response.status_code == 200
        assert response.json()["message"] == FORGOT_PASSWORD_MESSAGE
        assert token

        db = db_session_maker()
        stored = db.query(PasswordResetToken).one()
        db.close()
        assert stored.user_id == user_id
        # Only the hash is stored
        assert stored.token_hash == PasswordService.hash_token(token)

    def test_unknown_email_same_response(self, auth_client):
        test_client, _ = auth_client

        response, token = _request_reset(test_client, "nobody@example.com")

        assert response.status_code == 200
        assert response.json()["message"] == FORGOT_PASSWORD_MESSAGE
        assert token is None

    def test_email_failure_is_not_revealed(self, auth_client):
        test_client, db_session_maker = auth_client
        create_user(db_session_maker, "student@example.com")

        with patch(RESET_EMAIL, return_value=False):
            response = test_client.post(
                "/api/forgot-password", json={"email": "student@example.com"}
            )

        assert response.status_code == 200
        assert response.json()["message"] == FORGOT_PASSWORD_MESSAGE

    def test_new_request_replaces_old_token(self, auth_client):
        test_client, db_session_maker = auth_client
        create_user(db_session_maker, "student@example.com")

        _, first = _request_reset(test_client, "student@example.com")
        _, second = _request_reset(test_client, "student@example.com")

        db = db_session_maker()
        assert db.query(PasswordResetToken).count() == 1
        db.close()
        assert _reset(test_client, "student@example.com", first).status_code == 422
        assert _reset(test_client, "student@example.com", second).status_code == 200


class TestResetPassword:
    def test_reset_changes_password_and_revokes_tokens(self, auth_client):
        test_client, db_session_maker = auth_client
        create_user(db_session_maker, "student@example.com")
        old_token = login_user(test_client, "student@example.com")
        _, reset_token = _request_reset(test_client, "student@example.com")

        response = _reset(test_client, "student@example.com", reset_token)

        assert response.status_code == 200
        assert response.json()["message"] == "Your password has been reset."
        assert test_client.get("/api/me", headers=auth_header(old_token)).status_code == 401

        old_login, _ = request_otp(test_client, "student@example.com", "Password123")
        assert old_login.status_code == 401
        new_login, code = request_otp(test_client, "student@example.com", "NewPassword456")
        assert new_login.status_code == 200
        assert code is not None

    def test_token_is_single_use(self, auth_client):
        test_client, db_session_maker = auth_client
        create_user(db_session_maker, "student@example.com")
        _, reset_token = _request_reset(test_client, "student@example.com")

        assert _reset(test_client, "student@example.com", reset_token).status_code == 200
        response = _reset(test_client, "student@example.com", reset_token, "Another789!")

        assert response.status_code == 422
        assert response.json()["errors"] == {"email": ["This password reset token is invalid."]}

    def test_wrong_email_for_token(self, auth_client):
        test_client, db_session_maker = auth_client
        create_user(db_session_maker, "student@example.com")
        create_user(db_session_maker, "other@example.com")
        _, reset_token = _request_reset(test_client, "student@example.com")

        response = _reset(test_client, "other@example.com", reset_token)

        assert response.status_code == 422

    def test_expired_token(self, auth_client):
        test_client, db_session_maker = auth_client
        create_user(db_session_maker, "student@example.com")
        _, reset_token = _request_reset(test_client, "student@example.com")

        db = db_session_maker()
        stored = db.query(PasswordResetToken).one()
        stored.expires_at = datetime.now(UTC) - timedelta(minutes=1)
        db.commit()
        db.close()

        response = _reset(test_client, "student@example.com", reset_token)

        assert response.status_code == 422

    def test_password_confirmation_must_match(self, auth_client):
        test_client, _ = auth_client

        response = test_client.post(
            "/api/reset-password",
            json={
                "token": "whatever",
                "email": "student@example.com",
                "password": "NewPassword456",
                "password_confirmation": "Mismatch456",
            },
        )

        assert response.status_code == 422

"""Shared test fixtures for identity tests."""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from pennywise.constants import UserRole
from pennywise.database import get_db
from pennywise.main import app
from pennywise.models.auth_token import AuthToken
from pennywise.models.password_reset_token import PasswordResetToken
from pennywise.models.security_audit_log import SecurityAuditLog
from pennywise.models.user import User
from pennywise.models.user_otp import UserOtp
from pennywise.rate_limiter import limiter
from pennywise.services.password_service import PasswordService

DEFAULT_PASSWORD = "Password123"


def _create_tables(engine) -> None:
    User.__table__.create(engine, checkfirst=True)
    UserOtp.__table__.create(engine, checkfirst=True)
    AuthToken.__table__.create(engine, checkfirst=True)
    PasswordResetToken.__table__.create(engine, checkfirst=True)
    SecurityAuditLog.__table__.create(engine, checkfirst=True)


def _memory_engine():
    return create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


def create_user(
    db_session_maker,
    email: str,
    password: str = DEFAULT_PASSWORD,
    role: str = UserRole.STUDENT,
    two_factor_enabled: bool = False,
    name: str = "Test User",
) -> int:
    """Insert a user directly and return its id."""
    db = db_session_maker()
    user = User(
        name=name,
        email=email,
        role=role,
        password_hash=PasswordService.hash_password(password),
        two_factor_enabled=two_factor_enabled,
    )
    db.add(user)
    db.commit()
    user_id = user.id
    db.close()
    return user_id


def request_otp(test_client: TestClient, email: str, password: str = DEFAULT_PASSWORD) -> tuple:
    """Log in with a password and capture the emailed code.

    Returns (response, code); code is None when no OTP was sent.
    """
    with patch(
        "pennywise.services.otp_service.EmailService.send_otp_email", return_value=True
    ) as mock_send:
        response = test_client.post("/api/login", json={"email": email, "password": password})

    code = mock_send.call_args.args[1] if mock_send.called else None
    return response, code


def login_user(test_client: TestClient, email: str, password: str = DEFAULT_PASSWORD) -> str:
    """Complete the password + OTP login and return the bearer token."""
    response, code = request_otp(test_client, email, password)
    data = response.json()
    if "token" in data:
        return data["token"]

    response = test_client.post(
        "/api/verify-otp", json={"user_id": data["user_id"], "otp": code}
    )
    return response.json()["token"]


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def db_session():
    """Session on a fresh in-memory database, for service-level tests."""
    engine = _memory_engine()
    _create_tables(engine)
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    db = testing_session_local()
    yield db
    db.close()


@pytest.fixture
def auth_client():
    """Create test client with in-memory database for auth tests.

    Yields a tuple of (TestClient, SessionMaker) for use in tests.
    """
    limiter.reset()

    engine = _memory_engine()
    _create_tables(engine)

    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        db = testing_session_local()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client, testing_session_local

    app.dependency_overrides.clear()

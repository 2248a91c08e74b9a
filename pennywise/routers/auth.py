"""Authentication router."""

import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from pennywise.database import get_db
from pennywise.dependencies.auth import get_current_user
from pennywise.models.user import User
from pennywise.rate_limiter import limiter
from pennywise.schemas.auth import (
    ForgotPasswordRequest,
    MessageResponse,
    ResendOtpRequest,
    ResetPasswordRequest,
    TokenResponse,
    TwoFactorChallengeResponse,
    TwoFactorStatusResponse,
    UserInfo,
    UserLogin,
    UserRegister,
    VerifyOtpRequest,
)
from pennywise.services.authentication_service import (
    AuthenticationService,
    OtpChallenge,
    TokenResult,
)
from pennywise.services.security_audit_service import RequestContext

logger = logging.getLogger(__name__)

router = APIRouter(tags=["authentication"])

FORGOT_PASSWORD_MESSAGE = "If that email address is registered, a password reset link has been sent."


def token_response(result: TokenResult) -> TokenResponse:
    """Serialize a completed sign-in."""
    return TokenResponse(
        message=result.message,
        user=UserInfo.model_validate(result.user),
        role=result.role,
        token=result.token,
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("5/minute")
def register(request: Request, data: UserRegister, db: Session = Depends(get_db)) -> TokenResponse:
    """Create a student account and return a bearer token."""
    result = AuthenticationService.register(db, data, RequestContext.from_request(request))
    return token_response(result)


@router.post("/login", response_model=TokenResponse | TwoFactorChallengeResponse)
@limiter.limit("5/minute")
def login(
    request: Request, data: UserLogin, db: Session = Depends(get_db)
) -> TokenResponse | TwoFactorChallengeResponse:
    """Check credentials. Returns a token, or a challenge when an OTP is required."""
    result = AuthenticationService.login(
        db, data.email, data.password, RequestContext.from_request(request)
    )
    if isinstance(result, OtpChallenge):
        return TwoFactorChallengeResponse(message=result.message, user_id=result.user_id)
    return token_response(result)


@router.post("/verify-otp", response_model=TokenResponse)
@limiter.limit("10/minute")
def verify_otp(
    request: Request, data: VerifyOtpRequest, db: Session = Depends(get_db)
) -> TokenResponse:
    """Complete a challenged login with the emailed code."""
    result = AuthenticationService.verify_otp(
        db, data.user_id, data.otp, RequestContext.from_request(request)
    )
    return token_response(result)


@router.post("/resend-otp", response_model=MessageResponse)
@limiter.limit("3/minute")
def resend_otp(request: Request, data: ResendOtpRequest, db: Session = Depends(get_db)) -> dict:
    """Invalidate the pending code and email a new one."""
    AuthenticationService.resend_otp(db, data.user_id, RequestContext.from_request(request))
    return {"message": "New OTP sent to your email."}


@router.post("/logout", response_model=MessageResponse)
def logout(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    """Revoke all of the caller's tokens."""
    AuthenticationService.logout(db, current_user, RequestContext.from_request(request))
    return {"message": "Logged out successfully."}


@router.get("/me", response_model=UserInfo)
def get_me(current_user: User = Depends(get_current_user)) -> User:
    """Get current user info."""
    return current_user


@router.post("/enable-2fa", response_model=TwoFactorStatusResponse)
def enable_two_factor(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    """Turn on the OTP step for the caller's password logins."""
    user = AuthenticationService.set_two_factor(
        db, current_user, True, RequestContext.from_request(request)
    )
    return {"message": "2FA enabled.", "two_factor_enabled": user.two_factor_enabled}


@router.post("/disable-2fa", response_model=TwoFactorStatusResponse)
def disable_two_factor(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    """Turn off the OTP step for the caller's password logins."""
    user = AuthenticationService.set_two_factor(
        db, current_user, False, RequestContext.from_request(request)
    )
    return {"message": "2FA disabled.", "two_factor_enabled": user.two_factor_enabled}


@router.post("/forgot-password", response_model=MessageResponse)
@limiter.limit("3/hour")
def forgot_password(
    request: Request, data: ForgotPasswordRequest, db: Session = Depends(get_db)
) -> dict:
    """Send a password reset link. The response is the same whether or not the email exists."""
    AuthenticationService.request_password_reset(
        db, data.email, RequestContext.from_request(request)
    )
    return {"message": FORGOT_PASSWORD_MESSAGE}


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(
    request: Request, data: ResetPasswordRequest, db: Session = Depends(get_db)
) -> dict:
    """Set a new password using the emailed token."""
    AuthenticationService.reset_password(
        db, data.email, data.token, data.password, RequestContext.from_request(request)
    )
    return {"message": "Your password has been reset."}

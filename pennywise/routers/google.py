"""Google sign-in router."""

import base64
import json
import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from pennywise.config import settings
from pennywise.constants import GoogleCallbackMode
from pennywise.database import get_db
from pennywise.exceptions import AuthenticationError, ExternalServiceError
from pennywise.routers.auth import token_response
from pennywise.schemas.auth import GoogleRedirectResponse, TokenResponse
from pennywise.services.authentication_service import AuthenticationService, TokenResult
from pennywise.services.google_oauth_client import GOOGLE_AUTH_FAILED_MESSAGE, GoogleOAuthClient
from pennywise.services.security_audit_service import (
    RequestContext,
    SecurityAuditService,
    SecurityEventType,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth/google", tags=["google"])


def get_google_client() -> GoogleOAuthClient:
    """Provide a Google OAuth client configured from settings."""
    return GoogleOAuthClient()


def _success_redirect(result: TokenResult) -> RedirectResponse:
    payload = {
        "token": result.token,
        "user": {
            "id": result.user.id,
            "name": result.user.name,
            "email": result.user.email,
            "role": result.user.role,
        },
        "role": result.role,
    }
    data = base64.b64encode(json.dumps(payload).encode()).decode()
    return RedirectResponse(
        f"{settings.frontend_url}/auth/google/success?data={quote(data)}",
        status_code=status.HTTP_302_FOUND,
    )


def _failure_redirect() -> RedirectResponse:
    return RedirectResponse(
        f"{settings.frontend_url}/signin?error={quote(GOOGLE_AUTH_FAILED_MESSAGE)}",
        status_code=status.HTTP_302_FOUND,
    )


@router.get("", response_model=GoogleRedirectResponse)
def google_redirect(client: GoogleOAuthClient = Depends(get_google_client)) -> dict:
    """Return the Google consent URL for the frontend to navigate to."""
    return {
        "message": "Redirect user to Google for authentication.",
        "redirect_url": client.authorization_url(),
    }


@router.get("/callback", response_model=TokenResponse)
def google_callback(
    request: Request,
    code: str | None = None,
    client: GoogleOAuthClient = Depends(get_google_client),
    db: Session = Depends(get_db),
):
    """Exchange the authorization code and sign the user in.

    Returns the token result as JSON, or redirects to the frontend when the
    legacy redirect mode is configured.
    """
    context = RequestContext.from_request(request)
    redirect_mode = settings.google_callback_mode == GoogleCallbackMode.REDIRECT

    try:
        profile = client.fetch_profile(code)
    except ExternalServiceError:
        SecurityAuditService.log_event(
            db, SecurityEventType.OAUTH_FAILED, context=context, details={"provider": "google"}
        )
        db.commit()
        if redirect_mode:
            return _failure_redirect()
        raise AuthenticationError(GOOGLE_AUTH_FAILED_MESSAGE)

    result = AuthenticationService.oauth_login(db, profile, context)
    if redirect_mode:
        return _success_redirect(result)
    return token_response(result)

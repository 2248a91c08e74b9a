"""Google OAuth 2.0 client (authorization-code flow)."""

import logging
from dataclasses import dataclass
from urllib.parse import urlencode

from pennywise.config import settings
from pennywise.exceptions import ExternalServiceError
from pennywise.services.shared import HTTPClient, HTTPClientError

logger = logging.getLogger(__name__)

GOOGLE_AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"

GOOGLE_AUTH_FAILED_MESSAGE = "Google authentication failed"


@dataclass(frozen=True)
class GoogleProfile:
    """The subset of Google's userinfo response PennyWise links accounts with."""

    google_id: str
    email: str
    name: str


class GoogleOAuthClient(HTTPClient):
    """Builds the consent URL and turns a callback code into a profile."""

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        redirect_uri: str | None = None,
    ):
        super().__init__(timeout=10.0, headers={"Accept": "application/json"})
        self.client_id = client_id if client_id is not None else settings.google_client_id
        self.client_secret = (
            client_secret if client_secret is not None else settings.google_client_secret
        )
        self.redirect_uri = redirect_uri if redirect_uri is not None else settings.google_redirect_uri

    def authorization_url(self) -> str:
        params = urlencode(
            {
                "client_id": self.client_id,
                "redirect_uri": self.redirect_uri,
                "response_type": "code",
                "scope": "openid email profile",
                "access_type": "offline",
                "prompt": "consent",
            }
        )
        return f"{GOOGLE_AUTHORIZE_URL}?{params}"

    def fetch_profile(self, code: str | None) -> GoogleProfile:
        """Exchange an authorization code and fetch the user's profile.

        Raises:
            ExternalServiceError: On any upstream failure. The message is
                generic; the cause is logged here.
        """
        if not code:
            logger.error("Google OAuth error: no authorization code provided")
            raise ExternalServiceError(GOOGLE_AUTH_FAILED_MESSAGE)

        try:
            token_data = self.post_form_json(
                GOOGLE_TOKEN_URL,
                data={
                    "code": code,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "redirect_uri": self.redirect_uri,
                    "grant_type": "authorization_code",
                },
            )
            access_token = token_data.get("access_token")
            if not access_token:
                raise ValueError("token response has no access_token")

            userinfo = self.get_json(
                GOOGLE_USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
            )
            profile = GoogleProfile(
                google_id=str(userinfo["id"]),
                email=userinfo["email"],
                name=userinfo.get("name") or userinfo["email"].split("@")[0],
            )
        except (HTTPClientError, ValueError, KeyError, AttributeError) as e:
            logger.error(f"Google OAuth error: {e}")
            raise ExternalServiceError(GOOGLE_AUTH_FAILED_MESSAGE) from e
        finally:
            self.close()

        return profile
